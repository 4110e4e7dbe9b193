# src/daycycle/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the planner scheduler (rollover / reminders / summaries) in a background thread,
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..cli.runner import SchedulerBackgroundRunner, start_scheduler_in_background
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(runner: SchedulerBackgroundRunner | None) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    if runner is not None:
        try:
            runner.stop()
            runner.join(timeout=10.0)
            if runner.is_alive():
                logger.warning("Scheduler thread did not stop within 10s.")
        except Exception:
            logger.exception("Failed to stop the scheduler.")


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    runner = start_scheduler_in_background(state)

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except Exception:
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running the scheduler only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        _shutdown(runner)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
