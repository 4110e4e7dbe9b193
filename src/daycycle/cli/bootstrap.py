# src/daycycle/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store/sinks/scheduler).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import Clock
from ..core.ports import DigestPolisher, NotificationSink
from ..core.state import AppState
from ..engine.scheduler import PlannerScheduler
from ..llm.client import OpenRouterPolisher
from ..llm.offline import OfflinePolisher
from ..notify.sinks import CompositeSink, DesktopSink, LoggingSink
from ..store.planner_store import PlannerStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.summaries_dir.mkdir(parents=True, exist_ok=True)


def build_sink(settings) -> NotificationSink:
    """Log every notification; echo on the console; add desktop delivery when available."""
    sinks: list[NotificationSink] = [LoggingSink(echo=bool(settings.console_enabled))]
    if settings.desktop_notifications:
        if DesktopSink.available():
            sinks.append(DesktopSink(app_name=settings.app_name))
        else:
            logger.info("notify-send not found; desktop notifications disabled")
    return CompositeSink(sinks)


def build_polisher(settings) -> DigestPolisher:
    try:
        return OpenRouterPolisher(settings)
    except Exception:
        # No API key / base URL: digests are written without an AI summary.
        logger.debug("AI summaries unavailable, using offline polisher", exc_info=True)
        return OfflinePolisher()


def create_initial_state(*, settings=None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = PlannerStore(settings.db_path, clock=clock, busy_timeout=settings.busy_timeout_seconds)
    sink = build_sink(settings)
    polisher = build_polisher(settings)
    scheduler = PlannerScheduler.from_settings(settings, store, sink, polisher=polisher, clock=clock)

    return AppState(
        settings=settings,
        store=store,
        sink=sink,
        scheduler=scheduler,
    )
