# src/daycycle/notify/sinks.py

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Iterable
from datetime import datetime

from ..core.ports import NotificationSink

logger = logging.getLogger(__name__)


def deliver(sink: NotificationSink | None, title: str, body: str) -> bool:
    """
    Best-effort delivery: failures are logged and swallowed so they never block the caller.

    Returns True when the sink accepted the notification.
    """
    if sink is None:
        return False
    try:
        sink.notify(title, body)
        return True
    except Exception:
        logger.exception("Notification delivery failed title=%r", title)
        return False


class LoggingSink:
    """Writes notifications to the log and, optionally, echoes them on the console."""

    def __init__(self, *, echo: bool = False) -> None:
        self._echo = echo

    def notify(self, title: str, body: str) -> None:
        logger.info("[notify] %s: %s", title, body)
        if self._echo:
            ts = datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")
            print(f"[{ts}] [{title}] {body}", flush=True)


class DesktopSink:
    """Desktop notifications through notify-send (libnotify)."""

    def __init__(self, *, app_name: str = "daycycle", urgency: str = "normal", timeout_s: float = 5.0) -> None:
        self._app_name = app_name
        self._urgency = urgency if urgency in ("low", "normal", "critical") else "normal"
        self._timeout_s = timeout_s

    @staticmethod
    def available() -> bool:
        return shutil.which("notify-send") is not None

    def notify(self, title: str, body: str) -> None:
        cmd = ["notify-send", f"--app-name={self._app_name}", f"--urgency={self._urgency}", title]
        if body:
            cmd.append(body)
        result = subprocess.run(cmd, capture_output=True, timeout=self._timeout_s)
        if result.returncode != 0:
            raise RuntimeError(
                f"notify-send exited with {result.returncode}: {result.stderr.decode(errors='replace').strip()}"
            )


class CompositeSink:
    """Fan out to several sinks; one failing sink does not stop the others."""

    def __init__(self, sinks: Iterable[NotificationSink]) -> None:
        self._sinks = list(sinks)

    def notify(self, title: str, body: str) -> None:
        for sink in self._sinks:
            deliver(sink, title, body)
