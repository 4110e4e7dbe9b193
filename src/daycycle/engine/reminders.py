# src/daycycle/engine/reminders.py

from __future__ import annotations

"""
Reminder notifier.

A fixed-interval scan over active, incomplete, time-scheduled tasks:
- upcoming: 0 < minutes-until-due <= lead minutes (when reminders are enabled)
- overdue:  -window <= minutes-until-due < 0     (when overdue alerts are enabled)

Each task is notified at most once while it stays active. The notified set is pruned on
every scan, so a task that was completed or deleted and later shows up active again can be
notified again. The scan only reads the store.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..core.clock import Clock
from ..core.ports import AsyncSleep, NotificationSink
from ..notify.sinks import deliver
from ..store.models import Task
from ..store.planner_store import PlannerStore
from ..store.preferences import PlannerPreferences

logger = logging.getLogger(__name__)


class ReminderKind(str, Enum):
    UPCOMING = "upcoming"
    OVERDUE = "overdue"


@dataclass(frozen=True, slots=True)
class Reminder:
    task_id: str
    kind: ReminderKind
    title: str
    body: str
    minutes: float


def classify(minutes_until_due: float, prefs: PlannerPreferences) -> ReminderKind | None:
    """Which window (if any) a task due in `minutes_until_due` minutes falls into."""
    if prefs.reminders_enabled and 0 < minutes_until_due <= prefs.reminder_lead_minutes:
        return ReminderKind.UPCOMING
    if prefs.overdue_alerts_enabled and -prefs.overdue_window_minutes <= minutes_until_due < 0:
        return ReminderKind.OVERDUE
    return None


def _minutes_word(n: int) -> str:
    return "minute" if n == 1 else "minutes"


def build_reminder(task: Task, kind: ReminderKind, minutes: float) -> Reminder:
    rounded = abs(round(minutes))
    if kind == ReminderKind.UPCOMING:
        title = "Task Reminder"
        body = f'"{task.title}" is due in {rounded} {_minutes_word(rounded)}'
    else:
        title = "Task Overdue"
        body = f'"{task.title}" was due {rounded} {_minutes_word(rounded)} ago'
    return Reminder(task_id=task.id, kind=kind, title=title, body=body, minutes=minutes)


class ReminderNotifier:
    def __init__(
        self,
        store: PlannerStore,
        sink: NotificationSink | None,
        clock: Clock,
        *,
        sleep: AsyncSleep = asyncio.sleep,
        interval_seconds: float = 60.0,
    ) -> None:
        self._store = store
        self._sink = sink
        self._clock = clock
        self._sleep = sleep
        self._interval = max(1.0, float(interval_seconds))
        self._notified: set[str] = set()

    @property
    def notified_ids(self) -> frozenset[str]:
        return frozenset(self._notified)

    def clear_cache(self, task_id: str | None = None) -> None:
        """Forget one task (or all), allowing it to be notified again."""
        if task_id is None:
            self._notified.clear()
        else:
            self._notified.discard(task_id)

    def scan(self, now: datetime | None = None) -> list[Reminder]:
        """One pass over the active set. Returns the reminders that were emitted."""
        now = now or self._clock.now()
        prefs = self._store.load_preferences()
        active = self._store.list_active_incomplete()

        # Anything no longer active (completed, deleted, archived) leaves the set.
        active_ids = {t.id for t in active}
        self._notified &= active_ids

        if not (prefs.reminders_enabled or prefs.overdue_alerts_enabled):
            return []

        now_ts = now.timestamp()
        emitted: list[Reminder] = []

        for task in active:
            if task.scheduled_at is None or task.id in self._notified:
                continue

            minutes = (task.scheduled_at - now_ts) / 60.0
            kind = classify(minutes, prefs)
            if kind is None:
                continue

            reminder = build_reminder(task, kind, minutes)
            deliver(self._sink, reminder.title, reminder.body)
            self._notified.add(task.id)
            emitted.append(reminder)
            logger.info("Reminder sent task_id=%s kind=%s minutes=%.1f", task.id, kind.value, minutes)

        return emitted

    async def run(self) -> None:
        """Scan immediately, then every interval. Cancel the task to stop it."""
        logger.debug("Reminder notifier started (interval=%.0fs)", self._interval)
        while True:
            try:
                self.scan()
            except Exception:
                logger.exception("Reminder scan failed")
            await self._sleep(self._interval)
