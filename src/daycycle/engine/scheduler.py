# src/daycycle/engine/scheduler.py

from __future__ import annotations

"""
PlannerScheduler: the single owner of every engine timer.

Constructed once at startup, started inside an asyncio loop and stopped explicitly.
Timers do not share mutable state with each other; the store is the only common ground.
"""

import asyncio
import contextlib
import logging
import time
from datetime import date
from pathlib import Path

from ..core.clock import Clock, SystemClock
from ..core.ports import AsyncSleep, BlockingSleep, DigestPolisher, NotificationSink
from ..store.models import GenerationResult
from ..store.planner_store import PlannerStore
from .digest import DigestGenerator, DigestResult, ReportKind
from .recurring import RecurringEvaluator
from .reminders import ReminderNotifier
from .reports import ReportScheduler
from .rollover import RolloverEngine, RolloverResult

logger = logging.getLogger(__name__)


class PlannerScheduler:
    def __init__(
        self,
        store: PlannerStore,
        sink: NotificationSink | None,
        *,
        summaries_dir: str | Path,
        clock: Clock | None = None,
        polisher: DigestPolisher | None = None,
        sleep: AsyncSleep = asyncio.sleep,
        blocking_sleep: BlockingSleep = time.sleep,
        reminder_interval_seconds: float = 60.0,
        rollover_recheck_seconds: float = 300.0,
        report_resync_seconds: float = 900.0,
        report_horizon_seconds: float = 86400.0,
        busy_retry_delay_seconds: float = 0.25,
    ) -> None:
        self.store = store
        self.clock = clock or SystemClock()

        self.recurring = RecurringEvaluator(store)
        self.rollover = RolloverEngine(
            store,
            sink,
            self.clock,
            sleep=sleep,
            blocking_sleep=blocking_sleep,
            busy_retry_delay=busy_retry_delay_seconds,
            recheck_seconds=rollover_recheck_seconds,
        )
        self.reminders = ReminderNotifier(
            store,
            sink,
            self.clock,
            sleep=sleep,
            interval_seconds=reminder_interval_seconds,
        )
        self.digests = DigestGenerator(
            store,
            sink,
            self.clock,
            default_folder=summaries_dir,
            polisher=polisher,
        )
        self.reports = ReportScheduler(
            store,
            self.digests,
            self.clock,
            sleep=sleep,
            resync_seconds=report_resync_seconds,
            horizon_seconds=report_horizon_seconds,
        )

        self._tasks: dict[str, asyncio.Task[None]] = {}

    @classmethod
    def from_settings(
        cls,
        settings,
        store: PlannerStore,
        sink: NotificationSink | None,
        *,
        polisher: DigestPolisher | None = None,
        clock: Clock | None = None,
    ) -> PlannerScheduler:
        return cls(
            store,
            sink,
            summaries_dir=settings.summaries_dir,
            clock=clock,
            polisher=polisher,
            reminder_interval_seconds=settings.reminder_interval_seconds,
            rollover_recheck_seconds=settings.rollover_recheck_seconds,
            report_resync_seconds=settings.report_resync_seconds,
            report_horizon_seconds=settings.report_horizon_seconds,
            busy_retry_delay_seconds=settings.busy_retry_delay_seconds,
        )

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks.values())

    def timer_names(self) -> list[str]:
        return sorted(name for name, t in self._tasks.items() if not t.done())

    # ---- lifecycle ----

    def start(self) -> None:
        """
        Startup pass, then arm every timer. Must be called from inside a running loop.

        The startup rollover check runs before the report catch-up so a freshly archived
        day is already part of any digest generated here.
        """
        if self.running:
            logger.debug("Scheduler already running")
            return

        self.rollover.check()
        self.reports.catch_up()

        self._tasks = {
            "rollover": asyncio.create_task(self.rollover.run(), name="daycycle-rollover"),
            "reminders": asyncio.create_task(self.reminders.run(), name="daycycle-reminders"),
            "weekly-report": asyncio.create_task(
                self.reports.run(ReportKind.WEEKLY), name="daycycle-weekly-report"
            ),
            "monthly-report": asyncio.create_task(
                self.reports.run(ReportKind.MONTHLY), name="daycycle-monthly-report"
            ),
        }
        logger.info("Scheduler started (%s)", ", ".join(self._tasks))

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks = {}
        for t in tasks:
            t.cancel()
        for t in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await t
        if tasks:
            logger.info("Scheduler stopped")

    async def run_until(self, stop_event: asyncio.Event) -> None:
        self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    # ---- manual triggers ----

    def perform_rollover(self, day: date | None = None) -> RolloverResult | None:
        return self.rollover.perform_rollover(day)

    def generate_for_date(self, day: date) -> GenerationResult:
        return self.recurring.generate_for_date(day)

    def generate_weekly_now(self) -> DigestResult:
        return self.reports.generate_weekly_now()

    def generate_monthly_now(self) -> DigestResult:
        return self.reports.generate_monthly_now()
