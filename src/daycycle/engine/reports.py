# src/daycycle/engine/reports.py

from __future__ import annotations

"""
Periodic report scheduler.

Each report kind (weekly, monthly) runs its own loop:
1. catch-up: if this period's trigger already passed and the previous period has no artifact,
   generate it now (covers a process that was closed across the trigger)
2. compute the next trigger and a bounded wait:
   - trigger further out than the horizon (24h): wait the horizon and recompute
   - trigger not in the future (clock skew): recheck in a minute
3. sleep min(wait, resync interval), so changed preferences apply within one resync
4. if the armed trigger has passed, generate

Trigger computation only depends on (now, preferences), so every step can be called with
injected instants.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from ..core.clock import Clock, at_local_time, days_in_month, shift_month, start_of_iso_week
from ..core.ports import AsyncSleep
from ..store.models import LAST_DAY_OF_MONTH
from ..store.planner_store import PlannerStore
from ..store.preferences import PlannerPreferences
from .digest import DigestGenerator, DigestResult, ReportKind, ReportPeriod, period_for

logger = logging.getLogger(__name__)

SKEW_RECHECK_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class WaitPlan:
    trigger: datetime
    delay: float
    fire: bool


def weekly_trigger_in_week(day: date, prefs: PlannerPreferences) -> datetime:
    """Configured weekday/time inside the ISO week containing `day`."""
    weekday = 7 if prefs.summary_weekly_day == 0 else prefs.summary_weekly_day
    target = start_of_iso_week(day) + timedelta(days=weekday - 1)
    return at_local_time(target, prefs.summary_time)


def monthly_trigger_in_month(day: date, prefs: PlannerPreferences) -> datetime:
    """Configured day-of-month/time inside the month containing `day`."""
    first = shift_month(day, 0)
    if prefs.summary_monthly_day == LAST_DAY_OF_MONTH:
        target = first.replace(day=days_in_month(first.year, first.month))
    else:
        target = first.replace(day=prefs.summary_monthly_day)
    return at_local_time(target, prefs.summary_time)


def trigger_this_period(kind: ReportKind, now: datetime, prefs: PlannerPreferences) -> datetime:
    if kind == ReportKind.WEEKLY:
        return weekly_trigger_in_week(now.date(), prefs)
    return monthly_trigger_in_month(now.date(), prefs)


def next_trigger(kind: ReportKind, now: datetime, prefs: PlannerPreferences) -> datetime:
    """Nearest trigger strictly after `now`; rolls to the next period when this one passed."""
    candidate = trigger_this_period(kind, now, prefs)
    if candidate > now:
        return candidate
    if kind == ReportKind.WEEKLY:
        return weekly_trigger_in_week(now.date() + timedelta(weeks=1), prefs)
    return monthly_trigger_in_month(shift_month(now.date(), 1), prefs)


def plan_wait(now: datetime, trigger: datetime, *, horizon_seconds: float) -> WaitPlan:
    delta = (trigger - now).total_seconds()
    if delta <= 0:
        return WaitPlan(trigger=trigger, delay=SKEW_RECHECK_SECONDS, fire=False)
    if delta > horizon_seconds:
        return WaitPlan(trigger=trigger, delay=float(horizon_seconds), fire=False)
    return WaitPlan(trigger=trigger, delay=delta, fire=True)


def _enabled(kind: ReportKind, prefs: PlannerPreferences) -> bool:
    if kind == ReportKind.WEEKLY:
        return prefs.summary_weekly_enabled
    return prefs.summary_monthly_enabled


class ReportScheduler:
    def __init__(
        self,
        store: PlannerStore,
        generator: DigestGenerator,
        clock: Clock,
        *,
        sleep: AsyncSleep = asyncio.sleep,
        resync_seconds: float = 900.0,
        horizon_seconds: float = 86400.0,
    ) -> None:
        self._store = store
        self._generator = generator
        self._clock = clock
        self._sleep = sleep
        self._resync = max(1.0, float(resync_seconds))
        self._horizon = max(SKEW_RECHECK_SECONDS, float(horizon_seconds))
        self.armed: dict[ReportKind, WaitPlan | None] = {kind: None for kind in ReportKind}

    @property
    def generator(self) -> DigestGenerator:
        return self._generator

    def missed_period(self, kind: ReportKind, now: datetime, prefs: PlannerPreferences) -> ReportPeriod | None:
        """The previous period when its artifact is missing and this period's trigger passed."""
        if not _enabled(kind, prefs):
            return None
        if now < trigger_this_period(kind, now, prefs):
            return None
        period = period_for(kind, now.date())
        if self._generator.artifact_exists(kind, period.period_id, prefs):
            return None
        return period

    def catch_up(self, kind: ReportKind | None = None) -> list[DigestResult]:
        """Generate missing artifacts (both kinds by default). Failures are logged."""
        kinds = [kind] if kind is not None else list(ReportKind)
        now = self._clock.now()
        prefs = self._store.load_preferences()
        results: list[DigestResult] = []
        for k in kinds:
            try:
                period = self.missed_period(k, now, prefs)
                if period is None:
                    continue
                logger.info("Generating missed %s summary %s", k.value, period.artifact_name)
                results.append(self._generator.generate(k, now.date()))
            except Exception:
                logger.exception("Catch-up %s summary failed", k.value)
        return results

    def plan(self, kind: ReportKind, now: datetime | None = None) -> WaitPlan | None:
        """Next wait for `kind`, or None when that report is disabled."""
        now = now or self._clock.now()
        prefs = self._store.load_preferences()
        if not _enabled(kind, prefs):
            return None
        return plan_wait(now, next_trigger(kind, now, prefs), horizon_seconds=self._horizon)

    def generate_weekly_now(self) -> DigestResult:
        return self._generator.generate_weekly()

    def generate_monthly_now(self) -> DigestResult:
        return self._generator.generate_monthly()

    async def run(self, kind: ReportKind) -> None:
        """Timer loop for one report kind. Cancel the task to stop it."""
        while True:
            self.catch_up(kind)

            try:
                wait = self.plan(kind)
            except Exception:
                logger.exception("Failed to plan the %s summary", kind.value)
                wait = None
            self.armed[kind] = wait

            if wait is None:
                await self._sleep(self._resync)
                continue

            if wait.fire:
                logger.info("%s summary scheduled for %s", kind.label, wait.trigger.strftime("%Y-%m-%d %H:%M"))
            else:
                logger.debug("%s summary at %s is outside the horizon; rechecking", kind.label, wait.trigger.isoformat())

            await self._sleep(min(wait.delay, self._resync))

            if wait.fire and self._clock.now() >= wait.trigger:
                # Period follows the armed trigger, not the wake-up time (suspend/resume).
                try:
                    self._generator.generate(kind, wait.trigger.date())
                except Exception:
                    logger.exception("Scheduled %s summary failed", kind.value)
