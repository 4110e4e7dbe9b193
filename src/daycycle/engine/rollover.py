# src/daycycle/engine/rollover.py

from __future__ import annotations

"""
Daily rollover.

Once per local day the planning state moves from "yesterday" to "today":
- completed tasks (either list) are archived into task_history and removed,
- incomplete TODAY tasks stay where they are (carry-over),
- recurring rules are materialized for the new day,
- last_rollover_date is recorded.

All of it happens in one store transaction. A failed pass commits nothing and leaves
last_rollover_date untouched, so the next check simply tries again. Archiving only touches
completed tasks and recurring generation skips titles that already exist, so running a pass
twice is harmless.

Scheduling is a small state machine driven by pending_day(now): the loop sleeps until the
next local midnight (never longer than recheck_seconds, so a suspended process notices a
missed midnight soon after it resumes) and then asks whether a day is pending.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from ..core.clock import Clock, local_date_of, next_local_midnight
from ..core.errors import RolloverError, StoreBusyError
from ..core.ports import AsyncSleep, BlockingSleep, NotificationSink
from ..notify.sinks import deliver
from ..store.models import GenerationResult, TaskList
from ..store.planner_store import PlannerStore, StoreSession
from ..store.preferences import KEY_LAST_ROLLOVER_DATE
from .recurring import generate_in_session

logger = logging.getLogger(__name__)

MIN_SLEEP_SECONDS = 1.0


class RolloverState(str, Enum):
    AWAITING_TRIGGER = "awaiting_trigger"
    RUNNING = "running"


@dataclass(frozen=True, slots=True)
class RolloverResult:
    day: date
    archived: int
    archived_today: int
    archived_future: int
    carried_over: int
    recurring: GenerationResult

    def summary(self) -> str:
        return (
            f"Archived {self.archived} completed task{'' if self.archived == 1 else 's'}, "
            f"{self.carried_over} carried over, "
            f"{self.recurring.created} recurring created"
        )


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


class RolloverEngine:
    def __init__(
        self,
        store: PlannerStore,
        sink: NotificationSink | None,
        clock: Clock,
        *,
        sleep: AsyncSleep = asyncio.sleep,
        blocking_sleep: BlockingSleep = time.sleep,
        busy_retry_delay: float = 0.25,
        busy_retries: int = 1,
        recheck_seconds: float = 300.0,
    ) -> None:
        self._store = store
        self._sink = sink
        self._clock = clock
        self._sleep = sleep
        self._blocking_sleep = blocking_sleep
        self._busy_retry_delay = max(0.0, float(busy_retry_delay))
        self._busy_retries = max(0, int(busy_retries))
        self._recheck_seconds = max(MIN_SLEEP_SECONDS, float(recheck_seconds))

        self.state = RolloverState.AWAITING_TRIGGER
        self.last_result: RolloverResult | None = None

    # ---- scheduling ----

    def next_deadline(self, now: datetime) -> datetime:
        return next_local_midnight(now)

    def plan_sleep(self, now: datetime) -> float:
        """Seconds until the next check: the next midnight, bounded by recheck_seconds."""
        until_midnight = (self.next_deadline(now) - now).total_seconds()
        return max(MIN_SLEEP_SECONDS, min(until_midnight, self._recheck_seconds))

    def pending_day(self, now: datetime) -> date | None:
        """
        Day that still needs closing, or None.

        - no last_rollover_date yet: record yesterday and report nothing pending
        - last == yesterday: up to date
        - anything older: one consolidated pass closing yesterday, however many days were missed
        """
        today = now.date()
        yesterday = today - timedelta(days=1)
        last = self._store.load_preferences().last_rollover_date

        if last is None:
            logger.info("No previous rollover recorded; assuming %s", yesterday.isoformat())
            self._store.set_setting(KEY_LAST_ROLLOVER_DATE, yesterday)
            return None

        gap = (today - last).days
        if gap <= 1:
            return None

        logger.info("Rollover pending: last=%s today=%s gap=%d day(s)", last.isoformat(), today.isoformat(), gap)
        return yesterday

    def _pending_or_none(self) -> date | None:
        try:
            return self.pending_day(self._clock.now())
        except Exception:
            logger.exception("Failed to read rollover state; will retry on the next check")
            return None

    def check(self) -> RolloverResult | None:
        """Run the pending rollover, if any. Safe to call at any time."""
        day = self._pending_or_none()
        if day is None:
            return None
        return self.perform_rollover(day)

    async def check_async(self) -> RolloverResult | None:
        """check() for the timer loop: the busy retry waits without blocking the event loop."""
        day = self._pending_or_none()
        if day is None:
            return None
        return await self.perform_rollover_async(day)

    async def run(self) -> None:
        """
        Timer loop. Cancel the task to stop it.

        The store work itself is synchronous, so a cancellation can only land between
        attempts; an interrupted pass has committed nothing.
        """
        while True:
            now = self._clock.now()
            delay = self.plan_sleep(now)
            logger.debug("Next rollover check in %.0fs (midnight at %s)", delay, self.next_deadline(now).isoformat())
            await self._sleep(delay)
            await self.check_async()

    # ---- the pass itself ----

    def _close_day(self, session: StoreSession, day: date) -> RolloverResult:
        completed = session.list_completed_tasks()
        archived_today = 0
        archived_future = 0

        for task in completed:
            cleared_on = local_date_of(task.completed_at) if task.completed_at is not None else day
            session.add_history(
                source_list=task.task_list,
                title=task.title,
                completed_at=task.completed_at,
                cleared_on=cleared_on,
            )
            session.delete_task(task.id)
            if task.task_list == TaskList.TODAY:
                archived_today += 1
            else:
                archived_future += 1

        carried_over = sum(1 for t in session.list_tasks(TaskList.TODAY) if not t.completed)
        recurring = generate_in_session(session, day + timedelta(days=1))

        # last_rollover_date only moves forward; closing an older day by hand keeps it.
        last = session.load_preferences().last_rollover_date
        if last is None or day > last:
            session.set_setting(KEY_LAST_ROLLOVER_DATE, day)
        else:
            logger.info("Keeping last_rollover_date=%s (closed older day %s)", last.isoformat(), day.isoformat())

        return RolloverResult(
            day=day,
            archived=archived_today + archived_future,
            archived_today=archived_today,
            archived_future=archived_future,
            carried_over=carried_over,
            recurring=recurring,
        )

    def _attempt(self, day: date) -> RolloverResult:
        try:
            with self._store.transaction() as session:
                return self._close_day(session, day)
        except StoreBusyError:
            raise
        except Exception as e:
            raise RolloverError(f"rollover of {day.isoformat()} failed: {e}") from e

    def _busy_retry_or_raise(self, day: date, attempt: int, exc: StoreBusyError) -> None:
        if attempt > self._busy_retries:
            raise RolloverError(f"store busy while closing {day.isoformat()}") from exc
        logger.warning("Store busy during rollover of %s; retrying in %.2fs", day.isoformat(), self._busy_retry_delay)

    def run_rollover(self, day: date) -> RolloverResult:
        """
        Close `day` atomically.

        Store contention is retried `busy_retries` times after a short fixed delay; any other
        error (or contention that persists) raises RolloverError with nothing committed.
        """
        attempt = 0
        while True:
            try:
                return self._attempt(day)
            except StoreBusyError as e:
                attempt += 1
                self._busy_retry_or_raise(day, attempt, e)
                self._blocking_sleep(self._busy_retry_delay)

    async def run_rollover_async(self, day: date) -> RolloverResult:
        """run_rollover() that awaits the injected sleep between attempts."""
        attempt = 0
        while True:
            try:
                return self._attempt(day)
            except StoreBusyError as e:
                attempt += 1
                self._busy_retry_or_raise(day, attempt, e)
                await self._sleep(self._busy_retry_delay)

    def _resolve_day(self, day: date | None) -> date:
        return day if day is not None else self._clock.now().date() - timedelta(days=1)

    def _failed(self, day: date) -> None:
        logger.exception("Rollover failed day=%s", day.isoformat())
        deliver(
            self._sink,
            "Daily rollover failed",
            f"Could not close {day.isoformat()}. It will be retried automatically.",
        )

    def _completed(self, result: RolloverResult) -> RolloverResult:
        self.last_result = result
        logger.info(
            "Rollover complete day=%s archived=%d (today=%d future=%d) carried_over=%d recurring=%d/%d",
            result.day.isoformat(),
            result.archived,
            result.archived_today,
            result.archived_future,
            result.carried_over,
            result.recurring.created,
            result.recurring.skipped,
        )
        deliver(
            self._sink,
            "Daily rollover complete",
            f"{_plural(result.archived, 'task')} archived, "
            f"{_plural(result.carried_over, 'task')} carried over, "
            f"{_plural(result.recurring.created, 'recurring task')} created",
        )
        return result

    def perform_rollover(self, day: date | None = None) -> RolloverResult | None:
        """
        Close `day` (default: yesterday), notify, and return the result.

        Failures are logged and reported through the notification sink; they return None and
        leave last_rollover_date unchanged so the next check retries.
        """
        day = self._resolve_day(day)
        self.state = RolloverState.RUNNING
        try:
            result = self.run_rollover(day)
        except RolloverError:
            self._failed(day)
            return None
        finally:
            self.state = RolloverState.AWAITING_TRIGGER
        return self._completed(result)

    async def perform_rollover_async(self, day: date | None = None) -> RolloverResult | None:
        day = self._resolve_day(day)
        self.state = RolloverState.RUNNING
        try:
            result = await self.run_rollover_async(day)
        except RolloverError:
            self._failed(day)
            return None
        finally:
            self.state = RolloverState.AWAITING_TRIGGER
        return self._completed(result)
