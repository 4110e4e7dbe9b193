# src/daycycle/engine/recurring.py

from __future__ import annotations

import logging
from datetime import date

from ..core.clock import is_last_day_of_month
from ..store.models import LAST_DAY_OF_MONTH, Cadence, GenerationResult, RecurringRule, TaskList
from ..store.planner_store import PlannerStore, StoreSession

logger = logging.getLogger(__name__)


def fires(rule: RecurringRule, day: date) -> bool:
    """
    Whether `rule` produces a task on `day`.

    WEEKLY: the weekday bit of `day` is set (bit0 = Monday ... bit6 = Sunday).
    MONTHLY: day-of-month matches, or the rule says -1 and `day` is the month's last day.
    """
    if not rule.enabled:
        return False

    if rule.cadence == Cadence.WEEKLY:
        if rule.weekdays_mask is None:
            return False
        return bool(rule.weekdays_mask & (1 << day.weekday()))

    if rule.cadence == Cadence.MONTHLY:
        if rule.monthly_day is None:
            return False
        if rule.monthly_day == LAST_DAY_OF_MONTH:
            return is_last_day_of_month(day)
        return day.day == rule.monthly_day

    return False


def generate_in_session(session: StoreSession, day: date) -> GenerationResult:
    """
    Materialize every rule that fires on `day` inside an already open transaction.

    A rule is skipped when a TODAY task with the same title (case-insensitive, completed or
    not) already exists, which makes repeated calls for the same day harmless.
    """
    created = 0
    skipped = 0

    rules = session.list_rules(enabled_only=True)
    logger.debug("Checking %d recurring rules for %s", len(rules), day.isoformat())

    for rule in rules:
        if not fires(rule, day):
            continue

        existing = session.find_today_task_by_title(rule.title)
        if existing is not None:
            status = "completed" if existing.completed else "incomplete"
            logger.debug("Skipping %r - %s task already exists", rule.title, status)
            skipped += 1
            continue

        scheduled = rule.scheduled_instant(day)
        session.add_task(
            title=rule.title,
            notes=rule.notes,
            task_list=TaskList.TODAY,
            scheduled_at=scheduled.timestamp() if scheduled is not None else None,
        )
        logger.info("Created recurring task %r for %s", rule.title, day.isoformat())
        created += 1

    if created or skipped:
        logger.info("Recurring tasks for %s: %d created, %d skipped", day.isoformat(), created, skipped)
    return GenerationResult(created=created, skipped=skipped)


class RecurringEvaluator:
    """Standalone entry point for rule materialization (one transaction per call)."""

    def __init__(self, store: PlannerStore) -> None:
        self._store = store

    def generate_for_date(self, day: date) -> GenerationResult:
        with self._store.transaction() as session:
            return generate_in_session(session, day)
