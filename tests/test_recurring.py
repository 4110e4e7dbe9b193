# tests/test_recurring.py

from __future__ import annotations

from datetime import date, time, timedelta

import pytest

from daycycle.core.clock import at_local_time
from daycycle.engine.recurring import RecurringEvaluator, fires
from daycycle.store.models import ALL_WEEKDAYS, LAST_DAY_OF_MONTH, WEDNESDAY, Cadence, RecurringRule, TaskList
from daycycle.store.planner_store import PlannerStore


def _rule(**kwargs) -> RecurringRule:
    base = dict(
        id="recurring_x",
        title="x",
        notes=None,
        cadence=Cadence.WEEKLY,
        weekdays_mask=None,
        monthly_day=None,
        time_of_day=None,
        enabled=True,
        created_at=0.0,
        updated_at=0.0,
    )
    base.update(kwargs)
    return RecurringRule(**base)


def test_wednesday_mask_fires_only_on_wednesdays() -> None:
    rule = _rule(weekdays_mask=WEDNESDAY)
    day = date(2026, 7, 1)
    fired = []
    while day.month == 7:
        if fires(rule, day):
            fired.append(day)
        day += timedelta(days=1)

    assert fired == [date(2026, 7, 1), date(2026, 7, 8), date(2026, 7, 15), date(2026, 7, 22), date(2026, 7, 29)]
    assert all(d.weekday() == 2 for d in fired)


@pytest.mark.parametrize(
    ("fires_on", "not_on"),
    [
        (date(2026, 9, 30), date(2026, 9, 29)),  # 30-day month
        (date(2026, 10, 31), date(2026, 10, 30)),  # 31-day month
        (date(2027, 2, 28), date(2027, 2, 27)),  # February, non-leap
    ],
)
def test_monthly_last_day(fires_on: date, not_on: date) -> None:
    rule = _rule(cadence=Cadence.MONTHLY, monthly_day=LAST_DAY_OF_MONTH)
    assert fires(rule, fires_on)
    assert not fires(rule, not_on)


def test_monthly_fixed_day_and_disabled_rules() -> None:
    rule = _rule(cadence=Cadence.MONTHLY, monthly_day=15)
    assert fires(rule, date(2026, 6, 15))
    assert not fires(rule, date(2026, 6, 16))

    disabled = _rule(weekdays_mask=ALL_WEEKDAYS, enabled=False)
    assert not fires(disabled, date(2026, 6, 17))


def test_generate_is_idempotent(store: PlannerStore) -> None:
    store.add_rule(title="Standup", cadence=Cadence.WEEKLY, weekdays_mask=ALL_WEEKDAYS, time_of_day=time(9, 30))
    evaluator = RecurringEvaluator(store)
    day = date(2026, 6, 18)

    first = evaluator.generate_for_date(day)
    second = evaluator.generate_for_date(day)

    assert (first.created, first.skipped) == (1, 0)
    assert (second.created, second.skipped) == (0, 1)

    tasks = store.list_tasks()
    assert len(tasks) == 1
    assert tasks[0].task_list == TaskList.TODAY
    assert tasks[0].scheduled_at == pytest.approx(at_local_time(day, time(9, 30)).timestamp())


def test_existing_title_blocks_generation_case_insensitively(store: PlannerStore) -> None:
    done = store.add_task(title="water plants")
    store.set_completed(done.id)
    store.add_rule(title="Water Plants", cadence=Cadence.WEEKLY, weekdays_mask=ALL_WEEKDAYS)

    result = RecurringEvaluator(store).generate_for_date(date(2026, 6, 18))
    assert (result.created, result.skipped) == (0, 1)
    assert store.count_tasks() == 1


def test_future_list_title_does_not_block(store: PlannerStore) -> None:
    store.add_task(title="Pay rent", task_list=TaskList.FUTURE)
    store.add_rule(title="Pay rent", cadence=Cadence.MONTHLY, monthly_day=LAST_DAY_OF_MONTH)

    result = RecurringEvaluator(store).generate_for_date(date(2026, 6, 30))
    assert result.created == 1
    assert [t.title for t in store.list_tasks(TaskList.TODAY)] == ["Pay rent"]
