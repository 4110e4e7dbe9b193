# tests/test_store.py

from __future__ import annotations

import sqlite3
from datetime import date, time

import pytest

from daycycle.core.errors import RuleNotFoundError, StoreBusyError, TaskNotFoundError
from daycycle.store.models import LAST_DAY_OF_MONTH, WEDNESDAY, Cadence, TaskList
from daycycle.store.planner_store import PlannerStore
from daycycle.store.preferences import KEY_LAST_ROLLOVER_DATE, KEY_SUMMARY_TIME


def _indices(store: PlannerStore, task_list: TaskList) -> list[int]:
    return [t.sort_index for t in store.list_tasks(task_list)]


def test_sort_indices_stay_dense_per_list(store: PlannerStore) -> None:
    a = store.add_task(title="a")
    b = store.add_task(title="b")
    c = store.add_task(title="c")
    f = store.add_task(title="f", task_list=TaskList.FUTURE)

    assert [a.sort_index, b.sort_index, c.sort_index] == [0, 1, 2]
    assert f.sort_index == 0

    store.delete_task(b.id)
    assert _indices(store, TaskList.TODAY) == [0, 1]
    assert [t.title for t in store.list_tasks(TaskList.TODAY)] == ["a", "c"]

    store.move_task(a.id, to_list=TaskList.FUTURE, index=0)
    assert [t.title for t in store.list_tasks(TaskList.FUTURE)] == ["a", "f"]
    assert _indices(store, TaskList.FUTURE) == [0, 1]
    assert _indices(store, TaskList.TODAY) == [0]


def test_reorder_within_list(store: PlannerStore) -> None:
    ids = [store.add_task(title=t).id for t in ("a", "b", "c")]
    store.move_task(ids[2], index=0)
    assert [t.title for t in store.list_tasks(TaskList.TODAY)] == ["c", "a", "b"]
    assert _indices(store, TaskList.TODAY) == [0, 1, 2]


def test_completion_sets_and_clears_instant(store: PlannerStore, clock) -> None:
    task = store.add_task(title="write report")
    done = store.set_completed(task.id)
    assert done.completed is True
    assert done.completed_at == pytest.approx(clock.now().timestamp())

    reopened = store.set_completed(task.id, False)
    assert reopened.completed is False
    assert reopened.completed_at is None


def test_missing_rows_raise_integrity_errors(store: PlannerStore) -> None:
    with pytest.raises(TaskNotFoundError):
        store.set_completed("task_missing")
    with pytest.raises(RuleNotFoundError):
        store.set_rule_enabled("recurring_missing", False)
    assert store.delete_task("task_missing") is False


def test_transaction_rolls_back_everything(store: PlannerStore) -> None:
    with pytest.raises(RuntimeError):
        with store.transaction() as s:
            s.add_task(title="half done")
            s.set_setting("reminder_lead_minutes", 5)
            raise RuntimeError("boom")

    assert store.count_tasks() == 0
    assert store.get_setting("reminder_lead_minutes") is None


def test_rule_shape_is_validated(store: PlannerStore) -> None:
    with pytest.raises(ValueError):
        store.add_rule(title="x", cadence=Cadence.WEEKLY, weekdays_mask=0)
    with pytest.raises(ValueError):
        store.add_rule(title="x", cadence=Cadence.MONTHLY, monthly_day=31)

    weekly = store.add_rule(title="gym", cadence=Cadence.WEEKLY, weekdays_mask=WEDNESDAY, time_of_day=time(18, 30))
    monthly = store.add_rule(title="rent", cadence=Cadence.MONTHLY, monthly_day=LAST_DAY_OF_MONTH)

    rules = {r.id: r for r in store.list_rules()}
    assert rules[weekly.id].time_of_day == time(18, 30)
    assert rules[weekly.id].monthly_day is None
    assert rules[monthly.id].monthly_day == LAST_DAY_OF_MONTH
    assert rules[monthly.id].weekdays_mask is None


def test_settings_are_json_encoded(store: PlannerStore) -> None:
    store.set_setting(KEY_LAST_ROLLOVER_DATE, date(2026, 6, 16))
    store.set_setting(KEY_SUMMARY_TIME, time(7, 5))

    assert store.get_setting(KEY_LAST_ROLLOVER_DATE) == "2026-06-16"
    prefs = store.load_preferences()
    assert prefs.last_rollover_date == date(2026, 6, 16)
    assert prefs.summary_time == time(7, 5)


def test_history_range_is_inclusive_and_ordered(store: PlannerStore) -> None:
    with store.transaction() as s:
        for day, title in ((date(2026, 6, 10), "b"), (date(2026, 6, 8), "a"), (date(2026, 6, 15), "c")):
            s.add_history(source_list=TaskList.TODAY, title=title, completed_at=None, cleared_on=day)

    rows = store.history_range(date(2026, 6, 8), date(2026, 6, 14))
    assert [r.title for r in rows] == ["a", "b"]
    assert store.history_days() == [(date(2026, 6, 15), 1), (date(2026, 6, 10), 1), (date(2026, 6, 8), 1)]


def test_locked_database_raises_busy(store: PlannerStore) -> None:
    other = sqlite3.connect(str(store.db_path), isolation_level=None)
    try:
        other.execute("BEGIN IMMEDIATE")
        with pytest.raises(StoreBusyError):
            store.add_task(title="blocked")
    finally:
        other.execute("ROLLBACK")
        other.close()

    assert store.add_task(title="after unlock").title == "after unlock"


def test_list_and_cadence_are_string_enums() -> None:
    assert TaskList.from_db("future") is TaskList.FUTURE
    assert TaskList.from_db(None) is TaskList.TODAY
    assert TaskList.from_db("archived") is TaskList.TODAY
    assert isinstance(Cadence.MONTHLY, str)
    assert Cadence("WEEKLY") is Cadence.WEEKLY
