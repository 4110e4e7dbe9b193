# tests/test_reminders.py

from __future__ import annotations

import asyncio

import pytest

from daycycle.engine.reminders import ReminderKind, ReminderNotifier
from daycycle.store.planner_store import PlannerStore
from daycycle.store.preferences import KEY_OVERDUE_ALERTS_ENABLED, KEY_REMINDERS_ENABLED

from .fakes import FailingSink, FakeSleep, ManualClock, RecordingSink


def _due_in(store: PlannerStore, clock: ManualClock, minutes: float, title: str = "call mom"):
    return store.add_task(title=title, scheduled_at=clock.now().timestamp() + minutes * 60)


def test_upcoming_is_sent_once_across_scans(store: PlannerStore, sink: RecordingSink, clock: ManualClock) -> None:
    _due_in(store, clock, 10)
    notifier = ReminderNotifier(store, sink, clock)

    for _ in range(5):
        notifier.scan()
        clock.advance(60)

    assert sink.titles() == ["Task Reminder"]
    assert sink.sent[0].body == '"call mom" is due in 10 minutes'


def test_same_lifecycle_is_not_notified_again_when_overdue(store, sink: RecordingSink, clock: ManualClock) -> None:
    _due_in(store, clock, 10)
    notifier = ReminderNotifier(store, sink, clock)

    notifier.scan()
    clock.advance(minutes=15)
    notifier.scan()

    assert sink.titles() == ["Task Reminder"]


def test_overdue_within_window(store, sink: RecordingSink, clock: ManualClock) -> None:
    _due_in(store, clock, -30)
    emitted = ReminderNotifier(store, sink, clock).scan()

    assert [r.kind for r in emitted] == [ReminderKind.OVERDUE]
    assert sink.sent[0].title == "Task Overdue"
    assert sink.sent[0].body == '"call mom" was due 30 minutes ago'


@pytest.mark.parametrize("minutes", [20, -90, 0])
def test_outside_windows_nothing_is_sent(store, sink: RecordingSink, clock: ManualClock, minutes: float) -> None:
    _due_in(store, clock, minutes)
    assert ReminderNotifier(store, sink, clock).scan() == []
    assert sink.sent == []


def test_window_edges_are_inclusive(store, sink: RecordingSink, clock: ManualClock) -> None:
    _due_in(store, clock, 15, title="edge upcoming")
    _due_in(store, clock, -60, title="edge overdue")

    emitted = ReminderNotifier(store, sink, clock).scan()
    assert sorted(r.kind.value for r in emitted) == ["overdue", "upcoming"]


def test_disabled_preferences_silence_alerts(store, sink: RecordingSink, clock: ManualClock) -> None:
    store.set_setting(KEY_REMINDERS_ENABLED, False)
    store.set_setting(KEY_OVERDUE_ALERTS_ENABLED, False)
    _due_in(store, clock, 5)
    _due_in(store, clock, -5, title="late")

    assert ReminderNotifier(store, sink, clock).scan() == []


def test_unscheduled_and_completed_tasks_are_ignored(store, sink: RecordingSink, clock: ManualClock) -> None:
    store.add_task(title="no time")
    done = _due_in(store, clock, 5, title="already done")
    store.set_completed(done.id)

    assert ReminderNotifier(store, sink, clock).scan() == []


def test_notified_set_is_pruned_and_task_can_notify_again(store, sink: RecordingSink, clock: ManualClock) -> None:
    task = _due_in(store, clock, 10)
    notifier = ReminderNotifier(store, sink, clock)

    notifier.scan()
    assert notifier.notified_ids == {task.id}

    store.set_completed(task.id)
    notifier.scan()
    assert notifier.notified_ids == frozenset()

    store.set_completed(task.id, False)
    notifier.scan()
    assert sink.titles() == ["Task Reminder", "Task Reminder"]


def test_scan_never_writes(store, sink: RecordingSink, clock: ManualClock) -> None:
    _due_in(store, clock, 10)
    before = store.list_tasks()
    ReminderNotifier(store, sink, clock).scan()
    assert store.list_tasks() == before


def test_failing_sink_does_not_break_the_scan(store, clock: ManualClock) -> None:
    _due_in(store, clock, 10, title="a")
    _due_in(store, clock, 12, title="b")
    failing = FailingSink()

    emitted = ReminderNotifier(store, failing, clock).scan()
    assert len(emitted) == 2
    assert failing.calls == 2


def test_clear_cache(store, sink: RecordingSink, clock: ManualClock) -> None:
    _due_in(store, clock, 10)
    notifier = ReminderNotifier(store, sink, clock)
    notifier.scan()
    notifier.clear_cache()
    notifier.scan()
    assert len(sink.sent) == 2


@pytest.mark.asyncio
async def test_loop_scans_every_interval(store, sink: RecordingSink, clock: ManualClock) -> None:
    _due_in(store, clock, 17)
    fake_sleep = FakeSleep(clock, limit=4)
    notifier = ReminderNotifier(store, sink, clock, sleep=fake_sleep, interval_seconds=60)

    runner = asyncio.create_task(notifier.run())
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert fake_sleep.delays == [60, 60, 60, 60]
    # due in 17 -> 16 -> 15 (inside the lead window) -> 14 -> 13
    assert sink.titles() == ["Task Reminder"]
    assert sink.sent[0].body == '"call mom" is due in 15 minutes'
