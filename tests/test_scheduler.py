# tests/test_scheduler.py

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from daycycle.engine.scheduler import PlannerScheduler
from daycycle.store.models import ALL_WEEKDAYS, Cadence, TaskList
from daycycle.store.preferences import KEY_LAST_ROLLOVER_DATE

from .fakes import FakeSleep, RecordingSink, local


@pytest.mark.asyncio
async def test_start_runs_startup_pass_and_arms_all_timers(state, sink: RecordingSink) -> None:
    scheduler = state.scheduler

    scheduler.start()
    try:
        assert scheduler.running
        assert scheduler.timer_names() == ["monthly-report", "reminders", "rollover", "weekly-report"]

        # First run: yesterday is recorded, nothing is archived.
        assert state.store.load_preferences().last_rollover_date == date(2026, 6, 16)
        assert sorted(sink.titles()) == ["Monthly Summary Generated", "Weekly Summary Generated"]

        scheduler.start()  # already running: no duplicate timers
        assert len(scheduler.timer_names()) == 4
    finally:
        await scheduler.stop()

    assert not scheduler.running
    assert scheduler.timer_names() == []


@pytest.mark.asyncio
async def test_startup_catch_up_rolls_over_before_digests(store, sink: RecordingSink, clock, tmp_path) -> None:
    store.set_setting(KEY_LAST_ROLLOVER_DATE, date(2026, 6, 10))
    resume = clock.now()
    # Completed on Friday June 12: inside last week's digest.
    clock.set(local(2026, 6, 12, 15, 0))
    task = store.add_task(title="finished last week")
    store.set_completed(task.id)
    clock.set(resume)

    scheduler = PlannerScheduler(
        store, sink, summaries_dir=tmp_path / "summaries", clock=clock, sleep=FakeSleep(clock, limit=0)
    )
    scheduler.start()
    await scheduler.stop()

    assert sink.titles()[0] == "Daily rollover complete"
    weekly = (tmp_path / "summaries" / "weekly-2026-24.md").read_text("utf-8")
    assert "finished last week" in weekly


@pytest.mark.asyncio
async def test_run_until_stops_on_event(state) -> None:
    stop_event = asyncio.Event()
    runner = asyncio.create_task(state.scheduler.run_until(stop_event))
    await asyncio.sleep(0)
    assert state.scheduler.running

    stop_event.set()
    await asyncio.wait_for(runner, timeout=5)
    assert not state.scheduler.running


def test_manual_triggers(state, sink: RecordingSink) -> None:
    scheduler = state.scheduler
    state.store.add_rule(title="Standup", cadence=Cadence.WEEKLY, weekdays_mask=ALL_WEEKDAYS)

    generated = scheduler.generate_for_date(date(2026, 6, 17))
    assert generated.created == 1

    result = scheduler.perform_rollover()
    assert result is not None and result.day == date(2026, 6, 16)
    assert [t.title for t in state.store.list_tasks(TaskList.TODAY)] == ["Standup"]

    assert scheduler.generate_weekly_now().name == "weekly-2026-24.md"
    assert scheduler.generate_monthly_now().name == "monthly-2026-05.md"
    assert sink.titles() == [
        "Daily rollover complete",
        "Weekly Summary Generated",
        "Monthly Summary Generated",
    ]
