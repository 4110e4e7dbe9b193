# tests/test_commands.py

from __future__ import annotations

from datetime import date

from daycycle.cli.commands import CommandRegistry, parse_weekdays, registry
from daycycle.connectors.console_connector import handle_line
from daycycle.core.errors import TaskNotFoundError
from daycycle.store.models import ALL_WEEKDAYS, TaskList


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2 " + ",".join(args)

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bee"])

    assert reg.handle(state, "/a x y") == "h2 x,y"
    assert reg.handle(state, "/BEE", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_planner_errors_become_replies(state) -> None:
    reg = CommandRegistry()

    def missing(state, args):
        raise TaskNotFoundError("task_x")

    reg.register("missing", missing, "raises")
    assert reg.handle(state, "/missing") == "Error: Task not found: task_x"


def test_parse_weekdays() -> None:
    assert parse_weekdays("mon,wed") == 0b0000101
    assert parse_weekdays("Weekdays") == 0b0011111
    assert parse_weekdays("daily") == ALL_WEEKDAYS
    assert parse_weekdays("sunday") == 0b1000000


def test_add_list_done_move_flow(state) -> None:
    assert registry.handle(state, "/add buy milk") == "Added to today: buy milk"
    assert registry.handle(state, "/add --future @18:00 call mom") == "Added to future: call mom"

    listing = registry.handle(state, "/list") or ""
    assert "Today:" in listing and "Future:" in listing
    assert "1. [ ] buy milk" in listing
    assert "2. [ ] call mom @ 2026-06-17 18:00" in listing

    assert registry.handle(state, "/done 1") == "Completed: buy milk"
    assert "1. [x] buy milk" in (registry.handle(state, "/list today") or "")

    assert registry.handle(state, "/move 2 today 1") == "Moved: call mom -> today #1"
    assert [t.title for t in state.store.list_tasks(TaskList.TODAY)] == ["call mom", "buy milk"]
    assert "(empty)" in (registry.handle(state, "/list future") or "")


def test_bad_references_are_reported(state) -> None:
    assert registry.handle(state, "/done 3") == "Error: no task number 3; see /list"
    assert (registry.handle(state, "/add @25:99x thing") or "").startswith("Error: bad time")


def test_plain_console_text_adds_a_today_task(state) -> None:
    assert handle_line(state, "water the plants") == "Added to today: water the plants"
    (task,) = state.store.list_tasks()
    assert task.task_list == TaskList.TODAY


def test_rules_and_recurring_materialization(state) -> None:
    reply = registry.handle(state, "/rule add weekly mon,wed @07:30 Gym") or ""
    assert reply.startswith("Rule added: 1. Gym - weekly mon,wed at 07:30 [on]")

    assert registry.handle(state, "/rule add weekly funday Gym") == "Error: unknown weekday: 'fun'"
    assert registry.handle(state, "/rule add monthly 31 Rent") == (
        "Error: monthly rules need a day in 1..28 or -1 (last day)"
    )

    assert registry.handle(state, "/recurring 2026-06-22") == (
        "Recurring tasks for 2026-06-22: 1 created, 0 skipped."
    )
    assert registry.handle(state, "/recurring 2026-06-22") == (
        "Recurring tasks for 2026-06-22: 0 created, 1 skipped."
    )

    assert registry.handle(state, "/rule off 1") == "Rule disabled: Gym"
    assert "[off]" in (registry.handle(state, "/rules") or "")
    assert registry.handle(state, "/rule rm 1") == "Deleted rule: Gym"
    assert state.store.list_rules() == []


def test_rollover_command_emits_progress(state) -> None:
    registry.handle(state, "/add shipped it")
    registry.handle(state, "/done 1")
    registry.handle(state, "/add still open")
    progress: list[str] = []

    reply = registry.handle(state, "/rollover", emit=progress.append)

    assert progress == ["[ROLLOVER] Running..."]
    assert reply == "Rollover of 2026-06-16: Archived 1 completed task, 1 carried over, 0 recurring created."
    assert "2026-06-17: 1" in (registry.handle(state, "/history") or "")
    assert "shipped it (today)" in (registry.handle(state, "/history 2026-06-17") or "")
    assert state.store.load_preferences().last_rollover_date == date(2026, 6, 16)


def test_summary_commands(state) -> None:
    assert registry.handle(state, "/summaries") == "No summaries yet."

    reply = registry.handle(state, "/weekly") or ""
    assert reply.startswith("Weekly summary written: ")
    assert reply.endswith("weekly-2026-24.md")

    assert "weekly-2026-24.md" in (registry.handle(state, "/summaries") or "")


def test_set_and_status(state) -> None:
    assert registry.handle(state, "/set reminder_lead_minutes 30") == "reminder_lead_minutes = 30"
    assert state.store.load_preferences().reminder_lead_minutes == 30
    assert registry.handle(state, "/set last_rollover_date 2026-01-01").startswith("Unknown preference")

    listing = registry.handle(state, "/set") or ""
    assert "summary_time = 08:00" in listing
    assert "last_rollover_date" not in listing

    status = registry.handle(state, "/status") or ""
    assert "Last rollover: never" in status
    assert "Timers: none" in status
    assert "lead 30 min" in status
