# src/daycycle/cli/commands.py

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Callable
from datetime import date, datetime, time
from typing import Any, cast

from ..core.clock import format_hhmm, parse_hhmm
from ..core.errors import PlannerError
from ..core.state import AppState
from ..store.models import (
    ALL_WEEKDAYS,
    LAST_DAY_OF_MONTH,
    Cadence,
    RecurringRule,
    Task,
    TaskList,
)
from ..store.preferences import DEFAULTS, KEY_LAST_ROLLOVER_DATE

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_WEEKDAY_NAMES = {
    "mon": 0,
    "tue": 1,
    "wed": 2,
    "thu": 3,
    "fri": 4,
    "sat": 5,
    "sun": 6,
}


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except (PlannerError, ValueError) as e:
            logger.info("Command /%s rejected: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting / parsing helpers ----


def _now(state: AppState) -> datetime:
    return state.scheduler.clock.now()


def _fmt_ts(ts: float | None) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M")


def _fmt_task(n: int, task: Task) -> str:
    mark = "x" if task.completed else " "
    when = ""
    if task.scheduled_at is not None:
        when = f" @ {_fmt_ts(task.scheduled_at)}"
    return f"  {n}. [{mark}] {task.title}{when}  ({task.task_list.value.lower()}, {task.id[-6:]})"


def _weekdays_text(mask: int | None) -> str:
    if not mask:
        return "-"
    if mask == ALL_WEEKDAYS:
        return "daily"
    return ",".join(name for name, bit in _WEEKDAY_NAMES.items() if mask & (1 << bit))


def _fmt_rule(n: int, rule: RecurringRule) -> str:
    if rule.cadence == Cadence.WEEKLY:
        when = f"weekly {_weekdays_text(rule.weekdays_mask)}"
    else:
        day = "last" if rule.monthly_day == LAST_DAY_OF_MONTH else str(rule.monthly_day)
        when = f"monthly day {day}"
    if rule.time_of_day is not None:
        when += f" at {format_hhmm(rule.time_of_day)}"
    status = "on" if rule.enabled else "off"
    return f"  {n}. {rule.title} - {when} [{status}]  ({rule.id[-6:]})"


def parse_weekdays(raw: str) -> int:
    """'mon,wed,fri' | 'weekdays' | 'weekend' | 'daily' -> weekday mask (bit0 = Monday)."""
    key = raw.strip().lower()
    if key in ("daily", "all", "everyday"):
        return ALL_WEEKDAYS
    if key == "weekdays":
        return 0b0011111
    if key == "weekend":
        return 0b1100000
    mask = 0
    for part in key.split(","):
        part = part.strip()[:3]
        if part not in _WEEKDAY_NAMES:
            raise ValueError(f"unknown weekday: {part!r}")
        mask |= 1 << _WEEKDAY_NAMES[part]
    return mask


def _parse_when(state: AppState, token: str) -> float:
    """'@HH:MM' (today) or '@YYYY-MM-DDTHH:MM' -> POSIX timestamp."""
    raw = token[1:]
    t = parse_hhmm(raw)
    if t is not None:
        now = _now(state)
        return datetime.combine(now.date(), t).astimezone().timestamp()
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError as e:
        raise ValueError(f"bad time {raw!r}; use @HH:MM or @YYYY-MM-DDTHH:MM") from e
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt.timestamp()


def _resolve_task(state: AppState, ref: str) -> Task:
    """A task by its /list number or by (a suffix of) its id."""
    tasks = state.store.list_tasks()
    if ref.isdigit():
        idx = int(ref) - 1
        if 0 <= idx < len(tasks):
            return tasks[idx]
        raise ValueError(f"no task number {ref}; see /list")
    matches = [t for t in tasks if t.id == ref or t.id.endswith(ref)]
    if len(matches) == 1:
        return matches[0]
    raise ValueError(f"no unique task matches {ref!r}")


def _resolve_rule(state: AppState, ref: str) -> RecurringRule:
    rules = state.store.list_rules()
    if ref.isdigit():
        idx = int(ref) - 1
        if 0 <= idx < len(rules):
            return rules[idx]
        raise ValueError(f"no rule number {ref}; see /rules")
    matches = [r for r in rules if r.id == ref or r.id.endswith(ref)]
    if len(matches) == 1:
        return matches[0]
    raise ValueError(f"no unique rule matches {ref!r}")


def _parse_setting_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    prefs = state.store.load_preferences()
    tasks = state.store.list_tasks()
    today = [t for t in tasks if t.task_list == TaskList.TODAY]
    future = [t for t in tasks if t.task_list == TaskList.FUTURE]
    done = sum(1 for t in tasks if t.completed)
    timers = ", ".join(state.scheduler.timer_names()) or "none"
    last = prefs.last_rollover_date.isoformat() if prefs.last_rollover_date else "never"
    ai = "ON" if prefs.ai_summaries_enabled else "OFF"
    return (
        "Status:\n"
        f"  Now: {_now(state).strftime('%Y-%m-%d %H:%M')}\n"
        f"  Tasks: {len(today)} today, {len(future)} future ({done} completed)\n"
        f"  Archived: {state.store.count_history()}\n"
        f"  Last rollover: {last} (state: {state.scheduler.rollover.state.value})\n"
        f"  Reminders: lead {prefs.reminder_lead_minutes} min, overdue window {prefs.overdue_window_minutes} min\n"
        f"  Summaries: at {format_hhmm(prefs.summary_time)} -> {state.scheduler.digests.folder(prefs)} (AI: {ai})\n"
        f"  Timers: {timers}"
    )


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list          -> all active tasks (numbered for /done, /rm, /move)
    /list today    -> TODAY only
    /list future   -> FUTURE only
    """
    tasks = state.store.list_tasks()
    which = args[0].lower() if args else "all"
    if which not in ("all", "today", "future"):
        return "Usage: /list [today|future]"

    lines: list[str] = []
    for section in (TaskList.TODAY, TaskList.FUTURE):
        if which != "all" and section.value.lower() != which:
            continue
        lines.append(f"{section.value.title()}:")
        section_tasks = [(n, t) for n, t in enumerate(tasks, start=1) if t.task_list == section]
        if not section_tasks:
            lines.append("  (empty)")
        lines.extend(_fmt_task(n, t) for n, t in section_tasks)
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add [--future] [@HH:MM | @YYYY-MM-DDTHH:MM] title...
    """
    task_list = TaskList.TODAY
    scheduled_at: float | None = None
    words: list[str] = []
    for token in args:
        if token in ("--future", "-f"):
            task_list = TaskList.FUTURE
        elif token.startswith("@") and len(token) > 1 and scheduled_at is None:
            scheduled_at = _parse_when(state, token)
        else:
            words.append(token)

    title = " ".join(words).strip()
    if not title:
        return "Usage: /add [--future] [@HH:MM] title"

    task = state.store.add_task(title=title, task_list=task_list, scheduled_at=scheduled_at)
    return f"Added to {task.task_list.value.lower()}: {task.title}"


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <task number | id>"
    task = state.store.set_completed(_resolve_task(state, args[0]).id, True)
    return f"Completed: {task.title}"


def cmd_undo(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /undo <task number | id>"
    task = state.store.set_completed(_resolve_task(state, args[0]).id, False)
    state.scheduler.reminders.clear_cache(task.id)
    return f"Reopened: {task.title}"


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <task number | id>"
    task = _resolve_task(state, args[0])
    state.store.delete_task(task.id)
    return f"Deleted: {task.title}"


def cmd_move(state: AppState, args: list[str]) -> str:
    """
    /move <task> today|future [position]
    /move <task> <position>
    """
    if len(args) < 2:
        return "Usage: /move <task> today|future [position] | /move <task> <position>"
    task = _resolve_task(state, args[0])

    to_list: TaskList | None = None
    position: int | None = None
    rest = args[1:]
    if rest and rest[0].lower() in ("today", "future"):
        to_list = TaskList(rest[0].upper())
        rest = rest[1:]
    if rest:
        if not rest[0].isdigit() or int(rest[0]) < 1:
            return "Position must be a positive number."
        position = int(rest[0]) - 1

    moved = state.store.move_task(task.id, to_list=to_list, index=position)
    return f"Moved: {moved.title} -> {moved.task_list.value.lower()} #{moved.sort_index + 1}"


def cmd_rollover(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/rollover [YYYY-MM-DD] -> close a day now (default: yesterday)."""
    day = date.fromisoformat(args[0]) if args else None
    if emit:
        emit("[ROLLOVER] Running...")
    result = state.scheduler.perform_rollover(day)
    if result is None:
        return "Rollover failed (see log). It will be retried automatically."
    return f"Rollover of {result.day.isoformat()}: {result.summary()}."


def cmd_recurring(state: AppState, args: list[str]) -> str:
    """/recurring [YYYY-MM-DD] -> materialize recurring rules for a day (default: today)."""
    day = date.fromisoformat(args[0]) if args else _now(state).date()
    result = state.scheduler.generate_for_date(day)
    return f"Recurring tasks for {day.isoformat()}: {result.created} created, {result.skipped} skipped."


def cmd_rules(state: AppState, args: list[str]) -> str:
    rules = state.store.list_rules()
    if not rules:
        return "No recurring rules. Add one with /rule add ..."
    return "\n".join(["Recurring rules:", *(_fmt_rule(n, r) for n, r in enumerate(rules, start=1))])


def cmd_rule(state: AppState, args: list[str]) -> str:
    """
    /rule add weekly <mon,wed|weekdays|daily> [@HH:MM] title...
    /rule add monthly <1..28|last> [@HH:MM] title...
    /rule on|off|rm <rule number | id>
    """
    usage = (
        "Usage:\n"
        "  /rule add weekly <mon,wed|weekdays|daily> [@HH:MM] title\n"
        "  /rule add monthly <1..28|last> [@HH:MM] title\n"
        "  /rule on|off|rm <rule>"
    )
    if not args:
        return usage

    sub = args[0].lower()
    if sub in ("on", "off", "rm") and len(args) >= 2:
        rule = _resolve_rule(state, args[1])
        if sub == "rm":
            state.store.delete_rule(rule.id)
            return f"Deleted rule: {rule.title}"
        updated = state.store.set_rule_enabled(rule.id, sub == "on")
        return f"Rule {'enabled' if updated.enabled else 'disabled'}: {updated.title}"

    if sub != "add" or len(args) < 4:
        return usage

    cadence_raw, when_raw, rest = args[1].lower(), args[2], args[3:]
    time_of_day = None
    if rest and rest[0].startswith("@"):
        time_of_day = parse_hhmm(rest[0][1:])
        if time_of_day is None:
            return f"Bad time {rest[0]!r}; use @HH:MM."
        rest = rest[1:]
    title = " ".join(rest).strip()
    if not title:
        return usage

    if cadence_raw == "weekly":
        rule = state.store.add_rule(
            title=title, cadence=Cadence.WEEKLY, weekdays_mask=parse_weekdays(when_raw), time_of_day=time_of_day
        )
    elif cadence_raw == "monthly":
        day = LAST_DAY_OF_MONTH if when_raw.lower() in ("last", "-1") else int(when_raw)
        rule = state.store.add_rule(title=title, cadence=Cadence.MONTHLY, monthly_day=day, time_of_day=time_of_day)
    else:
        return usage
    return f"Rule added: {_fmt_rule(len(state.store.list_rules()), rule).strip()}"


def cmd_weekly(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("[SUMMARY] Generating weekly summary...")
    result = state.scheduler.generate_weekly_now()
    return f"Weekly summary written: {result.path}"


def cmd_monthly(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("[SUMMARY] Generating monthly summary...")
    result = state.scheduler.generate_monthly_now()
    return f"Monthly summary written: {result.path}"


def cmd_summaries(state: AppState, args: list[str]) -> str:
    files = state.scheduler.digests.list_artifacts()
    if not files:
        return "No summaries yet."
    return "\n".join(["Summaries:", *(f"  {f.name}  ({f.path})" for f in files)])


def cmd_history(state: AppState, args: list[str]) -> str:
    """/history [days] -> archived task counts per day; /history YYYY-MM-DD -> titles for that day."""
    if args and "-" in args[0]:
        day = date.fromisoformat(args[0])
        rows = state.store.history_range(day, day)
        if not rows:
            return f"Nothing archived on {day.isoformat()}."
        lines = [f"Archived on {day.isoformat()}:"]
        lines.extend(f"  {i}. {r.title} ({r.source_list.value.lower()})" for i, r in enumerate(rows, start=1))
        return "\n".join(lines)

    limit = int(args[0]) if args and args[0].isdigit() else 14
    days = state.store.history_days(limit)
    if not days:
        return "History is empty."
    return "\n".join(["History:", *(f"  {d.isoformat()}: {n}" for d, n in days)])


def cmd_set(state: AppState, args: list[str]) -> str:
    """
    /set              -> show preferences
    /set <key> <val>  -> store a preference (JSON value or plain text)
    """
    if not args:
        prefs = state.store.load_preferences()
        lines = ["Preferences:"]
        for key in DEFAULTS:
            if key == KEY_LAST_ROLLOVER_DATE:
                continue
            value = getattr(prefs, key)
            if isinstance(value, time):
                value = format_hhmm(value)
            lines.append(f"  {key} = {value}")
        return "\n".join(lines)

    key = args[0]
    if key not in DEFAULTS or key == KEY_LAST_ROLLOVER_DATE:
        return f"Unknown preference: {key}. Use /set to list them."
    if len(args) < 2:
        return f"Usage: /set {key} <value>"

    value = _parse_setting_value(" ".join(args[1:]))
    state.store.set_setting(key, value)
    return f"{key} = {value!r}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show planner state (tasks/rollover/timers).")
registry.register("list", cmd_list, help_text="List active tasks: /list [today|future].", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add [--future] [@HH:MM] title.")
registry.register("done", cmd_done, help_text="Complete a task: /done <n>.")
registry.register("undo", cmd_undo, help_text="Reopen a completed task: /undo <n>.")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <n>.")
registry.register("move", cmd_move, help_text="Move a task: /move <n> today|future [position].")
registry.register("rollover", cmd_rollover, help_text="Run the daily rollover now: /rollover [YYYY-MM-DD].")
registry.register("recurring", cmd_recurring, help_text="Materialize recurring tasks: /recurring [YYYY-MM-DD].")
registry.register("rules", cmd_rules, help_text="List recurring rules.")
registry.register("rule", cmd_rule, help_text="Manage rules: /rule add ... | /rule on|off|rm <n>.")
registry.register("weekly", cmd_weekly, help_text="Generate last week's summary now.")
registry.register("monthly", cmd_monthly, help_text="Generate last month's summary now.")
registry.register("summaries", cmd_summaries, help_text="List generated summaries.")
registry.register("history", cmd_history, help_text="Archived tasks: /history [days] | /history YYYY-MM-DD.")
registry.register("set", cmd_set, help_text="Show or change preferences: /set [key value].")
