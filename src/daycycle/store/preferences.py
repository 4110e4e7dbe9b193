# src/daycycle/store/preferences.py

from __future__ import annotations

"""
Typed user preferences.

Preferences are stored as JSON-encoded values in the store's `settings` table and loaded
into a frozen PlannerPreferences. Every field has a default; a stored value that is missing,
of the wrong type or out of range falls back to that default (with a warning) instead of
raising, so a bad preference can never stop a scheduler.
"""

import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Any

from ..core.clock import format_hhmm, parse_hhmm
from .models import LAST_DAY_OF_MONTH

logger = logging.getLogger(__name__)

KEY_REMINDERS_ENABLED = "reminders_enabled"
KEY_REMINDER_LEAD_MINUTES = "reminder_lead_minutes"
KEY_OVERDUE_ALERTS_ENABLED = "overdue_alerts_enabled"
KEY_OVERDUE_WINDOW_MINUTES = "overdue_window_minutes"
KEY_SUMMARY_WEEKLY_ENABLED = "summary_weekly_enabled"
KEY_SUMMARY_MONTHLY_ENABLED = "summary_monthly_enabled"
KEY_SUMMARY_WEEKLY_DAY = "summary_weekly_day"
KEY_SUMMARY_MONTHLY_DAY = "summary_monthly_day"
KEY_SUMMARY_TIME = "summary_time"
KEY_SUMMARY_FOLDER = "summary_folder"
KEY_AI_SUMMARIES_ENABLED = "ai_summaries_enabled"
KEY_LAST_ROLLOVER_DATE = "last_rollover_date"

DEFAULT_SUMMARY_TIME = time(8, 0)

DEFAULTS: dict[str, Any] = {
    KEY_REMINDERS_ENABLED: True,
    KEY_REMINDER_LEAD_MINUTES: 15,
    KEY_OVERDUE_ALERTS_ENABLED: True,
    KEY_OVERDUE_WINDOW_MINUTES: 60,
    KEY_SUMMARY_WEEKLY_ENABLED: True,
    KEY_SUMMARY_MONTHLY_ENABLED: True,
    KEY_SUMMARY_WEEKLY_DAY: 1,  # 1=Mon..7=Sun (0 is accepted as Sunday)
    KEY_SUMMARY_MONTHLY_DAY: 1,  # 1..28 or -1 for the last day of the month
    KEY_SUMMARY_TIME: format_hhmm(DEFAULT_SUMMARY_TIME),
    KEY_SUMMARY_FOLDER: "",  # empty -> Settings.summaries_dir
    KEY_AI_SUMMARIES_ENABLED: False,
    KEY_LAST_ROLLOVER_DATE: None,
}


def _as_bool(key: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str) and raw.strip().lower() in {"1", "true", "yes", "on", "0", "false", "no", "off"}:
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    logger.warning("Invalid boolean for setting %s=%r; using default", key, raw)
    return bool(DEFAULTS[key])


def _as_int(key: str, raw: Any, lo: int, hi: int) -> int:
    try:
        if isinstance(raw, bool):
            raise TypeError("bool is not an int setting")
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid integer for setting %s=%r; using default", key, raw)
        return int(DEFAULTS[key])
    if not lo <= value <= hi:
        logger.warning("Setting %s=%s out of range [%s, %s]; using default", key, value, lo, hi)
        return int(DEFAULTS[key])
    return value


def _weekly_day(raw: Any) -> int:
    day = _as_int(KEY_SUMMARY_WEEKLY_DAY, raw, 0, 7)
    return 7 if day == 0 else day


def _monthly_day(raw: Any) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = 0
    if value == LAST_DAY_OF_MONTH or 1 <= value <= 28:
        return value
    logger.warning("Setting %s=%r must be 1..28 or -1; using default", KEY_SUMMARY_MONTHLY_DAY, raw)
    return int(DEFAULTS[KEY_SUMMARY_MONTHLY_DAY])


def _summary_time(raw: Any) -> time:
    parsed = parse_hhmm(raw)
    if parsed is None:
        logger.warning("Unparsable %s=%r; using %s", KEY_SUMMARY_TIME, raw, DEFAULTS[KEY_SUMMARY_TIME])
        return DEFAULT_SUMMARY_TIME
    return parsed


def _date_or_none(raw: Any) -> date | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw))
    except ValueError:
        logger.warning("Invalid %s=%r; treating as absent", KEY_LAST_ROLLOVER_DATE, raw)
        return None


@dataclass(frozen=True, slots=True)
class PlannerPreferences:
    reminders_enabled: bool = True
    reminder_lead_minutes: int = 15
    overdue_alerts_enabled: bool = True
    overdue_window_minutes: int = 60
    summary_weekly_enabled: bool = True
    summary_monthly_enabled: bool = True
    summary_weekly_day: int = 1
    summary_monthly_day: int = 1
    summary_time: time = DEFAULT_SUMMARY_TIME
    summary_folder: str = ""
    ai_summaries_enabled: bool = False
    last_rollover_date: date | None = None

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> PlannerPreferences:
        """Build validated preferences from stored values (missing keys -> defaults)."""

        def get(key: str) -> Any:
            value = raw.get(key)
            return DEFAULTS[key] if value is None else value

        folder = get(KEY_SUMMARY_FOLDER)
        return cls(
            reminders_enabled=_as_bool(KEY_REMINDERS_ENABLED, get(KEY_REMINDERS_ENABLED)),
            reminder_lead_minutes=_as_int(KEY_REMINDER_LEAD_MINUTES, get(KEY_REMINDER_LEAD_MINUTES), 0, 1440),
            overdue_alerts_enabled=_as_bool(KEY_OVERDUE_ALERTS_ENABLED, get(KEY_OVERDUE_ALERTS_ENABLED)),
            overdue_window_minutes=_as_int(
                KEY_OVERDUE_WINDOW_MINUTES, get(KEY_OVERDUE_WINDOW_MINUTES), 0, 1440
            ),
            summary_weekly_enabled=_as_bool(KEY_SUMMARY_WEEKLY_ENABLED, get(KEY_SUMMARY_WEEKLY_ENABLED)),
            summary_monthly_enabled=_as_bool(KEY_SUMMARY_MONTHLY_ENABLED, get(KEY_SUMMARY_MONTHLY_ENABLED)),
            summary_weekly_day=_weekly_day(get(KEY_SUMMARY_WEEKLY_DAY)),
            summary_monthly_day=_monthly_day(get(KEY_SUMMARY_MONTHLY_DAY)),
            summary_time=_summary_time(get(KEY_SUMMARY_TIME)),
            summary_folder=folder.strip() if isinstance(folder, str) else "",
            ai_summaries_enabled=_as_bool(KEY_AI_SUMMARIES_ENABLED, get(KEY_AI_SUMMARIES_ENABLED)),
            last_rollover_date=_date_or_none(raw.get(KEY_LAST_ROLLOVER_DATE)),
        )
