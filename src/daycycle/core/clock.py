# src/daycycle/core/clock.py

from __future__ import annotations

"""
Wall-clock capability and local-calendar helpers.

Every engine reads "now" through a Clock so tests can drive virtual time.
All instants are timezone-aware datetimes in the host's local zone; instants persisted
in the store are POSIX timestamps (floats).
"""

import calendar
import re
from datetime import date, datetime, time, timedelta
from typing import Protocol

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Host wall clock in the current local zone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


def local_date_of(ts: float) -> date:
    """Local calendar date of a stored instant."""
    return datetime.fromtimestamp(float(ts)).astimezone().date()


def at_local_time(day: date, t: time) -> datetime:
    """Aware local instant for `day` at wall time `t`."""
    return datetime.combine(day, t.replace(tzinfo=None)).astimezone()


def start_of_day(day: date) -> datetime:
    return at_local_time(day, time(0, 0))


def next_local_midnight(now: datetime) -> datetime:
    """First local midnight strictly after `now`."""
    return start_of_day(now.date() + timedelta(days=1))


def parse_hhmm(raw: object) -> time | None:
    """Parse 'HH:MM' (24h). Returns None for anything unparsable or out of range."""
    if isinstance(raw, time):
        return raw.replace(second=0, microsecond=0, tzinfo=None)
    if not isinstance(raw, str):
        return None
    m = _HHMM_RE.match(raw.strip())
    if not m:
        return None
    hours, minutes = int(m.group(1)), int(m.group(2))
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return time(hours, minutes)


def format_hhmm(t: time) -> str:
    return f"{t.hour:02d}:{t.minute:02d}"


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def is_last_day_of_month(day: date) -> bool:
    return day.day == days_in_month(day.year, day.month)


def shift_month(day: date, months: int) -> date:
    """First day of the month `months` away from `day`'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def start_of_iso_week(day: date) -> date:
    return day - timedelta(days=day.weekday())


def iso_week_id(day: date) -> str:
    """'<ISO-year>-<2-digit ISO week>' for the week containing `day`."""
    iso = day.isocalendar()
    return f"{iso.year}-{iso.week:02d}"


def month_id(day: date) -> str:
    return f"{day.year}-{day.month:02d}"
