# src/daycycle/store/models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum

from ..core.clock import at_local_time


class TaskList(str, Enum):
    """Active list membership of a task."""

    TODAY = "TODAY"
    FUTURE = "FUTURE"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskList:
        if not raw:
            return cls.TODAY
        try:
            return cls(str(raw).upper())
        except ValueError:
            return cls.TODAY


class Cadence(str, Enum):
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


LAST_DAY_OF_MONTH = -1

# Weekday mask: bit0 = Monday ... bit6 = Sunday (matches date.weekday()).
MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY = (1 << i for i in range(7))
ALL_WEEKDAYS = 0b1111111


@dataclass(slots=True)
class Task:
    id: str
    title: str
    notes: str | None
    task_list: TaskList
    sort_index: int
    scheduled_at: float | None
    completed: bool
    completed_at: float | None
    created_at: float
    updated_at: float


@dataclass(frozen=True, slots=True)
class TaskHistory:
    """Archived task. Append-only; rows are never mutated."""

    id: str
    source_list: TaskList
    title: str
    completed_at: float | None
    cleared_on: date
    created_at: float


@dataclass(slots=True)
class RecurringRule:
    id: str
    title: str
    notes: str | None
    cadence: Cadence
    weekdays_mask: int | None
    monthly_day: int | None
    time_of_day: time | None
    enabled: bool
    created_at: float
    updated_at: float

    def scheduled_instant(self, day: date) -> datetime | None:
        """Rule's fixed time-of-day on `day`, or None for all-day rules."""
        if self.time_of_day is None:
            return None
        return at_local_time(day, self.time_of_day)


@dataclass(frozen=True, slots=True)
class GenerationResult:
    created: int = 0
    skipped: int = 0
