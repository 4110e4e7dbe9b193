# src/daycycle/engine/digest.py

from __future__ import annotations

"""
Weekly / monthly digest artifacts.

A digest aggregates archived tasks (task_history rows whose cleared_on falls inside the period)
into a Markdown file named after the period:
- weekly-<ISO year>-<ISO week>.md   (Monday..Sunday of the previous week)
- monthly-<year>-<month>.md         (previous calendar month)

The file name is the idempotency key: regenerating a period overwrites the same file.
"""

import contextlib
import logging
import os
import tempfile
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path

from ..core.clock import Clock, iso_week_id, month_id, shift_month, start_of_iso_week
from ..core.ports import DigestPolisher, NotificationSink
from ..notify.sinks import deliver
from ..store.models import TaskHistory
from ..store.planner_store import PlannerStore
from ..store.preferences import PlannerPreferences

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIX = ".md"
EMPTY_PERIOD_TEXT = "*No tasks completed during this period.*"


class ReportKind(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def label(self) -> str:
        return "Weekly" if self is ReportKind.WEEKLY else "Monthly"


@dataclass(frozen=True, slots=True)
class ReportPeriod:
    kind: ReportKind
    start: date
    end: date
    period_id: str

    @property
    def artifact_name(self) -> str:
        return artifact_name(self.kind, self.period_id)

    def describe(self) -> str:
        if self.kind == ReportKind.WEEKLY:
            return f"{self.start:%b} {self.start.day} - {self.end:%b} {self.end.day}, {self.end.year}"
        return f"{self.start:%B %Y}"


@dataclass(frozen=True, slots=True)
class DigestResult:
    path: Path
    name: str
    kind: ReportKind
    period_id: str
    created_at: datetime
    markdown: str


@dataclass(frozen=True, slots=True)
class ArtifactInfo:
    path: Path
    name: str
    kind: ReportKind


def artifact_name(kind: ReportKind, period_id: str) -> str:
    return f"{kind.value}-{period_id}{ARTIFACT_SUFFIX}"


def weekly_period(reference: date) -> ReportPeriod:
    """Monday..Sunday of the week before the one containing `reference`."""
    start = start_of_iso_week(reference) - timedelta(weeks=1)
    return ReportPeriod(ReportKind.WEEKLY, start, start + timedelta(days=6), iso_week_id(start))


def monthly_period(reference: date) -> ReportPeriod:
    """The calendar month before the one containing `reference`."""
    start = shift_month(reference, -1)
    end = shift_month(reference, 0) - timedelta(days=1)
    return ReportPeriod(ReportKind.MONTHLY, start, end, month_id(start))


def period_for(kind: ReportKind, reference: date) -> ReportPeriod:
    return weekly_period(reference) if kind == ReportKind.WEEKLY else monthly_period(reference)


def _long_day(day: date) -> str:
    return f"{day:%A, %B} {day.day}"


def _generated_line(now: datetime) -> str:
    hour12 = now.hour % 12 or 12
    meridiem = "am" if now.hour < 12 else "pm"
    return f"Generated {_long_day(now.date())} at {hour12}:{now.minute:02d} {meridiem}"


def group_by_day(rows: list[TaskHistory]) -> OrderedDict[date, list[TaskHistory]]:
    grouped: OrderedDict[date, list[TaskHistory]] = OrderedDict()
    for row in sorted(rows, key=lambda r: (r.cleared_on, r.created_at)):
        grouped.setdefault(row.cleared_on, []).append(row)
    return grouped


def most_productive_day(grouped: OrderedDict[date, list[TaskHistory]]) -> tuple[date, int] | None:
    """Day with the most archived tasks; ties go to the earliest day."""
    best: tuple[date, int] | None = None
    for day, rows in grouped.items():
        if best is None or len(rows) > best[1]:
            best = (day, len(rows))
    return best


def render_markdown(
    period: ReportPeriod,
    rows: list[TaskHistory],
    *,
    generated_at: datetime,
    ai_summary: str = "",
) -> str:
    lines: list[str] = [
        f"# {period.kind.label} Summary",
        "",
        period.describe(),
        _generated_line(generated_at),
        "",
    ]

    if not rows:
        lines.append(EMPTY_PERIOD_TEXT)
        return "\n".join(lines) + "\n"

    if ai_summary.strip():
        lines += ["## Summary", "", ai_summary.strip(), ""]

    grouped = group_by_day(rows)
    total = len(rows)
    lines += ["## Statistics", "", f"{total} {'task' if total == 1 else 'tasks'} completed", ""]

    best = most_productive_day(grouped)
    if best is not None:
        day, count = best
        lines.append(f"Most productive: {_long_day(day)} with {count} {'task' if count == 1 else 'tasks'}")

    lines += ["", "## Completed Tasks", ""]
    for day, day_rows in grouped.items():
        n = len(day_rows)
        lines.append(f"### {_long_day(day)} — {n} {'task' if n == 1 else 'tasks'}")
        lines.append("")
        for i, row in enumerate(day_rows, start=1):
            lines.append(f"{i}. {row.title}")
        lines.append("")

    return "\n".join(lines)


def _write_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


class DigestGenerator:
    """Renders and writes digest artifacts into the configured summary folder."""

    def __init__(
        self,
        store: PlannerStore,
        sink: NotificationSink | None,
        clock: Clock,
        *,
        default_folder: str | Path,
        polisher: DigestPolisher | None = None,
    ) -> None:
        self._store = store
        self._sink = sink
        self._clock = clock
        self._default_folder = Path(default_folder)
        self._polisher = polisher

    def folder(self, prefs: PlannerPreferences | None = None) -> Path:
        prefs = prefs or self._store.load_preferences()
        if prefs.summary_folder:
            return Path(prefs.summary_folder).expanduser()
        return self._default_folder

    def artifact_exists(self, kind: ReportKind, period_id: str, prefs: PlannerPreferences | None = None) -> bool:
        return (self.folder(prefs) / artifact_name(kind, period_id)).is_file()

    def list_artifacts(self) -> list[ArtifactInfo]:
        """Existing digest files, newest period first."""
        folder = self.folder()
        if not folder.is_dir():
            return []
        out: list[ArtifactInfo] = []
        for entry in folder.iterdir():
            if not entry.is_file() or entry.suffix != ARTIFACT_SUFFIX:
                continue
            for kind in ReportKind:
                if entry.name.startswith(f"{kind.value}-"):
                    out.append(ArtifactInfo(path=entry, name=entry.name, kind=kind))
                    break
        out.sort(key=lambda a: a.name, reverse=True)
        return out

    def _polish(self, period: ReportPeriod, plain: str, prefs: PlannerPreferences) -> str:
        if self._polisher is None or not prefs.ai_summaries_enabled:
            return ""
        try:
            return self._polisher.summarize(
                period=period.kind.value,
                start_iso=period.start.isoformat(),
                end_iso=period.end.isoformat(),
                plain_markdown=plain,
            )
        except Exception:
            logger.exception("AI summary failed for %s", period.artifact_name)
            return ""

    def generate(self, kind: ReportKind, reference: date | None = None) -> DigestResult:
        """
        Build and write the digest for the period before `reference` (default: today).

        Store and filesystem errors propagate; the notification is best-effort.
        """
        now = self._clock.now()
        period = period_for(kind, reference or now.date())
        prefs = self._store.load_preferences()
        rows = self._store.history_range(period.start, period.end)

        markdown = render_markdown(period, rows, generated_at=now)
        if rows:
            summary = self._polish(period, markdown, prefs)
            if summary:
                markdown = render_markdown(period, rows, generated_at=now, ai_summary=summary)

        path = self.folder(prefs) / period.artifact_name
        _write_atomic(path, markdown)
        logger.info("%s digest written path=%s tasks=%d", kind.label, path, len(rows))

        deliver(
            self._sink,
            f"{kind.label} Summary Generated",
            f"Your {kind.value} summary for {period.describe()} has been saved.",
        )
        return DigestResult(
            path=path,
            name=period.artifact_name,
            kind=kind,
            period_id=period.period_id,
            created_at=now,
            markdown=markdown,
        )

    def generate_weekly(self, reference: date | None = None) -> DigestResult:
        return self.generate(ReportKind.WEEKLY, reference)

    def generate_monthly(self, reference: date | None = None) -> DigestResult:
        return self.generate(ReportKind.MONTHLY, reference)
