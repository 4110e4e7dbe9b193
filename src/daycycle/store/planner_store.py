# src/daycycle/store/planner_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import uuid
from collections.abc import Iterator
from datetime import date, time
from pathlib import Path
from typing import Any

from ..core.clock import Clock, SystemClock, format_hhmm, parse_hhmm
from ..core.errors import RuleNotFoundError, StoreBusyError, StoreIntegrityError, TaskNotFoundError
from .models import LAST_DAY_OF_MONTH, Cadence, RecurringRule, Task, TaskHistory, TaskList
from .preferences import PlannerPreferences

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def _is_busy_error(exc: sqlite3.OperationalError) -> bool:
    msg = str(exc).lower()
    return "locked" in msg or "busy" in msg


def _validate_rule_shape(cadence: Cadence, weekdays_mask: int | None, monthly_day: int | None) -> None:
    if cadence == Cadence.WEEKLY:
        if weekdays_mask is None or not 1 <= int(weekdays_mask) <= 0b1111111:
            raise ValueError("weekly rules need a weekday mask in 1..127")
    elif cadence == Cadence.MONTHLY:
        if monthly_day is None or not (monthly_day == LAST_DAY_OF_MONTH or 1 <= int(monthly_day) <= 28):
            raise ValueError("monthly rules need a day in 1..28 or -1 (last day)")


class StoreSession:
    """
    Operations bound to one open transaction.

    Obtained from PlannerStore.transaction(); never commits on its own, so a group of calls
    either lands together or not at all.
    """

    def __init__(self, conn: sqlite3.Connection, clock: Clock) -> None:
        self._conn = conn
        self._clock = clock

    def _now(self) -> float:
        return self._clock.now().timestamp()

    # ---- row mapping ----

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            notes=row["notes"],
            task_list=TaskList.from_db(row["list"]),
            sort_index=int(row["sort_index"] or 0),
            scheduled_at=float(row["scheduled_at"]) if row["scheduled_at"] is not None else None,
            completed=bool(row["completed"]),
            completed_at=float(row["completed_at"]) if row["completed_at"] is not None else None,
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    @staticmethod
    def _row_to_history(row: sqlite3.Row) -> TaskHistory:
        return TaskHistory(
            id=str(row["id"]),
            source_list=TaskList.from_db(row["source_list"]),
            title=str(row["title"] or ""),
            completed_at=float(row["completed_at"]) if row["completed_at"] is not None else None,
            cleared_on=date.fromisoformat(str(row["cleared_on"])),
            created_at=float(row["created_at"] or 0.0),
        )

    @staticmethod
    def _row_to_rule(row: sqlite3.Row) -> RecurringRule:
        return RecurringRule(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            notes=row["notes"],
            cadence=Cadence(str(row["cadence_type"]).upper()),
            weekdays_mask=int(row["weekdays_mask"]) if row["weekdays_mask"] is not None else None,
            monthly_day=int(row["monthly_day"]) if row["monthly_day"] is not None else None,
            time_of_day=parse_hhmm(row["time_hhmm"]),
            enabled=bool(row["enabled"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    # ---- tasks ----

    def _next_sort_index(self, task_list: TaskList) -> int:
        (max_index,) = self._conn.execute(
            "SELECT MAX(sort_index) FROM tasks WHERE list = ?", (task_list.value,)
        ).fetchone()
        return 0 if max_index is None else int(max_index) + 1

    def add_task(
        self,
        *,
        title: str,
        task_list: TaskList = TaskList.TODAY,
        notes: str | None = None,
        scheduled_at: float | None = None,
    ) -> Task:
        if not title or not title.strip():
            raise ValueError("title is required")

        now = self._now()
        task = Task(
            id=_new_id("task"),
            title=title.strip(),
            notes=notes or None,
            task_list=task_list,
            sort_index=self._next_sort_index(task_list),
            scheduled_at=scheduled_at,
            completed=False,
            completed_at=None,
            created_at=now,
            updated_at=now,
        )
        self._conn.execute(
            """
            INSERT INTO tasks(
                id, title, notes, list, sort_index, has_time,
                scheduled_at, completed, completed_at, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, 0, NULL, ?, ?)
            """,
            (
                task.id,
                task.title,
                task.notes,
                task.task_list.value,
                task.sort_index,
                1 if scheduled_at is not None else 0,
                scheduled_at,
                now,
                now,
            ),
        )
        logger.debug("Task added id=%s list=%s title=%r", task.id, task.task_list.value, task.title)
        return task

    def get_task(self, task_id: str) -> Task | None:
        row = self._conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return self._row_to_task(row) if row else None

    def require_task(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def list_tasks(self, task_list: TaskList | None = None) -> list[Task]:
        if task_list is None:
            rows = self._conn.execute("SELECT * FROM tasks ORDER BY list DESC, sort_index ASC").fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM tasks WHERE list = ? ORDER BY sort_index ASC", (task_list.value,)
            ).fetchall()
        return [self._row_to_task(r) for r in rows]

    def list_completed_tasks(self) -> list[Task]:
        rows = self._conn.execute(
            "SELECT * FROM tasks WHERE completed = 1 ORDER BY list DESC, sort_index ASC"
        ).fetchall()
        return [self._row_to_task(r) for r in rows]

    def list_active_incomplete(self) -> list[Task]:
        rows = self._conn.execute(
            "SELECT * FROM tasks WHERE completed = 0 ORDER BY list DESC, sort_index ASC"
        ).fetchall()
        return [self._row_to_task(r) for r in rows]

    def find_today_task_by_title(self, title: str) -> Task | None:
        """Any TODAY task (completed or not) whose title matches case-insensitively."""
        wanted = (title or "").strip().casefold()
        for task in self.list_tasks(TaskList.TODAY):
            if task.title.strip().casefold() == wanted:
                return task
        return None

    def count_tasks(self) -> int:
        (n,) = self._conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
        return int(n)

    def update_task(
        self,
        task_id: str,
        *,
        title: str | None = _UNSET,
        notes: str | None = _UNSET,
        scheduled_at: float | None = _UNSET,
    ) -> Task:
        self.require_task(task_id)
        fields: list[str] = []
        params: list[Any] = []

        if title is not _UNSET:
            if not title or not title.strip():
                raise ValueError("title is required")
            fields.append("title = ?")
            params.append(title.strip())

        if notes is not _UNSET:
            fields.append("notes = ?")
            params.append(notes or None)

        if scheduled_at is not _UNSET:
            fields.extend(["scheduled_at = ?", "has_time = ?"])
            params.extend([scheduled_at, 1 if scheduled_at is not None else 0])

        if fields:
            fields.append("updated_at = ?")
            params.extend([self._now(), task_id])
            self._conn.execute(f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?", params)
        return self.require_task(task_id)

    def set_completed(self, task_id: str, completed: bool = True) -> Task:
        self.require_task(task_id)
        now = self._now()
        self._conn.execute(
            "UPDATE tasks SET completed = ?, completed_at = ?, updated_at = ? WHERE id = ?",
            (1 if completed else 0, now if completed else None, now, task_id),
        )
        return self.require_task(task_id)

    def compact_sort_indices(self, task_list: TaskList) -> None:
        """Renumber a list to 0..n-1, keeping the current relative order."""
        rows = self._conn.execute(
            "SELECT id, sort_index FROM tasks WHERE list = ? ORDER BY sort_index ASC, created_at ASC",
            (task_list.value,),
        ).fetchall()
        for new_index, row in enumerate(rows):
            if int(row["sort_index"]) != new_index:
                self._conn.execute("UPDATE tasks SET sort_index = ? WHERE id = ?", (new_index, row["id"]))

    def move_task(self, task_id: str, *, to_list: TaskList | None = None, index: int | None = None) -> Task:
        """
        Move a task to `index` inside `to_list` (default: its current list).

        Both the source and target lists stay densely indexed.
        """
        task = self.require_task(task_id)
        target = to_list or task.task_list
        siblings = [
            r["id"]
            for r in self._conn.execute(
                "SELECT id FROM tasks WHERE list = ? AND id != ? ORDER BY sort_index ASC, created_at ASC",
                (target.value, task_id),
            ).fetchall()
        ]
        position = len(siblings) if index is None else max(0, min(int(index), len(siblings)))
        siblings.insert(position, task_id)

        now = self._now()
        if target != task.task_list:
            self._conn.execute(
                "UPDATE tasks SET list = ?, updated_at = ? WHERE id = ?", (target.value, now, task_id)
            )
        for new_index, sibling_id in enumerate(siblings):
            self._conn.execute("UPDATE tasks SET sort_index = ? WHERE id = ?", (new_index, sibling_id))
        if target != task.task_list:
            self.compact_sort_indices(task.task_list)
        return self.require_task(task_id)

    def delete_task(self, task_id: str) -> bool:
        task = self.get_task(task_id)
        if task is None:
            return False
        self._conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        self.compact_sort_indices(task.task_list)
        return True

    # ---- history ----

    def add_history(
        self,
        *,
        source_list: TaskList,
        title: str,
        completed_at: float | None,
        cleared_on: date,
    ) -> TaskHistory:
        item = TaskHistory(
            id=_new_id("history"),
            source_list=source_list,
            title=title,
            completed_at=completed_at,
            cleared_on=cleared_on,
            created_at=self._now(),
        )
        self._conn.execute(
            """
            INSERT INTO task_history(id, source_list, title, completed_at, cleared_on, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                item.id,
                item.source_list.value,
                item.title,
                item.completed_at,
                item.cleared_on.isoformat(),
                item.created_at,
            ),
        )
        return item

    def history_range(self, start: date, end: date) -> list[TaskHistory]:
        """History rows with start <= cleared_on <= end, oldest day first."""
        rows = self._conn.execute(
            """
            SELECT * FROM task_history
            WHERE cleared_on >= ? AND cleared_on <= ?
            ORDER BY cleared_on ASC, created_at ASC, rowid ASC
            """,
            (start.isoformat(), end.isoformat()),
        ).fetchall()
        return [self._row_to_history(r) for r in rows]

    def history_days(self, limit: int = 90) -> list[tuple[date, int]]:
        rows = self._conn.execute(
            """
            SELECT cleared_on, COUNT(*) AS n
            FROM task_history
            GROUP BY cleared_on
            ORDER BY cleared_on DESC
                LIMIT ?
            """,
            (int(limit),),
        ).fetchall()
        return [(date.fromisoformat(r["cleared_on"]), int(r["n"])) for r in rows]

    def count_history(self) -> int:
        (n,) = self._conn.execute("SELECT COUNT(*) FROM task_history").fetchone()
        return int(n)

    # ---- recurring rules ----

    def add_rule(
        self,
        *,
        title: str,
        cadence: Cadence,
        weekdays_mask: int | None = None,
        monthly_day: int | None = None,
        time_of_day: time | None = None,
        notes: str | None = None,
        enabled: bool = True,
    ) -> RecurringRule:
        if not title or not title.strip():
            raise ValueError("title is required")
        _validate_rule_shape(cadence, weekdays_mask, monthly_day)

        now = self._now()
        rule = RecurringRule(
            id=_new_id("recurring"),
            title=title.strip(),
            notes=notes or None,
            cadence=cadence,
            weekdays_mask=weekdays_mask if cadence == Cadence.WEEKLY else None,
            monthly_day=monthly_day if cadence == Cadence.MONTHLY else None,
            time_of_day=time_of_day,
            enabled=enabled,
            created_at=now,
            updated_at=now,
        )
        self._conn.execute(
            """
            INSERT INTO recurring_rules(
                id, title, notes, cadence_type, weekdays_mask,
                monthly_day, time_hhmm, enabled, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                rule.id,
                rule.title,
                rule.notes,
                rule.cadence.value,
                rule.weekdays_mask,
                rule.monthly_day,
                format_hhmm(time_of_day) if time_of_day is not None else None,
                1 if enabled else 0,
                now,
                now,
            ),
        )
        logger.debug("Recurring rule added id=%s cadence=%s title=%r", rule.id, cadence.value, rule.title)
        return rule

    def get_rule(self, rule_id: str) -> RecurringRule | None:
        row = self._conn.execute("SELECT * FROM recurring_rules WHERE id = ?", (rule_id,)).fetchone()
        return self._row_to_rule(row) if row else None

    def list_rules(self, *, enabled_only: bool = False) -> list[RecurringRule]:
        sql = "SELECT * FROM recurring_rules"
        if enabled_only:
            sql += " WHERE enabled = 1"
        rows = self._conn.execute(sql + " ORDER BY title ASC").fetchall()
        return [self._row_to_rule(r) for r in rows]

    def update_rule(
        self,
        rule_id: str,
        *,
        title: str | None = _UNSET,
        notes: str | None = _UNSET,
        weekdays_mask: int | None = _UNSET,
        monthly_day: int | None = _UNSET,
        time_of_day: time | None = _UNSET,
        enabled: bool | None = _UNSET,
    ) -> RecurringRule:
        current = self.get_rule(rule_id)
        if current is None:
            raise RuleNotFoundError(rule_id)

        mask = current.weekdays_mask if weekdays_mask is _UNSET else weekdays_mask
        day = current.monthly_day if monthly_day is _UNSET else monthly_day
        _validate_rule_shape(current.cadence, mask, day)

        fields: list[str] = ["weekdays_mask = ?", "monthly_day = ?"]
        params: list[Any] = [mask, day]
        if title is not _UNSET:
            if not title or not title.strip():
                raise ValueError("title is required")
            fields.append("title = ?")
            params.append(title.strip())
        if notes is not _UNSET:
            fields.append("notes = ?")
            params.append(notes or None)
        if time_of_day is not _UNSET:
            fields.append("time_hhmm = ?")
            params.append(format_hhmm(time_of_day) if time_of_day is not None else None)
        if enabled is not _UNSET:
            fields.append("enabled = ?")
            params.append(1 if enabled else 0)

        fields.append("updated_at = ?")
        params.extend([self._now(), rule_id])
        self._conn.execute(f"UPDATE recurring_rules SET {', '.join(fields)} WHERE id = ?", params)

        updated = self.get_rule(rule_id)
        if updated is None:
            raise RuleNotFoundError(rule_id)
        return updated

    def delete_rule(self, rule_id: str) -> bool:
        cur = self._conn.execute("DELETE FROM recurring_rules WHERE id = ?", (rule_id,))
        return cur.rowcount == 1

    # ---- settings ----

    def get_setting(self, key: str, default: Any = None) -> Any:
        row = self._conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except (TypeError, ValueError):
            return row["value"]

    def set_setting(self, key: str, value: Any) -> None:
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, time):
            value = format_hhmm(value)
        self._conn.execute(
            """
            INSERT INTO settings(key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (key, json.dumps(value, ensure_ascii=False)),
        )

    def all_settings(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for row in self._conn.execute("SELECT key, value FROM settings").fetchall():
            try:
                out[row["key"]] = json.loads(row["value"])
            except (TypeError, ValueError):
                out[row["key"]] = row["value"]
        return out

    def load_preferences(self) -> PlannerPreferences:
        return PlannerPreferences.from_raw(self.all_settings())


class PlannerStore:
    """
    SQLite planner store.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each transaction opens its own SQLite connection
    - writers take the database lock up front (BEGIN IMMEDIATE); a writer that cannot get it
      within busy_timeout surfaces as StoreBusyError
    """

    def __init__(
        self,
        db_path: str | Path = "planner.sqlite3",
        *,
        clock: Clock | None = None,
        busy_timeout: float = 5.0,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock or SystemClock()
        self._busy_timeout = float(busy_timeout)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except Exception:
            total = -1
        logger.info("PlannerStore ready db=%s tasks=%s", self._db_path, total)

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=self._busy_timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    notes TEXT,
                    list TEXT NOT NULL CHECK (list IN ('TODAY','FUTURE')),
                    sort_index INTEGER NOT NULL,
                    has_time INTEGER NOT NULL DEFAULT 0,
                    scheduled_at REAL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    completed_at REAL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_history (
                    id TEXT PRIMARY KEY,
                    source_list TEXT NOT NULL,
                    title TEXT NOT NULL,
                    completed_at REAL,
                    cleared_on TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS recurring_rules (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    notes TEXT,
                    cadence_type TEXT NOT NULL CHECK (cadence_type IN ('WEEKLY','MONTHLY')),
                    weekdays_mask INTEGER,
                    monthly_day INTEGER,
                    time_hhmm TEXT,
                    enabled INTEGER NOT NULL DEFAULT 1,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute("CREATE TABLE IF NOT EXISTS settings (key TEXT PRIMARY KEY, value TEXT NOT NULL)")

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("PlannerStore migration: added column tasks.%s", name)

            add_col("notes", "TEXT")
            add_col("has_time", "INTEGER NOT NULL DEFAULT 0")
            add_col("scheduled_at", "REAL")
            add_col("completed_at", "REAL")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_list_sort ON tasks(list, sort_index)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_history_cleared ON task_history(cleared_on)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_recurring_enabled_cadence "
                "ON recurring_rules(enabled, cadence_type)"
            )
        finally:
            conn.close()

    @contextlib.contextmanager
    def transaction(self, *, write: bool = True) -> Iterator[StoreSession]:
        """
        Atomic unit of work.

        Commits when the block exits normally; any exception rolls everything back.
        SQLite lock contention is raised as StoreBusyError, constraint violations as
        StoreIntegrityError. Read-only callers pass write=False and never take the write lock.
        """
        conn = self._get_conn()
        try:
            try:
                conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
                yield StoreSession(conn, self._clock)
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    with contextlib.suppress(sqlite3.Error):
                        conn.execute("ROLLBACK")
                raise
        except sqlite3.OperationalError as e:
            if _is_busy_error(e):
                raise StoreBusyError(str(e)) from e
            raise
        except sqlite3.IntegrityError as e:
            raise StoreIntegrityError(str(e)) from e
        finally:
            conn.close()

    # ---- public API (one transaction per call) ----

    def count_tasks(self) -> int:
        with self.transaction(write=False) as s:
            return s.count_tasks()

    def add_task(
        self,
        *,
        title: str,
        task_list: TaskList = TaskList.TODAY,
        notes: str | None = None,
        scheduled_at: float | None = None,
    ) -> Task:
        with self.transaction() as s:
            return s.add_task(title=title, task_list=task_list, notes=notes, scheduled_at=scheduled_at)

    def get_task(self, task_id: str) -> Task | None:
        with self.transaction(write=False) as s:
            return s.get_task(task_id)

    def list_tasks(self, task_list: TaskList | None = None) -> list[Task]:
        with self.transaction(write=False) as s:
            return s.list_tasks(task_list)

    def list_active_incomplete(self) -> list[Task]:
        with self.transaction(write=False) as s:
            return s.list_active_incomplete()

    def set_completed(self, task_id: str, completed: bool = True) -> Task:
        with self.transaction() as s:
            return s.set_completed(task_id, completed)

    def move_task(self, task_id: str, *, to_list: TaskList | None = None, index: int | None = None) -> Task:
        with self.transaction() as s:
            return s.move_task(task_id, to_list=to_list, index=index)

    def delete_task(self, task_id: str) -> bool:
        with self.transaction() as s:
            return s.delete_task(task_id)

    def history_range(self, start: date, end: date) -> list[TaskHistory]:
        with self.transaction(write=False) as s:
            return s.history_range(start, end)

    def history_days(self, limit: int = 90) -> list[tuple[date, int]]:
        with self.transaction(write=False) as s:
            return s.history_days(limit)

    def count_history(self) -> int:
        with self.transaction(write=False) as s:
            return s.count_history()

    def add_rule(
        self,
        *,
        title: str,
        cadence: Cadence,
        weekdays_mask: int | None = None,
        monthly_day: int | None = None,
        time_of_day: time | None = None,
        notes: str | None = None,
        enabled: bool = True,
    ) -> RecurringRule:
        with self.transaction() as s:
            return s.add_rule(
                title=title,
                cadence=cadence,
                weekdays_mask=weekdays_mask,
                monthly_day=monthly_day,
                time_of_day=time_of_day,
                notes=notes,
                enabled=enabled,
            )

    def list_rules(self, *, enabled_only: bool = False) -> list[RecurringRule]:
        with self.transaction(write=False) as s:
            return s.list_rules(enabled_only=enabled_only)

    def set_rule_enabled(self, rule_id: str, enabled: bool) -> RecurringRule:
        with self.transaction() as s:
            return s.update_rule(rule_id, enabled=enabled)

    def delete_rule(self, rule_id: str) -> bool:
        with self.transaction() as s:
            return s.delete_rule(rule_id)

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self.transaction(write=False) as s:
            return s.get_setting(key, default)

    def set_setting(self, key: str, value: Any) -> None:
        with self.transaction() as s:
            s.set_setting(key, value)

    def load_preferences(self) -> PlannerPreferences:
        with self.transaction(write=False) as s:
            return s.load_preferences()
