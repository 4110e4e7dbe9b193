# src/daycycle/core/errors.py

from __future__ import annotations


class PlannerError(Exception):
    """Base class for planner engine errors."""


class StoreBusyError(PlannerError):
    """The store is locked by another writer. Transient: callers may retry."""


class StoreIntegrityError(PlannerError):
    """Constraint violation or a row that should exist but does not."""


class TaskNotFoundError(StoreIntegrityError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class RuleNotFoundError(StoreIntegrityError):
    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Recurring rule not found: {rule_id}")
        self.rule_id = rule_id


class RolloverError(PlannerError):
    """A rollover attempt failed; nothing was committed."""
