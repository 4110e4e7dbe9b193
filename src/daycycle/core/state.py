# src/daycycle/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..core.ports import NotificationSink
from ..engine.scheduler import PlannerScheduler
from ..store.planner_store import PlannerStore


@dataclass
class AppState:
    """
    Runtime application state shared by connectors and commands.

    Notes:
    - settings is kept as Any to avoid coupling core to a specific config implementation.
    - lock serializes command handling between the console and any other connector.
    """

    settings: Any
    store: PlannerStore
    sink: NotificationSink
    scheduler: PlannerScheduler

    lock: threading.RLock = field(default_factory=threading.RLock)
