# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from daycycle.core.state import AppState
from daycycle.engine.scheduler import PlannerScheduler
from daycycle.llm.offline import OfflinePolisher
from daycycle.store.planner_store import PlannerStore

from .fakes import ManualClock, RecordingSink, local


@pytest.fixture()
def clock() -> ManualClock:
    # Wednesday, mid-June: far from any DST switch.
    return ManualClock(local(2026, 6, 17, 9, 0))


@pytest.fixture()
def store(tmp_path: Path, clock: ManualClock) -> PlannerStore:
    return PlannerStore(tmp_path / "planner.sqlite3", clock=clock, busy_timeout=0.2)


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the scheduler.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="daycycle-test",
        console_enabled=False,
        desktop_notifications=False,
        data_dir=tmp_path,
        db_path=tmp_path / "planner.sqlite3",
        summaries_dir=tmp_path / "summaries",
        reminder_interval_seconds=60.0,
        rollover_recheck_seconds=300.0,
        report_resync_seconds=900.0,
        report_horizon_seconds=86400.0,
        busy_retry_delay_seconds=0.0,
        busy_timeout_seconds=0.2,
        openrouter_api_key=None,
        openrouter_base_url="",
        llm_models=[],
        extra_headers={},
    )


@pytest.fixture()
def state(settings: SimpleNamespace, store: PlannerStore, sink: RecordingSink, clock: ManualClock) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep the real SQLite store here because its correctness is part of what we want to test.
    """
    return AppState(
        settings=settings,
        store=store,
        sink=sink,
        scheduler=PlannerScheduler.from_settings(settings, store, sink, polisher=OfflinePolisher(), clock=clock),
    )
