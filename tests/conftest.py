# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from todoplus.api.app import create_app
from todoplus.core.state import AppState
from todoplus.tasks.task_store import TaskStore
from todoplus.users.identity import TrustingIdentityVerifier
from todoplus.users.user_store import UserStore

from .fakes import FakeClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the app factory.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="todoplus-test",
        data_dir=tmp_path,
        db_path=tmp_path / "todo.sqlite3",
        host="0.0.0.0",
        port=3000,
        webapp_url="https://todo.example.org/app",
        cors_origins=["*"],
        expose_errors=True,
        # Background work is driven explicitly by the tests.
        sweeps_enabled=False,
        archive_interval_seconds=3600,
        archive_retention_days=30,
        reminder_interval_seconds=60,
        matrix_enabled=False,
        matrix_rooms=[],
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 17, 12, 0, 0))


@pytest.fixture()
def task_store(settings: SimpleNamespace, clock: FakeClock) -> TaskStore:
    return TaskStore(settings.db_path, clock=clock)


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FakeClock, task_store: TaskStore) -> AppState:
    """
    AppState wired with a fixed clock.

    NOTE: We keep real SQLite stores here because their correctness is part
    of what we want to test.
    """
    return AppState(
        settings=settings,
        task_store=task_store,
        user_store=UserStore(settings.db_path, clock=clock),
        verifier=TrustingIdentityVerifier(),
        clock=clock,
    )


@pytest.fixture()
def client(state: AppState):
    with TestClient(create_app(state)) as c:
        yield c
