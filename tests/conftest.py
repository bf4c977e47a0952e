# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskly.cli.bootstrap import create_initial_state
from taskly.core.session import Session
from taskly.core.state import AppState
from taskly.store.local_backend import LocalBackend
from taskly.store.local_store import LocalStore

from .fakes import FakeTaskApi, RecordingRefresh, RecordingSink


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's environment and .env.
    """
    return SimpleNamespace(
        app_name="taskly-test",
        log_level="DEBUG",
        # Remote API (served by FakeTaskApi through httpx.MockTransport)
        api_base_url="http://taskly.test/api",
        http_timeout_seconds=0.0,
        http_timeout=None,
        # Offline handling
        force_offline=False,
        offline_recheck_seconds=30.0,
        # Paths (tmp per test run)
        data_dir=tmp_path,
        store_db_path=tmp_path / "taskly.sqlite3",
        # Domain tuning
        min_password_length=6,
        default_theme="light",
        swipe_threshold_px=80,
        console_enabled=False,
    )


@pytest.fixture()
def fake_api() -> FakeTaskApi:
    return FakeTaskApi()


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def refresh() -> RecordingRefresh:
    return RecordingRefresh()


@pytest.fixture()
def state(settings, fake_api, sink, refresh) -> AppState:
    """
    Fully wired AppState: real SQLite store, real gateway/lifecycle/scheduler,
    HTTP answered in-process by FakeTaskApi.
    """
    return create_initial_state(settings=settings, sink=sink, refresh=refresh, transport=fake_api.transport)


@pytest.fixture()
def store(tmp_path: Path) -> LocalStore:
    return LocalStore(tmp_path / "store.sqlite3")


@pytest.fixture()
def local(store: LocalStore) -> LocalBackend:
    """Local backend with its own session, for tests that never touch HTTP."""
    return LocalBackend(store, Session(store))
