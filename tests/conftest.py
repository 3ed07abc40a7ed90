# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskflow_sync.cli.bootstrap import create_initial_state
from taskflow_sync.core.events import EventBus
from taskflow_sync.core.state import AppState
from taskflow_sync.storage.local_storage import LocalStorage
from taskflow_sync.timer.timer_machine import TimerStateMachine
from taskflow_sync.timer.timer_store import LocalTimerStore

from .fakes import FakeApi, FakePushTransport, ManualClock, RecordingToaster


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the services.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskflow-test",
        api_url="http://server.test/api",
        taskflow_base_url="http://server.test/api/taskflow",
        socket_url="http://server.test",
        api_token="token",
        user_id="user-1",
        # Paths (tmp per test run)
        data_dir=tmp_path / "data",
        storage_path=tmp_path / "data" / "local_storage.json",
        # Tuning: long intervals so background loops never fire on their own
        notifications_limit=10,
        inbox_refresh_seconds=3600.0,
        timer_reconcile_seconds=3600.0,
        timer_tick_seconds=3600.0,
    )


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture()
def toaster() -> RecordingToaster:
    return RecordingToaster()


@pytest.fixture()
def storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(tmp_path / "storage.json")


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def make_machine(storage, api, bus, toaster, clock):
    """Build a timer machine over the shared storage (call again to simulate a reload)."""

    def _make(**overrides) -> TimerStateMachine:
        kwargs = dict(bus=bus, toaster=toaster, clock=clock, tick_seconds=3600.0, user_id="user-1")
        kwargs.update(overrides)
        return TimerStateMachine(LocalTimerStore(storage, clock=clock), api, **kwargs)

    return _make


@pytest.fixture()
def transports() -> list[FakePushTransport]:
    return []


@pytest.fixture()
def state(settings, api, toaster, clock, transports) -> AppState:
    """AppState wired through the real composition root, with fakes at the edges."""

    def factory() -> FakePushTransport:
        t = FakePushTransport()
        transports.append(t)
        return t

    return create_initial_state(
        settings=settings,
        api=api,
        transport_factory=factory,
        toaster=toaster,
        clock=clock,
    )
