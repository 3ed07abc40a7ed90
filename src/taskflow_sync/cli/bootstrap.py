# src/taskflow_sync/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (HTTP client, Socket.IO
  channel, local storage, timer, inbox, task list).

Every collaborator can be injected, which is how tests build a state with
fakes and a manual clock.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from ..api.client import TaskFlowClient
from ..config import get_settings
from ..core.events import EventBus
from ..core.ports import Clock, PushTransport, Toaster
from ..core.state import AppState
from ..notifications.channel import PushChannel, create_socketio_transport
from ..notifications.inbox import NotificationInbox
from ..storage.local_storage import LocalStorage
from ..timer.time_tracking import TimeTrackingService
from ..timer.timer_machine import TimerStateMachine
from ..timer.timer_store import LocalTimerStore
from ..views.task_list import TaskListView

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.storage_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(
        *,
        settings=None,
        api: Any = None,
        transport_factory: Callable[[], PushTransport] | None = None,
        toaster: Toaster | None = None,
        clock: Clock = time.time,
) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings(). The timer snapshot is
    read here, once, when the timer machine is constructed.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if api is None:
        api = TaskFlowClient.from_settings(settings)
        if not api.authenticated:
            logger.warning("No API token configured (TASKFLOW_API_TOKEN); server calls will be rejected.")

    bus = EventBus()
    storage = LocalStorage(settings.storage_path)

    timer = TimerStateMachine(
        LocalTimerStore(storage, clock=clock),
        api,
        bus=bus,
        toaster=toaster,
        clock=clock,
        tick_seconds=float(getattr(settings, "timer_tick_seconds", 1.0)),
        user_id=getattr(settings, "user_id", None),
    )

    channel = PushChannel(
        settings.socket_url,
        transport_factory=transport_factory or create_socketio_transport,
    )

    return AppState(
        settings=settings,
        storage=storage,
        api=api,
        bus=bus,
        timer=timer,
        time_tracking=TimeTrackingService(api, timer),
        channel=channel,
        inbox=NotificationInbox(
            api,
            storage=storage,
            bus=bus,
            limit=int(getattr(settings, "notifications_limit", 10)),
        ),
        task_list=TaskListView(api, storage=storage, bus=bus),
    )
