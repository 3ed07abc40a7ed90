# src/taskflow_sync/core/state.py

"""
Application state and session lifecycle.

AppState is threaded explicitly through the CLI and the services (no ambient
singletons). A session begins when a user identity is available and ends on
logout or shutdown:

start_session: resume the restored timer, wire pushes into the inbox, connect
               the channel, initial pull, mount the task list, start the
               periodic reconcilers.
end_session:   synchronous channel teardown and tick cancellation first, then
               the awaitable cleanup (reconcilers, HTTP client).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..notifications.channel import PushChannel
from ..notifications.inbox import NotificationInbox, run_inbox_reconciler
from ..storage.local_storage import LocalStorage
from ..timer.time_tracking import TimeTrackingService
from ..timer.timer_machine import TimerStateMachine, run_timer_reconciler
from ..views.task_list import TaskListView
from .events import EventBus

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    settings: Any

    storage: LocalStorage
    api: Any  # TaskApi + NotificationApi (TaskFlowClient in production)
    bus: EventBus
    timer: TimerStateMachine
    time_tracking: TimeTrackingService
    channel: PushChannel
    inbox: NotificationInbox
    task_list: TaskListView

    background: list[asyncio.Task[Any]] = field(default_factory=list)
    teardown: list[Callable[[], None]] = field(default_factory=list)
    session_active: bool = False


async def start_session(state: AppState) -> None:
    if state.session_active:
        return
    state.session_active = True
    settings = state.settings

    state.timer.resume()

    state.teardown.append(state.channel.on_event(state.inbox.on_push))
    user_id = getattr(settings, "user_id", None)
    if user_id:
        await state.channel.connect(user_id)
    else:
        logger.info("No user id configured; running on periodic pulls only.")

    await state.inbox.refresh()

    state.task_list.mount()
    state.teardown.append(state.task_list.unmount)

    state.background.append(
        asyncio.create_task(
            run_inbox_reconciler(state.inbox, interval_seconds=float(getattr(settings, "inbox_refresh_seconds", 60.0)))
        )
    )
    state.background.append(
        asyncio.create_task(
            run_timer_reconciler(state.timer, interval_seconds=float(getattr(settings, "timer_reconcile_seconds", 30.0)))
        )
    )
    logger.info("Session started user=%s", user_id or "-")


async def end_session(state: AppState, *, close_api: bool = True) -> None:
    """Best-effort teardown; no exception escapes."""
    # Synchronous part: no push handler or tick may fire after this line.
    state.channel.disconnect()
    state.timer.shutdown()
    for off in state.teardown:
        with contextlib.suppress(Exception):
            off()
    state.teardown.clear()

    for task in state.background:
        task.cancel()
    if state.background:
        await asyncio.gather(*state.background, return_exceptions=True)
    state.background.clear()

    with contextlib.suppress(Exception):
        await state.channel.close()
    with contextlib.suppress(Exception):
        await state.bus.drain()

    if close_api:
        aclose = getattr(state.api, "aclose", None)
        if callable(aclose):
            try:
                await aclose()
            except Exception:
                logger.debug("API client close failed.", exc_info=True)

    state.session_active = False
    logger.info("Session ended.")
