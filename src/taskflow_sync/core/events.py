# src/taskflow_sync/core/events.py

"""
Typed publish/subscribe bus for cross-view signals.

Events are small frozen dataclasses; subscribers register per event class, so
there are no stringly-typed event names and no global event target. Delivery
is broadcast: every subscriber of the class gets the event, in subscription
order. A failing subscriber is logged and does not stop the others.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from ..timer.timer_models import TimerWidget

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TeamFilterChanged:
    """The task list should pre-filter to this team ('' clears the filter)."""

    team_id: str


@dataclass(slots=True, frozen=True)
class RefreshTaskList:
    """Any mounted task list should re-fetch instead of showing stale data."""

    from_notification: bool = False


@dataclass(slots=True, frozen=True)
class TimerChanged:
    widget: TimerWidget


E = TypeVar("E")
Handler = Callable[[Any], Any]


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = {}
        self._pending: set[asyncio.Task[Any]] = set()

    def subscribe(self, event_type: type[E], handler: Callable[[E], Any]) -> Callable[[], None]:
        """Register handler; returns an unsubscribe callable."""
        self._handlers.setdefault(event_type, []).append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def publish(self, event: object) -> None:
        for handler in list(self._handlers.get(type(event), [])):
            try:
                result = handler(event)
            except Exception:
                logger.exception("Event handler failed event=%s", type(event).__name__)
                continue

            # Coroutine handlers run on the current loop; keep a reference until done.
            if inspect.isawaitable(result):
                self._spawn(result, type(event).__name__)

    def _spawn(self, awaitable: Any, name: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running loop for async handler of %s; dropped", name)
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = asyncio.ensure_future(awaitable, loop=loop)
        self._pending.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Async event handler failed", exc_info=exc)

    async def drain(self) -> None:
        """Wait for async handlers spawned so far (tests, shutdown)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
