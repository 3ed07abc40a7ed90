# src/taskflow_sync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The timer machine and the inbox depend on Protocols instead of concrete
implementations, so the HTTP client, the Socket.IO transport and the storage
backend stay swappable and tests can use in-memory fakes.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

JsonDict = dict[str, Any]
# Raw server payloads (task / notification documents as JSON objects).

Clock = Callable[[], float]
# Wall-clock seconds since the epoch (time.time in production).


class KeyValueStorage(Protocol):
    """Durable string slots, the local-storage model of a browser profile."""

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...


class TaskApi(Protocol):
    async def get_task(self, task_id: str) -> JsonDict: ...
    async def list_tasks(self, *, team: str | None = None) -> list[JsonDict]: ...
    async def start_timer(self, task_id: str) -> JsonDict: ...
    async def stop_timer(self, task_id: str) -> JsonDict: ...
    async def log_time(
            self,
            task_id: str,
            *,
            hours: int,
            minutes: int,
            description: str = "",
    ) -> JsonDict: ...
    async def delete_time_entry(self, task_id: str, entry_index: int) -> JsonDict: ...
    async def reset_time_tracking(self, task_id: str) -> JsonDict: ...


class NotificationApi(Protocol):
    async def list_notifications(self, *, limit: int) -> list[JsonDict]: ...
    async def unread_count(self) -> int: ...
    async def mark_notification_read(self, notification_id: str) -> None: ...
    async def mark_all_notifications_read(self) -> None: ...
    async def delete_notification(self, notification_id: str) -> None: ...
    async def delete_all_notifications(self) -> None: ...


class PushTransport(Protocol):
    """
    The subset of socketio.AsyncClient the push channel relies on.

    Reconnection/backoff is the transport's job; the channel never retries.
    """

    connected: bool

    def on(self, event: str, handler: Callable[..., Any] | None = None) -> Any: ...
    async def connect(self, url: str, *, transports: list[str] | None = None, retry: bool = False) -> None: ...
    async def emit(self, event: str, data: Any = None) -> None: ...
    async def disconnect(self) -> None: ...


class Toaster(Protocol):
    """User-visible, non-blocking confirmation (a toast in the web UI)."""

    def toast(self, message: str) -> None: ...


Confirm = Callable[[], bool | Awaitable[bool]]
# Explicit user confirmation for destructive actions.
