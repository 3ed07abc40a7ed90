# src/taskflow_sync/notifications/channel.py

"""
Push notification channel (Socket.IO).

One connection per session, scoped to the authenticated user: after every
(re)connect the channel emits `join-user-room` with the user id so the server
routes that user's pushes here. Inbound `notification` events are parsed and
fanned out to the registered handlers.

Delivery is at-most-once: there is no acknowledgement or replay, so anything
pushed while disconnected is recovered only by the inbox's periodic pull.
Reconnection/backoff is left to the transport.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Callable
from typing import Any

from ..core.ports import PushTransport
from .models import NotificationRecord

logger = logging.getLogger(__name__)

JOIN_ROOM_EVENT = "join-user-room"
NOTIFICATION_EVENT = "notification"
TRANSPORTS = ["websocket", "polling"]

NotificationHandler = Callable[[NotificationRecord], Any]


def create_socketio_transport() -> PushTransport:
    import socketio

    # Default reconnection policy (unbounded attempts, randomized backoff).
    return socketio.AsyncClient(reconnection=True, logger=False, engineio_logger=False)


class PushChannel:
    def __init__(
            self,
            url: str,
            *,
            transport_factory: Callable[[], PushTransport] = create_socketio_transport,
    ) -> None:
        self._url = url
        self._transport_factory = transport_factory
        self._transport: PushTransport | None = None
        self._user_id: str | None = None
        self._handlers: list[NotificationHandler] = []
        self._closed = True
        self._pending: set[asyncio.Task[Any]] = set()
        self._retry_task: asyncio.Task[None] | None = None

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def connected(self) -> bool:
        t = self._transport
        return t is not None and not self._closed and bool(getattr(t, "connected", False))

    def on_event(self, handler: NotificationHandler) -> Callable[[], None]:
        """Register a notification handler; returns an unsubscribe callable."""
        self._handlers.append(handler)

        def _off() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _off

    async def connect(self, user_id: str) -> bool:
        """
        Open the connection for user_id. Returns False (and logs) when the
        server is unreachable: the transport then keeps retrying in the
        background with its own backoff, and the session keeps working on
        periodic pulls meanwhile.
        """
        if not user_id:
            logger.info("No user identity; push channel not connected")
            return False
        if self._transport is not None and not self._closed:
            if self._user_id == user_id and self.connected:
                return True
            self.disconnect()

        transport = self._transport_factory()
        self._transport = transport
        self._user_id = str(user_id)
        self._closed = False

        # Bound to this transport: a stale transport's callbacks are ignored.
        async def _on_connect() -> None:
            if self._closed or self._transport is not transport:
                return
            try:
                await transport.emit(JOIN_ROOM_EVENT, self._user_id)
                logger.info("Push channel connected; joined room user=%s", self._user_id)
            except Exception:
                logger.warning("Failed to join user room user=%s", self._user_id, exc_info=True)

        async def _on_disconnect(*_args: Any) -> None:
            # Silent by design of the UI; the transport reconnects by itself.
            logger.debug("Push channel disconnected user=%s", self._user_id)

        async def _on_notification(data: Any) -> None:
            if self._closed or self._transport is not transport:
                return
            await self._dispatch(data)

        transport.on("connect", _on_connect)
        transport.on("disconnect", _on_disconnect)
        transport.on(NOTIFICATION_EVENT, _on_notification)

        try:
            await transport.connect(self._url, transports=TRANSPORTS)
        except Exception as e:
            logger.warning("Push channel connect failed url=%s: %s; retrying in background", self._url, e)
            self._retry_task = asyncio.get_running_loop().create_task(self._retry_connect(transport))
            self._pending.add(self._retry_task)
            self._retry_task.add_done_callback(self._pending.discard)
            return False
        return True

    async def _retry_connect(self, transport: PushTransport) -> None:
        try:
            await transport.connect(self._url, transports=TRANSPORTS, retry=True)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Push channel gave up reconnecting url=%s: %s", self._url, e)

    async def _dispatch(self, data: Any) -> None:
        if not isinstance(data, dict):
            logger.debug("Ignoring non-object notification payload: %r", data)
            return
        try:
            record = NotificationRecord.from_api(data)
        except ValueError:
            logger.warning("Ignoring malformed notification payload")
            return

        for handler in list(self._handlers):
            if self._closed:
                return
            try:
                result = handler(record)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Notification handler failed id=%s", record.id)

    def disconnect(self) -> None:
        """
        Synchronous, best-effort teardown (logout / unmount).

        Handlers stop firing immediately; closing the socket is scheduled on
        the running loop without waiting for in-flight messages.
        """
        transport = self._transport
        self._closed = True
        self._transport = None
        retry = self._retry_task
        self._retry_task = None
        if retry is not None and not retry.done():
            retry.cancel()
        if transport is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; push transport left to garbage collection")
            return
        task = loop.create_task(self._close_transport(transport))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def close(self) -> None:
        """Awaitable teardown (used at shutdown)."""
        self.disconnect()
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @staticmethod
    async def _close_transport(transport: PushTransport) -> None:
        with contextlib.suppress(Exception):
            await transport.disconnect()
