# src/taskflow_sync/notifications/inbox.py

"""
Notification inbox controller.

Keeps the ordered (newest first), id-deduplicated list of notifications and
the unread counter, fed by two unordered sources:
- push events from the channel (prepended, counter +1),
- pulls from the server (authoritative list / count refresh).

Consistency is eventual: the only rule is dedupe by id, with the fetched copy
winning over a pushed one. Mutations are optimistic and never rolled back;
each returns an OpResult so the caller can surface a failure.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from enum import StrEnum

from ..core.confirm import is_confirmed
from ..core.events import EventBus, RefreshTaskList, TeamFilterChanged
from ..core.ports import Confirm, KeyValueStorage, NotificationApi
from ..core.results import OpResult
from ..storage.team_filter import write_team_filter
from .models import NotificationRecord
from .routing import Route, resolve_target_route

logger = logging.getLogger(__name__)


class InboxView(StrEnum):
    CLOSED = "closed"
    LOADING = "loading"
    LOADED = "loaded"


class NotificationInbox:
    def __init__(
            self,
            api: NotificationApi,
            *,
            storage: KeyValueStorage | None = None,
            bus: EventBus | None = None,
            limit: int = 10,
    ) -> None:
        self._api = api
        self._storage = storage
        self._bus = bus
        self._limit = max(1, int(limit))

        self._records: list[NotificationRecord] = []
        self._unread = 0
        self._view = InboxView.CLOSED

        # Push sequence numbers, used to keep pushes that race a fetch.
        self._push_seq = 0
        self._pushed_at: dict[str, int] = {}

    # ---- accessors ----

    @property
    def records(self) -> list[NotificationRecord]:
        return list(self._records)

    @property
    def unread_count(self) -> int:
        return self._unread

    @property
    def view(self) -> InboxView:
        return self._view

    @property
    def is_open(self) -> bool:
        return self._view is not InboxView.CLOSED

    @property
    def badge(self) -> str:
        if self._unread <= 0:
            return ""
        return "9+" if self._unread > 9 else str(self._unread)

    def get(self, notification_id: str) -> NotificationRecord | None:
        for r in self._records:
            if r.id == notification_id:
                return r
        return None

    # ---- pulls ----

    async def fetch_recent(self, limit: int | None = None) -> OpResult:
        limit = self._limit if limit is None else max(1, int(limit))
        seq_before = self._push_seq

        try:
            payloads = await self._api.list_notifications(limit=limit)
        except Exception as e:
            logger.warning("Failed to fetch notifications: %s", e)
            return OpResult.failure(e)

        fetched: list[NotificationRecord] = []
        seen: set[str] = set()
        for p in payloads:
            try:
                rec = NotificationRecord.from_api(p)
            except ValueError:
                logger.debug("Skipping malformed notification: %r", p)
                continue
            if rec.id in seen:
                continue
            seen.add(rec.id)
            fetched.append(rec)

        # Pushes that arrived while the request was in flight are not in the batch yet.
        raced = [
            r for r in self._records
            if self._pushed_at.get(r.id, -1) > seq_before and r.id not in seen
        ]
        self._records = raced + fetched
        self._pushed_at = {r.id: self._pushed_at[r.id] for r in raced}
        logger.debug("Fetched %d notifications (%d raced pushes kept)", len(fetched), len(raced))
        return OpResult.success()

    async def fetch_unread_count(self) -> OpResult:
        try:
            count = await self._api.unread_count()
        except Exception as e:
            logger.warning("Failed to fetch unread count: %s", e)
            return OpResult.failure(e)
        self._unread = max(0, int(count))
        return OpResult.success()

    async def refresh(self) -> None:
        await self.fetch_recent()
        await self.fetch_unread_count()

    # ---- push ----

    def on_push(self, record: NotificationRecord) -> bool:
        """Prepend a pushed record. Returns False for a duplicate id."""
        if self.get(record.id) is not None:
            logger.debug("Duplicate push ignored id=%s", record.id)
            return False
        self._push_seq += 1
        self._pushed_at[record.id] = self._push_seq
        self._records.insert(0, record)
        self._unread += 1
        return True

    # ---- mutations ----

    async def mark_read(self, notification_id: str) -> OpResult:
        idx = self._index_of(notification_id)
        if idx is not None:
            rec = self._records[idx]
            if rec.read:
                return OpResult.success()
            self._records[idx] = dataclasses.replace(rec, read=True)
            self._unread = max(0, self._unread - 1)

        try:
            await self._api.mark_notification_read(notification_id)
        except Exception as e:
            logger.warning("Failed to mark notification read id=%s: %s", notification_id, e)
            return OpResult.failure(e)
        return OpResult.success()

    async def mark_all_read(self) -> OpResult:
        self._records = [r if r.read else dataclasses.replace(r, read=True) for r in self._records]
        self._unread = 0

        try:
            await self._api.mark_all_notifications_read()
        except Exception as e:
            logger.warning("Failed to mark all notifications read: %s", e)
            return OpResult.failure(e)
        return OpResult.success()

    async def delete(self, notification_id: str) -> OpResult:
        idx = self._index_of(notification_id)
        if idx is not None:
            removed = self._records.pop(idx)
            self._pushed_at.pop(removed.id, None)
            if not removed.read:
                self._unread = max(0, self._unread - 1)

        try:
            await self._api.delete_notification(notification_id)
        except Exception as e:
            logger.warning("Failed to delete notification id=%s: %s", notification_id, e)
            return OpResult.failure(e)
        return OpResult.success()

    async def delete_all(self, confirm: Confirm | None) -> OpResult:
        """Destructive and irreversible: does nothing unless confirm() says yes."""
        if not await is_confirmed(confirm):
            return OpResult.aborted()

        self._records = []
        self._pushed_at = {}
        self._unread = 0

        try:
            await self._api.delete_all_notifications()
        except Exception as e:
            logger.warning("Failed to delete all notifications: %s", e)
            return OpResult.failure(e)
        return OpResult.success()

    # ---- UI state ----

    async def open(self) -> OpResult:
        """Opening always re-fetches: Closed -> Loading -> Loaded."""
        self._view = InboxView.LOADING
        try:
            return await self.fetch_recent()
        finally:
            if self._view is InboxView.LOADING:
                self._view = InboxView.LOADED

    def close(self) -> None:
        self._view = InboxView.CLOSED

    async def toggle(self) -> OpResult:
        if self.is_open:
            self.close()
            return OpResult.success()
        return await self.open()

    async def open_notification(self, record: NotificationRecord) -> Route | None:
        """
        Click on a notification: signal the destination view, mark the
        record read, close the inbox. Returns the navigation target.
        """
        route = resolve_target_route(record)

        if route is Route.TASKS and (record.related_team or record.related_task):
            team_id = record.related_team or ""
            if self._storage is not None:
                try:
                    write_team_filter(self._storage, team_id)
                except Exception:
                    logger.exception("Failed to persist team filter")
            if self._bus is not None:
                self._bus.publish(TeamFilterChanged(team_id=team_id))
                self._bus.publish(RefreshTaskList(from_notification=True))

        if not record.read:
            await self.mark_read(record.id)
        self.close()
        return route

    def _index_of(self, notification_id: str) -> int | None:
        for i, r in enumerate(self._records):
            if r.id == notification_id:
                return i
        return None


async def run_inbox_reconciler(inbox: NotificationInbox, *, interval_seconds: float = 60.0) -> None:
    """
    Periodic pull that recovers pushes lost while disconnected.

    To stop the loop, cancel the task.
    """
    sleep_s = max(0.5, float(interval_seconds))
    while True:
        await asyncio.sleep(sleep_s)
        try:
            await inbox.refresh()
        except Exception:
            logger.exception("Inbox reconcile failed")
