# src/taskflow_sync/timer/timer_store.py

from __future__ import annotations

import dataclasses
import logging
import time

from ..core.ports import Clock, KeyValueStorage
from ..storage.local_storage import TIMER_STATE_KEY
from .timer_models import TimerSnapshot

logger = logging.getLogger(__name__)


class LocalTimerStore:
    """
    One well-known slot holding the last known timer snapshot.

    This is a reload hint for the current profile only, never a source of
    truth for other clients. Corrupt data reads as "no timer".
    """

    def __init__(self, storage: KeyValueStorage, *, clock: Clock = time.time, key: str = TIMER_STATE_KEY) -> None:
        self._storage = storage
        self._clock = clock
        self._key = key

    def save(self, snapshot: TimerSnapshot) -> TimerSnapshot:
        stamped = dataclasses.replace(snapshot, last_persisted_at=self._clock())
        self._storage.set_item(self._key, stamped.to_json())
        return stamped

    def load(self) -> TimerSnapshot | None:
        try:
            raw = self._storage.get_item(self._key)
        except Exception:
            logger.warning("Timer slot read failed; treating as empty", exc_info=True)
            return None
        if not raw:
            return None
        snap = TimerSnapshot.from_json(raw)
        if snap is None:
            logger.info("Ignoring malformed timer snapshot")
        return snap

    def clear(self) -> None:
        self._storage.remove_item(self._key)
