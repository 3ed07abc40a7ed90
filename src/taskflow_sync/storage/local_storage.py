# src/taskflow_sync/storage/local_storage.py

from __future__ import annotations

import contextlib
import json
import logging
import os
import threading
from pathlib import Path

logger = logging.getLogger(__name__)

# Slot names match the web front end; the value layouts are our own (plain JSON strings).
TIMER_STATE_KEY = "taskManager_timerState"
TEAM_FILTER_KEY = "teamFilter"


class LocalStorage:
    """
    Durable key/value slots backed by one JSON file.

    Values are opaque strings (callers JSON-encode their own payloads), which
    mirrors browser localStorage. The file is read once on construction and
    rewritten atomically on every change.

    A missing or unreadable file is treated as empty storage; it is never an
    error. Writes are single-process; concurrent processes on the same file
    are last-write-wins.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._items: dict[str, str] = self._read_file()
        logger.info("LocalStorage ready path=%s keys=%d", self._path, len(self._items))

    @property
    def path(self) -> Path:
        return self._path

    def _read_file(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except Exception:
            logger.warning("Local storage file is unreadable, starting empty: %s", self._path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            logger.warning("Local storage file is not a JSON object, starting empty: %s", self._path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(self._items, ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self._path)
        with contextlib.suppress(Exception):
            # The timer slot names tasks the user works on; keep the file private.
            os.chmod(self._path, 0o600)

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = str(value)
            self._flush()

    def remove_item(self, key: str) -> None:
        with self._lock:
            if self._items.pop(key, None) is None:
                return
            self._flush()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._items)
