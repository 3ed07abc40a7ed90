# src/taskflow_sync/timer/timer_models.py

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

# Epoch values above this are milliseconds (JavaScript Date.now()).
_MS_THRESHOLD = 100_000_000_000


def parse_timestamp(raw: Any) -> float | None:
    """
    Parse a server/browser timestamp into epoch seconds.

    Accepts ISO-8601 strings ("2025-01-02T10:00:00.000Z"), epoch seconds and
    epoch milliseconds. Returns None for anything else.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        val = float(raw)
        if not math.isfinite(val):
            return None
        return val / 1000.0 if val > _MS_THRESHOLD else val
    if isinstance(raw, str):
        s = raw.strip()
        if not s:
            return None
        try:
            return parse_timestamp(float(s))
        except ValueError:
            pass
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt.timestamp()
    return None


def format_elapsed(seconds: int) -> str:
    """HH:MM:SS, hours are not wrapped at 24."""
    seconds = max(0, int(seconds))
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


@dataclass(slots=True, frozen=True)
class TaskSummary:
    id: str
    title: str

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> TaskSummary:
        task_id = payload.get("_id") or payload.get("id")
        if not task_id:
            raise ValueError("task payload has no id")
        return cls(id=str(task_id), title=str(payload.get("title") or ""))


@dataclass(slots=True, frozen=True)
class TimerSnapshot:
    """
    Persisted record of the running timer.

    elapsed_seconds is the time accumulated *before* start_timestamp; the live
    value is always recomputed as elapsed_seconds + (now - start_timestamp).
    """

    active_task_ref: str | None
    active_task_title: str
    is_running: bool
    start_timestamp: float | None
    elapsed_seconds: int
    last_persisted_at: float

    def is_valid(self) -> bool:
        if self.start_timestamp is not None and not math.isfinite(self.start_timestamp):
            return False
        if not math.isfinite(self.last_persisted_at):
            return False
        if self.is_running:
            return self.active_task_ref is not None and self.start_timestamp is not None
        return True

    def to_json(self) -> str:
        return json.dumps(
            {
                "activeTaskRef": self.active_task_ref,
                "activeTaskTitle": self.active_task_title,
                "isRunning": self.is_running,
                "startTimestamp": self.start_timestamp,
                "elapsedSeconds": self.elapsed_seconds,
                "lastPersistedAt": self.last_persisted_at,
            },
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, raw: str) -> TimerSnapshot | None:
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None

        ref = data.get("activeTaskRef")
        start = data.get("startTimestamp")
        running = data.get("isRunning", False)
        if not isinstance(running, bool):
            return None
        try:
            snap = cls(
                active_task_ref=str(ref) if ref else None,
                active_task_title=str(data.get("activeTaskTitle") or ""),
                is_running=running,
                start_timestamp=float(start) if start is not None else None,
                elapsed_seconds=max(0, int(data.get("elapsedSeconds") or 0)),
                last_persisted_at=float(data.get("lastPersistedAt") or 0.0),
            )
        except (TypeError, ValueError, OverflowError):
            return None
        return snap if snap.is_valid() else None


@dataclass(slots=True)
class TimerState:
    active_task: TaskSummary | None = None
    is_running: bool = False
    elapsed_seconds: int = 0


@dataclass(slots=True, frozen=True)
class TimerWidget:
    """What the sidebar shows."""

    active_task: TaskSummary | None
    is_running: bool
    elapsed_seconds: int
    formatted_time: str

    @property
    def visible(self) -> bool:
        return self.active_task is not None and self.is_running

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
