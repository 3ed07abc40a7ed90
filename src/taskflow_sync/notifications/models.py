# src/taskflow_sync/notifications/models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ..timer.timer_models import parse_timestamp


class NotificationType(StrEnum):
    TASK_ASSIGNED = "task_assigned"
    TASK_UPDATED = "task_updated"
    TASK_STATUS_CHANGED = "task_status_changed"
    TASK_COMMENTED = "task_commented"
    TASK_DUE_SOON = "task_due_soon"
    TASK_OVERDUE = "task_overdue"
    TEAM_INVITE = "team_invite"
    TEAM_JOINED = "team_joined"
    UNKNOWN = "unknown"  # a type this client does not know yet

    @classmethod
    def from_api(cls, raw: str | None) -> NotificationType:
        if not raw:
            return cls.UNKNOWN
        try:
            return cls(raw)
        except ValueError:
            return cls.UNKNOWN


def _ref_id(raw: Any) -> str | None:
    """relatedTask / relatedTeam arrive as an id or as a populated document."""
    if isinstance(raw, dict):
        raw = raw.get("_id") or raw.get("id")
    if raw is None or raw == "":
        return None
    return str(raw)


@dataclass(slots=True, frozen=True)
class NotificationRecord:
    id: str
    type: NotificationType
    title: str
    message: str
    read: bool
    related_task: str | None
    related_team: str | None
    created_at: float

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> NotificationRecord:
        notif_id = payload.get("_id") or payload.get("id")
        if not notif_id:
            raise ValueError("notification payload has no id")
        return cls(
            id=str(notif_id),
            type=NotificationType.from_api(payload.get("type")),
            title=str(payload.get("title") or ""),
            message=str(payload.get("message") or ""),
            read=bool(payload.get("read", False)),
            related_task=_ref_id(payload.get("relatedTask")),
            related_team=_ref_id(payload.get("relatedTeam")),
            created_at=parse_timestamp(payload.get("createdAt")) or 0.0,
        )
