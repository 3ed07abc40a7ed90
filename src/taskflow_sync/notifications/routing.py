# src/taskflow_sync/notifications/routing.py

from __future__ import annotations

from enum import StrEnum
from typing import assert_never

from .models import NotificationRecord, NotificationType


class Route(StrEnum):
    TASKS = "tasks"
    TEAMS = "teams"


def _route_for_type(kind: NotificationType) -> Route | None:
    match kind:
        case (
            NotificationType.TASK_ASSIGNED
            | NotificationType.TASK_UPDATED
            | NotificationType.TASK_STATUS_CHANGED
            | NotificationType.TASK_COMMENTED
            | NotificationType.TASK_DUE_SOON
            | NotificationType.TASK_OVERDUE
        ):
            return Route.TASKS
        case NotificationType.TEAM_INVITE | NotificationType.TEAM_JOINED:
            return Route.TEAMS
        case NotificationType.UNKNOWN:
            return None
        case _:
            assert_never(kind)


def resolve_target_route(record: NotificationRecord) -> Route | None:
    """
    Where clicking a notification navigates to, or None if not actionable.

    A related task always wins (a team-scoped task notification opens the
    task list pre-filtered to that team); a related team alone opens teams.
    """
    by_type = _route_for_type(record.type)
    if record.related_task or by_type is Route.TASKS:
        return Route.TASKS
    if record.related_team or by_type is Route.TEAMS:
        return Route.TEAMS
    return None
