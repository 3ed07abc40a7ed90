# src/taskflow_sync/timer/time_tracking.py

from __future__ import annotations

import logging

from ..core.confirm import is_confirmed
from ..core.ports import Confirm, JsonDict, TaskApi
from ..core.results import OpResult
from .timer_machine import TimerStateMachine
from .timer_models import TaskSummary

logger = logging.getLogger(__name__)


class TimeTrackingService:
    """
    Task-detail operations around the timer.

    Opening a task is where a timer started on another device is discovered:
    if the server reports an active timer of ours that the local machine does
    not show, the machine adopts it.
    """

    def __init__(self, api: TaskApi, timer: TimerStateMachine) -> None:
        self._api = api
        self._timer = timer
        self._current: JsonDict | None = None

    @property
    def current_task(self) -> JsonDict | None:
        return self._current

    async def open_task(self, task_id: str) -> JsonDict | None:
        try:
            payload = await self._api.get_task(task_id)
        except Exception:
            logger.warning("Failed to fetch task details task=%s", task_id, exc_info=True)
            return None

        self._current = payload
        timer_data = payload.get("activeTimer")
        if self._timer.owns_timer(timer_data):
            active = self._timer.active_task
            if active is None or active.id != str(task_id):
                self._timer.sync_from_server(TaskSummary.from_api(payload), timer_data)
        return payload

    async def start_timer(self, task_id: str) -> OpResult:
        payload = self._current if self._is_current(task_id) else await self.open_task(task_id)
        if payload is None:
            return OpResult.failure(f"task {task_id} could not be loaded")
        return await self._timer.start(TaskSummary.from_api(payload))

    async def stop_timer(self) -> OpResult:
        return await self._timer.stop()

    async def log_time(self, task_id: str, *, hours: int, minutes: int, description: str = "") -> OpResult:
        hours = int(hours)
        minutes = int(minutes)
        if hours < 0 or minutes < 0:
            raise ValueError("hours and minutes must be non-negative")
        if hours * 3600 + minutes * 60 <= 0:
            raise ValueError("time must be greater than 0")

        try:
            self._remember(await self._api.log_time(task_id, hours=hours, minutes=minutes, description=description))
        except Exception as e:
            logger.warning("Failed to log time task=%s: %s", task_id, e)
            return OpResult.failure(e)
        logger.info("Logged %dh %dm on task=%s", hours, minutes, task_id)
        return OpResult.success()

    async def delete_time_entry(self, task_id: str, entry_index: int, *, confirm: Confirm | None = None) -> OpResult:
        if entry_index < 0:
            raise ValueError("entry_index must be non-negative")
        if not await is_confirmed(confirm):
            return OpResult.aborted()

        try:
            self._remember(await self._api.delete_time_entry(task_id, entry_index))
        except Exception as e:
            logger.warning("Failed to delete time entry task=%s index=%s: %s", task_id, entry_index, e)
            return OpResult.failure(e)
        return OpResult.success()

    async def reset_time_tracking(self, task_id: str, *, confirm: Confirm | None = None) -> OpResult:
        if not await is_confirmed(confirm):
            return OpResult.aborted()

        try:
            self._remember(await self._api.reset_time_tracking(task_id))
        except Exception as e:
            logger.warning("Failed to reset time tracking task=%s: %s", task_id, e)
            return OpResult.failure(e)

        # The server dropped its active timer as part of the reset.
        active = self._timer.active_task
        if active is not None and active.id == str(task_id):
            self._timer.clear()
        return OpResult.success()

    def _is_current(self, task_id: str) -> bool:
        cur = self._current
        return cur is not None and str(cur.get("_id") or cur.get("id")) == str(task_id)

    def _remember(self, payload: JsonDict | None) -> None:
        if isinstance(payload, dict) and payload:
            self._current = payload
