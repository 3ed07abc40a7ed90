# src/taskflow_sync/views/task_list.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.events import EventBus, RefreshTaskList, TeamFilterChanged
from ..core.ports import JsonDict, KeyValueStorage, TaskApi
from ..core.results import OpResult
from ..storage.team_filter import read_team_filter, write_team_filter

logger = logging.getLogger(__name__)


class TaskListView:
    """
    The task list as seen by other views: a team filter plus the last fetched
    tasks. While mounted it follows TeamFilterChanged and re-fetches on
    RefreshTaskList.
    """

    def __init__(self, api: TaskApi, *, storage: KeyValueStorage, bus: EventBus) -> None:
        self._api = api
        self._storage = storage
        self._bus = bus
        self._team_filter = read_team_filter(storage)
        self._tasks: list[JsonDict] = []
        self._unsubscribe: list[Callable[[], None]] = []

    @property
    def team_filter(self) -> str:
        return self._team_filter

    @property
    def tasks(self) -> list[JsonDict]:
        return list(self._tasks)

    @property
    def mounted(self) -> bool:
        return bool(self._unsubscribe)

    def mount(self) -> None:
        if self.mounted:
            return
        self._unsubscribe = [
            self._bus.subscribe(TeamFilterChanged, self._on_team_filter),
            self._bus.subscribe(RefreshTaskList, self._on_refresh),
        ]

    def unmount(self) -> None:
        for off in self._unsubscribe:
            off()
        self._unsubscribe = []

    def set_team_filter(self, team_id: str | None) -> None:
        """User picked a team in the filter drop-down."""
        write_team_filter(self._storage, team_id)
        self._team_filter = (team_id or "").strip()

    async def refresh(self) -> OpResult:
        try:
            self._tasks = await self._api.list_tasks(team=self._team_filter or None)
        except Exception as e:
            logger.warning("Failed to fetch tasks team=%s: %s", self._team_filter or "-", e)
            return OpResult.failure(e)
        logger.debug("Fetched %d tasks team=%s", len(self._tasks), self._team_filter or "-")
        return OpResult.success()

    def _on_team_filter(self, event: TeamFilterChanged) -> None:
        self._team_filter = event.team_id or read_team_filter(self._storage)

    async def _on_refresh(self, event: RefreshTaskList) -> None:
        self._team_filter = read_team_filter(self._storage)
        await self.refresh()
