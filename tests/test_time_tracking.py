# tests/test_time_tracking.py

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from taskflow_sync.timer.time_tracking import TimeTrackingService
from taskflow_sync.timer.timer_models import TaskSummary


@pytest.fixture()
def machine(make_machine):
    return make_machine()


@pytest.fixture()
def service(api, machine) -> TimeTrackingService:
    return TimeTrackingService(api, machine)


@pytest.mark.asyncio
async def test_open_task_adopts_timer_started_elsewhere(service, api, machine, clock) -> None:
    start = datetime.fromtimestamp(clock.now - 45, UTC).isoformat()
    api.add_task("t1", "Remote", activeTimer={"startTime": start, "userId": "user-1"})

    task = await service.open_task("t1")

    assert task is not None and task["_id"] == "t1"
    assert machine.is_running
    assert machine.active_task == TaskSummary(id="t1", title="Remote")
    assert machine.elapsed_seconds == 45
    machine.shutdown()


@pytest.mark.asyncio
async def test_open_task_failure_returns_none(service) -> None:
    assert await service.open_task("missing") is None
    assert service.current_task is None


@pytest.mark.asyncio
async def test_start_timer_uses_task_title(service, api, machine, toaster) -> None:
    api.add_task("t1", "Write docs")

    result = await service.start_timer("t1")

    assert result.ok
    assert machine.active_task == TaskSummary(id="t1", title="Write docs")
    assert toaster.messages == ["Timer started: Write docs"]
    assert api.called("get_task") == [("t1",)]
    machine.shutdown()


@pytest.mark.asyncio
async def test_start_timer_on_unknown_task_fails(service, machine) -> None:
    result = await service.start_timer("missing")
    assert not result.ok
    assert not machine.is_running


@pytest.mark.asyncio
async def test_log_time_validates_input(service, api) -> None:
    with pytest.raises(ValueError):
        await service.log_time("t1", hours=0, minutes=0)
    with pytest.raises(ValueError):
        await service.log_time("t1", hours=-1, minutes=90)
    assert api.called("log_time") == []

    assert (await service.log_time("t1", hours=1, minutes=15, description="review")).ok
    assert api.called("log_time") == [("t1", 1, 15, "review")]


@pytest.mark.asyncio
async def test_delete_time_entry_needs_confirmation(service, api) -> None:
    assert (await service.delete_time_entry("t1", 0)).cancelled
    assert (await service.delete_time_entry("t1", 0, confirm=lambda: False)).cancelled
    assert api.called("delete_time_entry") == []

    assert (await service.delete_time_entry("t1", 0, confirm=lambda: True)).ok
    assert api.called("delete_time_entry") == [("t1", 0)]


@pytest.mark.asyncio
async def test_reset_clears_running_timer_of_that_task(service, api, machine) -> None:
    api.add_task("t1")
    await service.start_timer("t1")

    async def confirm() -> bool:
        return True

    result = await service.reset_time_tracking("t1", confirm=confirm)

    assert result.ok
    assert not machine.is_running
    assert api.called("reset_time_tracking") == [("t1",)]


@pytest.mark.asyncio
async def test_reset_failure_keeps_timer(service, api, machine) -> None:
    api.add_task("t1")
    await service.start_timer("t1")
    api.fail.add("reset_time_tracking")

    result = await service.reset_time_tracking("t1", confirm=lambda: True)

    assert not result.ok
    assert machine.is_running
    machine.shutdown()
