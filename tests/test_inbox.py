# tests/test_inbox.py

from __future__ import annotations

import pytest

from taskflow_sync.core.events import RefreshTaskList, TeamFilterChanged
from taskflow_sync.notifications.inbox import InboxView, NotificationInbox
from taskflow_sync.notifications.models import NotificationRecord
from taskflow_sync.notifications.routing import Route
from taskflow_sync.storage.team_filter import read_team_filter

from .fakes import notification


def _record(notif_id: str, **kwargs) -> NotificationRecord:
    return NotificationRecord.from_api(notification(notif_id, **kwargs))


@pytest.fixture()
def inbox(api, storage, bus) -> NotificationInbox:
    return NotificationInbox(api, storage=storage, bus=bus, limit=10)


@pytest.mark.asyncio
async def test_refresh_loads_list_and_counter(inbox, api) -> None:
    api.notifications = [notification("n1"), notification("n2", read=True), notification("n1")]

    await inbox.refresh()

    assert [r.id for r in inbox.records] == ["n1", "n2"]
    assert inbox.unread_count == 2  # server count, not recomputed locally
    assert api.called("list_notifications") == [(10,)]


@pytest.mark.asyncio
async def test_fetch_failure_keeps_previous_list(inbox, api) -> None:
    api.notifications = [notification("n1")]
    await inbox.fetch_recent()
    api.fail.add("list_notifications")

    result = await inbox.fetch_recent()

    assert not result.ok
    assert [r.id for r in inbox.records] == ["n1"]


def test_push_prepends_and_counts(inbox) -> None:
    assert inbox.on_push(_record("n1"))
    assert inbox.on_push(_record("n2"))

    assert [r.id for r in inbox.records] == ["n2", "n1"]
    assert inbox.unread_count == 2


def test_duplicate_push_is_ignored(inbox) -> None:
    inbox.on_push(_record("n1"))
    assert not inbox.on_push(_record("n1"))
    assert len(inbox.records) == 1
    assert inbox.unread_count == 1


@pytest.mark.asyncio
async def test_push_during_fetch_survives_the_fetch(inbox, api) -> None:
    api.notifications = [notification("n1")]
    api.on_list_notifications = lambda: inbox.on_push(_record("n-live"))

    await inbox.fetch_recent()

    assert [r.id for r in inbox.records] == ["n-live", "n1"]


@pytest.mark.asyncio
async def test_fetched_copy_wins_over_pushed_copy(inbox, api) -> None:
    inbox.on_push(_record("n1", title="pushed"))
    api.notifications = [notification("n1", title="fetched", read=True)]

    await inbox.fetch_recent()

    assert len(inbox.records) == 1
    assert inbox.records[0].title == "fetched"
    assert inbox.records[0].read


@pytest.mark.asyncio
async def test_mark_read_decrements_with_floor(inbox, api) -> None:
    inbox.on_push(_record("n1"))
    inbox.on_push(_record("n2"))

    assert (await inbox.mark_read("n1")).ok
    assert inbox.unread_count == 1
    assert inbox.get("n1").read

    # Already read: nothing changes, no server call.
    await inbox.mark_read("n1")
    assert inbox.unread_count == 1
    assert api.called("mark_notification_read") == [("n1",)]


@pytest.mark.asyncio
async def test_mark_read_failure_is_not_rolled_back(inbox, api) -> None:
    inbox.on_push(_record("n1"))
    api.fail.add("mark_notification_read")

    result = await inbox.mark_read("n1")

    assert not result.ok
    assert inbox.get("n1").read
    assert inbox.unread_count == 0


@pytest.mark.asyncio
async def test_mark_all_read(inbox, api) -> None:
    inbox.on_push(_record("n1"))
    inbox.on_push(_record("n2"))

    await inbox.mark_all_read()

    assert inbox.unread_count == 0
    assert all(r.read for r in inbox.records)
    assert api.called("mark_all_notifications_read") == [()]


@pytest.mark.asyncio
async def test_delete_unread_decrements(inbox, api) -> None:
    inbox.on_push(_record("n1"))
    inbox.on_push(_record("n2", read=True))

    await inbox.delete("n1")
    await inbox.delete("n2")

    assert inbox.records == []
    assert inbox.unread_count == 0
    assert api.called("delete_notification") == [("n1",), ("n2",)]


@pytest.mark.asyncio
async def test_delete_all_requires_confirmation(inbox, api) -> None:
    inbox.on_push(_record("n1"))

    result = await inbox.delete_all(lambda: False)
    assert result.cancelled
    assert len(inbox.records) == 1
    assert api.called("delete_all_notifications") == []

    result = await inbox.delete_all(lambda: True)
    assert result.ok
    assert inbox.records == []
    assert inbox.unread_count == 0


@pytest.mark.asyncio
async def test_delete_all_without_prompt_is_aborted(inbox, api) -> None:
    inbox.on_push(_record("n1"))
    assert (await inbox.delete_all(None)).cancelled
    assert len(inbox.records) == 1


@pytest.mark.parametrize(("count", "badge"), [(0, ""), (1, "1"), (9, "9"), (10, "9+"), (42, "9+")])
def test_badge(inbox, count, badge) -> None:
    for i in range(count):
        inbox.on_push(_record(f"n{i}"))
    assert inbox.badge == badge


@pytest.mark.asyncio
async def test_open_refetches_and_close(inbox, api) -> None:
    api.notifications = [notification("n1")]
    assert inbox.view is InboxView.CLOSED

    await inbox.open()
    assert inbox.view is InboxView.LOADED
    assert [r.id for r in inbox.records] == ["n1"]

    await inbox.toggle()
    assert not inbox.is_open


@pytest.mark.asyncio
async def test_open_notification_with_team_filters_task_list(inbox, api, storage, bus) -> None:
    published: list[object] = []
    bus.subscribe(TeamFilterChanged, published.append)
    bus.subscribe(RefreshTaskList, published.append)
    rec = _record("n1", related_task={"_id": "t1", "title": "x"}, related_team="team-7")
    inbox.on_push(rec)
    await inbox.open()

    route = await inbox.open_notification(rec)

    assert route is Route.TASKS
    assert read_team_filter(storage) == "team-7"
    assert published == [TeamFilterChanged(team_id="team-7"), RefreshTaskList(from_notification=True)]
    assert api.called("mark_notification_read") == [("n1",)]
    assert not inbox.is_open


@pytest.mark.asyncio
async def test_open_notification_without_team_clears_filter(inbox, storage) -> None:
    storage.set_item("teamFilter", '"team-1"')
    rec = _record("n1", related_task="t1")

    assert await inbox.open_notification(rec) is Route.TASKS
    assert read_team_filter(storage) == ""


@pytest.mark.asyncio
async def test_open_read_team_notification_has_no_server_call(inbox, api) -> None:
    rec = _record("n1", type="team_invite", related_team="team-7", read=True)

    assert await inbox.open_notification(rec) is Route.TEAMS
    assert api.called("mark_notification_read") == []
