# tests/test_channel.py

from __future__ import annotations

import asyncio

import pytest

from taskflow_sync.notifications.channel import JOIN_ROOM_EVENT, NOTIFICATION_EVENT, PushChannel
from taskflow_sync.notifications.models import NotificationRecord, NotificationType

from .fakes import FakePushTransport, notification


@pytest.fixture()
def transports() -> list[FakePushTransport]:
    return []


@pytest.fixture()
def channel(transports) -> PushChannel:
    def factory() -> FakePushTransport:
        t = FakePushTransport()
        transports.append(t)
        return t

    return PushChannel("http://server.test", transport_factory=factory)


@pytest.mark.asyncio
async def test_connect_joins_user_room(channel, transports) -> None:
    assert await channel.connect("user-1")

    t = transports[0]
    assert t.connect_urls == ["http://server.test"]
    assert t.emitted == [(JOIN_ROOM_EVENT, "user-1")]
    assert channel.connected


@pytest.mark.asyncio
async def test_reconnect_rejoins_room(channel, transports) -> None:
    await channel.connect("user-1")
    await transports[0].fire("disconnect")
    await transports[0].fire("connect")
    assert transports[0].emitted == [(JOIN_ROOM_EVENT, "user-1")] * 2


@pytest.mark.asyncio
async def test_notification_is_parsed_and_dispatched(channel, transports) -> None:
    received: list[NotificationRecord] = []
    channel.on_event(received.append)
    await channel.connect("user-1")

    payload = notification("n1", type="task_commented", related_task={"_id": "t1", "title": "Populated"})
    await transports[0].fire(NOTIFICATION_EVENT, payload)

    assert len(received) == 1
    assert received[0].id == "n1"
    assert received[0].type is NotificationType.TASK_COMMENTED
    assert received[0].related_task == "t1"


@pytest.mark.asyncio
async def test_malformed_payloads_are_dropped(channel, transports) -> None:
    received: list[NotificationRecord] = []
    channel.on_event(received.append)
    await channel.connect("user-1")

    await transports[0].fire(NOTIFICATION_EVENT, "not an object")
    await transports[0].fire(NOTIFICATION_EVENT, {"title": "no id"})

    assert received == []


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_others(channel, transports) -> None:
    received: list[str] = []

    def broken(_record) -> None:
        raise RuntimeError("boom")

    channel.on_event(broken)
    channel.on_event(lambda r: received.append(r.id))
    await channel.connect("user-1")

    await transports[0].fire(NOTIFICATION_EVENT, notification("n1"))

    assert received == ["n1"]


@pytest.mark.asyncio
async def test_disconnect_stops_delivery_immediately(channel, transports) -> None:
    received: list[NotificationRecord] = []
    channel.on_event(received.append)
    await channel.connect("user-1")
    t = transports[0]

    channel.disconnect()
    await t.fire(NOTIFICATION_EVENT, notification("n1"))
    await channel.close()

    assert received == []
    assert not channel.connected
    assert t.disconnects == 1


@pytest.mark.asyncio
async def test_unsubscribed_handler_is_not_called(channel, transports) -> None:
    received: list[NotificationRecord] = []
    off = channel.on_event(received.append)
    await channel.connect("user-1")

    off()
    await transports[0].fire(NOTIFICATION_EVENT, notification("n1"))

    assert received == []


@pytest.mark.asyncio
async def test_failed_connect_keeps_retrying_in_background() -> None:
    made: list[FakePushTransport] = []

    def factory() -> FakePushTransport:
        made.append(FakePushTransport(failures=1))
        return made[-1]

    channel = PushChannel("http://flaky.test", transport_factory=factory)

    assert not await channel.connect("user-1")
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    t = made[0]
    assert t.retry_flags == [False, True]
    assert channel.connected
    assert t.emitted == [(JOIN_ROOM_EVENT, "user-1")]
    await channel.close()


@pytest.mark.asyncio
async def test_connect_after_failure_really_reconnects() -> None:
    made: list[FakePushTransport] = []

    def factory() -> FakePushTransport:
        # The first server is down for good; the second attempt finds it up.
        made.append(FakePushTransport(failures=1_000 if not made else 0))
        return made[-1]

    channel = PushChannel("http://down.test", transport_factory=factory)

    assert not await channel.connect("user-1")
    await asyncio.sleep(0)
    assert not channel.connected

    assert await channel.connect("user-1")
    assert len(made) == 2
    assert channel.connected
    assert made[1].emitted == [(JOIN_ROOM_EVENT, "user-1")]
    await channel.close()


@pytest.mark.asyncio
async def test_connect_without_identity_is_a_noop(channel, transports) -> None:
    assert not await channel.connect("")
    assert transports == []
