# tests/test_realtime.py

import pytest
from starlette.websockets import WebSocketDisconnect

from app.common.events import FRIENDSHIP_ACCEPTED, EventBus, FriendshipEvent
from app.common.websocket import ConnectionManager, manager
from conftest import make_token

EVENT = FriendshipEvent(
    type=FRIENDSHIP_ACCEPTED,
    friendship_id="f-1",
    user_ids=("alice", "bob"),
    paths=("/feed", "/profile", "/friends"),
)


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    async def send_json(self, payload):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(payload)


@pytest.mark.asyncio
async def test_event_bus_runs_sync_and_async_handlers():
    bus = EventBus()
    seen = []

    async def async_handler(event):
        seen.append(("async", event.type))

    bus.subscribe(lambda event: seen.append(("sync", event.type)))
    bus.subscribe(async_handler)
    await bus.publish(EVENT)

    assert seen == [("sync", FRIENDSHIP_ACCEPTED), ("async", FRIENDSHIP_ACCEPTED)]


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_others():
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(broken)
    unsubscribe = bus.subscribe(seen.append)
    await bus.publish_all([EVENT, EVENT])
    assert seen == [EVENT, EVENT]

    unsubscribe()
    await bus.publish(EVENT)
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_manager_notifies_both_parties():
    manager = ConnectionManager()
    alice, bob = FakeSocket(), FakeSocket()
    await manager.connect("alice", alice)
    await manager.connect("bob", bob)

    await manager.handle_event(EVENT)

    expected = {
        "type": "invalidate",
        "event": FRIENDSHIP_ACCEPTED,
        "friendship_id": "f-1",
        "paths": ["/feed", "/profile", "/friends"],
    }
    assert alice.sent == [expected]
    assert bob.sent == [expected]


@pytest.mark.asyncio
async def test_manager_drops_broken_connection():
    manager = ConnectionManager()
    await manager.connect("alice", FakeSocket(fail=True))

    await manager.handle_event(EVENT)
    assert manager.get_online_ids() == []


@pytest.mark.asyncio
async def test_manager_keeps_every_tab_of_a_user():
    manager = ConnectionManager()
    first, second = FakeSocket(), FakeSocket()
    await manager.connect("alice", first)
    await manager.connect("alice", second)

    manager.disconnect("alice", first)
    assert manager.get_online_ids() == ["alice"]

    await manager.handle_event(EVENT)
    assert first.sent == []
    assert len(second.sent) == 1

    manager.disconnect("alice", second)
    assert manager.get_online_ids() == []


@pytest.mark.asyncio
async def test_broken_tab_does_not_drop_the_others():
    manager = ConnectionManager()
    healthy = FakeSocket()
    await manager.connect("alice", FakeSocket(fail=True))
    await manager.connect("alice", healthy)

    await manager.handle_event(EVENT)
    assert len(healthy.sent) == 1
    assert manager.active_connections["alice"] == [healthy]


def test_realtime_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/api/friends/realtime?token=junk"):
            pass
    assert excinfo.value.code == 4401


def test_closing_one_tab_keeps_the_other_online(client):
    url = f"/api/friends/realtime?token={make_token('alice')}"
    with client.websocket_connect(url):
        with client.websocket_connect(url):
            pass
        assert "alice" in manager.get_online_ids()
        assert len(manager.active_connections["alice"]) == 1
    assert "alice" not in manager.get_online_ids()
