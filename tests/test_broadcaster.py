"""
Tests for the live WebSocket hub.
"""

import asyncio

from fieldcrew_backend.broadcaster import LiveBroadcaster


class FakeWebSocket:
    def __init__(self, fail: bool = False):
        self.accepted = False
        self.sent = []
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)


def test_broadcast_without_subscribers_is_a_no_op():
    LiveBroadcaster().broadcast("job_created", {"id": 1})


def test_broadcast_reaches_every_attached_subscriber():
    broadcaster = LiveBroadcaster()
    first, second = FakeWebSocket(), FakeWebSocket()

    async def scenario():
        await broadcaster.connect(first)
        await broadcaster.connect(second)
        broadcaster.broadcast("job_created", {"id": 1})
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert first.accepted and second.accepted
    assert first.sent == second.sent == [{"event": "job_created", "data": {"id": 1}}]


def test_broadcast_from_worker_thread():
    """Sends scheduled from another thread land on the hub's event loop."""
    broadcaster = LiveBroadcaster()
    websocket = FakeWebSocket()

    async def scenario():
        await broadcaster.connect(websocket)
        await asyncio.to_thread(broadcaster.broadcast, "team_deleted", {"id": 7})
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert websocket.sent == [{"event": "team_deleted", "data": {"id": 7}}]


def test_failed_subscriber_is_dropped_without_affecting_others():
    broadcaster = LiveBroadcaster()
    broken, healthy = FakeWebSocket(fail=True), FakeWebSocket()

    async def scenario():
        await broadcaster.connect(broken)
        await broadcaster.connect(healthy)
        broadcaster.broadcast("plantation_updated", {"id": 2})
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert healthy.sent == [{"event": "plantation_updated", "data": {"id": 2}}]
    assert broadcaster.subscriber_count == 1


def test_late_subscriber_sees_no_earlier_events():
    broadcaster = LiveBroadcaster()
    early, late = FakeWebSocket(), FakeWebSocket()

    async def scenario():
        await broadcaster.connect(early)
        broadcaster.broadcast("job_created", {"id": 1})
        await asyncio.sleep(0.05)
        await broadcaster.connect(late)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert len(early.sent) == 1
    assert late.sent == []


def test_disconnect_is_idempotent():
    broadcaster = LiveBroadcaster()
    websocket = FakeWebSocket()

    asyncio.run(broadcaster.connect(websocket))
    broadcaster.disconnect(websocket)
    broadcaster.disconnect(websocket)

    assert broadcaster.subscriber_count == 0
