"""ChannelsFanout against a mocked channel layer."""

from unittest import mock

from django.test import SimpleTestCase

from rooms.availability import AvailabilityGuard
from rooms.fanout import ChannelsFanout, group_name
from rooms.presence import PresenceTracker
from rooms.protocol import RoomProtocol
from rooms.schemas import OutboundEventType, parse_event
from rooms.tests.helpers.fakes import FakeConnection, InMemoryMessageStore


def mock_layer():
    layer = mock.Mock()
    layer.group_add = mock.AsyncMock()
    layer.group_discard = mock.AsyncMock()
    layer.group_send = mock.AsyncMock()
    return layer


class GroupNameTests(SimpleTestCase):
    def test_ascii_and_distinct(self):
        self.assertRegex(group_name("général ✏️"), r"^[a-zA-Z0-9_.-]+$")
        self.assertNotEqual(group_name("a b"), group_name("a_b"))
        self.assertLess(len(group_name("x" * 500)), 100)


class ChannelsFanoutTests(SimpleTestCase):
    def setUp(self):
        self.layer = mock_layer()
        patcher = mock.patch.object(
            ChannelsFanout, "channel_layer", new_callable=mock.PropertyMock, return_value=self.layer
        )
        patcher.start()
        self.addCleanup(patcher.stop)
        self.fanout = ChannelsFanout()

    async def test_broadcast_carries_room(self):
        await self.fanout.broadcast("general", OutboundEventType.PRESENCE, ["A"])
        self.layer.group_send.assert_awaited_once_with(
            group_name("general"),
            {"type": "room.event", "event": "presence", "room": "general", "data": ["A"]},
        )

    async def test_layer_errors_are_logged_not_raised(self):
        self.layer.group_send.side_effect = ConnectionError("redis down")
        self.layer.group_discard.side_effect = ConnectionError("redis down")
        with self.assertLogs("rooms.fanout", level="ERROR") as logs:
            await self.fanout.broadcast("general", OutboundEventType.PRESENCE, [])
            await self.fanout.discard("general", "chan-A")
        self.assertEqual(len(logs.output), 2)

    async def test_disconnect_survives_failing_discard(self):
        store = InMemoryMessageStore()
        protocol = RoomProtocol(
            presence=PresenceTracker(),
            store=store,
            guard=AvailabilityGuard(store),
            fanout=self.fanout,
        )
        a, b = FakeConnection("A"), FakeConnection("B")
        for room in ("general", "math"):
            await protocol.dispatch(a, parse_event({"type": "joinRoom", "room": room, "displayName": "A"}))
        await protocol.dispatch(b, parse_event({"type": "joinRoom", "room": "general", "displayName": "B"}))
        self.layer.group_send.reset_mock()
        self.layer.group_discard.side_effect = ConnectionError("redis down")

        with self.assertLogs("rooms.fanout", level="ERROR"):
            await protocol.disconnect(a)

        self.assertEqual(protocol.presence.rooms_for(a.connection_id), [])
        sent = [call.args[1] for call in self.layer.group_send.await_args_list]
        self.assertEqual(
            [(m["room"], m["data"]) for m in sent],
            [("general", ["B"]), ("math", [])],
        )
