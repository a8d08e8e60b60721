from datetime import datetime, timezone

from django.test import SimpleTestCase
from pydantic import ValidationError

from rooms.schemas import (
    JoinRoom,
    MessageRecord,
    OutboundEvent,
    OutboundEventType,
    ReactMessage,
    SendMessage,
    parse_event,
)


class ParseEventTests(SimpleTestCase):
    def test_join_room(self):
        event = parse_event({"type": "joinRoom", "room": "general", "displayName": "A"})
        self.assertIsInstance(event, JoinRoom)
        self.assertEqual((event.room, event.display_name), ("general", "A"))

    def test_legacy_username_and_reaction_keys(self):
        send = parse_event({"type": "sendMessage", "room": "general", "username": "A", "text": "hi"})
        self.assertIsInstance(send, SendMessage)
        self.assertEqual(send.display_name, "A")

        react = parse_event(
            {"type": "reactMessage", "messageId": "m1", "reaction": "👍", "username": "B", "room": "general"}
        )
        self.assertIsInstance(react, ReactMessage)
        self.assertEqual((react.message_id, react.reaction_label, react.display_name), ("m1", "👍", "B"))

    def test_display_name_defaults_to_empty(self):
        event = parse_event({"type": "joinRoom", "room": "general"})
        self.assertEqual(event.display_name, "")

    def test_unknown_type_rejected(self):
        with self.assertRaises(ValidationError):
            parse_event({"type": "shout", "room": "general"})

    def test_missing_room_rejected(self):
        with self.assertRaises(ValidationError):
            parse_event({"type": "leaveRoom"})

    def test_missing_message_id_rejected(self):
        with self.assertRaises(ValidationError):
            parse_event({"type": "pinMessage", "room": "general"})


class WireFormatTests(SimpleTestCase):
    def test_message_record_uses_camel_case(self):
        record = MessageRecord(
            id="m1",
            room="general",
            display_name="A",
            text="hi",
            created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        )
        self.assertEqual(
            record.to_wire(),
            {
                "id": "m1",
                "room": "general",
                "displayName": "A",
                "text": "hi",
                "createdAt": "2024-05-01T12:00:00Z",
                "reactions": {},
                "pinned": False,
            },
        )

    def test_outbound_event_envelope(self):
        frame = OutboundEvent(type=OutboundEventType.DELETED_MESSAGE, data={"messageId": "m1"}).to_wire()
        self.assertEqual(frame, {"type": "deletedMessage", "data": {"messageId": "m1"}})

    def test_room_sits_next_to_data(self):
        frame = OutboundEvent(type=OutboundEventType.PRESENCE, data=["A", "B"], room="general").to_wire()
        self.assertEqual(frame, {"type": "presence", "room": "general", "data": ["A", "B"]})
