from django.test import SimpleTestCase

import ws_client


class BuildFrameTests(SimpleTestCase):
    def build(self, line):
        return ws_client.build_frame(line, room="general", display_name="A")

    def test_plain_line_is_a_message(self):
        self.assertEqual(
            self.build("hello there\n"),
            {"type": "sendMessage", "room": "general", "displayName": "A", "text": "hello there"},
        )

    def test_blank_and_quit(self):
        self.assertIsNone(self.build("   \n"))
        self.assertIsNone(self.build("/quit"))

    def test_commands(self):
        self.assertEqual(self.build("/leave"), {"type": "leaveRoom", "room": "general"})
        self.assertEqual(
            self.build("/react m1 👍"),
            {"type": "reactMessage", "messageId": "m1", "reactionLabel": "👍", "displayName": "A", "room": "general"},
        )
        self.assertEqual(self.build("/pin m1"), {"type": "pinMessage", "messageId": "m1", "room": "general"})
        self.assertEqual(self.build("/delete m1"), {"type": "deleteMessage", "messageId": "m1", "room": "general"})

    def test_malformed_command(self):
        with self.assertRaises(ValueError):
            self.build("/react m1")
        with self.assertRaises(ValueError):
            self.build("/shout")


class FormatEventTests(SimpleTestCase):
    def test_presence(self):
        line = ws_client.format_event({"type": "presence", "room": "general", "data": ["A", "B"]})
        self.assertEqual(line, "[general] present: A, B")
        line = ws_client.format_event({"type": "presence", "room": "general", "data": []})
        self.assertEqual(line, "[general] present: (nobody)")

    def test_history(self):
        line = ws_client.format_event(
            {"type": "loadMessages", "room": "math", "data": [{"id": "m1", "displayName": "A", "text": "hi"}]}
        )
        self.assertEqual(line, "[math] 1 earlier message(s)\n[m1] A: hi")

    def test_message_with_reactions_and_pin(self):
        line = ws_client.format_event(
            {
                "type": "updateMessage",
                "data": {"id": "m1", "displayName": "A", "text": "hi", "pinned": True, "reactions": {"👍": 2}},
            }
        )
        self.assertEqual(line, "(updated) [m1] A: hi [pinned] 👍2")

    def test_error_and_unknown(self):
        self.assertEqual(
            ws_client.format_event({"type": "messageError", "data": {"error": "Database connection lost"}}),
            "[error Database connection lost]",
        )
        self.assertIsNone(ws_client.format_event({"type": "mystery", "data": None}))

    def test_urls(self):
        self.assertEqual(ws_client._ws_rooms_url("ws://h:8000/", None), "ws://h:8000/ws/rooms/")
        self.assertEqual(ws_client._ws_rooms_url("ws://h", "k y"), "ws://h/ws/rooms/?authorization=k%20y")
