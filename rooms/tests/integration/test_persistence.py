"""DjangoMessageStore against the test database."""

import datetime
import uuid
from unittest import mock

from channels.db import database_sync_to_async
from django.db import DatabaseError, OperationalError
from django.test import TransactionTestCase
from django.utils import timezone

from rooms.exceptions import StoreError, StoreUnavailableError, StoreWriteError
from rooms.models import Message
from rooms.persistence import DjangoMessageStore


def make_message(room="general", text="hi", minutes_ago=0, **extra):
    message = Message.objects.create(room=room, display_name="A", text=text, **extra)
    Message.objects.filter(pk=message.pk).update(created_at=timezone.now() - datetime.timedelta(minutes=minutes_ago))
    return message


def seed_history():
    for i, minutes_ago in enumerate([50, 40, 30, 20, 10]):
        make_message(text=f"m{i}", minutes_ago=minutes_ago)
    make_message(room="math", text="elsewhere")


class DjangoMessageStoreTests(TransactionTestCase):
    def setUp(self):
        self.store = DjangoMessageStore()

    async def test_ping(self):
        self.assertTrue(await self.store.ping())

    async def test_ping_false_when_database_unreachable(self):
        broken = mock.Mock()
        broken.ensure_connection.side_effect = OperationalError("connection refused")
        with mock.patch("rooms.persistence.connections", {"default": broken}):
            self.assertFalse(await self.store.ping())

    async def test_insert_assigns_id_and_timestamp(self):
        record = await self.store.insert(room="general", display_name="A", text="hi")
        self.assertTrue(uuid.UUID(record.id))
        self.assertIsNotNone(record.created_at)
        self.assertEqual(record.reactions, {})
        self.assertFalse(record.pinned)
        self.assertEqual(await self.store.find_by_id(record.id), record)

    async def test_insert_failure_raises_write_error(self):
        manager = mock.Mock()
        manager.create.side_effect = DatabaseError("disk full")
        with mock.patch.object(DjangoMessageStore, "_messages", return_value=manager):
            with self.assertRaises(StoreWriteError):
                await self.store.insert(room="general", display_name="A", text="hi")

    async def test_find_by_room_most_recent_ascending(self):
        await database_sync_to_async(seed_history)()

        records = await self.store.find_by_room("general", 3, ascending=True)
        self.assertEqual([r.text for r in records], ["m2", "m3", "m4"])

        records = await self.store.find_by_room("general", 3, ascending=False)
        self.assertEqual([r.text for r in records], ["m4", "m3", "m2"])

        self.assertEqual(await self.store.find_by_room("empty", 200), [])

    async def test_find_by_room_failure_raises_store_error(self):
        manager = mock.Mock()
        manager.filter.side_effect = DatabaseError("gone")
        with mock.patch.object(DjangoMessageStore, "_messages", return_value=manager):
            with self.assertRaises(StoreError):
                await self.store.find_by_room("general", 10)

    async def test_unreachable_database_raises_unavailable(self):
        manager = mock.Mock()
        manager.filter.side_effect = OperationalError("connection refused")
        with mock.patch.object(DjangoMessageStore, "_messages", return_value=manager):
            with self.assertRaises(StoreUnavailableError):
                await self.store.find_by_room("general", 10)
            with self.assertRaises(StoreUnavailableError):
                await self.store.find_by_id(str(uuid.uuid4()))

    async def test_unknown_and_malformed_ids(self):
        for message_id in (str(uuid.uuid4()), "not-a-uuid", ""):
            self.assertIsNone(await self.store.find_by_id(message_id))
            self.assertFalse(await self.store.update(message_id, pinned=True))
            self.assertIsNone(await self.store.increment_reaction(message_id, "👍"))
            self.assertFalse(await self.store.delete_by_id(message_id))

    async def test_update_pins(self):
        record = await self.store.insert(room="general", display_name="A", text="hi")
        self.assertTrue(await self.store.update(record.id, pinned=True))
        self.assertTrue(await self.store.update(record.id, pinned=True))
        self.assertTrue((await self.store.find_by_id(record.id)).pinned)
        self.assertEqual(len(await self.store.find_by_room("general", 10)), 1)

    def test_update_is_a_single_query(self):
        message = make_message()
        with self.assertNumQueries(1):
            self.assertTrue(self.store._update(str(message.pk), {"pinned": True}))
        message.refresh_from_db()
        self.assertTrue(message.pinned)

    async def test_update_rejects_unknown_fields(self):
        record = await self.store.insert(room="general", display_name="A", text="hi")
        with self.assertRaises(ValueError):
            await self.store.update(record.id, room="elsewhere")

    async def test_increment_reaction(self):
        record = await self.store.insert(room="general", display_name="A", text="hi")
        for _ in range(3):
            result = await self.store.increment_reaction(record.id, "👍")
        await self.store.increment_reaction(record.id, "🎉")
        stored = await self.store.find_by_id(record.id)
        self.assertEqual(result.reactions, {"👍": 3})
        self.assertEqual(stored.reactions, {"👍": 3, "🎉": 1})

    async def test_delete(self):
        record = await self.store.insert(room="general", display_name="A", text="hi")
        self.assertTrue(await self.store.delete_by_id(record.id))
        self.assertIsNone(await self.store.find_by_id(record.id))
        self.assertFalse(await self.store.delete_by_id(record.id))

