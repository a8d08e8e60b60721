"""
Message store port and its Django ORM adapter.

The protocol only depends on `MessageStore`. `DjangoMessageStore` runs every
ORM call through `database_sync_to_async`, so calls are suspension points for
the event loop and the ORM work itself happens on the thread-sensitive worker.
"""

from __future__ import annotations

import abc
import logging
import uuid
from typing import Any, List, Optional

from channels.db import database_sync_to_async
from django.db import DEFAULT_DB_ALIAS, DatabaseError, OperationalError, connections, transaction

from .exceptions import StoreError, StoreUnavailableError, StoreWriteError
from .models import Message
from .schemas import MessageRecord

logger = logging.getLogger(__name__)

# Fields a caller may patch through `update`.
UPDATABLE_FIELDS = frozenset({"text", "reactions", "pinned"})


class MessageStore(abc.ABC):
    """Durable message storage used by the room protocol."""

    @abc.abstractmethod
    async def ping(self) -> bool:
        """Connectivity probe. Must not raise."""

    @abc.abstractmethod
    async def find_by_room(self, room: str, limit: int, ascending: bool = True) -> List[MessageRecord]:
        """
        The `limit` most recent messages of `room`.

        Returned oldest-first when `ascending`, newest-first otherwise.
        Raises StoreError on failure.
        """

    @abc.abstractmethod
    async def insert(self, *, room: str, display_name: str, text: str) -> MessageRecord:
        """Persist a new message (no reactions, unpinned). Raises StoreWriteError."""

    @abc.abstractmethod
    async def find_by_id(self, message_id: str) -> Optional[MessageRecord]:
        ...

    @abc.abstractmethod
    async def update(self, message_id: str, **patch: Any) -> bool:
        """Apply `patch`. False if the message is absent."""

    @abc.abstractmethod
    async def increment_reaction(self, message_id: str, label: str) -> Optional[MessageRecord]:
        """Atomically add 1 to `reactions[label]`. None if the message is absent."""

    @abc.abstractmethod
    async def delete_by_id(self, message_id: str) -> bool:
        """True if a message was removed."""


def _parse_id(message_id: Any) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(message_id))
    except (TypeError, ValueError):
        return None


def to_record(message: Message) -> MessageRecord:
    return MessageRecord(
        id=str(message.pk),
        room=message.room,
        display_name=message.display_name,
        text=message.text,
        created_at=message.created_at,
        reactions={str(k): int(v) for k, v in (message.reactions or {}).items()},
        pinned=message.pinned,
    )


class DjangoMessageStore(MessageStore):
    def __init__(self, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    def _messages(self):
        return Message.objects.using(self.using)

    async def ping(self) -> bool:
        return await database_sync_to_async(self._ping)()

    def _ping(self) -> bool:
        conn = connections[self.using]
        try:
            conn.ensure_connection()
            return conn.is_usable()
        except DatabaseError as exc:
            logger.warning("Database ping failed: %s", exc)
            return False

    async def find_by_room(self, room: str, limit: int, ascending: bool = True) -> List[MessageRecord]:
        return await database_sync_to_async(self._find_by_room)(room, limit, ascending)

    def _find_by_room(self, room: str, limit: int, ascending: bool) -> List[MessageRecord]:
        try:
            rows = list(self._messages().filter(room=room).order_by("-created_at", "-id")[:limit])
        except OperationalError as exc:
            raise StoreUnavailableError(f"Database unreachable loading room {room!r}") from exc
        except DatabaseError as exc:
            raise StoreError(f"Failed to load messages for room {room!r}") from exc
        if ascending:
            rows.reverse()
        return [to_record(row) for row in rows]

    async def insert(self, *, room: str, display_name: str, text: str) -> MessageRecord:
        return await database_sync_to_async(self._insert)(room, display_name, text)

    def _insert(self, room: str, display_name: str, text: str) -> MessageRecord:
        try:
            message = self._messages().create(room=room, display_name=display_name, text=text)
        except DatabaseError as exc:
            raise StoreWriteError("Failed to save message") from exc
        return to_record(message)

    async def find_by_id(self, message_id: str) -> Optional[MessageRecord]:
        return await database_sync_to_async(self._find_by_id)(message_id)

    def _find_by_id(self, message_id: str) -> Optional[MessageRecord]:
        pk = _parse_id(message_id)
        if pk is None:
            return None
        try:
            message = self._messages().filter(pk=pk).first()
        except OperationalError as exc:
            raise StoreUnavailableError(f"Database unreachable loading message {message_id}") from exc
        except DatabaseError as exc:
            raise StoreError(f"Failed to load message {message_id}") from exc
        return to_record(message) if message is not None else None

    async def update(self, message_id: str, **patch: Any) -> bool:
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        return await database_sync_to_async(self._update)(message_id, patch)

    def _update(self, message_id: str, patch: dict) -> bool:
        pk = _parse_id(message_id)
        if pk is None:
            return False
        try:
            return self._messages().filter(pk=pk).update(**patch) > 0
        except DatabaseError as exc:
            raise StoreWriteError(f"Failed to update message {message_id}") from exc

    async def increment_reaction(self, message_id: str, label: str) -> Optional[MessageRecord]:
        return await database_sync_to_async(self._increment_reaction)(message_id, label)

    def _increment_reaction(self, message_id: str, label: str) -> Optional[MessageRecord]:
        pk = _parse_id(message_id)
        if pk is None:
            return None
        try:
            with transaction.atomic(using=self.using):
                message = self._messages().select_for_update().filter(pk=pk).first()
                if message is None:
                    return None
                reactions = dict(message.reactions or {})
                reactions[label] = int(reactions.get(label, 0)) + 1
                message.reactions = reactions
                message.save(update_fields=["reactions"])
        except DatabaseError as exc:
            raise StoreWriteError(f"Failed to react to message {message_id}") from exc
        return to_record(message)

    async def delete_by_id(self, message_id: str) -> bool:
        return await database_sync_to_async(self._delete_by_id)(message_id)

    def _delete_by_id(self, message_id: str) -> bool:
        pk = _parse_id(message_id)
        if pk is None:
            return False
        try:
            deleted, _ = self._messages().filter(pk=pk).delete()
        except DatabaseError as exc:
            raise StoreWriteError(f"Failed to delete message {message_id}") from exc
        return deleted > 0
