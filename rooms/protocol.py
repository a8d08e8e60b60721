"""
Room event protocol.

`RoomProtocol.dispatch` handles one validated inbound event for one
connection. The protocol keeps no per-connection state: membership lives in
the PresenceTracker and the Channels groups, messages live in the store.

Per-event policy:
- joinRoom: never fails; history degrades to [] when the store is down,
  slow or failing.
- sendMessage: store down or write failure -> private `messageError`.
- reactMessage / pinMessage / deleteMessage: best effort. Store down ->
  silent return; failures are logged (and reported only when the policy is
  not silent); unknown ids are no-ops.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Type

from .availability import AvailabilityGuard
from .config import RoomSettings
from .exceptions import StoreError
from .fanout import ChannelsFanout
from .persistence import MessageStore
from .presence import PresenceTracker
from .schemas import (
    DeleteMessage,
    JoinRoom,
    LeaveRoom,
    MessageRecord,
    OutboundEventType,
    PinMessage,
    ReactMessage,
    SendMessage,
)

logger = logging.getLogger(__name__)

ERROR_CONNECTION_LOST = "Database connection lost"
ERROR_SAVE_FAILED = "Failed to save message"


class Connection(Protocol):
    """What the protocol needs from a transport-level connection."""

    connection_id: str
    channel_name: str

    async def send_event(self, event: OutboundEventType, data: Any, room: Optional[str] = None) -> None: ...


@dataclass(frozen=True)
class RoomPolicy:
    history_limit: int = 200
    history_timeout: float = 5.0
    silent_best_effort: bool = True
    atomic_reactions: bool = True
    auto_leave_on_join: bool = False

    @classmethod
    def from_settings(cls, settings: RoomSettings) -> "RoomPolicy":
        return cls(
            history_limit=settings.HISTORY_LIMIT,
            history_timeout=settings.HISTORY_TIMEOUT_SECONDS,
            silent_best_effort=settings.SILENT_BEST_EFFORT,
            atomic_reactions=settings.ATOMIC_REACTIONS,
            auto_leave_on_join=settings.AUTO_LEAVE_ON_JOIN,
        )


class RoomProtocol:
    def __init__(
        self,
        *,
        presence: PresenceTracker,
        store: MessageStore,
        guard: AvailabilityGuard,
        fanout: ChannelsFanout,
        policy: Optional[RoomPolicy] = None,
    ):
        self.presence = presence
        self.store = store
        self.guard = guard
        self.fanout = fanout
        self.policy = policy or RoomPolicy()
        self._handlers: Dict[Type[Any], Callable[[Connection, Any], Awaitable[None]]] = {
            JoinRoom: self.join_room,
            LeaveRoom: self.leave_room,
            SendMessage: self.send_message,
            ReactMessage: self.react_message,
            PinMessage: self.pin_message,
            DeleteMessage: self.delete_message,
        }

    async def dispatch(self, connection: Connection, event: Any) -> None:
        """
        Run the handler for `event`.

        Any unexpected error is logged and contained here so one bad event
        cannot take down the connection or the process.
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported event: {type(event).__name__}")
        try:
            await handler(connection, event)
        except Exception:
            logger.exception(
                "Unhandled error in %s (connection_id=%s)",
                getattr(event, "type", type(event).__name__),
                connection.connection_id,
            )

    # -- membership --------------------------------------------------------

    async def join_room(self, connection: Connection, event: JoinRoom) -> None:
        if self.policy.auto_leave_on_join:
            for other in self.presence.rooms_for(connection.connection_id):
                if other != event.room:
                    await self._leave(connection, other)

        await self.fanout.add(event.room, connection.channel_name)
        self.presence.join(event.room, connection.connection_id, event.display_name)
        await self._broadcast_presence(event.room)

        messages = await self._load_history(event.room)
        await connection.send_event(OutboundEventType.LOAD_MESSAGES, messages, room=event.room)

    async def leave_room(self, connection: Connection, event: LeaveRoom) -> None:
        await self._leave(connection, event.room)

    async def disconnect(self, connection: Connection) -> None:
        """Transport teardown: drop the connection from every room it is in."""
        for room in self.presence.disconnect_all(connection.connection_id):
            await self.fanout.discard(room, connection.channel_name)
            await self._broadcast_presence(room)

    async def _leave(self, connection: Connection, room: str) -> None:
        await self.fanout.discard(room, connection.channel_name)
        self.presence.leave(room, connection.connection_id)
        await self._broadcast_presence(room)

    async def _broadcast_presence(self, room: str) -> None:
        await self.fanout.broadcast(room, OutboundEventType.PRESENCE, self.presence.snapshot(room))

    async def _load_history(self, room: str) -> List[Dict[str, Any]]:
        # The probe counts against the same deadline as the read.
        try:
            return await asyncio.wait_for(self._read_history(room), timeout=self.policy.history_timeout)
        except asyncio.TimeoutError:
            logger.warning("Loading messages for room %s timed out after %ss", room, self.policy.history_timeout)
            return []

    async def _read_history(self, room: str) -> List[Dict[str, Any]]:
        if not await self.guard.is_available():
            logger.warning("Store not connected, sending empty message list for room %s", room)
            return []
        try:
            records = await self.store.find_by_room(room, self.policy.history_limit, ascending=True)
        except StoreError as exc:
            logger.error("Error loading messages for room %s: %s", room, exc)
            return []
        return [record.to_wire() for record in records]

    # -- messages ----------------------------------------------------------

    async def send_message(self, connection: Connection, event: SendMessage) -> None:
        if not await self.guard.is_available():
            logger.warning("Store not connected, cannot save message (connection_id=%s)", connection.connection_id)
            await connection.send_event(OutboundEventType.MESSAGE_ERROR, {"error": ERROR_CONNECTION_LOST})
            return

        try:
            record = await self.store.insert(room=event.room, display_name=event.display_name, text=event.text)
        except StoreError as exc:
            logger.error("Error saving message in room %s: %s", event.room, exc)
            await connection.send_event(OutboundEventType.MESSAGE_ERROR, {"error": ERROR_SAVE_FAILED})
            return

        await self.fanout.broadcast(event.room, OutboundEventType.NEW_MESSAGE, record.to_wire())

    async def react_message(self, connection: Connection, event: ReactMessage) -> None:
        if not await self.guard.is_available():
            return
        try:
            if self.policy.atomic_reactions:
                record = await self.store.increment_reaction(event.message_id, event.reaction_label)
            else:
                record = await self._increment_by_rewrite(event.message_id, event.reaction_label)
        except StoreError as exc:
            await self._best_effort_failed(connection, "react to", event.message_id, exc)
            return
        if record is None:
            return
        await self.fanout.broadcast(event.room, OutboundEventType.UPDATE_MESSAGE, record.to_wire())

    async def _increment_by_rewrite(self, message_id: str, label: str) -> Optional[MessageRecord]:
        # Read, bump, write back. Another event may interleave at either await
        # and one of two concurrent increments can be lost.
        current = await self.store.find_by_id(message_id)
        if current is None:
            return None
        reactions = dict(current.reactions)
        reactions[label] = reactions.get(label, 0) + 1
        if not await self.store.update(message_id, reactions=reactions):
            return None
        return current.model_copy(update={"reactions": reactions})

    async def pin_message(self, connection: Connection, event: PinMessage) -> None:
        if not await self.guard.is_available():
            return
        try:
            if not await self.store.update(event.message_id, pinned=True):
                return
            record = await self.store.find_by_id(event.message_id)
        except StoreError as exc:
            await self._best_effort_failed(connection, "pin", event.message_id, exc)
            return
        if record is None:
            return
        await self.fanout.broadcast(event.room, OutboundEventType.UPDATE_MESSAGE, record.to_wire())

    async def delete_message(self, connection: Connection, event: DeleteMessage) -> None:
        if not await self.guard.is_available():
            return
        try:
            deleted = await self.store.delete_by_id(event.message_id)
        except StoreError as exc:
            await self._best_effort_failed(connection, "delete", event.message_id, exc)
            return
        if not deleted:
            return
        await self.fanout.broadcast(event.room, OutboundEventType.DELETED_MESSAGE, {"messageId": event.message_id})

    async def _best_effort_failed(self, connection: Connection, action: str, message_id: str, exc: Exception) -> None:
        logger.error("Error trying to %s message %s: %s", action, message_id, exc)
        if not self.policy.silent_best_effort:
            await connection.send_event(
                OutboundEventType.MESSAGE_ERROR,
                {"error": f"Failed to {action} message"},
            )
