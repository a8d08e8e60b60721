"""
Room fan-out over Channels groups.

Each room maps to one group. `broadcast` is a `group_send`; every consumer in
the group receives a `room.event` message and writes it to its socket.
The channel layer drops messages for full channels instead of blocking, so a
stalled connection does not hold up the rest of the room.
"""

from __future__ import annotations

import hashlib
import logging
import re
from typing import Any

from channels.layers import get_channel_layer
from django.conf import settings

from .schemas import OutboundEventType

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_LAYER = getattr(settings, "DEFAULT_CHANNEL_LAYER", "default")


def group_name(room: str) -> str:
    """
    Channels group name must be ASCII and relatively short.

    The room name is sanitized; a digest suffix keeps distinct rooms apart
    when they sanitize to the same text.
    """
    safe = re.sub(r"[^a-zA-Z0-9_.-]", "_", room)[:60]
    digest = hashlib.sha1(room.encode("utf-8")).hexdigest()[:12]
    return f"room.{safe}.{digest}"


class ChannelsFanout:
    def __init__(self, layer_alias: str = DEFAULT_CHANNEL_LAYER):
        self.layer_alias = layer_alias

    @property
    def channel_layer(self):
        return get_channel_layer(self.layer_alias)

    async def add(self, room: str, channel_name: str) -> None:
        await self.channel_layer.group_add(group_name(room), channel_name)

    async def discard(self, room: str, channel_name: str) -> None:
        try:
            await self.channel_layer.group_discard(group_name(room), channel_name)
        except Exception:
            logger.exception("Removing %s from room %s failed", channel_name, room)

    async def broadcast(self, room: str, event: OutboundEventType, data: Any) -> None:
        try:
            await self.channel_layer.group_send(
                group_name(room),
                {"type": "room.event", "event": event.value, "room": room, "data": data},
            )
        except Exception:
            logger.exception("Fan-out of %s to room %s failed", event.value, room)
