"""
WebSocket consumer for room chat.

Key behavior:
- URL: /ws/rooms/
- One connection may join rooms, send/react/pin/delete messages, and
  receives everything broadcast to the rooms it joined.
- Frames are JSON: inbound `{"type": "<event>", ...}`, outbound
  `{"type": "<event>", "data": ...}`, plus `"room"` for room events.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, Optional

from channels.generic.websocket import AsyncWebsocketConsumer
from pydantic import ValidationError

from .protocol import RoomProtocol
from .schemas import OutboundEvent, OutboundEventType, parse_event

logger = logging.getLogger(__name__)


class RoomConsumer(AsyncWebsocketConsumer):
    """
    Thin transport around RoomProtocol.

    The protocol instance is shared by every consumer of the process and is
    passed in through `RoomConsumer.as_asgi(protocol=...)`.
    """

    def __init__(self, *args: Any, protocol: RoomProtocol, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.protocol = protocol
        self.connection_id: str = uuid.uuid4().hex  # server-assigned per-connection id

    async def connect(self) -> None:
        await self.accept()
        logger.info("socket connected %s", self.connection_id)
        await self.send_event(OutboundEventType.CONNECTED, {"connectionId": self.connection_id})

    async def disconnect(self, close_code: int) -> None:
        await self.protocol.disconnect(self)
        logger.info("socket disconnected %s (code=%s)", self.connection_id, close_code)

    async def receive(self, text_data: Optional[str] = None, bytes_data: Optional[bytes] = None) -> None:
        if not text_data:
            return

        try:
            msg = json.loads(text_data)
        except json.JSONDecodeError:
            await self.send_event(OutboundEventType.ERROR, {"error": "invalid_json"})
            return

        if not isinstance(msg, dict):
            await self.send_event(OutboundEventType.ERROR, {"error": "invalid_event"})
            return

        try:
            event = parse_event(msg)
        except ValidationError as e:
            logger.debug("Rejected frame from %s: %s", self.connection_id, e)
            await self.send_event(
                OutboundEventType.ERROR,
                {"error": "invalid_event", "type": msg.get("type")},
            )
            return

        await self.protocol.dispatch(self, event)

    async def room_event(self, event: Dict[str, Any]) -> None:
        """
        Handler for group broadcasts.
        """
        await self.send_event(OutboundEventType(event["event"]), event.get("data"), room=event.get("room"))

    async def send_event(self, event: OutboundEventType, data: Any, room: Optional[str] = None) -> None:
        await self.send_json(OutboundEvent(type=event, data=data, room=room).to_wire())

    async def send_json(self, payload: Dict[str, Any]) -> None:
        await self.send(text_data=json.dumps(payload, separators=(",", ":"), ensure_ascii=False))
