"""
Pydantic models for the room protocol.

Inbound frames are validated into one of the named event variants below
(discriminated on `type`). Outbound frames are `{"type": ..., "data": ...}`;
frames about one room also carry `"room"` next to `data`.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter


def _display_name_field() -> Any:
    # `username` is what the first web client sent.
    return Field(default="", validation_alias=AliasChoices("displayName", "username", "display_name"))


class MessageRecord(BaseModel):
    """A message as read from or written to the store."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    room: str
    display_name: str = Field(alias="displayName")
    text: str
    created_at: datetime = Field(alias="createdAt")
    reactions: Dict[str, int] = Field(default_factory=dict)
    pinned: bool = False

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class JoinRoom(BaseModel):
    type: Literal["joinRoom"]
    room: str
    display_name: str = _display_name_field()


class LeaveRoom(BaseModel):
    type: Literal["leaveRoom"]
    room: str


class SendMessage(BaseModel):
    type: Literal["sendMessage"]
    room: str
    display_name: str = _display_name_field()
    text: str = ""


class ReactMessage(BaseModel):
    type: Literal["reactMessage"]
    message_id: str = Field(validation_alias=AliasChoices("messageId", "message_id"))
    reaction_label: str = Field(validation_alias=AliasChoices("reactionLabel", "reaction", "reaction_label"))
    display_name: str = _display_name_field()
    room: str


class PinMessage(BaseModel):
    type: Literal["pinMessage"]
    message_id: str = Field(validation_alias=AliasChoices("messageId", "message_id"))
    room: str


class DeleteMessage(BaseModel):
    type: Literal["deleteMessage"]
    message_id: str = Field(validation_alias=AliasChoices("messageId", "message_id"))
    room: str


InboundEvent = Annotated[
    Union[JoinRoom, LeaveRoom, SendMessage, ReactMessage, PinMessage, DeleteMessage],
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter[Any] = TypeAdapter(InboundEvent)


def parse_event(payload: Dict[str, Any]) -> Any:
    """Validate a decoded frame. Raises pydantic.ValidationError."""
    return _inbound_adapter.validate_python(payload)


class OutboundEventType(str, Enum):
    CONNECTED = "connected"
    PRESENCE = "presence"
    LOAD_MESSAGES = "loadMessages"
    NEW_MESSAGE = "newMessage"
    UPDATE_MESSAGE = "updateMessage"
    DELETED_MESSAGE = "deletedMessage"
    MESSAGE_ERROR = "messageError"
    ERROR = "error"


class OutboundEvent(BaseModel):
    type: OutboundEventType
    data: Any = None
    room: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        frame = self.model_dump(mode="json")
        if frame["room"] is None:
            del frame["room"]
        return frame
