"""WebSocket frame models for the chat wire protocol.

Every frame is a JSON object discriminated by ``type``. Server frames are
decoded through a tagged union so that unknown or malformed frames are
dropped at the boundary instead of leaking half-parsed dicts into session
state.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from social_chat.domain.entities.conversation import Conversation
from social_chat.domain.entities.message import Message
from social_chat.domain.value_objects.enums import ConversationKind

logger = logging.getLogger(__name__)


def _parse_time(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


class _Frame(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


# Client -> Server


class ConnectFrame(_Frame):
    type: Literal["connect"] = "connect"
    from_: int = Field(alias="from")


class SendMessageFrame(_Frame):
    type: Literal["message"] = "message"
    from_: int = Field(alias="from")
    content: str
    conversation_id: int | None = Field(default=None, alias="conversationId")
    to: int | None = None


class CreateConversationFrame(_Frame):
    type: Literal["create_conversation"] = "create_conversation"
    from_: int = Field(alias="from")
    users: list[int]


class GetConversationsFrame(_Frame):
    type: Literal["get_conversations"] = "get_conversations"
    from_: int = Field(alias="from")


ClientFrame = Annotated[
    Union[ConnectFrame, SendMessageFrame, CreateConversationFrame, GetConversationsFrame],
    Field(discriminator="type"),
]


# Server -> Client


class ConversationPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    type: ConversationKind = ConversationKind.DIRECT
    name: str = ""
    last_message_at: datetime | None = None
    unread_message_count: int = Field(default=0, ge=0)
    participants: list[int] | None = None

    @field_validator("last_message_at", mode="before")
    @classmethod
    def _time(cls, value: Any) -> datetime | None:
        return _parse_time(value)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return value or ""

    def to_entity(self) -> Conversation:
        return Conversation(
            id=self.id,
            kind=self.type,
            display_name=self.name,
            last_message_at=self.last_message_at,
            unread_count=self.unread_message_count,
            participant_ids=frozenset(self.participants or ()),
        )


class ConversationListFrame(_Frame):
    type: Literal["conversation_list"] = "conversation_list"
    conversation: list[ConversationPayload] = []

    @field_validator("conversation", mode="before")
    @classmethod
    def _null_list(cls, value: Any) -> Any:
        return value or []


class MessageFrame(_Frame):
    type: Literal["message"] = "message"
    from_: int = Field(default=0, alias="from")
    content: str = ""
    conversation_id: int = Field(alias="conversationId")
    sender: int | None = None
    time: datetime | None = None

    @field_validator("time", mode="before")
    @classmethod
    def _time(cls, value: Any) -> datetime | None:
        return _parse_time(value)

    @property
    def sender_id(self) -> int:
        return self.sender or self.from_

    def to_entity(self) -> Message:
        return Message(
            type=self.type,
            sender_id=self.sender_id,
            conversation_id=self.conversation_id,
            content=self.content,
            sent_at=self.time,
        )


ServerFrame = Annotated[
    Union[ConversationListFrame, MessageFrame],
    Field(discriminator="type"),
]

_server_adapter: TypeAdapter[ServerFrame] = TypeAdapter(ServerFrame)
_client_adapter: TypeAdapter[ClientFrame] = TypeAdapter(ClientFrame)


def decode_server_frame(raw: str | bytes) -> ConversationListFrame | MessageFrame | None:
    """Decode a server frame, or return None for anything unrecognised."""
    try:
        return _server_adapter.validate_json(raw)
    except ValidationError:
        logger.debug("Ignoring unrecognised server frame: %.200r", raw)
        return None


def decode_client_frame(
    raw: str | bytes,
) -> ConnectFrame | SendMessageFrame | CreateConversationFrame | GetConversationsFrame | None:
    try:
        return _client_adapter.validate_json(raw)
    except ValidationError:
        logger.debug("Ignoring unrecognised client frame: %.200r", raw)
        return None
