"""Shared test fixtures."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import pytest

from social_chat.application.dto.credentials import SessionCredentials
from social_chat.application.exceptions import TransportError
from social_chat.application.ports.transport import TransportListener
from social_chat.domain.entities.candidate_user import CandidateUser
from social_chat.services.session_manager import ChatSessionManager

LOCAL_USER_ID = 42


@pytest.fixture
def credentials() -> SessionCredentials:
    return SessionCredentials(token="tok-42", user_id=LOCAL_USER_ID, nickname="me")


def make_conversation_payload(
    conversation_id: int,
    name: str,
    *,
    kind: str = "direct",
    unread: int = 0,
    participants: list[int] | None = None,
    last_message_at: str | None = "2024-05-01T10:00:00Z",
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": conversation_id,
        "type": kind,
        "name": name,
        "last_message_at": last_message_at,
        "unread_message_count": unread,
    }
    if participants is not None:
        payload["participants"] = participants
    return payload


def roster_frame(*conversations: dict[str, Any]) -> str:
    return json.dumps({"type": "conversation_list", "conversation": list(conversations)})


def message_frame(
    conversation_id: int,
    content: str,
    *,
    sender: int = 7,
    time: str | None = "2024-05-01T10:05:00Z",
) -> str:
    frame: dict[str, Any] = {
        "type": "message",
        "from": sender,
        "sender": sender,
        "content": content,
        "conversationId": conversation_id,
    }
    if time is not None:
        frame["time"] = time
    return json.dumps(frame)


@dataclass
class FakeTransport:
    url: str
    listener: TransportListener
    sent: list[str] = field(default_factory=list)
    closed: bool = False
    fail_on_send: bool = False

    async def send(self, raw: str) -> None:
        if self.closed or self.fail_on_send:
            raise TransportError("socket is closed")
        self.sent.append(raw)

    async def close(self) -> None:
        self.closed = True

    @property
    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(raw) for raw in self.sent]

    # Simulated server-side events

    async def server_open(self) -> None:
        await self.listener.on_open()

    async def server_send(self, raw: str) -> None:
        await self.listener.on_frame(raw)

    async def server_close(self, error: BaseException | None = None) -> None:
        await self.listener.on_close(error)


@dataclass
class FakeTransportFactory:
    created: list[FakeTransport] = field(default_factory=list)
    fail_with: TransportError | None = None

    def __call__(self, url: str, listener: TransportListener) -> FakeTransport:
        if self.fail_with is not None:
            raise self.fail_with
        transport = FakeTransport(url=url, listener=listener)
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]


@dataclass
class FakeDirectory:
    users: list[CandidateUser] = field(default_factory=list)
    error: Exception | None = None
    calls: int = 0

    async def resolve(self, credentials: SessionCredentials) -> list[CandidateUser]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.users)


@pytest.fixture
def transport_factory() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory(
        users=[
            CandidateUser(id=7, display_name="Bob Stone", nickname="bob"),
            CandidateUser(id=9, display_name="Carol King", nickname="carol"),
        ]
    )


@pytest.fixture
def manager(credentials, transport_factory, directory) -> ChatSessionManager:
    return ChatSessionManager(
        credentials,
        transport_factory,
        directory,
        url="ws://chat.test/ws",
        token_query_param="token",
    )


async def connect(manager: ChatSessionManager, factory: FakeTransportFactory, *conversations: dict[str, Any]) -> FakeTransport:
    """Drive a manager through open -> handshake -> roster."""
    await manager.open()
    transport = factory.last
    await transport.server_open()
    await transport.server_send(roster_frame(*conversations))
    return transport


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)

