"""In-memory users, follows, conversations and messages for the dev hub."""
from __future__ import annotations

import itertools
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from social_chat.application.exceptions import NotFoundError, ValidationError
from social_chat.application.ports.clock import Clock, SystemClock
from social_chat.domain.value_objects.enums import ConversationKind
from social_chat.infrastructure.ws.protocol import ConversationPayload

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UserRecord:
    id: int
    nickname: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    profile_picture: int | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.nickname

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "nickname": self.nickname,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "fullName": self.full_name,
            "profilePicture": self.profile_picture or 0,
        }


@dataclass(slots=True)
class ConversationRecord:
    id: int
    kind: ConversationKind
    participants: list[int]
    name: str = ""
    last_message_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class MessageRecord:
    id: int
    conversation_id: int
    sender_id: int
    content: str
    sent_at: datetime


@dataclass
class InMemoryChatRegistry:
    clock: Clock = field(default_factory=SystemClock)
    _users: dict[int, UserRecord] = field(default_factory=dict)
    _follows: set[tuple[int, int]] = field(default_factory=set)
    _conversations: dict[int, ConversationRecord] = field(default_factory=dict)
    _messages: list[MessageRecord] = field(default_factory=list)
    _conversation_ids: itertools.count = field(default_factory=lambda: itertools.count(1))
    _message_ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    # users / follows

    def add_user(self, user: UserRecord) -> UserRecord:
        self._users[user.id] = user
        return user

    def get_user(self, user_id: int) -> UserRecord | None:
        return self._users.get(user_id)

    def follow(self, follower_id: int, followed_id: int) -> None:
        if follower_id == followed_id:
            raise ValidationError("Users cannot follow themselves")
        self._follows.add((follower_id, followed_id))

    def followers_of(self, user_id: int) -> list[UserRecord]:
        ids = sorted(f for f, t in self._follows if t == user_id)
        return [self._users[i] for i in ids if i in self._users]

    def following_of(self, user_id: int) -> list[UserRecord]:
        ids = sorted(t for f, t in self._follows if f == user_id)
        return [self._users[i] for i in ids if i in self._users]

    # conversations

    def participants(self, conversation_id: int) -> list[int]:
        conv = self._conversations.get(conversation_id)
        if conv is None:
            raise NotFoundError(f"Conversation {conversation_id} not found")
        return list(conv.participants)

    def conversations_for(self, user_id: int) -> list[ConversationRecord]:
        convs = [c for c in self._conversations.values() if user_id in c.participants]
        # Most recent activity first; conversations without messages go last.
        dated = sorted((c for c in convs if c.last_message_at), key=lambda c: c.last_message_at, reverse=True)
        return dated + [c for c in convs if c.last_message_at is None]

    def find_direct(self, user_a: int, user_b: int) -> ConversationRecord | None:
        wanted = {user_a, user_b}
        for conv in self._conversations.values():
            if conv.kind == ConversationKind.DIRECT and set(conv.participants) == wanted:
                return conv
        return None

    def create_direct(self, user_a: int, user_b: int) -> ConversationRecord:
        if user_a == user_b:
            raise ValidationError(f"Cannot create a direct conversation with oneself (user {user_a})")
        conv = ConversationRecord(
            id=next(self._conversation_ids),
            kind=ConversationKind.DIRECT,
            participants=[user_a, user_b],
        )
        self._conversations[conv.id] = conv
        return conv

    def find_or_create_direct(self, user_a: int, user_b: int) -> tuple[ConversationRecord, bool]:
        existing = self.find_direct(user_a, user_b)
        if existing is not None:
            return existing, False
        return self.create_direct(user_a, user_b), True

    def create_group(self, name: str, participants: list[int]) -> ConversationRecord:
        conv = ConversationRecord(
            id=next(self._conversation_ids),
            kind=ConversationKind.GROUP,
            participants=sorted(set(participants)),
            name=name,
        )
        self._conversations[conv.id] = conv
        return conv

    # messages

    def add_message(self, conversation_id: int, sender_id: int, content: str) -> MessageRecord:
        conv = self._conversations.get(conversation_id)
        if conv is None:
            raise NotFoundError(f"Conversation {conversation_id} not found")
        if sender_id not in conv.participants:
            raise ValidationError(f"User {sender_id} is not in conversation {conversation_id}")
        msg = MessageRecord(
            id=next(self._message_ids),
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            sent_at=self.clock.now(),
        )
        self._messages.append(msg)
        conv.last_message_at = msg.sent_at
        return msg

    def unread_count(self, conversation_id: int, user_id: int) -> int:
        return sum(
            1 for m in self._messages
            if m.conversation_id == conversation_id and m.sender_id != user_id
        )

    def roster_for(self, user_id: int) -> list[ConversationPayload]:
        return [
            ConversationPayload(
                id=conv.id,
                type=conv.kind,
                name=self._display_name(conv, user_id),
                last_message_at=conv.last_message_at,
                unread_message_count=self.unread_count(conv.id, user_id),
                participants=list(conv.participants),
            )
            for conv in self.conversations_for(user_id)
        ]

    def _display_name(self, conv: ConversationRecord, viewer_id: int) -> str:
        if conv.kind == ConversationKind.GROUP or conv.name:
            return conv.name
        for pid in conv.participants:
            if pid != viewer_id:
                user = self._users.get(pid)
                return user.full_name if user else f"user {pid}"
        return ""

    # seeding

    def load_seed(self, data: dict[str, Any]) -> None:
        """Load ``{"users": [...], "follows": [[a, b], ...], "conversations": [...]}``."""
        for raw in data.get("users", []):
            self.add_user(
                UserRecord(
                    id=int(raw["id"]),
                    nickname=raw.get("nickname", ""),
                    first_name=raw.get("firstName", ""),
                    last_name=raw.get("lastName", ""),
                    email=raw.get("email", ""),
                    profile_picture=raw.get("profilePicture"),
                )
            )
        for follower_id, followed_id in data.get("follows", []):
            self.follow(int(follower_id), int(followed_id))
        for raw in data.get("conversations", []):
            users = [int(u) for u in raw["participants"]]
            if raw.get("type", "direct") == ConversationKind.GROUP:
                self.create_group(raw.get("name", ""), users)
            else:
                self.find_or_create_direct(users[0], users[1])
        logger.info(
            "Seeded hub registry: %d users, %d follows, %d conversations",
            len(self._users), len(self._follows), len(self._conversations),
        )


def load_registry(seed_file: str | None, clock: Clock | None = None) -> InMemoryChatRegistry:
    registry = InMemoryChatRegistry(clock=clock or SystemClock())
    if seed_file:
        registry.load_seed(json.loads(Path(seed_file).expanduser().read_text(encoding="utf-8")))
    return registry
