"""In-memory roster and message log for one chat session."""
from __future__ import annotations

import dataclasses
import logging
from datetime import datetime

from social_chat.domain.entities.conversation import Conversation
from social_chat.domain.entities.message import Message

logger = logging.getLogger(__name__)


class ConversationStore:
    """Roster in server order plus a single append-only message log.

    Only the session manager mutates the store; readers get copies.
    """

    def __init__(self) -> None:
        self._roster: list[Conversation] = []
        self._index: dict[int, int] = {}
        self._log: list[Message] = []

    def roster(self) -> list[Conversation]:
        return list(self._roster)

    def messages_for(self, conversation_id: int) -> list[Message]:
        return [m for m in self._log if m.conversation_id == conversation_id]

    def get(self, conversation_id: int) -> Conversation | None:
        pos = self._index.get(conversation_id)
        return None if pos is None else self._roster[pos]

    def replace_roster(self, conversations: list[Conversation]) -> None:
        roster: list[Conversation] = []
        index: dict[int, int] = {}
        for conv in conversations:
            if conv.id in index:
                logger.warning("Duplicate conversation %d in roster, keeping first", conv.id)
                continue
            index[conv.id] = len(roster)
            roster.append(conv)
        self._roster = roster
        self._index = index

    def append(self, message: Message) -> None:
        self._log.append(message)

    def mark_unread(self, conversation_id: int) -> None:
        conv = self.get(conversation_id)
        if conv is not None:
            self._put(dataclasses.replace(conv, unread_count=conv.unread_count + 1))

    def reset_unread(self, conversation_id: int) -> None:
        conv = self.get(conversation_id)
        if conv is not None and conv.unread_count:
            self._put(dataclasses.replace(conv, unread_count=0))

    def touch(self, conversation_id: int, ts: datetime) -> None:
        conv = self.get(conversation_id)
        if conv is not None:
            self._put(dataclasses.replace(conv, last_message_at=ts))

    def clear(self) -> None:
        self._roster = []
        self._index = {}
        self._log = []

    def _put(self, conversation: Conversation) -> None:
        self._roster[self._index[conversation.id]] = conversation
