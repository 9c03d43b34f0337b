from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from social_chat.domain.value_objects.enums import ConversationKind


@dataclass(frozen=True, slots=True)
class Conversation:
    id: int
    kind: ConversationKind
    display_name: str
    last_message_at: datetime | None = None
    unread_count: int = 0
    participant_ids: frozenset[int] = field(default_factory=frozenset)

    @property
    def is_direct(self) -> bool:
        return self.kind == ConversationKind.DIRECT
