from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Message:
    type: str
    sender_id: int
    conversation_id: int
    content: str
    sent_at: datetime | None = None
