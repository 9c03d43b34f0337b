from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CandidateUser:
    """A follower or followee the local user can start a conversation with."""

    id: int
    display_name: str
    avatar_ref: int | None = None
    nickname: str = ""
