from __future__ import annotations

from typing import Protocol

from social_chat.application.dto.credentials import SessionCredentials
from social_chat.domain.entities.candidate_user import CandidateUser


class CandidateDirectory(Protocol):
    async def resolve(self, credentials: SessionCredentials) -> list[CandidateUser]:
        """Return followers and followees of the user, deduplicated by id."""
        ...
