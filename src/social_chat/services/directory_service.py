"""Directory resolution: followers and followees eligible for a new chat."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from social_chat.application.dto.credentials import SessionCredentials
from social_chat.application.exceptions import AppError
from social_chat.application.ports.directory import CandidateDirectory
from social_chat.domain.entities.candidate_user import CandidateUser
from social_chat.infrastructure.http.api_client import ApiClient

logger = logging.getLogger(__name__)


def _to_candidate(raw: dict[str, Any]) -> CandidateUser | None:
    try:
        user_id = int(raw["id"])
    except (KeyError, TypeError, ValueError):
        return None
    first = raw.get("firstName") or ""
    last = raw.get("lastName") or ""
    nickname = raw.get("nickname") or ""
    display_name = raw.get("fullName") or f"{first} {last}".strip() or nickname
    return CandidateUser(
        id=user_id,
        display_name=display_name,
        avatar_ref=raw.get("profilePicture") or None,
        nickname=nickname,
    )


class DirectoryService:
    """Implements application.ports.directory.CandidateDirectory."""

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    async def resolve(self, credentials: SessionCredentials) -> list[CandidateUser]:
        followers, following = await asyncio.gather(
            self._api.request("get_followers", token=credentials.token),
            self._api.request("get_following", token=credentials.token),
        )
        merged: dict[int, CandidateUser] = {}
        for raw in (followers.get("followers") or []) + (following.get("following") or []):
            if not isinstance(raw, dict):
                continue
            user = _to_candidate(raw)
            if user is not None:
                merged[user.id] = user
        return list(merged.values())


async def resolve_candidates(
    directory: CandidateDirectory,
    credentials: SessionCredentials,
) -> list[CandidateUser]:
    """Resolve candidates, degrading to an empty list on any failure."""
    try:
        return await directory.resolve(credentials)
    except (AppError, httpx.HTTPError):
        logger.exception("Failed to load chat candidates for user %d", credentials.user_id)
        return []
