from __future__ import annotations

import logging

from fastapi import APIRouter

from social_chat.api.deps import CurrentPrincipal, RegistryDep
from social_chat.api.v1.schemas.action import (
    ActionRequest,
    FollowersResponse,
    FollowingResponse,
    UserResponse,
)
from social_chat.application.exceptions import ValidationError

logger = logging.getLogger(__name__)
router = APIRouter(tags=["actions"])


@router.post("/api", response_model=FollowersResponse | FollowingResponse)
async def dispatch_action(
    body: ActionRequest,
    principal: CurrentPrincipal,
    registry: RegistryDep,
) -> FollowersResponse | FollowingResponse:
    """Single action-dispatched endpoint; only directory actions are served."""
    if body.action == "get_followers":
        users = registry.followers_of(principal.subject_id)
        return FollowersResponse(followers=[UserResponse(**u.to_payload()) for u in users])
    if body.action == "get_following":
        users = registry.following_of(principal.subject_id)
        return FollowingResponse(following=[UserResponse(**u.to_payload()) for u in users])

    logger.debug("Unsupported action %r from user %d", body.action, principal.subject_id)
    raise ValidationError(f"Unknown action: {body.action}")
