from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ActionRequest(BaseModel):
    """Body of the generic ``POST /api`` endpoint."""

    model_config = ConfigDict(extra="allow")

    action: str


class UserResponse(BaseModel):
    id: int
    nickname: str
    firstName: str
    lastName: str
    fullName: str
    profilePicture: int = 0


class FollowersResponse(BaseModel):
    followers: list[UserResponse]


class FollowingResponse(BaseModel):
    following: list[UserResponse]
