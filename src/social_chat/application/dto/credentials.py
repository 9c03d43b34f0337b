from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SessionCredentials:
    """Token plus user identity taken from the persisted auth bundle."""

    token: str
    user_id: int
    nickname: str = ""
    email: str = ""

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and self.user_id > 0
