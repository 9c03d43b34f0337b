from __future__ import annotations

import jwt

from social_chat.application.dto.principal import Principal
from social_chat.application.exceptions import NotAuthenticatedError


class HS256Verifier:
    """Verify bearer tokens signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
            subject_id = int(payload["sub"])
        except (jwt.PyJWTError, KeyError, TypeError, ValueError) as exc:
            raise NotAuthenticatedError(f"Invalid token: {exc}") from exc
        return Principal(subject_id=subject_id, email=payload.get("email", ""))
