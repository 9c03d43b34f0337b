"""Reads the persisted ``{token, user}`` bundle written at login."""
from __future__ import annotations

import json
import logging
from pathlib import Path

from social_chat.application.dto.credentials import SessionCredentials

logger = logging.getLogger(__name__)


class FileCredentialStore:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    def load(self) -> SessionCredentials | None:
        """Return the stored credentials, or None when absent or unreadable."""
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError):
            logger.warning("Failed to read credentials from %s", self._path, exc_info=True)
            return None
        return parse_bundle(data)


def parse_bundle(data: object) -> SessionCredentials | None:
    if not isinstance(data, dict):
        return None
    token = data.get("token")
    user = data.get("user")
    if not isinstance(token, str) or not token or not isinstance(user, dict):
        return None
    try:
        user_id = int(user["id"])
    except (KeyError, TypeError, ValueError):
        return None
    return SessionCredentials(
        token=token,
        user_id=user_id,
        nickname=str(user.get("nickname") or ""),
        email=str(user.get("email") or ""),
    )
