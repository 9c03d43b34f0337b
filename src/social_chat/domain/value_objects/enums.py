from __future__ import annotations

from enum import StrEnum


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class SessionStatus(StrEnum):
    """What the rendering layer shows for a session."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class ConversationKind(StrEnum):
    DIRECT = "direct"
    GROUP = "group"
