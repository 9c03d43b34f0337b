"""Composition root for the chat client side."""
from __future__ import annotations

import logging

from social_chat.application.dto.credentials import SessionCredentials
from social_chat.config import settings
from social_chat.infrastructure.auth.credential_store import FileCredentialStore
from social_chat.infrastructure.http.api_client import ApiClient
from social_chat.infrastructure.ws.transport import AiohttpTransportFactory
from social_chat.services.directory_service import DirectoryService
from social_chat.services.reconnect import ReconnectSupervisor
from social_chat.services.session_manager import ChatSessionManager

logger = logging.getLogger(__name__)


def create_session_manager(credentials: SessionCredentials | None = None) -> ChatSessionManager:
    """Build a manager wired to the configured chat and API endpoints.

    Without explicit credentials the persisted bundle at
    ``settings.CREDENTIALS_FILE`` is used.
    """
    if credentials is None:
        credentials = FileCredentialStore(settings.CREDENTIALS_FILE).load()
        if credentials is None:
            logger.info("No stored credentials at %s", settings.CREDENTIALS_FILE)
    directory = DirectoryService(ApiClient(settings.API_URL, timeout=settings.API_TIMEOUT))
    return ChatSessionManager(credentials, AiohttpTransportFactory(), directory)


def attach_reconnect(manager: ChatSessionManager) -> ReconnectSupervisor | None:
    """Start a reconnect supervisor when ``RECONNECT_ENABLED`` is set."""
    if not settings.RECONNECT_ENABLED:
        return None
    supervisor = ReconnectSupervisor(manager)
    supervisor.start()
    return supervisor
