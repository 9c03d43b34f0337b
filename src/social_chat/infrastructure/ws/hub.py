"""In-process chat hub: tracks connected users and routes client frames."""
from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket

from social_chat.application.exceptions import AppError
from social_chat.infrastructure.hub.registry import InMemoryChatRegistry
from social_chat.infrastructure.ws.protocol import (
    ConversationListFrame,
    CreateConversationFrame,
    GetConversationsFrame,
    MessageFrame,
    SendMessageFrame,
)

logger = logging.getLogger(__name__)

ClientCommand = SendMessageFrame | CreateConversationFrame | GetConversationsFrame


class ChatHub:
    """Routes frames between connected users.

    Frames are processed one at a time so that roster and message order
    seen by every participant matches the order the hub applied them.
    """

    def __init__(self, registry: InMemoryChatRegistry) -> None:
        self._registry = registry
        self._connections: dict[int, set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    @property
    def registry(self) -> InMemoryChatRegistry:
        return self._registry

    @property
    def client_count(self) -> int:
        return sum(len(conns) for conns in self._connections.values())

    async def connect(self, ws: WebSocket, user_id: int) -> None:
        """Register an accepted socket and send it the user's roster."""
        async with self._lock:
            self._connections.setdefault(user_id, set()).add(ws)
            logger.info("Client connected: %d (total=%d)", user_id, self.client_count)
            await self._send(ws, user_id, self._roster_frame(user_id))

    def disconnect(self, ws: WebSocket, user_id: int) -> None:
        conns = self._connections.get(user_id)
        if conns:
            conns.discard(ws)
            if not conns:
                del self._connections[user_id]
        logger.info("Client disconnected: %d", user_id)

    async def process(self, user_id: int, frame: ClientCommand) -> None:
        """Apply a frame sent by ``user_id``; the sender field is not trusted."""
        async with self._lock:
            try:
                if isinstance(frame, SendMessageFrame):
                    await self._handle_message(user_id, frame)
                elif isinstance(frame, CreateConversationFrame):
                    await self._handle_create_conversation(user_id, frame)
                elif isinstance(frame, GetConversationsFrame):
                    await self.send_roster(user_id)
            except AppError as exc:
                logger.warning("Rejected %s frame from user %d: %s", frame.type, user_id, exc.detail)

    async def send_roster(self, user_id: int) -> None:
        frame = self._roster_frame(user_id)
        for ws in list(self._connections.get(user_id, ())):
            await self._send(ws, user_id, frame)

    async def _handle_message(self, user_id: int, frame: SendMessageFrame) -> None:
        if frame.conversation_id:
            conversation_id = frame.conversation_id
        elif frame.to:
            conv, created = self._registry.find_or_create_direct(user_id, frame.to)
            conversation_id = conv.id
            if created:
                await self.send_roster(user_id)
                await self.send_roster(frame.to)
        else:
            logger.debug("Message from %d without conversation or recipient dropped", user_id)
            return

        stored = self._registry.add_message(conversation_id, user_id, frame.content)
        out = MessageFrame(
            from_=user_id,
            content=stored.content,
            conversation_id=conversation_id,
            sender=user_id,
            time=stored.sent_at,
        )
        for participant_id in self._registry.participants(conversation_id):
            for ws in list(self._connections.get(participant_id, ())):
                await self._send(ws, participant_id, out)
        logger.debug("Message %d sent to conversation %d", stored.id, conversation_id)

    async def _handle_create_conversation(self, user_id: int, frame: CreateConversationFrame) -> None:
        if len(frame.users) != 1:
            # Group creation over the socket is not supported.
            logger.debug("create_conversation with %d users ignored", len(frame.users))
            return
        peer_id = frame.users[0]
        conv, created = self._registry.find_or_create_direct(user_id, peer_id)
        await self.send_roster(user_id)
        await self.send_roster(peer_id)
        if created:
            logger.info(
                "Created direct conversation %d between users %d and %d",
                conv.id, user_id, peer_id,
            )

    def _roster_frame(self, user_id: int) -> ConversationListFrame:
        return ConversationListFrame(conversation=self._registry.roster_for(user_id))

    async def _send(
        self,
        ws: WebSocket,
        user_id: int,
        frame: ConversationListFrame | MessageFrame,
    ) -> None:
        try:
            await ws.send_text(frame.to_json())
        except Exception:
            logger.debug("Dropping dead socket for user %d", user_id, exc_info=True)
            self.disconnect(ws, user_id)
