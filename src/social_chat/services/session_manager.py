"""Chat session manager: one real-time connection per authenticated user.

The manager is the only writer of session, roster and message state. It is
driven by three kinds of events, all delivered on the event loop:

* transport lifecycle callbacks (open, close/error),
* inbound server frames,
* user intents (``send_message``, ``start_conversation``, ...).

Intents never wait for the server; their effect shows up later through an
inbound frame. Every connection attempt gets a number, and callbacks from an
attempt that is no longer current are dropped, so a torn-down transport can
never touch state.
"""
from __future__ import annotations

import logging
from typing import Callable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from social_chat.application.dto.credentials import SessionCredentials
from social_chat.application.exceptions import TransportError
from social_chat.application.ports.directory import CandidateDirectory
from social_chat.application.ports.transport import Transport, TransportFactory
from social_chat.config import settings
from social_chat.domain.entities.candidate_user import CandidateUser
from social_chat.domain.entities.conversation import Conversation
from social_chat.domain.entities.message import Message
from social_chat.domain.value_objects.enums import ConnectionState, SessionStatus
from social_chat.infrastructure.ws.protocol import (
    ConnectFrame,
    ConversationListFrame,
    CreateConversationFrame,
    GetConversationsFrame,
    MessageFrame,
    SendMessageFrame,
    decode_server_frame,
)
from social_chat.services.conversation_store import ConversationStore
from social_chat.services.directory_service import resolve_candidates

logger = logging.getLogger(__name__)

StateCallback = Callable[["ChatSessionManager"], None]


class _AttemptListener:
    """Routes transport callbacks of one attempt back to the manager."""

    def __init__(self, manager: ChatSessionManager, attempt: int) -> None:
        self._manager = manager
        self._attempt = attempt

    async def on_open(self) -> None:
        await self._manager._on_transport_open(self._attempt)

    async def on_frame(self, raw: str) -> None:
        await self._manager._on_transport_frame(self._attempt, raw)

    async def on_close(self, error: BaseException | None) -> None:
        await self._manager._on_transport_close(self._attempt, error)


class ChatSessionManager:
    def __init__(
        self,
        credentials: SessionCredentials | None,
        transport_factory: TransportFactory,
        directory: CandidateDirectory | None = None,
        *,
        url: str | None = None,
        token_query_param: str | None = settings.WS_TOKEN_QUERY_PARAM,
        store: ConversationStore | None = None,
    ) -> None:
        self._credentials = credentials
        self._transport_factory = transport_factory
        self._directory = directory
        self._url = url or settings.CHAT_WS_URL
        self._token_param = token_query_param
        self._store = store or ConversationStore()

        self._state = ConnectionState.DISCONNECTED
        self._status = SessionStatus.IDLE
        self._transport: Transport | None = None
        self._attempt = 0
        # Bumped on teardown; guards results of requests started earlier.
        self._epoch = 0
        self._selected_id: int | None = None
        self._pending_peer: CandidateUser | None = None
        self._candidates: list[CandidateUser] = []
        self._last_error: str | None = None
        self._subscribers: list[StateCallback] = []

    # -- observation -------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def credentials(self) -> SessionCredentials | None:
        return self._credentials

    @property
    def local_user_id(self) -> int | None:
        return self._credentials.user_id if self._credentials else None

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def candidates(self) -> list[CandidateUser]:
        return list(self._candidates)

    @property
    def selected_conversation(self) -> Conversation | None:
        if self._selected_id is None:
            return None
        return self._store.get(self._selected_id)

    def roster(self) -> list[Conversation]:
        return self._store.roster()

    def messages_for(self, conversation_id: int) -> list[Message]:
        return self._store.messages_for(conversation_id)

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """Call ``callback(manager)`` after every state change.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    # -- lifecycle ---------------------------------------------------------

    async def open(self) -> None:
        if self._state != ConnectionState.DISCONNECTED:
            logger.debug("open() ignored, session is %s", self._state)
            return
        creds = self._credentials
        if creds is None or not creds.is_authenticated:
            logger.debug("open() ignored, no authenticated user")
            return

        self._attempt += 1
        attempt = self._attempt
        self._state = ConnectionState.CONNECTING
        self._status = SessionStatus.LOADING
        self._last_error = None
        logger.info("Connecting chat session for user %d (attempt %d)", creds.user_id, attempt)
        self._notify()

        try:
            self._transport = self._transport_factory(
                self._ws_url(creds), _AttemptListener(self, attempt),
            )
        except TransportError as exc:
            await self._fail(attempt, exc)

    async def close(self) -> None:
        """Tear down the transport. Safe to call in any state."""
        self._attempt += 1
        self._epoch += 1
        transport, self._transport = self._transport, None
        changed = self._state != ConnectionState.DISCONNECTED or self._status != SessionStatus.IDLE
        self._state = ConnectionState.DISCONNECTED
        self._status = SessionStatus.IDLE
        self._pending_peer = None

        if transport is not None:
            try:
                await transport.close()
            except TransportError:
                logger.debug("Error while closing chat transport", exc_info=True)
            logger.info("Chat session closed for user %s", self.local_user_id)
        if changed:
            self._notify()

    async def update_credentials(self, credentials: SessionCredentials | None) -> None:
        """Swap credentials; logout or a different user tears the session down."""
        previous = self._credentials
        self._credentials = credentials
        lost = credentials is None or not credentials.is_authenticated
        switched = (
            previous is not None
            and credentials is not None
            and previous.user_id != credentials.user_id
        )
        if lost or switched:
            await self.close()
            self._store.clear()
            self._selected_id = None
            self._candidates = []
            self._notify()

    # -- intents -----------------------------------------------------------

    async def send_message(self, conversation_id: int, content: str) -> None:
        if not self.is_connected or not content.strip():
            return
        if self._store.get(conversation_id) is None:
            logger.debug("send_message() to unknown conversation %s ignored", conversation_id)
            return
        if conversation_id != self._selected_id:
            logger.debug("send_message() to unselected conversation %s ignored", conversation_id)
            return
        await self._send(
            SendMessageFrame(
                from_=self._require_user_id(),
                content=content,
                conversation_id=conversation_id,
            )
        )

    async def start_conversation(self, candidate: CandidateUser) -> None:
        if not self.is_connected:
            return
        existing = self._find_direct(candidate)
        if existing is not None:
            self.select_conversation(existing.id)
            return
        self._pending_peer = candidate
        await self._send(
            CreateConversationFrame(from_=self._require_user_id(), users=[candidate.id])
        )

    def select_conversation(self, conversation_id: int) -> None:
        if self._store.get(conversation_id) is None:
            return
        self._selected_id = conversation_id
        self._store.reset_unread(conversation_id)
        self._notify()

    async def refresh_roster(self) -> None:
        if not self.is_connected:
            return
        await self._send(GetConversationsFrame(from_=self._require_user_id()))

    async def refresh_candidates(self) -> list[CandidateUser]:
        creds = self._credentials
        if self._directory is None or creds is None or not creds.is_authenticated:
            return []
        epoch = self._epoch
        candidates = await resolve_candidates(self._directory, creds)
        if epoch != self._epoch or creds is not self._credentials:
            logger.debug("Discarding candidate list from a torn-down session")
            return []
        self._candidates = candidates
        self._notify()
        return list(candidates)

    # -- inbound -----------------------------------------------------------

    async def handle_frame(self, raw: str | bytes) -> None:
        """Apply one inbound server frame to session state."""
        if self._state == ConnectionState.DISCONNECTED:
            return
        frame = decode_server_frame(raw)
        if isinstance(frame, ConversationListFrame):
            self._apply_roster(frame)
        elif isinstance(frame, MessageFrame):
            self._apply_message(frame)

    def _apply_roster(self, frame: ConversationListFrame) -> None:
        self._store.replace_roster([c.to_entity() for c in frame.conversation])
        first_roster = self._state != ConnectionState.CONNECTED
        self._state = ConnectionState.CONNECTED
        self._status = SessionStatus.READY
        if first_roster:
            logger.info("Chat session ready, %d conversations", len(frame.conversation))

        if self._selected_id is not None and self._store.get(self._selected_id) is None:
            self._selected_id = None
        if self._pending_peer is not None:
            created = self._find_direct(self._pending_peer)
            if created is not None:
                self._pending_peer = None
                self._selected_id = created.id
        if self._selected_id is not None:
            self._store.reset_unread(self._selected_id)
        self._notify()

    def _apply_message(self, frame: MessageFrame) -> None:
        message = frame.to_entity()
        self._store.append(message)
        if message.sent_at is not None:
            self._store.touch(message.conversation_id, message.sent_at)
        if (
            message.conversation_id != self._selected_id
            and message.sender_id != self.local_user_id
        ):
            self._store.mark_unread(message.conversation_id)
        self._notify()

    # -- transport callbacks -----------------------------------------------

    async def _on_transport_open(self, attempt: int) -> None:
        if attempt != self._attempt:
            return
        logger.debug("Chat transport open, sending handshake")
        await self._send(ConnectFrame(from_=self._require_user_id()))

    async def _on_transport_frame(self, attempt: int, raw: str) -> None:
        if attempt != self._attempt:
            return
        await self.handle_frame(raw)

    async def _on_transport_close(self, attempt: int, error: BaseException | None) -> None:
        await self._fail(attempt, error)

    # -- helpers -----------------------------------------------------------

    async def _send(self, frame: ConnectFrame | SendMessageFrame | CreateConversationFrame | GetConversationsFrame) -> None:
        transport = self._transport
        attempt = self._attempt
        if transport is None:
            return
        try:
            await transport.send(frame.to_json())
        except TransportError as exc:
            logger.warning("Failed to send %s frame: %s", frame.type, exc)
            await self._fail(attempt, exc)

    async def _fail(self, attempt: int, error: BaseException | None) -> None:
        if attempt != self._attempt:
            return
        self._attempt += 1
        transport, self._transport = self._transport, None
        self._state = ConnectionState.DISCONNECTED
        self._status = SessionStatus.FAILED
        self._pending_peer = None
        self._last_error = str(error) if error else "connection closed"
        logger.warning("Chat session disconnected: %s", self._last_error)
        self._notify()
        if transport is not None:
            try:
                await transport.close()
            except TransportError:
                logger.debug("Error while closing failed chat transport", exc_info=True)

    def _find_direct(self, candidate: CandidateUser) -> Conversation | None:
        wanted = frozenset((self._require_user_id(), candidate.id))
        for conv in self._store.roster():
            if not conv.is_direct:
                continue
            if conv.participant_ids:
                if conv.participant_ids == wanted:
                    return conv
            elif conv.display_name == candidate.display_name:
                return conv
        return None

    def _require_user_id(self) -> int:
        if self._credentials is None:
            raise RuntimeError("chat session has no credentials")
        return self._credentials.user_id

    def _ws_url(self, creds: SessionCredentials) -> str:
        if not self._token_param:
            return self._url
        parts = urlsplit(self._url)
        query = parse_qsl(parts.query)
        query.append((self._token_param, creds.token))
        return urlunsplit(parts._replace(query=urlencode(query)))

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self)
            except Exception:
                logger.exception("Chat state subscriber failed")
