from __future__ import annotations

import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from social_chat.application.dto.principal import Principal
from social_chat.application.exceptions import NotAuthenticatedError
from social_chat.config import settings
from social_chat.infrastructure.ws.hub import ChatHub
from social_chat.infrastructure.ws.protocol import ConnectFrame, decode_client_frame

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

CLOSE_AUTH_FAILED = 4001
CLOSE_HANDSHAKE_EXPECTED = 4002
CLOSE_IDENTITY_MISMATCH = 4003


async def _authenticate(websocket: WebSocket, token: str | None) -> Principal | None:
    if not token:
        return None
    try:
        return await websocket.app.state.verifier.verify(token)
    except NotAuthenticatedError:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws")
async def ws_chat(
    websocket: WebSocket,
    token: str | None = Query(None),
) -> None:
    principal = await _authenticate(websocket, token)
    if principal is None and settings.HUB_REQUIRE_TOKEN:
        await websocket.close(code=CLOSE_AUTH_FAILED, reason="Authentication failed")
        return

    await websocket.accept()
    hub: ChatHub = websocket.app.state.hub

    try:
        raw = await websocket.receive_text()
    except WebSocketDisconnect:
        return
    except KeyError:
        # Binary first frame.
        raw = ""
    handshake = decode_client_frame(raw)
    if not isinstance(handshake, ConnectFrame):
        await websocket.close(code=CLOSE_HANDSHAKE_EXPECTED, reason="connect frame expected")
        return
    if principal is not None and handshake.from_ != principal.subject_id:
        await websocket.close(code=CLOSE_IDENTITY_MISMATCH, reason="Identity mismatch")
        return

    user_id = handshake.from_
    await hub.connect(websocket, user_id)
    try:
        while True:
            frame = decode_client_frame(await websocket.receive_text())
            if frame is None or isinstance(frame, ConnectFrame):
                continue
            await hub.process(user_id, frame)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for user %d", user_id)
    finally:
        hub.disconnect(websocket, user_id)
