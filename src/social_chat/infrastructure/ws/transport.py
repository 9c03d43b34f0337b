"""aiohttp WebSocket client transport."""
from __future__ import annotations

import asyncio
import logging

import aiohttp

from social_chat.application.exceptions import TransportError
from social_chat.application.ports.transport import TransportListener
from social_chat.config import settings

logger = logging.getLogger(__name__)


class AiohttpWebSocketTransport:
    """One connection attempt; reports lifecycle and frames to a listener.

    The connection runs as a background task. ``on_close`` is delivered once
    when the server closes or the socket fails, never after ``close()``.
    """

    def __init__(
        self,
        url: str,
        listener: TransportListener,
        *,
        heartbeat: float | None = None,
        open_timeout: float | None = None,
    ) -> None:
        self._url = url
        self._listener = listener
        self._heartbeat = heartbeat
        self._open_timeout = open_timeout
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._task: asyncio.Task[None] | None = None
        self._closing = False

    def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="chat-ws-transport")

    async def send(self, raw: str) -> None:
        ws = self._ws
        if ws is None or ws.closed:
            raise TransportError("WebSocket is not open")
        try:
            await ws.send_str(raw)
        except (aiohttp.ClientError, ConnectionError) as exc:
            raise TransportError(str(exc)) from exc

    async def close(self) -> None:
        self._closing = True
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        task = self._task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        error: BaseException | None = None
        timeout = aiohttp.ClientTimeout(total=None, connect=self._open_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.ws_connect(self._url, heartbeat=self._heartbeat) as ws:
                    self._ws = ws
                    logger.debug("WS open: %s", self._url)
                    await self._listener.on_open()
                    async for msg in ws:
                        if msg.type == aiohttp.WSMsgType.TEXT:
                            await self._listener.on_frame(msg.data)
                        elif msg.type == aiohttp.WSMsgType.ERROR:
                            error = TransportError(str(ws.exception()))
                            break
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            logger.warning("WS connection to %s failed: %s", self._url, exc)
            error = TransportError(str(exc))
        finally:
            self._ws = None
        if not self._closing:
            await self._listener.on_close(error)


class AiohttpTransportFactory:
    """Creates and starts an ``AiohttpWebSocketTransport`` per attempt."""

    def __init__(
        self,
        *,
        heartbeat: float | None = None,
        open_timeout: float | None = None,
    ) -> None:
        self._heartbeat = heartbeat if heartbeat is not None else settings.WS_HEARTBEAT_SECONDS
        self._open_timeout = open_timeout if open_timeout is not None else settings.WS_OPEN_TIMEOUT

    def __call__(self, url: str, listener: TransportListener) -> AiohttpWebSocketTransport:
        transport = AiohttpWebSocketTransport(
            url,
            listener,
            heartbeat=self._heartbeat,
            open_timeout=self._open_timeout,
        )
        transport.start()
        return transport
