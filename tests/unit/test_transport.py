from __future__ import annotations

import asyncio
import json

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from social_chat.application.exceptions import TransportError
from social_chat.infrastructure.ws.transport import AiohttpTransportFactory


class RecordingListener:
    def __init__(self, greeting: str | None = None) -> None:
        self.greeting = greeting
        self.transport = None
        self.frames: list[str] = []
        self.opened = asyncio.Event()
        self.closed = asyncio.Event()
        self.error: BaseException | None = None

    async def on_open(self) -> None:
        self.opened.set()
        if self.greeting is not None:
            await self.transport.send(self.greeting)

    async def on_frame(self, raw: str) -> None:
        self.frames.append(raw)

    async def on_close(self, error: BaseException | None) -> None:
        self.error = error
        self.closed.set()


def _app(received: list[str], *, close_after_reply: bool = True) -> web.Application:
    async def handler(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        msg = await ws.receive()
        received.append(msg.data)
        await ws.send_str(json.dumps({"type": "conversation_list", "conversation": []}))
        if close_after_reply:
            await ws.close()
        else:
            async for _ in ws:
                pass
        return ws

    app = web.Application()
    app.router.add_get("/ws", handler)
    return app


@pytest.mark.asyncio
async def test_delivers_open_frames_and_server_close():
    received: list[str] = []
    async with TestServer(_app(received)) as server:
        listener = RecordingListener(greeting='{"type":"connect","from":42}')
        factory = AiohttpTransportFactory(heartbeat=None, open_timeout=5)
        listener.transport = factory(str(server.make_url("/ws")), listener)

        await asyncio.wait_for(listener.closed.wait(), timeout=5)

    assert received == ['{"type":"connect","from":42}']
    assert [json.loads(f)["type"] for f in listener.frames] == ["conversation_list"]
    assert listener.error is None


@pytest.mark.asyncio
async def test_unreachable_server_reports_error():
    listener = RecordingListener()
    factory = AiohttpTransportFactory(open_timeout=2)
    listener.transport = factory("http://127.0.0.1:1/ws", listener)

    await asyncio.wait_for(listener.closed.wait(), timeout=5)

    assert not listener.opened.is_set()
    assert isinstance(listener.error, TransportError)


@pytest.mark.asyncio
async def test_send_before_open_raises():
    listener = RecordingListener()
    transport = AiohttpTransportFactory(open_timeout=2)("http://127.0.0.1:1/ws", listener)
    try:
        with pytest.raises(TransportError):
            await transport.send("hello")
    finally:
        await transport.close()


@pytest.mark.asyncio
async def test_local_close_suppresses_on_close():
    received: list[str] = []
    async with TestServer(_app(received, close_after_reply=False)) as server:
        listener = RecordingListener(greeting='{"type":"connect","from":42}')
        transport = AiohttpTransportFactory(open_timeout=5)(str(server.make_url("/ws")), listener)
        listener.transport = transport

        await asyncio.wait_for(listener.opened.wait(), timeout=5)
        await transport.close()
        await asyncio.sleep(0.05)

    assert not listener.closed.is_set()
