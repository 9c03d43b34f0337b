from __future__ import annotations

from typing import Protocol


class TransportListener(Protocol):
    """Callbacks a transport delivers, in order, for one connection attempt."""

    async def on_open(self) -> None: ...

    async def on_frame(self, raw: str) -> None: ...

    async def on_close(self, error: BaseException | None) -> None: ...


class Transport(Protocol):
    async def send(self, raw: str) -> None: ...

    async def close(self) -> None: ...


class TransportFactory(Protocol):
    def __call__(self, url: str, listener: TransportListener) -> Transport:
        """Start connecting to ``url`` and return immediately."""
        ...
