from __future__ import annotations

import asyncio

import pytest

from social_chat.application.exceptions import TransportError
from social_chat.domain.value_objects.enums import SessionStatus
from social_chat.services.reconnect import ReconnectSupervisor, backoff_delay
from tests.conftest import connect, roster_frame


async def _drain(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def _supervisor(manager, delays: list[float], *, max_attempts: int = 3, sleep=None) -> ReconnectSupervisor:
    async def record(delay: float) -> None:
        delays.append(delay)

    return ReconnectSupervisor(
        manager,
        base_delay=1.0,
        max_delay=10.0,
        max_attempts=max_attempts,
        jitter=0.0,
        sleep=sleep or record,
    )


def test_backoff_delay_grows_and_caps():
    assert backoff_delay(0, base=0.5, maximum=30) == 0.5
    assert backoff_delay(1, base=0.5, maximum=30) == 1.0
    assert backoff_delay(3, base=0.5, maximum=30) == 4.0
    assert backoff_delay(20, base=0.5, maximum=30) == 30


def test_backoff_delay_jitter_bounds():
    low = backoff_delay(2, base=1.0, maximum=30, jitter=0.25, rng=lambda: 0.0)
    high = backoff_delay(2, base=1.0, maximum=30, jitter=0.25, rng=lambda: 1.0)
    capped = backoff_delay(10, base=1.0, maximum=30, jitter=0.25, rng=lambda: 1.0)

    assert low == 3.0
    assert high == 5.0
    assert capped == 30


@pytest.mark.asyncio
async def test_reconnects_after_transport_failure(manager, transport_factory):
    delays: list[float] = []
    supervisor = _supervisor(manager, delays)
    supervisor.start()
    transport = await connect(manager, transport_factory)

    await transport.server_close(TransportError("reset"))
    await _drain()

    assert delays == [1.0]
    assert len(transport_factory.created) == 2
    assert manager.status == SessionStatus.LOADING

    await transport_factory.last.server_close(TransportError("reset again"))
    await _drain()

    assert delays == [1.0, 2.0]
    assert len(transport_factory.created) == 3

    await transport_factory.last.server_open()
    await transport_factory.last.server_send(roster_frame())

    assert manager.status == SessionStatus.READY
    assert supervisor.attempts == 0
    await supervisor.stop()


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts(manager, transport_factory):
    delays: list[float] = []
    supervisor = _supervisor(manager, delays, max_attempts=3)
    supervisor.start()
    await connect(manager, transport_factory)
    transport_factory.fail_with = TransportError("unreachable")

    await transport_factory.last.server_close(TransportError("reset"))
    await _drain(20)

    assert delays == [1.0, 2.0, 4.0]
    assert supervisor.attempts == 3
    assert manager.status == SessionStatus.FAILED
    assert not supervisor.pending
    await supervisor.stop()


@pytest.mark.asyncio
async def test_close_cancels_pending_retry(manager, transport_factory):
    gate = asyncio.Event()

    async def blocking_sleep(delay: float) -> None:
        await gate.wait()

    supervisor = _supervisor(manager, [], sleep=blocking_sleep)
    supervisor.start()
    transport = await connect(manager, transport_factory)

    await transport.server_close(TransportError("reset"))
    await _drain()
    assert supervisor.pending

    await manager.close()
    await _drain()
    gate.set()
    await _drain()

    assert not supervisor.pending
    assert len(transport_factory.created) == 1
    assert manager.status == SessionStatus.IDLE
    await supervisor.stop()


@pytest.mark.asyncio
async def test_explicit_close_does_not_trigger_retry(manager, transport_factory):
    delays: list[float] = []
    supervisor = _supervisor(manager, delays)
    supervisor.start()
    await connect(manager, transport_factory)

    await manager.close()
    await _drain()

    assert delays == []
    assert len(transport_factory.created) == 1
    await supervisor.stop()


@pytest.mark.asyncio
async def test_stop_unsubscribes(manager, transport_factory):
    delays: list[float] = []
    supervisor = _supervisor(manager, delays)
    supervisor.start()
    await supervisor.stop()
    transport = await connect(manager, transport_factory)

    await transport.server_close(TransportError("reset"))
    await _drain()

    assert delays == []
    assert len(transport_factory.created) == 1
