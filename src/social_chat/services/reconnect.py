"""Optional reconnect supervisor with exponential backoff and jitter."""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable

from social_chat.config import settings
from social_chat.domain.value_objects.enums import SessionStatus
from social_chat.services.session_manager import ChatSessionManager

logger = logging.getLogger(__name__)


def backoff_delay(
    attempt: int,
    *,
    base: float,
    maximum: float,
    jitter: float = 0.0,
    rng: Callable[[], float] = random.random,
) -> float:
    """Delay before retry number ``attempt`` (0-based), capped at ``maximum``."""
    delay = min(base * (2 ** attempt), maximum)
    if jitter:
        delay *= 1 - jitter + 2 * jitter * rng()
    return max(0.0, min(delay, maximum))


class ReconnectSupervisor:
    """Re-opens a failed session in the background.

    Only transport failures trigger a retry; an explicit ``close()`` (status
    ``idle``) cancels any pending retry. The attempt counter resets once a
    roster arrives.
    """

    def __init__(
        self,
        manager: ChatSessionManager,
        *,
        base_delay: float | None = None,
        max_delay: float | None = None,
        max_attempts: int | None = None,
        jitter: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._manager = manager
        self._base = settings.RECONNECT_BASE_DELAY if base_delay is None else base_delay
        self._max_delay = settings.RECONNECT_MAX_DELAY if max_delay is None else max_delay
        self._max_attempts = settings.RECONNECT_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self._jitter = settings.RECONNECT_JITTER if jitter is None else jitter
        self._sleep = sleep
        self._rng = rng
        self._attempts = 0
        self._last_status = manager.status
        self._task: asyncio.Task[None] | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._unsubscribe is None:
            self._last_status = self._manager.status
            self._unsubscribe = self._manager.subscribe(self._on_change)

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self._cancel()

    def _on_change(self, manager: ChatSessionManager) -> None:
        status = manager.status
        if status == self._last_status:
            return
        self._last_status = status

        if status == SessionStatus.READY:
            self._attempts = 0
        elif status == SessionStatus.IDLE:
            if self._task is not None and not self._task.done():
                self._task.cancel()
            self._attempts = 0
        elif status == SessionStatus.FAILED and not self._retry_in_flight():
            if self._attempts >= self._max_attempts:
                logger.warning("Giving up reconnecting after %d attempts", self._attempts)
                return
            delay = backoff_delay(
                self._attempts,
                base=self._base,
                maximum=self._max_delay,
                jitter=self._jitter,
                rng=self._rng,
            )
            self._attempts += 1
            logger.info("Reconnecting chat in %.2fs (attempt %d)", delay, self._attempts)
            self._task = asyncio.create_task(self._retry(delay), name="chat-reconnect")

    def _retry_in_flight(self) -> bool:
        # A retry that fails synchronously reports FAILED from inside its own task.
        return self.pending and self._task is not asyncio.current_task()

    async def _retry(self, delay: float) -> None:
        await self._sleep(delay)
        if self._manager.status == SessionStatus.FAILED:
            await self._manager.open()

    async def _cancel(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
