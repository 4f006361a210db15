"""Bounded-concurrency gate for publish operations."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator

from weathercaster.publishing.errors import AcquisitionTimeout
from weathercaster.telemetry import ACTIVE_PUBLISH_SLOTS

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 2
DEFAULT_ACQUIRE_TIMEOUT = 30.0


class ConnectionLimiter:
    """Admit at most ``max_concurrent`` holders; queue the rest in FIFO order.

    Admission hands the slot directly to the head waiter on release, so a
    newcomer can never overtake a queued caller. Every waiter owns a timer;
    when it fires the waiter is rejected with :class:`AcquisitionTimeout` and
    dropped from the queue, so the queue only ever holds live waiters.
    """

    def __init__(
        self,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        acquire_timeout: float = DEFAULT_ACQUIRE_TIMEOUT,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._max_concurrent = max_concurrent
        self._acquire_timeout = acquire_timeout
        self._active = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def waiting_count(self) -> int:
        return len(self._waiters)

    async def acquire(self) -> None:
        if self._active < self._max_concurrent and not self.waiting_count:
            self._admit()
            return

        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[None] = loop.create_future()
        timer = loop.call_later(self._acquire_timeout, self._expire, waiter)
        self._waiters.append(waiter)
        logger.debug(
            "Publishing slot busy active=%s waiting=%s",
            self._active,
            self.waiting_count,
        )
        try:
            await waiter
        except asyncio.CancelledError:
            # Admitted just before the caller was cancelled: give the slot back.
            if waiter.done() and not waiter.cancelled() and waiter.exception() is None:
                self.release()
            else:
                self._discard(waiter)
            raise
        finally:
            timer.cancel()

    def release(self) -> None:
        if self._active > 0:
            self._active -= 1
        else:
            logger.warning("release() called with no active publishing slots")

        while self._waiters and self._active < self._max_concurrent:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            try:
                self._admit()
                waiter.set_result(None)
            except Exception as exc:
                self._active -= 1
                logger.exception("Failed to admit queued publisher; trying next waiter")
                if not waiter.done():
                    waiter.set_exception(exc)
                continue
            break
        ACTIVE_PUBLISH_SLOTS.set(self._active)

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    def _admit(self) -> None:
        self._active += 1
        ACTIVE_PUBLISH_SLOTS.set(self._active)

    def _expire(self, waiter: asyncio.Future[None]) -> None:
        if waiter.done():
            return
        self._discard(waiter)
        waiter.set_exception(AcquisitionTimeout(self._acquire_timeout))
        logger.warning(
            "Publishing slot acquisition timed out after %ss (active=%s)",
            self._acquire_timeout,
            self._active,
        )

    def _discard(self, waiter: asyncio.Future[None]) -> None:
        if waiter in self._waiters:
            self._waiters.remove(waiter)


__all__ = ["ConnectionLimiter", "DEFAULT_ACQUIRE_TIMEOUT", "DEFAULT_MAX_CONCURRENT"]
