"""Asset readiness polling with per-asset deduplication."""

from __future__ import annotations

import asyncio
import logging
import time
from functools import partial
from typing import Awaitable, Callable

import httpx

from weathercaster.publishing.errors import (
    AssetErrored,
    MalformedResponse,
    PollTimeout,
    PublishingError,
    TooManyConsecutiveErrors,
    is_transient,
)
from weathercaster.publishing.models import AssetRecord, AssetStatus
from weathercaster.publishing.platform import MediaPlatformInterface
from weathercaster.telemetry import observe_poll

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]

DEFAULT_POLL_TIMEOUT = 300.0
MIN_POLL_TIMEOUT = 10.0
MAX_POLL_TIMEOUT = 1800.0
MIN_POLL_INTERVAL = 1.0
MAX_CONSECUTIVE_ERRORS = 5
ERROR_RETRY_DELAY = 2.0

# (elapsed seconds upper bound, interval seconds)
PROGRESSIVE_SCHEDULE: tuple[tuple[float, float], ...] = (
    (60.0, 5.0),
    (300.0, 10.0),
    (900.0, 30.0),
)
PROGRESSIVE_TAIL_INTERVAL = 60.0


def progressive_interval(elapsed: float) -> float:
    """Polling interval for a poll that has been running ``elapsed`` seconds."""

    for upper_bound, interval in PROGRESSIVE_SCHEDULE:
        if elapsed < upper_bound:
            return interval
    return PROGRESSIVE_TAIL_INTERVAL


def clamp_poll_timeout(timeout: float | None) -> float:
    if timeout is None:
        return DEFAULT_POLL_TIMEOUT
    return max(MIN_POLL_TIMEOUT, min(MAX_POLL_TIMEOUT, timeout))


class AssetReadinessPoller:
    """Poll Mux until an asset is ``ready`` or the poll gives up.

    Concurrent callers asking about the same asset share a single polling
    task registered in ``_in_flight``; the entry is dropped from a done
    callback, so it disappears however the task ends.
    """

    def __init__(
        self,
        platform: MediaPlatformInterface,
        *,
        poll_interval: float | None = None,
        timeout: float = DEFAULT_POLL_TIMEOUT,
        max_consecutive_errors: int = MAX_CONSECUTIVE_ERRORS,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self._platform = platform
        self._poll_interval = poll_interval
        self._timeout = clamp_poll_timeout(timeout)
        self._max_consecutive_errors = max_consecutive_errors
        self._sleep = sleep
        self._clock = clock
        self._in_flight: dict[str, asyncio.Task[AssetRecord]] = {}

    def is_polling(self, asset_id: str) -> bool:
        return asset_id in self._in_flight

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    async def wait_until_ready(
        self,
        asset_id: str,
        *,
        poll_interval: float | None = None,
        timeout: float | None = None,
    ) -> AssetRecord:
        """Wait for ``asset_id`` to become ready.

        ``poll_interval`` and ``timeout`` only apply when this call starts the
        poll. A caller joining a poll already in flight shares its cadence and
        deadline.
        """

        task = self._in_flight.get(asset_id)
        if task is None:
            interval = poll_interval if poll_interval is not None else self._poll_interval
            if interval is not None:
                interval = max(MIN_POLL_INTERVAL, interval)
            deadline = clamp_poll_timeout(timeout) if timeout is not None else self._timeout
            task = asyncio.create_task(
                self._run(asset_id, interval, deadline),
                name=f"asset-readiness-{asset_id}",
            )
            self._in_flight[asset_id] = task
            task.add_done_callback(partial(self._forget, asset_id))
        else:
            logger.debug("Asset %s already being polled, joining existing poll", asset_id)

        # Shielded so one caller giving up does not cancel the poll for the others.
        return await asyncio.shield(task)

    async def close(self) -> None:
        tasks = list(self._in_flight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _forget(self, asset_id: str, task: asyncio.Task[AssetRecord]) -> None:
        if self._in_flight.get(asset_id) is task:
            del self._in_flight[asset_id]
        # Every caller may have been cancelled; the outcome still counts as seen.
        if not task.cancelled():
            task.exception()

    async def _run(self, asset_id: str, interval: float | None, timeout: float) -> AssetRecord:
        try:
            record = await asyncio.wait_for(
                self._poll(asset_id, interval, timeout),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            observe_poll("timeout")
            raise PollTimeout(asset_id, timeout) from None
        except PollTimeout:
            observe_poll("timeout")
            raise
        except AssetErrored:
            observe_poll("errored")
            raise
        except TooManyConsecutiveErrors:
            observe_poll("circuit_broken")
            raise
        observe_poll("ready")
        return record

    async def _poll(self, asset_id: str, interval: float | None, timeout: float) -> AssetRecord:
        started = self._clock()
        consecutive_errors = 0
        polls = 0

        while True:
            elapsed = self._clock() - started
            if elapsed >= timeout:
                raise PollTimeout(asset_id, timeout)
            current_interval = interval if interval is not None else progressive_interval(elapsed)
            wait = current_interval
            polls += 1

            try:
                record = await self._platform.retrieve_asset(asset_id)
            except MalformedResponse as exc:
                consecutive_errors += 1
                logger.warning(
                    "Unparseable status for asset %s (consecutive errors %s): %s",
                    asset_id,
                    consecutive_errors,
                    exc,
                )
                if consecutive_errors >= self._max_consecutive_errors:
                    raise TooManyConsecutiveErrors(asset_id, consecutive_errors, str(exc)) from exc
            except (httpx.HTTPError, PublishingError) as exc:
                consecutive_errors += 1
                logger.warning(
                    "Error polling asset %s (consecutive errors %s): %s",
                    asset_id,
                    consecutive_errors,
                    exc,
                )
                if consecutive_errors >= self._max_consecutive_errors:
                    raise TooManyConsecutiveErrors(asset_id, consecutive_errors, str(exc)) from exc
                if is_transient(exc):
                    wait = min(ERROR_RETRY_DELAY, current_interval)
            else:
                consecutive_errors = 0
                if record.status is AssetStatus.READY:
                    logger.info(
                        "Asset %s ready after %s polls (playback_id=%s)",
                        asset_id,
                        polls,
                        record.playback_id,
                    )
                    return record
                if record.status is AssetStatus.ERRORED:
                    raise AssetErrored(asset_id, _error_detail(record))
                logger.debug("Asset %s status=%s, next poll in %ss", asset_id, record.status.value, wait)

            remaining = timeout - (self._clock() - started)
            await self._sleep(max(0.0, min(wait, remaining)))


def _error_detail(record: AssetRecord) -> str:
    errors = record.raw.get("errors")
    if isinstance(errors, dict):
        messages = errors.get("messages")
        if isinstance(messages, list) and messages:
            return "; ".join(str(message) for message in messages)
        if errors.get("type"):
            return str(errors["type"])
    return ""


__all__ = [
    "AssetReadinessPoller",
    "PROGRESSIVE_SCHEDULE",
    "clamp_poll_timeout",
    "progressive_interval",
]
