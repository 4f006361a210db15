"""Direct-upload coordination: session creation, byte transfer, asset lookup."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

import httpx
from fastapi.concurrency import run_in_threadpool

from weathercaster.publishing.errors import (
    PlatformHTTPError,
    PublishingError,
    TransferTimeout,
    UploadFailed,
    is_transient,
)
from weathercaster.publishing.models import PublishOptions, UploadSession
from weathercaster.publishing.platform import MediaPlatformInterface
from weathercaster.telemetry import observe_transfer_retry, observe_upload

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

MIN_ATTEMPTS = 3
MIN_BASE_DELAY = 0.5
MIN_TRANSFER_TIMEOUT = 60.0


@dataclass(frozen=True)
class UploadOutcome:
    """Identifiers resolved by a completed upload."""

    asset_id: str
    upload_id: str | None
    asset_id_is_fallback: bool = False


def backoff_delay(base_delay: float, attempt: int) -> float:
    """Delay to wait after failed ``attempt`` (1-based) before the next one."""

    return base_delay * (2 ** (attempt - 1))


class UploadCoordinator:
    """Move a local file to Mux through a direct upload.

    The transfer is a single PUT retried with exponential backoff on transient
    failures (network errors, per-attempt timeouts, 429 and 5xx). Other 4xx
    responses fail on the first attempt.
    """

    def __init__(
        self,
        platform: MediaPlatformInterface,
        client: httpx.AsyncClient,
        *,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        transfer_timeout: float = 120.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._platform = platform
        self._client = client
        self._max_attempts = max(MIN_ATTEMPTS, max_attempts)
        self._base_delay = max(MIN_BASE_DELAY, base_delay)
        self._transfer_timeout = max(MIN_TRANSFER_TIMEOUT, transfer_timeout)
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def base_delay(self) -> float:
        return self._base_delay

    async def publish(self, path: str | Path, options: PublishOptions) -> UploadOutcome:
        file_path = Path(path)
        if not file_path.is_file():
            observe_upload("failed")
            raise UploadFailed(f"Media file for upload not found: {file_path}")

        try:
            session = await self._platform.create_upload(options)
        except (httpx.HTTPError, PublishingError) as exc:
            observe_upload("failed")
            logger.error("Mux upload creation failed: %s", exc)
            raise UploadFailed(f"Mux upload creation failed: {exc}") from exc

        logger.info(
            "Mux upload session created upload_id=%s asset_id=%s",
            session.upload_id,
            session.asset_id,
        )

        try:
            await self.transfer(session.upload_url, file_path)
            outcome = await self._resolve_asset(session)
        except UploadFailed:
            observe_upload("failed")
            raise

        observe_upload("fallback" if outcome.asset_id_is_fallback else "succeeded")
        return outcome

    async def transfer(self, upload_url: str, file_path: Path) -> None:
        """PUT the file to ``upload_url``, retrying transient failures."""

        try:
            body = await run_in_threadpool(file_path.read_bytes)
        except OSError as exc:
            raise UploadFailed(f"Could not read media file for upload: {exc}") from exc
        last_error: BaseException | None = None

        for attempt in range(1, self._max_attempts + 1):
            try:
                await self._put_once(upload_url, body)
                logger.info(
                    "Uploaded %s (%s bytes) on attempt %s",
                    file_path.name,
                    len(body),
                    attempt,
                )
                return
            except (httpx.HTTPError, httpx.InvalidURL, PublishingError) as exc:
                last_error = exc
                if attempt < self._max_attempts and is_transient(exc):
                    delay = backoff_delay(self._base_delay, attempt)
                    logger.warning(
                        "Mux PUT attempt %s/%s failed (%s). Retrying in %.1fs",
                        attempt,
                        self._max_attempts,
                        exc,
                        delay,
                    )
                    observe_transfer_retry()
                    await self._sleep(delay)
                    continue
                logger.error("Mux PUT attempt %s failed, giving up: %s", attempt, exc)
                break

        raise UploadFailed(str(last_error) if last_error else "Upload failed") from last_error

    async def _put_once(self, upload_url: str, body: bytes) -> None:
        headers = {
            "Content-Type": "application/octet-stream",
            "Content-Length": str(len(body)),
        }
        try:
            response = await asyncio.wait_for(
                self._client.put(
                    upload_url,
                    content=body,
                    headers=headers,
                    timeout=self._transfer_timeout,
                ),
                timeout=self._transfer_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise TransferTimeout(self._transfer_timeout) from exc

        # Read the body either way so the connection can be reused.
        await response.aread()
        if not response.is_success:
            raise PlatformHTTPError(response.status_code, response.reason_phrase, response.text)

    async def _resolve_asset(self, session: UploadSession) -> UploadOutcome:
        if session.asset_id:
            return UploadOutcome(asset_id=session.asset_id, upload_id=session.upload_id)

        asset_id: str | None = None
        if session.upload_id:
            try:
                asset_id = await self._platform.retrieve_upload_asset_id(session.upload_id)
            except (httpx.HTTPError, PublishingError) as exc:
                logger.warning(
                    "Asset lookup for upload %s failed: %s", session.upload_id, exc
                )
        if asset_id:
            logger.info("Resolved asset_id=%s from upload_id=%s", asset_id, session.upload_id)
            return UploadOutcome(asset_id=asset_id, upload_id=session.upload_id)

        if not session.upload_id:
            raise UploadFailed(
                "Failed to parse any asset or upload identifier from the Mux upload response"
            )

        # The upload id stands in for the asset id so a player link can still be shown.
        logger.warning(
            "No asset ID available - using upload ID %s for the player URL", session.upload_id
        )
        return UploadOutcome(
            asset_id=session.upload_id,
            upload_id=session.upload_id,
            asset_id_is_fallback=True,
        )


__all__ = ["UploadCoordinator", "UploadOutcome", "backoff_delay"]
