"""Publishing orchestration: limiter slot, upload, background readiness."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlencode

from weathercaster.publishing.errors import PublishingError
from weathercaster.publishing.limiter import ConnectionLimiter
from weathercaster.publishing.models import AssetRecord, PublishOptions
from weathercaster.publishing.readiness import AssetReadinessPoller
from weathercaster.publishing.upload import UploadCoordinator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishResult:
    """What a caller gets back as soon as the bytes are on the platform."""

    asset_id: str
    upload_id: str | None
    player_url: str
    readiness: "asyncio.Task[AssetRecord | None]"
    asset_id_is_fallback: bool = False


class PublishingPipeline:
    """Upload a rendered file and start watching for asset readiness.

    The limiter slot covers the upload only. Readiness is awaited in a
    background task whose failures are logged and resolved to ``None``.
    """

    def __init__(
        self,
        limiter: ConnectionLimiter,
        coordinator: UploadCoordinator,
        poller: AssetReadinessPoller,
        *,
        player_base_url: str,
        hls_base_url: str,
    ) -> None:
        self._limiter = limiter
        self._coordinator = coordinator
        self._poller = poller
        self._player_base_url = player_base_url.rstrip("/")
        self._hls_base_url = hls_base_url.rstrip("/")
        self._background: set[asyncio.Task[AssetRecord | None]] = set()

    @property
    def limiter(self) -> ConnectionLimiter:
        return self._limiter

    @property
    def poller(self) -> AssetReadinessPoller:
        return self._poller

    def player_url(self, asset_id: str) -> str:
        return f"{self._player_base_url}/player?{urlencode({'assetId': asset_id})}"

    def hls_url(self, playback_id: str) -> str:
        return f"{self._hls_base_url}/{playback_id}.m3u8"

    async def publish(self, path: str | Path, options: PublishOptions) -> PublishResult:
        await self._limiter.acquire()
        try:
            outcome = await self._coordinator.publish(path, options)
        finally:
            self._limiter.release()

        player_url = self.player_url(outcome.asset_id)
        logger.info("Published %s as asset_id=%s player_url=%s", Path(path).name, outcome.asset_id, player_url)

        readiness = asyncio.create_task(
            self._watch(outcome.asset_id),
            name=f"publish-readiness-{outcome.asset_id}",
        )
        self._background.add(readiness)
        readiness.add_done_callback(self._background.discard)

        return PublishResult(
            asset_id=outcome.asset_id,
            upload_id=outcome.upload_id,
            player_url=player_url,
            readiness=readiness,
            asset_id_is_fallback=outcome.asset_id_is_fallback,
        )

    async def close(self) -> None:
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self._poller.close()

    async def _watch(self, asset_id: str) -> AssetRecord | None:
        try:
            return await self._poller.wait_until_ready(asset_id)
        except PublishingError as exc:
            logger.warning("Background asset polling failed for %s: %s", asset_id, exc)
        except Exception:
            logger.exception("Unexpected error while polling asset %s", asset_id)
        return None


__all__ = ["PublishResult", "PublishingPipeline"]
