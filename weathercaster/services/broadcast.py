"""End-to-end weather broadcast: forecast, narration, audio, video, publish."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from weathercaster.config.settings import MediaConfig
from weathercaster.publishing import PublishingPipeline, PublishOptions
from weathercaster.services.encoder import MediaEncoder, pick_background_image
from weathercaster.services.narration import build_agri_narration, narrate_custom_text
from weathercaster.services.speech import SpeechSynthesizer
from weathercaster.services.weather import WeatherClient, WeatherReport, validate_zip_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BroadcastResult:
    zip_code: str
    narration: str
    audio_path: Path
    video_path: Path
    asset_id: str
    upload_id: Optional[str]
    player_url: str
    hls_url: Optional[str] = None
    asset_id_is_fallback: bool = False
    location: Optional[str] = None
    files_removed: bool = False


class BroadcastService:
    """Produce and publish a narrated weather video for a ZIP code."""

    def __init__(
        self,
        *,
        weather: WeatherClient,
        speech: SpeechSynthesizer,
        encoder: MediaEncoder,
        pipeline: PublishingPipeline,
        media: MediaConfig,
        options: PublishOptions,
    ) -> None:
        self._weather = weather
        self._speech = speech
        self._encoder = encoder
        self._pipeline = pipeline
        self._media = media
        self._options = options

    async def create_broadcast(
        self,
        zip_code: str,
        text: Optional[str] = None,
        *,
        wait_for_ready: bool = False,
    ) -> BroadcastResult:
        zip_code = validate_zip_code(zip_code)
        custom = (text or "").strip()

        report: WeatherReport | None = None
        if custom:
            narration = narrate_custom_text(zip_code, custom)
        else:
            report = await self._weather.get_report(zip_code)
            narration = build_agri_narration(zip_code, report)

        stem = f"weather-{datetime.now(timezone.utc).strftime('%Y-%m-%dT%H-%M-%S')}-{zip_code}"
        work_dir = Path(self._media.work_dir)
        audio_path = work_dir / f"{stem}.mp3"
        video_path = work_dir / f"{stem}.mp4"

        try:
            await self._speech.synthesize_to_file(narration, audio_path)
            image_path = await run_in_threadpool(
                pick_background_image, self._media.images_dir, work_dir
            )
            await self._encoder.render(audio_path, image_path, video_path)
            published = await self._pipeline.publish(video_path, self._options)
        finally:
            removed = await self._cleanup(audio_path, video_path)

        hls_url: str | None = None
        if wait_for_ready:
            record = await asyncio.shield(published.readiness)
            if record is not None and record.playback_id:
                hls_url = self._pipeline.hls_url(record.playback_id)

        logger.info(
            "Broadcast published zip=%s asset_id=%s fallback=%s",
            zip_code,
            published.asset_id,
            published.asset_id_is_fallback,
        )
        return BroadcastResult(
            zip_code=zip_code,
            narration=narration,
            audio_path=audio_path,
            video_path=video_path,
            asset_id=published.asset_id,
            upload_id=published.upload_id,
            player_url=published.player_url,
            hls_url=hls_url,
            asset_id_is_fallback=published.asset_id_is_fallback,
            location=report.location.display_name if report else None,
            files_removed=removed,
        )

    async def _cleanup(self, *paths: Path) -> bool:
        if not self._media.cleanup:
            return False
        for path in paths:
            try:
                await run_in_threadpool(path.unlink, missing_ok=True)
            except OSError as exc:
                logger.warning("Failed to remove %s: %s", path, exc)
        return True


__all__ = ["BroadcastResult", "BroadcastService"]
