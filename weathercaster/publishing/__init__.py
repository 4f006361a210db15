"""Media publishing pipeline.

Modules are organised leaves first:

1. `errors` – failure taxonomy and the transient/fatal classifier.
2. `limiter` – FIFO admission gate bounding concurrent uploads.
3. `models` – upload session / asset records and the JSON decode step.
4. `upload` – direct-upload session, PUT with backoff, asset id lookup.
5. `readiness` – deduplicated, progressive asset readiness polling.
6. `pipeline` – orchestration tying the above together.
"""

from __future__ import annotations

import httpx

from weathercaster.config.settings import MuxConfig, PublishingConfig

from .errors import (
    AcquisitionTimeout,
    AssetErrored,
    ErrorKind,
    MalformedResponse,
    PlatformHTTPError,
    PollTimeout,
    PublishingError,
    TooManyConsecutiveErrors,
    TransferTimeout,
    UploadFailed,
    classify_error,
    describe_upload_failure,
)
from .limiter import ConnectionLimiter
from .models import AssetRecord, AssetStatus, PublishOptions, UploadSession
from .platform import MediaPlatformInterface
from .pipeline import PublishingPipeline, PublishResult
from .readiness import AssetReadinessPoller, progressive_interval
from .upload import UploadCoordinator, UploadOutcome


def build_publishing_pipeline(
    platform: MediaPlatformInterface,
    client: httpx.AsyncClient,
    *,
    publishing: PublishingConfig,
    mux: MuxConfig,
) -> PublishingPipeline:
    """Wire a pipeline from configuration; one instance per application lifespan."""

    limiter = ConnectionLimiter(
        max_concurrent=publishing.max_concurrent,
        acquire_timeout=publishing.acquire_timeout_ms / 1000,
    )
    coordinator = UploadCoordinator(
        platform,
        client,
        max_attempts=publishing.retry_attempts,
        base_delay=publishing.retry_base_ms / 1000,
        transfer_timeout=publishing.put_timeout_ms / 1000,
    )
    poller = AssetReadinessPoller(
        platform,
        poll_interval=(
            publishing.poll_interval_ms / 1000 if publishing.poll_interval_ms else None
        ),
        timeout=publishing.poll_timeout_ms / 1000,
    )
    return PublishingPipeline(
        limiter,
        coordinator,
        poller,
        player_base_url=mux.player_base_url,
        hls_base_url=mux.hls_base_url,
    )


def default_publish_options(mux: MuxConfig) -> PublishOptions:
    return PublishOptions(
        cors_origin=mux.cors_origin,
        playback_policy=mux.playback_policy,
        test=mux.upload_test,
    )


__all__ = [
    "AcquisitionTimeout",
    "AssetErrored",
    "AssetReadinessPoller",
    "AssetRecord",
    "AssetStatus",
    "ConnectionLimiter",
    "ErrorKind",
    "MalformedResponse",
    "MediaPlatformInterface",
    "PlatformHTTPError",
    "PollTimeout",
    "PublishOptions",
    "PublishResult",
    "PublishingError",
    "PublishingPipeline",
    "TooManyConsecutiveErrors",
    "TransferTimeout",
    "UploadCoordinator",
    "UploadFailed",
    "UploadOutcome",
    "UploadSession",
    "build_publishing_pipeline",
    "classify_error",
    "default_publish_options",
    "describe_upload_failure",
    "progressive_interval",
]
