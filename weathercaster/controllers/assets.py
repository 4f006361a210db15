"""Asset readiness endpoints."""

from __future__ import annotations

import httpx
from fastapi import APIRouter, HTTPException, status

from weathercaster.controllers.dependencies import PipelineDep, PlatformDep
from weathercaster.publishing import (
    AssetErrored,
    AssetRecord,
    MalformedResponse,
    PlatformHTTPError,
    PollTimeout,
    PublishingError,
    TooManyConsecutiveErrors,
)
from weathercaster.publishing.pipeline import PublishingPipeline
from weathercaster.views import AssetStatusResponse, AssetWaitRequest

router = APIRouter(prefix="/assets", tags=["assets"])


def _to_response(record: AssetRecord, pipeline: PublishingPipeline) -> AssetStatusResponse:
    return AssetStatusResponse(
        asset_id=record.asset_id,
        status=record.status.value,
        ready=record.is_ready,
        playback_id=record.playback_id,
        hls_url=pipeline.hls_url(record.playback_id) if record.playback_id else None,
        player_url=pipeline.player_url(record.asset_id),
        polling=pipeline.poller.is_polling(record.asset_id),
    )


@router.get("/{asset_id}", response_model=AssetStatusResponse)
async def get_asset_status(
    asset_id: str,
    platform: PlatformDep,
    pipeline: PipelineDep,
) -> AssetStatusResponse:
    """Single status query against Mux; does not start a poll."""

    try:
        record = await platform.retrieve_asset(asset_id)
    except PlatformHTTPError as exc:
        code = status.HTTP_404_NOT_FOUND if exc.status_code == 404 else status.HTTP_502_BAD_GATEWAY
        raise HTTPException(status_code=code, detail=str(exc)) from exc
    except MalformedResponse as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except (httpx.HTTPError, PublishingError) as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Unable to reach Mux: {exc}",
        ) from exc
    return _to_response(record, pipeline)


@router.post("/{asset_id}/wait", response_model=AssetStatusResponse)
async def wait_for_asset(
    asset_id: str,
    pipeline: PipelineDep,
    payload: AssetWaitRequest | None = None,
) -> AssetStatusResponse:
    """Wait for readiness, joining any poll already running for this asset."""

    timeout = payload.timeout_ms / 1000 if payload and payload.timeout_ms else None
    interval = payload.poll_interval_ms / 1000 if payload and payload.poll_interval_ms else None
    try:
        record = await pipeline.poller.wait_until_ready(
            asset_id, poll_interval=interval, timeout=timeout
        )
    except PollTimeout as exc:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc)) from exc
    except AssetErrored as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except TooManyConsecutiveErrors as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return _to_response(record, pipeline)
