"""Broadcast creation endpoint: forecast to published video."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from weathercaster.controllers.dependencies import BroadcastServiceDep
from weathercaster.publishing import AcquisitionTimeout, PublishingError, describe_upload_failure
from weathercaster.services.encoder import EncodingError
from weathercaster.services.speech import SpeechSynthesisError
from weathercaster.services.weather import InvalidZipCode, WeatherServiceError
from weathercaster.views import BroadcastRequest, BroadcastResponse, ErrorResponse

router = APIRouter(prefix="/broadcasts", tags=["broadcasts"])

logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=BroadcastResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def create_broadcast(
    payload: BroadcastRequest,
    service: BroadcastServiceDep,
) -> BroadcastResponse:
    """Narrate the forecast for a ZIP code, render it and publish it to Mux.

    Returns as soon as the upload completes; readiness continues in the
    background unless ``wait_for_ready`` is set.
    """

    try:
        result = await service.create_broadcast(
            payload.zip_code,
            payload.text,
            wait_for_ready=payload.wait_for_ready,
        )
    except InvalidZipCode as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    except WeatherServiceError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Weather lookup failed: {exc}",
        ) from exc
    except SpeechSynthesisError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    except EncodingError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Video rendering failed: {exc}",
        ) from exc
    except AcquisitionTimeout as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except PublishingError as exc:
        logger.error("Broadcast upload failed for %s: %s", payload.zip_code, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=describe_upload_failure(str(exc)),
        ) from exc

    return BroadcastResponse(
        zip_code=result.zip_code,
        location=result.location,
        narration=result.narration,
        asset_id=result.asset_id,
        upload_id=result.upload_id,
        player_url=result.player_url,
        hls_url=result.hls_url,
        asset_id_is_fallback=result.asset_id_is_fallback,
        audio_path=None if result.files_removed else str(result.audio_path),
        video_path=None if result.files_removed else str(result.video_path),
    )
