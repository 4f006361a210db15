"""Common FastAPI dependencies reused across controllers.

Long-lived collaborators are built once in the application lifespan and kept
on ``app.state``; these helpers hand them to route functions.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from weathercaster.publishing import MediaPlatformInterface, PublishingPipeline
from weathercaster.services.broadcast import BroadcastService
from weathercaster.services.weather import WeatherClient


def _from_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Service not initialised: {name}",
        )
    return value


def get_pipeline(request: Request) -> PublishingPipeline:
    return _from_state(request, "pipeline")


def get_media_platform(request: Request) -> MediaPlatformInterface:
    return _from_state(request, "platform")


def get_weather_client(request: Request) -> WeatherClient:
    return _from_state(request, "weather_client")


def get_broadcast_service(request: Request) -> BroadcastService:
    return _from_state(request, "broadcast_service")


PipelineDep = Annotated[PublishingPipeline, Depends(get_pipeline)]
PlatformDep = Annotated[MediaPlatformInterface, Depends(get_media_platform)]
WeatherClientDep = Annotated[WeatherClient, Depends(get_weather_client)]
BroadcastServiceDep = Annotated[BroadcastService, Depends(get_broadcast_service)]


__all__ = [
    "BroadcastServiceDep",
    "PipelineDep",
    "PlatformDep",
    "WeatherClientDep",
    "get_broadcast_service",
    "get_media_platform",
    "get_pipeline",
    "get_weather_client",
]
