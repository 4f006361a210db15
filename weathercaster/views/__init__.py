"""Pydantic schemas used as views in the MVC architecture."""

from .assets import AssetStatusResponse, AssetWaitRequest
from .broadcast import BroadcastRequest, BroadcastResponse
from .common import ErrorResponse, HealthResponse
from .weather import ForecastPeriodView, LocationView, WeatherAlertView, WeatherResponse

__all__ = [
    "AssetStatusResponse",
    "AssetWaitRequest",
    "BroadcastRequest",
    "BroadcastResponse",
    "ErrorResponse",
    "HealthResponse",
    "ForecastPeriodView",
    "LocationView",
    "WeatherAlertView",
    "WeatherResponse",
]
