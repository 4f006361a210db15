"""Service layer helpers for external integrations."""

from .broadcast import BroadcastResult, BroadcastService
from .encoder import EncodeResult, EncodingError, MediaEncoder, pick_background_image
from .mux import MuxRestPlatform, MuxToolPlatform, create_media_platform
from .narration import build_agri_narration, narrate_custom_text, speak_zip
from .speech import SpeechResult, SpeechSynthesisError, SpeechSynthesizer
from .weather import (
    ForecastPeriod,
    InvalidZipCode,
    Location,
    WeatherAlert,
    WeatherClient,
    WeatherReport,
    WeatherServiceError,
)

__all__ = [
    "BroadcastService",
    "BroadcastResult",
    "MediaEncoder",
    "EncodeResult",
    "EncodingError",
    "pick_background_image",
    "MuxRestPlatform",
    "MuxToolPlatform",
    "create_media_platform",
    "build_agri_narration",
    "narrate_custom_text",
    "speak_zip",
    "SpeechSynthesizer",
    "SpeechResult",
    "SpeechSynthesisError",
    "WeatherClient",
    "WeatherReport",
    "ForecastPeriod",
    "Location",
    "WeatherAlert",
    "InvalidZipCode",
    "WeatherServiceError",
]
