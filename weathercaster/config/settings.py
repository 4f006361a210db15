from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


class MuxConfig(BaseSettings):
    """Mux credentials and endpoint selection."""

    token_id: Optional[str] = None
    token_secret: SecretStr | None = None
    api_base_url: str = "https://api.mux.com"
    hls_base_url: str = "https://stream.mux.com"
    player_base_url: str = "https://streamingportfolio.com"
    cors_origin: str = "https://weather-mcp-kd.streamingportfolio.com"
    playback_policy: Literal["public", "signed"] = "public"
    upload_test: bool = False
    transport: Literal["rest", "tool"] = Field(
        default="rest",
        description="`rest` talks to the Mux API directly, `tool` goes through an MCP tool endpoint.",
    )
    tool_endpoint_url: Optional[str] = None
    tool_bearer_token: SecretStr | None = None
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    @property
    def has_credentials(self) -> bool:
        if self.transport == "tool":
            return bool(self.tool_endpoint_url)
        return bool(self.token_id and self.token_secret)

    model_config = SettingsConfigDict(
        env_prefix="MUX_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class PublishingConfig(BaseSettings):
    """Tuning knobs for the publishing pipeline.

    Out-of-range values are clamped rather than rejected so a bad environment
    never prevents the service from starting.
    """

    max_concurrent: int = 2
    acquire_timeout_ms: int = 30_000
    retry_attempts: int = 5
    retry_base_ms: int = 1_000
    put_timeout_ms: int = 120_000
    poll_interval_ms: Optional[int] = None
    poll_timeout_ms: int = 300_000

    @field_validator("max_concurrent")
    @classmethod
    def _bound_concurrency(cls, value: int) -> int:
        return _clamp(value, 1, 16)

    @field_validator("acquire_timeout_ms")
    @classmethod
    def _bound_acquire_timeout(cls, value: int) -> int:
        return max(1, value)

    @field_validator("retry_attempts")
    @classmethod
    def _bound_attempts(cls, value: int) -> int:
        return max(3, value)

    @field_validator("retry_base_ms")
    @classmethod
    def _bound_base_delay(cls, value: int) -> int:
        return max(500, value)

    @field_validator("put_timeout_ms")
    @classmethod
    def _bound_put_timeout(cls, value: int) -> int:
        return max(60_000, value)

    @field_validator("poll_interval_ms")
    @classmethod
    def _bound_poll_interval(cls, value: Optional[int]) -> Optional[int]:
        if value is None:
            return None
        return max(1_000, value)

    @field_validator("poll_timeout_ms")
    @classmethod
    def _bound_poll_timeout(cls, value: int) -> int:
        return _clamp(value, 10_000, 1_800_000)

    model_config = SettingsConfigDict(
        env_prefix="PUBLISH_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class WeatherConfig(BaseSettings):
    """National Weather Service client configuration."""

    user_agent: str = "Weathercaster/1.0 (weather-agent@streamingportfolio.com)"
    geocode_base_url: str = "https://api.zippopotam.us/us"
    nws_base_url: str = "https://api.weather.gov"
    timeout_seconds: float = Field(default=10.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="WEATHER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class PollyConfig(BaseSettings):
    """Amazon Polly configuration."""

    region: str = "us-east-1"
    default_voice_id: str = "Joanna"
    engine: str = "neural"
    access_key: Optional[str] = None
    secret_key: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="POLLY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class MediaConfig(BaseSettings):
    """Local rendering configuration (ffmpeg and scratch space)."""

    work_dir: str = "/tmp/tts"
    images_dir: str = "files/images"
    ffmpeg_path: str = "ffmpeg"
    preset: str = "fast"
    crf: int = Field(default=23, ge=0, le=51)
    threads: int = Field(default=0, ge=0)
    max_width: int = Field(default=1920, ge=16)
    max_height: int = Field(default=1080, ge=16)
    cleanup: bool = False

    model_config = SettingsConfigDict(
        env_prefix="MEDIA_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Weathercaster Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    publishing_log_file: str = "logs/publishing.log"

    # Mux
    mux: MuxConfig = Field(default_factory=MuxConfig)

    # Publishing pipeline
    publishing: PublishingConfig = Field(default_factory=PublishingConfig)

    # Forecast
    weather: WeatherConfig = Field(default_factory=WeatherConfig)

    # Polly
    polly: PollyConfig = Field(default_factory=PollyConfig)

    # ffmpeg
    media: MediaConfig = Field(default_factory=MediaConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
