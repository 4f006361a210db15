"""Pydantic schemas for broadcast creation."""

from typing import Optional

from pydantic import BaseModel, Field


class BroadcastRequest(BaseModel):
    zip_code: str = Field(..., description="5-digit US ZIP code", examples=["94107"])
    text: Optional[str] = Field(
        None,
        max_length=2500,
        description="Custom narration. When omitted an agriculture forecast is narrated.",
    )
    wait_for_ready: bool = Field(
        False,
        description="Block until the asset is playable so the HLS URL can be returned.",
    )


class BroadcastResponse(BaseModel):
    zip_code: str
    location: Optional[str] = None
    narration: str
    asset_id: str
    upload_id: Optional[str] = None
    player_url: str
    hls_url: Optional[str] = None
    asset_id_is_fallback: bool = Field(
        False,
        description="True when the upload id stands in for an asset id that was never resolved.",
    )
    audio_path: Optional[str] = None
    video_path: Optional[str] = None
