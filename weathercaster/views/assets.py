"""Pydantic schemas for asset readiness."""

from typing import Optional

from pydantic import BaseModel, Field


class AssetWaitRequest(BaseModel):
    timeout_ms: Optional[int] = Field(
        None, ge=1, description="Readiness timeout, clamped to 10s..30min"
    )
    poll_interval_ms: Optional[int] = Field(
        None, ge=1, description="Fixed poll interval; progressive schedule when omitted"
    )


class AssetStatusResponse(BaseModel):
    asset_id: str
    status: str
    ready: bool
    playback_id: Optional[str] = None
    hls_url: Optional[str] = None
    player_url: str
    polling: bool = Field(False, description="A readiness poll for this asset is in flight")
