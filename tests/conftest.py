"""Shared fakes for the publishing and API tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
import sys
from typing import Any, Callable, Optional, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from weathercaster.publishing import (  # noqa: E402
    AssetRecord,
    AssetStatus,
    MediaPlatformInterface,
    PublishOptions,
    UploadSession,
)


def asset(status: str, playback_id: Optional[str] = None, asset_id: str = "asset-1", **raw: Any) -> AssetRecord:
    return AssetRecord(
        asset_id=asset_id,
        status=AssetStatus(status),
        playback_id=playback_id,
        raw=raw,
    )


class FakeClock:
    """Monotonic clock advanced only by the fake ``sleep``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
        await asyncio.sleep(0)


class FakePlatform(MediaPlatformInterface):
    """Scripted Mux collaborator.

    ``asset_script`` items are returned in order by ``retrieve_asset``; an
    exception instance is raised instead. The last item repeats forever.
    """

    def __init__(
        self,
        *,
        session: Optional[UploadSession] = None,
        upload_asset_id: Optional[str] = None,
        asset_script: Sequence[Any] = (),
        create_error: Optional[BaseException] = None,
        lookup_error: Optional[BaseException] = None,
        on_retrieve: Optional[Callable[[], Any]] = None,
        health: Optional[str] = None,
    ) -> None:
        self.session = session or UploadSession(
            upload_url="https://storage.mux.test/upload/abc",
            upload_id="upload-1",
            asset_id=None,
        )
        self.upload_asset_id = upload_asset_id
        self.asset_script = list(asset_script)
        self.create_error = create_error
        self.lookup_error = lookup_error
        self.on_retrieve = on_retrieve
        self.health = health
        self.created: list[PublishOptions] = []
        self.lookups: list[str] = []
        self.retrievals: list[str] = []

    async def create_upload(self, options: PublishOptions) -> UploadSession:
        self.created.append(options)
        if self.create_error is not None:
            raise self.create_error
        return self.session

    async def retrieve_upload_asset_id(self, upload_id: str) -> Optional[str]:
        self.lookups.append(upload_id)
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.upload_asset_id

    async def retrieve_asset(self, asset_id: str) -> AssetRecord:
        self.retrievals.append(asset_id)
        if self.on_retrieve is not None:
            await self.on_retrieve()
        index = min(len(self.retrievals), len(self.asset_script)) - 1
        item = self.asset_script[index]
        if isinstance(item, BaseException):
            raise item
        return item

    async def check_health(self) -> Optional[str]:
        return self.health


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def media_file(tmp_path: Path) -> Path:
    path = tmp_path / "weather.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64)
    return path


@pytest.fixture
def options() -> PublishOptions:
    return PublishOptions(cors_origin="https://player.example.com")
