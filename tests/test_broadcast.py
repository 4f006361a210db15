"""Broadcast orchestration from ZIP code to published video."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from conftest import asset
from weathercaster.config.settings import MediaConfig
from weathercaster.publishing import PublishOptions, PublishResult, UploadFailed
from weathercaster.services.broadcast import BroadcastService
from weathercaster.services.encoder import EncodeResult
from weathercaster.services.speech import SpeechResult
from weathercaster.services.weather import ForecastPeriod, InvalidZipCode, Location, WeatherReport


class FakeWeather:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def get_report(self, zip_code: str, *, include_alerts: bool = False) -> WeatherReport:
        self.calls.append(zip_code)
        return WeatherReport(
            zip_code=zip_code,
            location=Location(display_name="Ames, IA", latitude=42.0, longitude=-93.6, state="IA"),
            periods=[
                ForecastPeriod(
                    name="Today",
                    temperature=91,
                    temperature_unit="F",
                    wind_speed="10 mph",
                    wind_direction="S",
                    short_forecast="Hot",
                    detailed_forecast="",
                    start_time="",
                    end_time="",
                )
            ],
        )


class FakeSpeech:
    def __init__(self) -> None:
        self.texts: list[str] = []

    async def synthesize_to_file(self, text: str, output_path: Path) -> SpeechResult:
        self.texts.append(text)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(b"ID3")
        return SpeechResult(path=output_path, size_bytes=3, voice_id="Joanna")


class FakeEncoder:
    async def render(self, audio_path: Path, image_path: Path, output_path: Path) -> EncodeResult:
        assert Path(audio_path).is_file()
        assert Path(image_path).is_file()
        Path(output_path).write_bytes(b"mp4")
        return EncodeResult(path=Path(output_path), size_bytes=3)


class FakePipeline:
    def __init__(self, record=None, error: Exception | None = None) -> None:
        self.record = record
        self.error = error
        self.published: list[tuple[Path, PublishOptions]] = []

    def hls_url(self, playback_id: str) -> str:
        return f"https://stream.mux.com/{playback_id}.m3u8"

    async def publish(self, path: Path, options: PublishOptions) -> PublishResult:
        self.published.append((Path(path), options))
        if self.error is not None:
            raise self.error

        async def readiness():
            return self.record

        return PublishResult(
            asset_id="asset-1",
            upload_id="upload-1",
            player_url="https://player.example.com/player?assetId=asset-1",
            readiness=asyncio.create_task(readiness()),
        )


def make_service(tmp_path: Path, pipeline: FakePipeline, *, cleanup: bool = False):
    weather = FakeWeather()
    speech = FakeSpeech()
    service = BroadcastService(
        weather=weather,
        speech=speech,
        encoder=FakeEncoder(),
        pipeline=pipeline,
        media=MediaConfig(work_dir=str(tmp_path), images_dir=str(tmp_path / "images"), cleanup=cleanup),
        options=PublishOptions(cors_origin="https://player.example.com"),
    )
    return service, weather, speech


async def test_forecast_broadcast_is_published(tmp_path: Path) -> None:
    pipeline = FakePipeline()
    service, weather, speech = make_service(tmp_path, pipeline)

    result = await service.create_broadcast("50010")

    assert weather.calls == ["50010"]
    assert speech.texts[0].startswith("Agriculture weather for Ames, IA. ZIP 5 0 0 1 0.")
    assert "Plan irrigation" in result.narration
    assert result.asset_id == "asset-1"
    assert result.location == "Ames, IA"
    assert result.hls_url is None
    assert result.video_path.is_file()
    assert pipeline.published[0][0] == result.video_path


async def test_custom_text_skips_forecast(tmp_path: Path) -> None:
    service, weather, _ = make_service(tmp_path, FakePipeline())

    result = await service.create_broadcast("50010", "Hail expected after 4 PM.")

    assert weather.calls == []
    assert result.narration == "For ZIP 5 0 0 1 0. Hail expected after 4 PM."
    assert result.location is None


async def test_wait_for_ready_returns_hls_url(tmp_path: Path) -> None:
    service, _, _ = make_service(tmp_path, FakePipeline(record=asset("ready", "P1")))

    result = await service.create_broadcast("50010", wait_for_ready=True)

    assert result.hls_url == "https://stream.mux.com/P1.m3u8"


async def test_cleanup_removes_local_files(tmp_path: Path) -> None:
    service, _, _ = make_service(tmp_path, FakePipeline(), cleanup=True)

    result = await service.create_broadcast("50010")

    assert result.files_removed
    assert not result.audio_path.exists()
    assert not result.video_path.exists()


async def test_cleanup_also_runs_when_publish_fails(tmp_path: Path) -> None:
    service, _, _ = make_service(
        tmp_path, FakePipeline(error=UploadFailed("Mux request failed: 404")), cleanup=True
    )

    with pytest.raises(UploadFailed):
        await service.create_broadcast("50010")

    assert list(tmp_path.glob("weather-*")) == []


async def test_invalid_zip_rejected_before_any_work(tmp_path: Path) -> None:
    pipeline = FakePipeline()
    service, weather, speech = make_service(tmp_path, pipeline)

    with pytest.raises(InvalidZipCode):
        await service.create_broadcast("5001")

    assert weather.calls == []
    assert speech.texts == []
    assert pipeline.published == []
