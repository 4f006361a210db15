"""Direct-upload transfer, retry policy and asset id resolution."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from conftest import FakePlatform
from weathercaster.publishing import (
    PlatformHTTPError,
    UploadCoordinator,
    UploadFailed,
    UploadSession,
    describe_upload_failure,
)
from weathercaster.publishing.upload import backoff_delay


class ScriptedUploadServer:
    """MockTransport handler answering PUTs from a list of statuses or exceptions."""

    def __init__(self, *script) -> None:
        self.script = list(script)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self.script[min(len(self.requests), len(self.script)) - 1]
        if isinstance(step, type) and issubclass(step, Exception):
            raise step("simulated network failure", request=request)
        return httpx.Response(step, request=request)


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_coordinator(platform, server, sleep, **kwargs) -> tuple[UploadCoordinator, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(server))
    return UploadCoordinator(platform, client, sleep=sleep, **kwargs), client


def test_backoff_doubles_from_base() -> None:
    assert [backoff_delay(1.0, attempt) for attempt in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]


def test_tuning_is_clamped_to_minimums() -> None:
    coordinator = UploadCoordinator(
        FakePlatform(), httpx.AsyncClient(), max_attempts=1, base_delay=0.1
    )

    assert coordinator.max_attempts == 3
    assert coordinator.base_delay == 0.5


async def test_transient_failures_are_retried_with_backoff(media_file: Path, options) -> None:
    server = ScriptedUploadServer(503, 503, 200)
    sleep = SleepRecorder()
    platform = FakePlatform(upload_asset_id="asset-7")
    coordinator, client = make_coordinator(platform, server, sleep)

    async with client:
        outcome = await coordinator.publish(media_file, options)

    assert len(server.requests) == 3
    assert sleep.delays == [1.0, 2.0]
    assert outcome.asset_id == "asset-7"
    assert outcome.upload_id == "upload-1"
    assert not outcome.asset_id_is_fallback


async def test_put_sends_octet_stream_with_length(media_file: Path, options) -> None:
    server = ScriptedUploadServer(200)
    coordinator, client = make_coordinator(
        FakePlatform(upload_asset_id="asset-7"), server, SleepRecorder()
    )

    async with client:
        await coordinator.publish(media_file, options)

    request = server.requests[0]
    assert request.method == "PUT"
    assert str(request.url) == "https://storage.mux.test/upload/abc"
    assert request.headers["content-type"] == "application/octet-stream"
    assert request.headers["content-length"] == str(media_file.stat().st_size)
    assert request.content == media_file.read_bytes()


async def test_non_retryable_status_fails_after_one_attempt(media_file: Path, options) -> None:
    server = ScriptedUploadServer(404)
    sleep = SleepRecorder()
    coordinator, client = make_coordinator(FakePlatform(), server, sleep)

    async with client:
        with pytest.raises(UploadFailed, match="404"):
            await coordinator.publish(media_file, options)

    assert len(server.requests) == 1
    assert sleep.delays == []


async def test_gives_up_after_max_attempts(media_file: Path, options) -> None:
    server = ScriptedUploadServer(503)
    sleep = SleepRecorder()
    coordinator, client = make_coordinator(FakePlatform(), server, sleep, max_attempts=3)

    async with client:
        with pytest.raises(UploadFailed, match="503"):
            await coordinator.publish(media_file, options)

    assert len(server.requests) == 3
    assert sleep.delays == [1.0, 2.0]


async def test_network_errors_are_retried(media_file: Path, options) -> None:
    server = ScriptedUploadServer(httpx.ConnectError, 200)
    sleep = SleepRecorder()
    coordinator, client = make_coordinator(
        FakePlatform(upload_asset_id="asset-7"), server, sleep, base_delay=2.0
    )

    async with client:
        outcome = await coordinator.publish(media_file, options)

    assert outcome.asset_id == "asset-7"
    assert len(server.requests) == 2
    assert sleep.delays == [2.0]


async def test_asset_id_from_session_skips_lookup(media_file: Path, options) -> None:
    platform = FakePlatform(
        session=UploadSession(upload_url="https://storage.mux.test/upload/abc", upload_id="up", asset_id="as-direct")
    )
    coordinator, client = make_coordinator(platform, ScriptedUploadServer(200), SleepRecorder())

    async with client:
        outcome = await coordinator.publish(media_file, options)

    assert outcome.asset_id == "as-direct"
    assert platform.lookups == []


async def test_falls_back_to_upload_id_when_asset_unknown(media_file: Path, options) -> None:
    platform = FakePlatform(upload_asset_id=None)
    coordinator, client = make_coordinator(platform, ScriptedUploadServer(200), SleepRecorder())

    async with client:
        outcome = await coordinator.publish(media_file, options)

    assert platform.lookups == ["upload-1"]
    assert outcome.asset_id == "upload-1"
    assert outcome.asset_id_is_fallback


async def test_lookup_failure_still_falls_back(media_file: Path, options) -> None:
    platform = FakePlatform(lookup_error=PlatformHTTPError(500))
    coordinator, client = make_coordinator(platform, ScriptedUploadServer(200), SleepRecorder())

    async with client:
        outcome = await coordinator.publish(media_file, options)

    assert outcome.asset_id == "upload-1"
    assert outcome.asset_id_is_fallback


async def test_no_identifiers_at_all_fails(media_file: Path, options) -> None:
    platform = FakePlatform(
        session=UploadSession(upload_url="https://storage.mux.test/upload/abc")
    )
    coordinator, client = make_coordinator(platform, ScriptedUploadServer(200), SleepRecorder())

    async with client:
        with pytest.raises(UploadFailed, match="Failed to parse"):
            await coordinator.publish(media_file, options)


async def test_session_creation_failure_is_reported(media_file: Path, options) -> None:
    platform = FakePlatform(create_error=PlatformHTTPError(401, "Unauthorized"))
    server = ScriptedUploadServer(200)
    coordinator, client = make_coordinator(platform, server, SleepRecorder())

    async with client:
        with pytest.raises(UploadFailed) as excinfo:
            await coordinator.publish(media_file, options)

    assert server.requests == []
    assert describe_upload_failure(str(excinfo.value)).startswith("Mux connection failed")


async def test_missing_file_fails_before_any_request(tmp_path: Path, options) -> None:
    platform = FakePlatform()
    coordinator, client = make_coordinator(platform, ScriptedUploadServer(200), SleepRecorder())

    async with client:
        with pytest.raises(UploadFailed, match="not found"):
            await coordinator.publish(tmp_path / "missing.mp4", options)

    assert platform.created == []


async def test_unusable_upload_url_fails_without_retry(media_file: Path, options) -> None:
    platform = FakePlatform(
        session=UploadSession(upload_url="http://[::1", upload_id="upload-1", asset_id=None)
    )
    server = ScriptedUploadServer(200)
    sleep = SleepRecorder()
    coordinator, client = make_coordinator(platform, server, sleep)

    async with client:
        with pytest.raises(UploadFailed):
            await coordinator.publish(media_file, options)

    assert server.requests == []
    assert sleep.delays == []
