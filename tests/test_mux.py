"""Mux collaborators over the REST API and the MCP tool endpoint."""

from __future__ import annotations

import base64
import json

import httpx
import pytest

from weathercaster.config.settings import MuxConfig
from weathercaster.publishing import (
    AssetStatus,
    MalformedResponse,
    PlatformHTTPError,
    PublishingError,
    PublishOptions,
)
from weathercaster.services.mux import MuxRestPlatform, MuxToolPlatform, create_media_platform

OPTIONS = PublishOptions(cors_origin="https://player.example.com")


def rest_config(**overrides) -> MuxConfig:
    values = {"token_id": "token-id", "token_secret": "token-secret", "transport": "rest"}
    values.update(overrides)
    return MuxConfig(**values)


def tool_config(**overrides) -> MuxConfig:
    values = {
        "transport": "tool",
        "tool_endpoint_url": "https://mcp.example.com/mcp",
        "tool_bearer_token": "mcp-token",
    }
    values.update(overrides)
    return MuxConfig(**values)


def tool_result(document: dict, *, is_error: bool = False) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "result": {
            "content": [{"type": "text", "text": json.dumps(document)}],
            "isError": is_error,
        },
    }


async def test_rest_create_upload_posts_settings_with_basic_auth() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            201,
            json={"data": {"id": "up-1", "url": "https://storage.mux.test/u", "status": "waiting"}},
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        session = await MuxRestPlatform(client, rest_config()).create_upload(OPTIONS)

    request = seen[0]
    assert request.method == "POST"
    assert request.url == "https://api.mux.com/video/v1/uploads"
    expected = base64.b64encode(b"token-id:token-secret").decode()
    assert request.headers["authorization"] == f"Basic {expected}"
    assert json.loads(request.content) == OPTIONS.to_payload()
    assert session.upload_id == "up-1"
    assert session.upload_url == "https://storage.mux.test/u"


async def test_rest_retrieve_asset_and_upload() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/video/v1/uploads/up-1":
            return httpx.Response(200, json={"data": {"id": "up-1", "asset_id": "as-1"}})
        if request.url.path == "/video/v1/assets/as-1":
            return httpx.Response(
                200,
                json={"data": {"id": "as-1", "status": "ready", "playback_ids": [{"id": "P1"}]}},
            )
        return httpx.Response(404)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        platform = MuxRestPlatform(client, rest_config())
        asset_id = await platform.retrieve_upload_asset_id("up-1")
        record = await platform.retrieve_asset(asset_id)

    assert asset_id == "as-1"
    assert record.status is AssetStatus.READY
    assert record.playback_id == "P1"


async def test_rest_error_status_raises_platform_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="upstream unavailable")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(PlatformHTTPError) as excinfo:
            await MuxRestPlatform(client, rest_config()).retrieve_asset("as-1")

    assert excinfo.value.status_code == 503


async def test_rest_health_reports_missing_credentials() -> None:
    async with httpx.AsyncClient() as client:
        assert await MuxRestPlatform(client, rest_config()).check_health() is None
        missing = MuxRestPlatform(client, rest_config(token_id=None, token_secret=None))
        assert "MUX_TOKEN_ID" in await missing.check_health()


async def test_tool_invokes_endpoint_through_json_rpc() -> None:
    calls: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        calls.append(body)
        assert request.headers["authorization"] == "Bearer mcp-token"
        endpoint = body["params"]["arguments"]["endpoint_name"]
        if endpoint == "create_video_uploads":
            return httpx.Response(200, json=tool_result({"id": "up-1", "url": "https://u", "asset_id": "as-1"}))
        return httpx.Response(200, json=tool_result({"id": "as-1", "status": "processing"}))

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        platform = MuxToolPlatform(client, tool_config())
        session = await platform.create_upload(OPTIONS)
        record = await platform.retrieve_asset("as-1")

    assert session.asset_id == "as-1"
    assert record.status is AssetStatus.PROCESSING
    assert calls[0]["method"] == "tools/call"
    assert calls[0]["params"]["name"] == "invoke_api_endpoint"
    assert calls[0]["params"]["arguments"]["args"] == OPTIONS.to_payload()
    assert calls[1]["params"]["arguments"] == {
        "endpoint_name": "retrieve_video_assets",
        "args": {"ASSET_ID": "as-1"},
    }
    assert calls[0]["id"] != calls[1]["id"]


async def test_tool_error_result_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=tool_result({"error": "not found"}, is_error=True))

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(PublishingError, match="retrieve_video_uploads"):
            await MuxToolPlatform(client, tool_config()).retrieve_upload_asset_id("up-1")


async def test_tool_result_without_text_is_malformed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"content": []}})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(MalformedResponse):
            await MuxToolPlatform(client, tool_config()).retrieve_asset("as-1")


async def test_tool_health_checks_tool_listing() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content)["method"] == "tools/list"
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": 1, "result": {"tools": [{"name": "list_video_assets"}]}}
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        problem = await MuxToolPlatform(client, tool_config()).check_health()

    assert problem == "Missing Mux upload creation tool"


def test_transport_selection() -> None:
    client = httpx.AsyncClient()
    assert isinstance(create_media_platform(client, rest_config()), MuxRestPlatform)
    assert isinstance(create_media_platform(client, tool_config()), MuxToolPlatform)
    with pytest.raises(ValueError):
        create_media_platform(client, tool_config(tool_endpoint_url=None))
