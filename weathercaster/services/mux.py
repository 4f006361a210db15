"""Mux platform collaborators.

Two transports reach the same Mux endpoints:

* ``MuxRestPlatform`` calls ``api.mux.com`` directly with HTTP Basic
  credentials.
* ``MuxToolPlatform`` goes through an MCP server over HTTP, invoking its
  ``invoke_api_endpoint`` tool with JSON-RPC ``tools/call`` requests.

Both return decoded models from :mod:`weathercaster.publishing.models`.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Mapping, Optional

import httpx

from weathercaster.config.settings import MuxConfig
from weathercaster.publishing.errors import MalformedResponse, PlatformHTTPError, PublishingError
from weathercaster.publishing.models import (
    AssetRecord,
    PublishOptions,
    UploadSession,
    decode_asset,
    decode_upload_asset_id,
    decode_upload_session,
    load_json_document,
)
from weathercaster.publishing.platform import MediaPlatformInterface

logger = logging.getLogger(__name__)

_UPLOADS_PATH = "/video/v1/uploads"
_ASSETS_PATH = "/video/v1/assets"


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    raise PlatformHTTPError(response.status_code, response.reason_phrase, response.text)


class MuxRestPlatform(MediaPlatformInterface):
    """Direct HTTPS access to the Mux Video API."""

    def __init__(self, client: httpx.AsyncClient, config: MuxConfig) -> None:
        self._client = client
        self._config = config
        self._base_url = config.api_base_url.rstrip("/")
        secret = config.token_secret.get_secret_value() if config.token_secret else ""
        self._auth = httpx.BasicAuth(config.token_id or "", secret)

    async def create_upload(self, options: PublishOptions) -> UploadSession:
        payload = options.to_payload()
        logger.debug("Creating Mux direct upload cors_origin=%s", options.cors_origin)
        response = await self._request("POST", _UPLOADS_PATH, json=payload)
        return decode_upload_session(response.content)

    async def retrieve_upload_asset_id(self, upload_id: str) -> Optional[str]:
        response = await self._request("GET", f"{_UPLOADS_PATH}/{upload_id}")
        return decode_upload_asset_id(response.content)

    async def retrieve_asset(self, asset_id: str) -> AssetRecord:
        response = await self._request("GET", f"{_ASSETS_PATH}/{asset_id}")
        return decode_asset(response.content, asset_id)

    async def check_health(self) -> Optional[str]:
        if not self._config.has_credentials:
            return "Missing MUX_TOKEN_ID or MUX_TOKEN_SECRET"
        return None

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = await self._client.request(
            method,
            f"{self._base_url}{path}",
            auth=self._auth,
            timeout=self._config.request_timeout_seconds,
            **kwargs,
        )
        _raise_for_status(response)
        return response


class MuxToolPlatform(MediaPlatformInterface):
    """Mux access through an MCP server exposing ``invoke_api_endpoint``."""

    TOOL_NAME = "invoke_api_endpoint"

    def __init__(self, client: httpx.AsyncClient, config: MuxConfig) -> None:
        if not config.tool_endpoint_url:
            raise ValueError("MUX_TOOL_ENDPOINT_URL is required for the tool transport")
        self._client = client
        self._config = config
        self._endpoint = config.tool_endpoint_url
        self._ids = itertools.count(1)

    async def create_upload(self, options: PublishOptions) -> UploadSession:
        text = await self._invoke("create_video_uploads", options.to_payload())
        return decode_upload_session(text)

    async def retrieve_upload_asset_id(self, upload_id: str) -> Optional[str]:
        text = await self._invoke("retrieve_video_uploads", {"UPLOAD_ID": upload_id})
        return decode_upload_asset_id(text)

    async def retrieve_asset(self, asset_id: str) -> AssetRecord:
        text = await self._invoke("retrieve_video_assets", {"ASSET_ID": asset_id})
        return decode_asset(text, asset_id)

    async def check_health(self) -> Optional[str]:
        try:
            response = await self._client.post(
                self._endpoint,
                json={"jsonrpc": "2.0", "id": next(self._ids), "method": "tools/list"},
                headers=self._headers(),
                timeout=self._config.request_timeout_seconds,
            )
            _raise_for_status(response)
            result = load_json_document(response.content).get("result") or {}
        except (httpx.HTTPError, PublishingError) as exc:
            return f"Mux MCP health check failed: {exc}"
        tools = result.get("tools") if isinstance(result, Mapping) else None
        names = {tool.get("name") for tool in tools or [] if isinstance(tool, Mapping)}
        if self.TOOL_NAME not in names and "create_video_uploads" not in names:
            return "Missing Mux upload creation tool"
        return None

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._config.tool_bearer_token:
            headers["Authorization"] = (
                f"Bearer {self._config.tool_bearer_token.get_secret_value()}"
            )
        return headers

    async def _invoke(self, endpoint_name: str, args: Mapping[str, Any]) -> str:
        request_id = next(self._ids)
        body = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": "tools/call",
            "params": {
                "name": self.TOOL_NAME,
                "arguments": {"endpoint_name": endpoint_name, "args": dict(args)},
            },
        }
        logger.debug("Invoking Mux tool endpoint=%s id=%s", endpoint_name, request_id)
        response = await self._client.post(
            self._endpoint,
            json=body,
            headers=self._headers(),
            timeout=self._config.request_timeout_seconds,
        )
        _raise_for_status(response)
        envelope = load_json_document(response.content)

        error = envelope.get("error")
        if isinstance(error, Mapping):
            raise PublishingError(
                f"Mux tool {endpoint_name} failed: {error.get('message', 'unknown error')}"
            )

        result = envelope.get("result")
        if not isinstance(result, Mapping):
            raise MalformedResponse(f"Failed to parse Mux tool result for {endpoint_name}")

        text = _first_text_block(result.get("content"))
        if result.get("isError"):
            raise PublishingError(f"Mux tool {endpoint_name} failed: {text or 'no detail'}")
        if text is None:
            raise MalformedResponse(f"Failed to parse Mux tool result for {endpoint_name}: no text content")
        return text


def _first_text_block(content: Any) -> str | None:
    blocks = content if isinstance(content, list) else [content]
    for block in blocks:
        if isinstance(block, Mapping) and isinstance(block.get("text"), str):
            return block["text"]
    return None


def create_media_platform(client: httpx.AsyncClient, config: MuxConfig) -> MediaPlatformInterface:
    """Instantiate the transport selected by ``MUX_TRANSPORT``."""

    if config.transport == "tool":
        return MuxToolPlatform(client, config)
    return MuxRestPlatform(client, config)


__all__ = ["MuxRestPlatform", "MuxToolPlatform", "create_media_platform"]
