"""Typed containers exchanged with the hosting platform.

Raw Mux JSON is decoded here, at the collaborator boundary, into a closed set
of shapes. Anything that does not fit one of them fails with
:class:`MalformedResponse` instead of leaking optional lookups into the
upload and polling code.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Mapping

import httpx

from weathercaster.publishing.errors import MalformedResponse


class AssetStatus(str, Enum):
    PREPARING = "preparing"
    PROCESSING = "processing"
    READY = "ready"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (AssetStatus.READY, AssetStatus.ERRORED)


@dataclass(frozen=True)
class PublishOptions:
    """Options forwarded to the upload-session request."""

    cors_origin: str
    playback_policy: Literal["public", "signed"] = "public"
    test: bool = False

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "cors_origin": self.cors_origin,
            "new_asset_settings": {"playback_policies": [self.playback_policy]},
        }
        if self.test:
            payload["test"] = True
        return payload


@dataclass(frozen=True)
class UploadSession:
    """One attempt to move a local file to Mux."""

    upload_url: str
    upload_id: str | None = None
    asset_id: str | None = None


@dataclass(frozen=True)
class AssetRecord:
    """Mux's view of a published asset."""

    asset_id: str
    status: AssetStatus
    playback_id: str | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_ready(self) -> bool:
        return self.status is AssetStatus.READY


def load_json_document(payload: Any) -> Mapping[str, Any]:
    """Accept a mapping or JSON text and return a mapping."""

    if isinstance(payload, Mapping):
        return payload
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if not isinstance(payload, str) or not payload.strip():
        raise MalformedResponse("Failed to parse Mux response: empty document")
    try:
        decoded = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise MalformedResponse(f"Failed to parse Mux response: {exc}") from exc
    if not isinstance(decoded, Mapping):
        raise MalformedResponse("Failed to parse Mux response: expected a JSON object")
    return decoded


def _unwrap(document: Mapping[str, Any], nested: str) -> Mapping[str, Any]:
    body = document.get("data", document)
    if not isinstance(body, Mapping):
        raise MalformedResponse("Failed to parse Mux response: `data` is not an object")
    inner = body.get(nested)
    if isinstance(inner, Mapping):
        return inner
    return body


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _check_upload_url(upload_url: str) -> None:
    try:
        url = httpx.URL(upload_url)
    except httpx.InvalidURL as exc:
        raise MalformedResponse(f"Unusable upload URL from Mux: {exc}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise MalformedResponse(f"Unusable upload URL from Mux: {upload_url!r}")


def decode_upload_session(payload: Any) -> UploadSession:
    """Decode the response of ``POST /video/v1/uploads``."""

    body = _unwrap(load_json_document(payload), "upload")
    upload_url = _optional_str(body.get("url"))
    if upload_url is None:
        raise MalformedResponse(
            "No upload URL received from Mux - cannot proceed with file upload"
        )
    _check_upload_url(upload_url)
    asset = body.get("asset")
    asset_id = _optional_str(body.get("asset_id"))
    if asset_id is None and isinstance(asset, Mapping):
        asset_id = _optional_str(asset.get("id"))
    return UploadSession(
        upload_url=upload_url,
        upload_id=_optional_str(body.get("id")) or _optional_str(body.get("upload_id")),
        asset_id=asset_id,
    )


def decode_upload_asset_id(payload: Any) -> str | None:
    """Extract the asset id from ``GET /video/v1/uploads/{id}``, if assigned yet."""

    body = _unwrap(load_json_document(payload), "upload")
    asset_id = _optional_str(body.get("asset_id"))
    if asset_id is None:
        asset = body.get("asset")
        if isinstance(asset, Mapping):
            asset_id = _optional_str(asset.get("id"))
    return asset_id


def decode_asset(payload: Any, asset_id: str) -> AssetRecord:
    """Decode ``GET /video/v1/assets/{id}`` into an :class:`AssetRecord`."""

    body = _unwrap(load_json_document(payload), "asset")
    raw_status = body.get("status")
    try:
        status = AssetStatus(raw_status)
    except ValueError as exc:
        raise MalformedResponse(
            f"Failed to parse Mux asset status: {raw_status!r}"
        ) from exc

    playback_id = None
    playback_ids = body.get("playback_ids")
    if isinstance(playback_ids, list):
        for entry in playback_ids:
            if isinstance(entry, Mapping) and _optional_str(entry.get("id")):
                playback_id = _optional_str(entry.get("id"))
                break

    return AssetRecord(
        asset_id=_optional_str(body.get("id")) or asset_id,
        status=status,
        playback_id=playback_id if status is AssetStatus.READY else None,
        raw=dict(body),
    )


__all__ = [
    "AssetRecord",
    "AssetStatus",
    "PublishOptions",
    "UploadSession",
    "decode_asset",
    "decode_upload_asset_id",
    "decode_upload_session",
    "load_json_document",
]
