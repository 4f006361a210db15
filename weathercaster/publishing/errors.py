"""Failure taxonomy for the publishing pipeline.

Every error raised by the limiter, the upload coordinator and the readiness
poller derives from :class:`PublishingError`. :func:`classify_error` decides
whether a failure is worth retrying; it never performs I/O.
"""

from __future__ import annotations

import asyncio
import re
from enum import Enum

import httpx


class ErrorKind(str, Enum):
    TRANSIENT = "transient"
    FATAL = "fatal"


class PublishingError(RuntimeError):
    """Base class for publishing failures."""


class AcquisitionTimeout(PublishingError):
    """Raised when no publishing slot frees up within the acquire timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(
            f"Connection acquisition timeout after {timeout:g}s - system overloaded"
        )
        self.timeout = timeout


class PlatformHTTPError(PublishingError):
    """Non-2xx response from the hosting platform."""

    def __init__(self, status_code: int, message: str = "", body: str = "") -> None:
        kind = "transient error" if _is_retryable_status(status_code) else "failed"
        detail = f"Mux request {kind}: {status_code}"
        if message:
            detail = f"{detail} {message}"
        if body:
            detail = f"{detail} {body[:200]}"
        super().__init__(detail)
        self.status_code = status_code
        self.body = body


class TransferTimeout(PublishingError):
    """The byte transfer was aborted by its per-attempt timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Upload request aborted after {timeout:g}s timeout")
        self.timeout = timeout


class MalformedResponse(PublishingError):
    """The platform answered with a document we could not parse."""


class UploadFailed(PublishingError):
    """The upload could not be completed; carries the last underlying message."""


class PollTimeout(PublishingError):
    def __init__(self, asset_id: str, timeout: float) -> None:
        super().__init__(
            f"Timeout waiting for Mux asset {asset_id} to be ready after {timeout:g}s"
        )
        self.asset_id = asset_id
        self.timeout = timeout


class AssetErrored(PublishingError):
    def __init__(self, asset_id: str, detail: str = "") -> None:
        message = f"Mux asset {asset_id} errored"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.asset_id = asset_id


class TooManyConsecutiveErrors(PublishingError):
    def __init__(self, asset_id: str, count: int, last_error: str = "") -> None:
        message = f"Too many consecutive errors ({count}) polling asset {asset_id}"
        if last_error:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.asset_id = asset_id
        self.count = count


_TRANSIENT_MESSAGE = re.compile(
    r"network|timed?\s?out|socket|econnreset|econnrefused|etimedout|eai_again"
    r"|connection reset|aborted|temporar|transient",
    re.IGNORECASE,
)


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code <= 599


def classify_error(error: BaseException) -> ErrorKind:
    """Return whether ``error`` is worth retrying."""

    if isinstance(error, PlatformHTTPError):
        return ErrorKind.TRANSIENT if _is_retryable_status(error.status_code) else ErrorKind.FATAL
    if isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code
        return ErrorKind.TRANSIENT if _is_retryable_status(status_code) else ErrorKind.FATAL
    if isinstance(error, (MalformedResponse, AssetErrored, UploadFailed, httpx.InvalidURL)):
        return ErrorKind.FATAL
    if isinstance(error, (TransferTimeout, asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TRANSIENT
    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return ErrorKind.TRANSIENT
    if isinstance(error, ConnectionError):
        return ErrorKind.TRANSIENT
    if isinstance(error, OSError):
        return ErrorKind.FATAL
    if _TRANSIENT_MESSAGE.search(str(error)):
        return ErrorKind.TRANSIENT
    return ErrorKind.FATAL


def is_transient(error: BaseException) -> bool:
    return classify_error(error) is ErrorKind.TRANSIENT


_CONNECTION_HINT = re.compile(r"connection|credential|unauthori[sz]ed|\b401\b|\b403\b", re.IGNORECASE)
_PARSE_HINT = re.compile(r"parse|malformed|decode", re.IGNORECASE)
_UPLOAD_HINT = re.compile(r"upload", re.IGNORECASE)


def describe_upload_failure(message: str) -> str:
    """Turn an upload failure message into text suitable for end users."""

    if _CONNECTION_HINT.search(message):
        return "Mux connection failed. Please check your MUX_TOKEN_ID and MUX_TOKEN_SECRET."
    if _PARSE_HINT.search(message):
        return "Failed to parse Mux response. The Mux service may be experiencing issues."
    if _UPLOAD_HINT.search(message):
        return "File upload to Mux failed. Please try again."
    return f"Mux upload failed: {message}"


__all__ = [
    "AcquisitionTimeout",
    "AssetErrored",
    "ErrorKind",
    "MalformedResponse",
    "PlatformHTTPError",
    "PollTimeout",
    "PublishingError",
    "TooManyConsecutiveErrors",
    "TransferTimeout",
    "UploadFailed",
    "classify_error",
    "describe_upload_failure",
    "is_transient",
]
