"""Telemetry helpers and metrics."""

from .metrics import (
    ACTIVE_PUBLISH_SLOTS,
    ERROR_COUNTER,
    POLL_COUNTER,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    TRANSFER_RETRY_COUNTER,
    UPLOAD_COUNTER,
    observe_poll,
    observe_request,
    observe_transfer_retry,
    observe_upload,
)

__all__ = [
    "ACTIVE_PUBLISH_SLOTS",
    "ERROR_COUNTER",
    "POLL_COUNTER",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "TRANSFER_RETRY_COUNTER",
    "UPLOAD_COUNTER",
    "observe_poll",
    "observe_request",
    "observe_transfer_retry",
    "observe_upload",
]
