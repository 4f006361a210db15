"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
        30.0,
        60.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

UPLOAD_COUNTER = Counter(
    "publish_uploads_total",
    "Completed upload attempts by outcome",
    ("outcome",),
)

TRANSFER_RETRY_COUNTER = Counter(
    "publish_transfer_retries_total",
    "Byte-transfer attempts that were retried after a transient failure",
)

POLL_COUNTER = Counter(
    "publish_readiness_polls_total",
    "Settled asset readiness polls by outcome",
    ("outcome",),
)

ACTIVE_PUBLISH_SLOTS = Gauge(
    "publish_active_slots",
    "Publishing slots currently held",
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def observe_upload(outcome: str) -> None:
    """Count an upload that succeeded, failed, or fell back to the upload id."""

    UPLOAD_COUNTER.labels(outcome=outcome).inc()


def observe_transfer_retry() -> None:
    TRANSFER_RETRY_COUNTER.inc()


def observe_poll(outcome: str) -> None:
    POLL_COUNTER.labels(outcome=outcome).inc()
