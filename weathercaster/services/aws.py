"""Shared AWS helpers for service clients."""

from __future__ import annotations

from typing import Any

import boto3

from weathercaster.config.settings import settings


def create_boto3_client(
    service_name: str,
    *,
    region_name: str | None = None,
    aws_access_key_id: str | None = None,
    aws_secret_access_key: str | None = None,
) -> Any:
    """Instantiate a boto3 client, preferring explicit credentials, then Polly's."""

    region = region_name or settings.polly.region
    client_kwargs: dict[str, Any] = {"region_name": region}
    if aws_access_key_id and aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = aws_access_key_id
        client_kwargs["aws_secret_access_key"] = aws_secret_access_key
    elif settings.polly.access_key and settings.polly.secret_key:
        client_kwargs["aws_access_key_id"] = settings.polly.access_key
        client_kwargs["aws_secret_access_key"] = settings.polly.secret_key
    # Otherwise boto3 falls back to its default credential chain.
    return boto3.client(service_name, **client_kwargs)


__all__ = ["create_boto3_client"]
