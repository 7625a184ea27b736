"""Shared boto3 client factory with caching."""

from __future__ import annotations

from typing import Any

import boto3
from botocore.config import Config

# Synchronous invokes can run as long as the target's own timeout (15 minutes
# at most); botocore's default 60s read timeout would cut them short.
LAMBDA_READ_TIMEOUT_SECONDS = 900
LAMBDA_CONNECT_TIMEOUT_SECONDS = 10

_CLIENT_CACHE: dict[tuple[str, str | None], Any] = {}


def get_client(
    service: str,
    region_name: str | None = None,
    config: Config | None = None,
) -> Any:
    """Return a cached boto3 client for the given service.

    Clients are cached per (service, region) so a warm Lambda container
    reuses connections across invocations.
    """
    cache_key = (service, region_name)
    if cache_key in _CLIENT_CACHE:
        return _CLIENT_CACHE[cache_key]
    client = boto3.client(  # type: ignore[call-overload]
        service,
        region_name=region_name,
        config=config,
    )
    _CLIENT_CACHE[cache_key] = client
    return client


def clear_client_cache() -> None:
    """Clear cached boto3 clients (useful in tests)."""
    _CLIENT_CACHE.clear()


def get_lambda_client(region_name: str | None = None) -> Any:
    return get_client(
        "lambda",
        region_name=region_name,
        config=Config(
            read_timeout=LAMBDA_READ_TIMEOUT_SECONDS,
            connect_timeout=LAMBDA_CONNECT_TIMEOUT_SECONDS,
        ),
    )
