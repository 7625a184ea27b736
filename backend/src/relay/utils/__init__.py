"""Utility modules for the relay."""

from relay.utils.logging import (
    configure_logging,
    get_logger,
    redact_url,
    set_request_context,
    clear_request_context,
)

__all__ = [
    "clear_request_context",
    "configure_logging",
    "get_logger",
    "redact_url",
    "set_request_context",
]
