"""Structured logging utilities for the relay Lambda.

This module provides JSON-formatted logging with request context,
suitable for CloudWatch Logs Insights queries.

SECURITY NOTES:
- CloudFormation ResponseURLs are pre-signed; use redact_url() before
  logging them so the signature never reaches the log stream
- Never log credentials or tokens
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Mapping
from typing import MutableMapping
from typing import Optional
from urllib.parse import urlsplit
from urllib.parse import urlunsplit


def redact_url(url: str) -> str:
    """Strip the query string and fragment from a URL for safe logging.

    Args:
        url: The URL to redact, typically a pre-signed ResponseURL.

    Returns:
        The URL without query string, or "***" if it cannot be parsed.

    Examples:
        >>> redact_url("https://bucket.s3.amazonaws.com/key?X-Amz-Signature=abc")
        'https://bucket.s3.amazonaws.com/key'
    """
    if not url:
        return "***"
    try:
        parts = urlsplit(str(url))
    except ValueError:
        return "***"
    if not parts.scheme or not parts.netloc:
        return "***"
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


# Context variables for request tracking
request_id: ContextVar[str] = ContextVar("request_id", default="")
stack_request_id: ContextVar[str] = ContextVar("stack_request_id", default="")

# Attributes every LogRecord carries; anything else came in through `extra`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


class StructuredLogFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Produces log entries compatible with CloudWatch Logs Insights,
    including request context and exception details.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        req_id = request_id.get()
        if req_id:
            log_data["request_id"] = req_id

        cfn_req_id = stack_request_id.get()
        if cfn_req_id:
            log_data["stack_request_id"] = cfn_req_id

        log_data["source"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that automatically includes context variables."""

    def process(
        self,
        msg: str,
        kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        """Process log message to include extra context."""
        extra = kwargs.get("extra", {})

        if self.extra:
            extra.update(self.extra)

        kwargs["extra"] = extra
        return msg, kwargs


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structured logging for Lambda execution.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to
               LOG_LEVEL environment variable or INFO.
    """
    log_level: str = level or os.getenv("LOG_LEVEL") or "INFO"

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level.upper())

    # The Lambda runtime installs its own handler; replace it.
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredLogFormatter())
    root_logger.addHandler(handler)

    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str, **extra: Any) -> ContextLogger:
    """Get a context-aware logger.

    Args:
        name: Logger name (typically __name__).
        **extra: Additional context to include in all log messages.

    Returns:
        A ContextLogger instance.
    """
    logger = logging.getLogger(name)
    return ContextLogger(logger, extra)


def set_request_context(
    req_id: Optional[str] = None,
    cfn_req_id: Optional[str] = None,
) -> None:
    """Set request context for logging.

    Call this at the start of each Lambda invocation.

    Args:
        req_id: AWS request ID from the Lambda context.
        cfn_req_id: CloudFormation RequestId from the lifecycle event.
    """
    if req_id:
        request_id.set(req_id)
    if cfn_req_id:
        stack_request_id.set(cfn_req_id)


def clear_request_context() -> None:
    """Clear request context after Lambda invocation."""
    request_id.set("")
    stack_request_id.set("")


def log_lifecycle_event(
    logger: ContextLogger,
    event: Mapping[str, Any],
) -> None:
    """Log a CloudFormation lifecycle event with the ResponseURL redacted."""
    properties = event.get("ResourceProperties")
    log_data = {
        "request_type": event.get("RequestType"),
        "stack_id": event.get("StackId"),
        "logical_resource_id": event.get("LogicalResourceId"),
        "resource_type": event.get("ResourceType"),
        "response_url": redact_url(str(event.get("ResponseURL") or "")),
        "resource_properties": (
            sorted(properties) if isinstance(properties, Mapping) else None
        ),
    }
    logger.info("Lifecycle event received", extra={"event": log_data})
