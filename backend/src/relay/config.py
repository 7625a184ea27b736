"""Runtime settings for the relay Lambda."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any
from typing import Optional
from typing import Sequence

DEFAULT_CALLBACK_HOST_SUFFIXES = (".amazonaws.com", ".amazonaws.com.cn")


@dataclass(frozen=True)
class RelaySettings:
    log_level: str
    callback_allowed_host_suffixes: Sequence[str]
    callback_strict_status: bool
    callback_timeout_seconds: Optional[float]


def load_settings() -> RelaySettings:
    return RelaySettings(
        log_level=os.getenv("LOG_LEVEL", "").strip().upper() or "INFO",
        callback_allowed_host_suffixes=_parse_suffixes(
            os.getenv("CALLBACK_ALLOWED_HOST_SUFFIXES")
        ),
        callback_strict_status=_truthy(os.getenv("CALLBACK_STRICT_STATUS")),
        callback_timeout_seconds=_parse_timeout(
            os.getenv("CALLBACK_TIMEOUT_SECONDS")
        ),
    )


def _parse_suffixes(raw: Optional[str]) -> tuple[str, ...]:
    # Unset keeps the AWS defaults, an empty string disables the check.
    if raw is None:
        return DEFAULT_CALLBACK_HOST_SUFFIXES
    return tuple(part.strip().lower() for part in raw.split(",") if part.strip())


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise ValueError("CALLBACK_TIMEOUT_SECONDS must be a number") from exc
    if value <= 0:
        raise ValueError("CALLBACK_TIMEOUT_SECONDS must be positive")
    return value


def _truthy(value: Any) -> bool:
    """Return True for common truthy values."""

    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "y"}
