"""Custom exception classes for the relay.

Each exception maps to one way a lifecycle event can fail. The first three
are absorbed by the handler and turned into a FAILED completion signal;
``DeliveryError`` is the only one that escapes the handler.
"""

from __future__ import annotations

from typing import Any
from typing import Optional


class RelayError(Exception):
    """Base exception for relay errors.

    Attributes:
        message: Human-readable error message.
        detail: Optional additional context.
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a loggable mapping."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "error": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        return result


class ConfigurationError(RelayError):
    """Raised when a required resource property is missing.

    No downstream call is attempted when this is raised.
    """

    def __init__(self, property_name: str):
        super().__init__(
            f"{property_name} must be provided in event.ResourceProperties."
        )
        self.property_name = property_name


class InvocationError(RelayError):
    """Raised when the downstream Lambda call could not be completed.

    Wraps transport, auth, decoding and parsing faults as well as errors
    raised by the invoked function itself.
    """


class ApplicationError(RelayError):
    """Raised when the downstream function reports a non-200 status."""

    def __init__(self, message: str, status_code: Any = None):
        super().__init__(message, detail=f"StatusCode: {status_code}")
        self.status_code = status_code


class DeliveryError(RelayError):
    """Raised when the completion signal could not be delivered.

    Never converted into a second signal.
    """
