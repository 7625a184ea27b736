"""Pydantic models for CloudFormation lifecycle events and completion signals."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any
from typing import Mapping
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

DEFAULT_REASON_PREFIX = "See the details in CloudWatch Log Stream: "
MAX_REASON_LENGTH = 1024
MAX_PHYSICAL_ID_LENGTH = 1024


class CompletionStatus(str, Enum):
    """Outcome reported back to CloudFormation."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class LifecycleEvent(BaseModel):
    """Custom resource request sent by CloudFormation."""

    model_config = ConfigDict(frozen=True, extra="allow")

    RequestType: Any = None
    StackId: str = ""
    RequestId: str = ""
    LogicalResourceId: str = ""
    ResponseURL: str = ""
    ResourceType: Any = None
    PhysicalResourceId: Any = None
    ResourceProperties: Optional[dict[str, Any]] = None
    OldResourceProperties: Optional[dict[str, Any]] = None

    @classmethod
    def from_event(cls, event: Mapping[str, Any]) -> "LifecycleEvent":
        """Build from a raw event, tolerating a malformed ResourceProperties."""
        values = dict(event)
        for key in ("ResourceProperties", "OldResourceProperties"):
            if not isinstance(values.get(key), Mapping):
                values.pop(key, None)
        for key in ("StackId", "RequestId", "LogicalResourceId", "ResponseURL"):
            if values.get(key) is None:
                values.pop(key, None)
            else:
                values[key] = str(values[key])
        return cls.model_validate(values)

    def resource_property(self, key: str) -> Any:
        return (self.ResourceProperties or {}).get(key)


class InvocationResult(BaseModel):
    """Decoded response of the downstream Lambda function.

    ``payload`` keeps the response verbatim; ``StatusCode`` and ``Body``
    are read from it without interpretation.
    """

    model_config = ConfigDict(frozen=True)

    payload: dict[str, Any]

    @property
    def StatusCode(self) -> Any:
        return self.payload.get("StatusCode")

    @property
    def Body(self) -> Any:
        return self.payload.get("Body")

    @property
    def succeeded(self) -> bool:
        status = self.StatusCode
        if isinstance(status, bool) or not isinstance(status, (int, float)):
            return False
        return status == 200

    def error_text(self) -> str:
        """Return the downstream ``Body.Error`` text, or the body itself."""
        body = self.Body
        if isinstance(body, Mapping) and "Error" in body:
            return str(body["Error"])
        if body is None:
            return f"function returned StatusCode {self.StatusCode!r} without a Body"
        return json.dumps(body, default=str)

    def serialize(self) -> str:
        """Compact JSON form used as ``Data.Response``."""
        return json.dumps(
            self.payload, separators=(",", ":"), ensure_ascii=False, default=str
        )


class CompletionSignal(BaseModel):
    """Response body PUT to the CloudFormation ResponseURL."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    Status: CompletionStatus
    Reason: str
    PhysicalResourceId: str
    StackId: str
    RequestId: str
    LogicalResourceId: str
    NoEcho: bool = False
    Data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def build(
        cls,
        event: LifecycleEvent,
        context: Any,
        status: CompletionStatus | str,
        data: Optional[Mapping[str, Any]] = None,
        physical_resource_id: Optional[str] = None,
        no_echo: bool = False,
        reason: Optional[str] = None,
    ) -> "CompletionSignal":
        """Create a signal, resolving omitted fields from the context.

        ``Reason`` defaults to a pointer at the invocation's log stream and
        ``PhysicalResourceId`` defaults to the log stream name itself.
        """
        log_stream = _log_stream_name(context)
        resolved_reason = reason or f"{DEFAULT_REASON_PREFIX}{log_stream}"
        resolved_physical_id = physical_resource_id or log_stream
        return cls(
            Status=CompletionStatus(status),
            Reason=resolved_reason[:MAX_REASON_LENGTH],
            PhysicalResourceId=resolved_physical_id[:MAX_PHYSICAL_ID_LENGTH],
            StackId=event.StackId,
            RequestId=event.RequestId,
            LogicalResourceId=event.LogicalResourceId,
            NoEcho=bool(no_echo),
            Data=dict(data or {}),
        )

    def to_body(self) -> bytes:
        """Serialize once; the returned bytes are what gets sent."""
        return json.dumps(self.model_dump(mode="json")).encode("utf-8")


def _log_stream_name(context: Any) -> str:
    if context is None:
        return ""
    return str(getattr(context, "log_stream_name", "") or "")
