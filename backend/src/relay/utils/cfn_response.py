"""CloudFormation custom resource response helpers."""

from __future__ import annotations

import http.client
import ssl
import urllib.error
import urllib.request
from typing import Any
from typing import Mapping
from typing import Optional
from typing import Protocol
from typing import Sequence
from urllib.parse import urlparse

from relay.config import RelaySettings
from relay.config import load_settings
from relay.exceptions import DeliveryError
from relay.schemas import CompletionSignal
from relay.schemas import CompletionStatus
from relay.schemas import LifecycleEvent
from relay.utils.logging import get_logger
from relay.utils.logging import redact_url

logger = get_logger(__name__)

SUCCESS = CompletionStatus.SUCCESS.value
FAILED = CompletionStatus.FAILED.value


class CompletionReporter(Protocol):
    """Anything able to deliver one completion signal for an event."""

    def report(
        self,
        event: LifecycleEvent,
        context: Any,
        status: str,
        data: Optional[Mapping[str, Any]] = None,
        physical_resource_id: Optional[str] = None,
        no_echo: bool = False,
        reason: Optional[str] = None,
    ) -> None: ...


class CfnResponseReporter:
    """Deliver completion signals to the pre-signed ResponseURL over HTTPS."""

    def __init__(self, settings: Optional[RelaySettings] = None) -> None:
        self._settings = settings or load_settings()

    def report(
        self,
        event: LifecycleEvent,
        context: Any,
        status: str,
        data: Optional[Mapping[str, Any]] = None,
        physical_resource_id: Optional[str] = None,
        no_echo: bool = False,
        reason: Optional[str] = None,
    ) -> None:
        signal = CompletionSignal.build(
            event,
            context,
            status,
            data=data,
            physical_resource_id=physical_resource_id,
            no_echo=no_echo,
            reason=reason,
        )
        send_cfn_response(event.ResponseURL, signal, self._settings)


def send_cfn_response(
    response_url: str,
    signal: CompletionSignal,
    settings: Optional[RelaySettings] = None,
) -> int:
    """PUT a completion signal to a CloudFormation ResponseURL.

    The body is serialized exactly once and the Content-Length header is
    the byte length of that body. CloudFormation expects an empty
    Content-Type.

    Returns:
        The HTTP status returned by the callback endpoint.

    Raises:
        DeliveryError: if the URL is unusable or the request cannot be
            completed. A non-2xx status only raises in strict mode.
    """
    settings = settings or load_settings()
    response_url = str(response_url or "").strip()
    if not response_url:
        raise DeliveryError("Missing ResponseURL in CloudFormation event")
    _validate_response_url(response_url, settings.callback_allowed_host_suffixes)

    body_bytes = signal.to_body()
    logger.info(
        "Sending CloudFormation response",
        extra={
            "status": signal.Status,
            "response_url": redact_url(response_url),
            "content_length": len(body_bytes),
            "response_body": _loggable_body(signal),
        },
    )

    request = urllib.request.Request(
        response_url,
        data=body_bytes,
        method="PUT",
        headers={
            "Content-Type": "",
            "Content-Length": str(len(body_bytes)),
        },
    )

    ssl_context = ssl.create_default_context()
    open_kwargs: dict[str, Any] = {"context": ssl_context}
    if settings.callback_timeout_seconds is not None:
        open_kwargs["timeout"] = settings.callback_timeout_seconds

    try:
        # SECURITY: scheme and hostname are checked by _validate_response_url()
        with urllib.request.urlopen(request, **open_kwargs) as response:  # nosec B310
            response.read()
            http_status = int(response.status)
            http_reason = str(getattr(response, "reason", ""))
    except urllib.error.HTTPError as exc:
        http_status = int(exc.code)
        http_reason = str(exc.reason)
        exc.close()
    except (
        urllib.error.URLError,
        http.client.HTTPException,
        OSError,
        ValueError,
    ) as exc:
        logger.error(
            "Failed to send CloudFormation response",
            extra={
                "status": signal.Status,
                "logical_resource_id": signal.LogicalResourceId,
            },
            exc_info=True,
        )
        raise DeliveryError(
            f"Failed to deliver CloudFormation response: {exc}",
            detail=type(exc).__name__,
        ) from exc

    log_extra = {
        "status": signal.Status,
        "http_status": http_status,
        "http_reason": http_reason,
        "logical_resource_id": signal.LogicalResourceId,
    }
    if 200 <= http_status < 300:
        logger.info("Sent CloudFormation response", extra=log_extra)
        return http_status

    logger.warning("CloudFormation response was not accepted", extra=log_extra)
    if settings.callback_strict_status:
        raise DeliveryError(
            f"CloudFormation response rejected with HTTP {http_status}",
            detail=http_reason,
        )
    return http_status


def _loggable_body(signal: CompletionSignal) -> dict[str, Any]:
    body = signal.model_dump(mode="json")
    if signal.NoEcho:
        body["Data"] = "***"
    return body


def _validate_response_url(
    response_url: str,
    allowed_suffixes: Sequence[str],
) -> None:
    try:
        parsed = urlparse(response_url)
        # Raises ValueError for a non-numeric or out-of-range port.
        _ = parsed.port
    except ValueError as exc:
        raise DeliveryError("CloudFormation ResponseURL is malformed") from exc
    if parsed.scheme != "https":
        raise DeliveryError("CloudFormation ResponseURL must use https")
    hostname = (parsed.hostname or "").lower()
    if not hostname:
        raise DeliveryError("CloudFormation ResponseURL is missing hostname")
    if allowed_suffixes and not hostname.endswith(tuple(allowed_suffixes)):
        raise DeliveryError(
            "CloudFormation ResponseURL hostname is invalid",
            detail=hostname,
        )
