"""Relay CloudFormation lifecycle events to a downstream Lambda function.

Flow per event::

    RECEIVED -> VALIDATING -> INVOKING -> REPORTING_SUCCESS | REPORTING_FAILURE -> DONE

A missing ``LambdaFunctionName`` skips INVOKING. Whatever happens, the
reporter is called exactly once; only a failure of that call escapes.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Mapping
from typing import Optional
from typing import Protocol

from relay.exceptions import ApplicationError
from relay.exceptions import ConfigurationError
from relay.exceptions import DeliveryError
from relay.exceptions import InvocationError
from relay.schemas import CompletionStatus
from relay.schemas import InvocationResult
from relay.schemas import LifecycleEvent
from relay.utils.cfn_response import CompletionReporter
from relay.utils.logging import get_logger
from relay.utils.logging import log_lifecycle_event

logger = get_logger(__name__)

FUNCTION_NAME_PROPERTY = "LambdaFunctionName"
FAILURE_PREFIX = "Lambda invocation failed: "
SUCCESS_REASON = "Lambda invocation succeeded"


class Invoker(Protocol):
    """Anything able to make the single downstream call."""

    def invoke(
        self, function_name: str, payload: Mapping[str, Any]
    ) -> InvocationResult: ...


@dataclass(frozen=True)
class Outcome:
    """Classified result of one relay attempt."""

    status: CompletionStatus
    reason: str
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def physical_resource_id(self) -> str:
        return self.reason


class RelayHandler:
    """Invoke the configured function and report the outcome once."""

    def __init__(self, invoker: Invoker, reporter: CompletionReporter) -> None:
        self._invoker = invoker
        self._reporter = reporter

    def handle(self, event: Mapping[str, Any], context: Any) -> None:
        """Process one lifecycle event.

        Raises:
            DeliveryError: if the completion signal could not be delivered.
        """
        log_lifecycle_event(logger, event)
        lifecycle_event = _parse_event(event)

        outcome = self._run(event, lifecycle_event)

        try:
            self._reporter.report(
                lifecycle_event,
                context,
                outcome.status.value,
                data=outcome.data,
                physical_resource_id=outcome.physical_resource_id,
                no_echo=False,
                reason=outcome.reason,
            )
        except DeliveryError:
            logger.error(
                "Completion signal was not delivered",
                extra={
                    "status": outcome.status.value,
                    "logical_resource_id": lifecycle_event.LogicalResourceId,
                },
                exc_info=True,
            )
            raise

    def _run(
        self,
        event: Mapping[str, Any],
        lifecycle_event: LifecycleEvent,
    ) -> Outcome:
        try:
            function_name = _require_function_name(lifecycle_event)
        except ConfigurationError as exc:
            logger.error(
                "Relay is misconfigured",
                extra=exc.to_dict(),
            )
            return _failure(exc.message)

        try:
            result = self._invoker.invoke(function_name, event)
            logger.info(
                "Lambda response received",
                extra={
                    "function_name": function_name,
                    "status_code": result.StatusCode,
                },
            )
            if not result.succeeded:
                raise ApplicationError(result.error_text(), result.StatusCode)
            return Outcome(
                status=CompletionStatus.SUCCESS,
                reason=SUCCESS_REASON,
                data={"Response": result.serialize()},
            )
        except (InvocationError, ApplicationError) as exc:
            logger.error(
                "Lambda invocation failed",
                extra={"function_name": function_name, **exc.to_dict()},
            )
            return _failure(exc.message)
        except Exception as exc:
            logger.error(
                "Unexpected error while relaying lifecycle event",
                extra={"function_name": function_name},
                exc_info=True,
            )
            return _failure(str(exc) or type(exc).__name__)


def _parse_event(event: Mapping[str, Any]) -> LifecycleEvent:
    try:
        return LifecycleEvent.from_event(event)
    except Exception:
        # Keep enough of the event to invoke and address the callback.
        logger.warning("Lifecycle event failed validation", exc_info=True)
        properties = event.get("ResourceProperties")
        return LifecycleEvent.model_construct(
            StackId=str(event.get("StackId") or ""),
            RequestId=str(event.get("RequestId") or ""),
            LogicalResourceId=str(event.get("LogicalResourceId") or ""),
            ResponseURL=str(event.get("ResponseURL") or ""),
            ResourceProperties=(
                dict(properties) if isinstance(properties, Mapping) else None
            ),
        )


def _require_function_name(event: LifecycleEvent) -> str:
    value = event.resource_property(FUNCTION_NAME_PROPERTY)
    if isinstance(value, str):
        value = value.strip()
    if not value:
        raise ConfigurationError(FUNCTION_NAME_PROPERTY)
    return str(value)


def _failure(message: Optional[str]) -> Outcome:
    return Outcome(
        status=CompletionStatus.FAILED,
        reason=f"{FAILURE_PREFIX}{message}",
    )
