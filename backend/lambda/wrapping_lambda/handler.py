"""Lambda handler for the CloudFormation wrapping custom resource.

The custom resource names the target function in
``ResourceProperties.LambdaFunctionName``; this handler invokes it
synchronously and reports the result back to CloudFormation.
"""

from __future__ import annotations

from typing import Any, Mapping

from relay.config import load_settings
from relay.handler import RelayHandler
from relay.services.invoker import LambdaInvoker
from relay.utils.cfn_response import CfnResponseReporter
from relay.utils.logging import clear_request_context, configure_logging
from relay.utils.logging import get_logger, set_request_context

_settings = load_settings()
configure_logging(_settings.log_level)
logger = get_logger(__name__)


def build_handler() -> RelayHandler:
    """Wire the default invoker and reporter."""
    return RelayHandler(
        invoker=LambdaInvoker(),
        reporter=CfnResponseReporter(_settings),
    )


def lambda_handler(event: Mapping[str, Any], context: Any) -> None:
    """Handle CloudFormation custom resource events for the wrapped function."""

    set_request_context(
        req_id=getattr(context, "aws_request_id", None),
        cfn_req_id=str(event.get("RequestId") or "") or None,
    )
    try:
        build_handler().handle(event, context)
    finally:
        clear_request_context()
