"""Synchronous Lambda-to-Lambda invocation.

The invoker makes exactly one ``RequestResponse`` call and hands back the
decoded payload untouched. Interpreting ``StatusCode``/``Body`` is left to
the handler.
"""

from __future__ import annotations

import json
from typing import Any
from typing import Callable
from typing import Mapping
from typing import Optional

from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError

from relay.exceptions import InvocationError
from relay.schemas import InvocationResult
from relay.services.aws_clients import get_lambda_client
from relay.utils.logging import get_logger

logger = get_logger(__name__)


class LambdaInvoker:
    """Invoke a named Lambda function with a JSON payload."""

    def __init__(self, client_factory: Optional[Callable[[], Any]] = None) -> None:
        self._client_factory = client_factory or get_lambda_client

    def invoke(
        self,
        function_name: str,
        payload: Mapping[str, Any],
    ) -> InvocationResult:
        """Invoke ``function_name`` and return its decoded response.

        Raises:
            InvocationError: if the call, decoding or parsing fails, or if
                the function itself raised.
        """
        try:
            request_body = json.dumps(payload, default=str)
            client = self._client_factory()
            response = client.invoke(
                FunctionName=function_name,
                InvocationType="RequestResponse",
                Payload=request_body,
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "ClientError")
            logger.warning(
                "Lambda invoke call rejected",
                extra={"function_name": function_name, "error_code": code},
            )
            raise InvocationError(str(exc), detail=code) from exc
        except (BotoCoreError, TypeError, ValueError) as exc:
            logger.warning(
                "Lambda invoke call failed",
                extra={
                    "function_name": function_name,
                    "error_type": type(exc).__name__,
                },
            )
            raise InvocationError(str(exc), detail=type(exc).__name__) from exc

        decoded = _decode_payload(response)

        function_error = response.get("FunctionError")
        if function_error:
            message = _function_error_message(decoded)
            logger.warning(
                "Invoked function raised an error",
                extra={
                    "function_name": function_name,
                    "function_error": function_error,
                },
            )
            raise InvocationError(message, detail=str(function_error))

        if not isinstance(decoded, dict):
            raise InvocationError(
                f"Expected a JSON object from {function_name}, "
                f"got {type(decoded).__name__}"
            )

        logger.info(
            "Lambda invoke completed",
            extra={
                "function_name": function_name,
                "executed_version": response.get("ExecutedVersion"),
            },
        )
        return InvocationResult(payload=decoded)


def _decode_payload(response: Mapping[str, Any]) -> Any:
    stream = response.get("Payload")
    if stream is None:
        raise InvocationError("Lambda response did not include a Payload")
    try:
        raw = stream.read() if hasattr(stream, "read") else stream
        if isinstance(raw, (bytes, bytearray)):
            text = bytes(raw).decode("utf-8")
        else:
            text = str(raw)
        return json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvocationError(
            f"Lambda response payload is not valid JSON: {exc}",
            detail=type(exc).__name__,
        ) from exc
    except (BotoCoreError, OSError) as exc:
        raise InvocationError(
            f"Failed to read Lambda response payload: {exc}",
            detail=type(exc).__name__,
        ) from exc


def _function_error_message(decoded: Any) -> str:
    if isinstance(decoded, Mapping):
        error_type = decoded.get("errorType")
        error_message = decoded.get("errorMessage")
        if error_type and error_message:
            return f"{error_type}: {error_message}"
        if error_message:
            return str(error_message)
    return f"function raised an unhandled error: {decoded!r}"
