"""Pytest configuration and fixtures for relay tests.

This module provides shared fixtures: sample lifecycle events, a Lambda
context stand-in, recording fakes for the invoker and reporter, and a
patched ``urlopen`` that captures the callback request.
"""

from __future__ import annotations

import io
import json
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from typing import Mapping
from typing import Optional

import pytest

# Add backend source to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))


# --- Event Fixtures ---


RESPONSE_URL = (
    'https://cloudformation-custom-resource-response-useast1.s3.amazonaws.com/'
    'arn%3Aaws%3Acloudformation%3Aus-east-1%3A123456789012%3Astack/demo/abc%7CWrapped%7Creq-1'
    '?X-Amz-Algorithm=AWS4-HMAC-SHA256&X-Amz-Signature=deadbeef'
)


@pytest.fixture
def lifecycle_event() -> dict:
    """CloudFormation Create request naming a target function."""
    return {
        'RequestType': 'Create',
        'ServiceToken': 'arn:aws:lambda:us-east-1:123456789012:function:wrapping-lambda',
        'ResponseURL': RESPONSE_URL,
        'StackId': 'arn:aws:cloudformation:us-east-1:123456789012:stack/demo/abc',
        'RequestId': 'req-1',
        'LogicalResourceId': 'Wrapped',
        'ResourceType': 'Custom::WrappedLambda',
        'ResourceProperties': {
            'ServiceToken': 'arn:aws:lambda:us-east-1:123456789012:function:wrapping-lambda',
            'LambdaFunctionName': 'target-fn',
            'Payload': {'tables': ['a', 'b']},
        },
    }


@pytest.fixture
def lambda_context() -> SimpleNamespace:
    """Minimal stand-in for the Lambda context object."""
    return SimpleNamespace(
        log_stream_name='2026/10/19/[$LATEST]0123456789abcdef',
        aws_request_id='aws-req-1',
        function_name='wrapping-lambda',
    )


@pytest.fixture
def relay_settings():
    """Default settings without touching the environment."""
    from relay.config import DEFAULT_CALLBACK_HOST_SUFFIXES
    from relay.config import RelaySettings

    return RelaySettings(
        log_level='INFO',
        callback_allowed_host_suffixes=DEFAULT_CALLBACK_HOST_SUFFIXES,
        callback_strict_status=False,
        callback_timeout_seconds=None,
    )


# --- Fakes ---


class RecordingReporter:
    """Reporter that records every report call instead of sending it."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self._error = error

    def report(
        self,
        event: Any,
        context: Any,
        status: str,
        data: Optional[Mapping[str, Any]] = None,
        physical_resource_id: Optional[str] = None,
        no_echo: bool = False,
        reason: Optional[str] = None,
    ) -> None:
        self.calls.append(
            {
                'event': event,
                'context': context,
                'status': status,
                'data': dict(data or {}),
                'physical_resource_id': physical_resource_id,
                'no_echo': no_echo,
                'reason': reason,
            }
        )
        if self._error is not None:
            raise self._error


class FakeInvoker:
    """Invoker returning a canned payload or raising a canned error."""

    def __init__(
        self,
        payload: Optional[dict[str, Any]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.payload = payload
        self.error = error
        self.calls: list[tuple[str, Mapping[str, Any]]] = []

    def invoke(self, function_name: str, payload: Mapping[str, Any]):
        from relay.schemas import InvocationResult

        self.calls.append((function_name, payload))
        if self.error is not None:
            raise self.error
        return InvocationResult(payload=self.payload or {})


@pytest.fixture
def recording_reporter() -> RecordingReporter:
    return RecordingReporter()


# --- HTTP Fixtures ---


class FakeHTTPResponse:
    """Context-manager response returned by the patched urlopen."""

    def __init__(self, status: int = 200, reason: str = 'OK') -> None:
        self.status = status
        self.reason = reason

    def read(self) -> bytes:
        return b''

    def __enter__(self) -> 'FakeHTTPResponse':
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None


@pytest.fixture
def mock_urlopen(mocker):
    """Patch urlopen and capture the outgoing request."""
    mock = mocker.patch('urllib.request.urlopen', return_value=FakeHTTPResponse())
    return mock


# --- Mock Fixtures ---


@pytest.fixture
def mock_lambda_client(mocker):
    """Mock boto3 Lambda client with a successful invoke response."""
    client = mocker.Mock()
    client.invoke.return_value = make_invoke_response(
        {'StatusCode': 200, 'Body': {'ok': True}}
    )
    return client


# --- Utility Functions ---


def make_invoke_response(
    payload: Any,
    function_error: Optional[str] = None,
    raw: Optional[bytes] = None,
) -> dict:
    """Build a Lambda invoke response with a readable Payload stream."""
    body = raw if raw is not None else json.dumps(payload).encode('utf-8')
    response: dict[str, Any] = {
        'StatusCode': 200,
        'ExecutedVersion': '$LATEST',
        'Payload': io.BytesIO(body),
    }
    if function_error:
        response['FunctionError'] = function_error
    return response


def sent_request(mock_urlopen):
    """Return the urllib Request passed to the patched urlopen."""
    assert mock_urlopen.call_count == 1
    return mock_urlopen.call_args.args[0]
