"""AWS service helpers for the relay."""

from relay.services.aws_clients import clear_client_cache, get_client, get_lambda_client
from relay.services.invoker import LambdaInvoker

__all__ = [
    "LambdaInvoker",
    "clear_client_cache",
    "get_client",
    "get_lambda_client",
]
