"""HTTPX wrapper used by the generation client.

Exposes a small surface:
- AsyncApiClient: retrying, logging async client with streamed responses
- HttpClientConfig / RetryPolicy: configuration
- Exceptions: ApiError and subclasses
"""

from shigen.core.api.http.client import AsyncApiClient
from shigen.core.api.http.config import HttpClientConfig
from shigen.core.api.http.errors import (
    ApiError,
    AuthError,
    ClientError,
    DecodeError,
    NetworkError,
    RateLimitError,
    ServerError,
    TimeoutError,
    UnexpectedStatusError,
)
from shigen.core.api.http.retry import RetryPolicy

__all__ = [
    "AsyncApiClient",
    "HttpClientConfig",
    "RetryPolicy",
    "ApiError",
    "NetworkError",
    "TimeoutError",
    "DecodeError",
    "RateLimitError",
    "AuthError",
    "ClientError",
    "ServerError",
    "UnexpectedStatusError",
]
