from __future__ import annotations

import httpx
from pydantic import BaseModel, Field

from shigen.core.api.http.utils import get_request_id, safe_snippet


class ApiErrorData(BaseModel):
    """Structured data for HTTP transport errors.

    Args:
        message: Human-readable error description
        method: HTTP method (GET, POST, etc.)
        url: Request URL
        status_code: HTTP status code (if a response was received)
        request_id: Request ID for tracing
        response_headers: Response headers (if available)
        response_body_snippet: Truncated response body for debugging
        cause: Original exception that caused this error
    """

    model_config = {"arbitrary_types_allowed": True}

    message: str
    method: str
    url: str
    status_code: int | None = None
    request_id: str | None = None
    response_headers: dict[str, str] | None = None
    response_body_snippet: str | None = None
    cause: BaseException | None = Field(default=None, repr=False)


class ApiError(Exception):
    """Base exception for all HTTP transport errors.

    Attributes mirror the fields of :class:`ApiErrorData` for ergonomic access.
    """

    def __init__(
        self,
        *,
        message: str,
        method: str,
        url: str,
        status_code: int | None = None,
        request_id: str | None = None,
        response_headers: dict[str, str] | None = None,
        response_body_snippet: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.data = ApiErrorData(
            message=message,
            method=method,
            url=url,
            status_code=status_code,
            request_id=request_id,
            response_headers=response_headers,
            response_body_snippet=response_body_snippet,
            cause=cause,
        )
        self.message = self.data.message
        self.method = self.data.method
        self.url = self.data.url
        self.status_code = self.data.status_code
        self.request_id = self.data.request_id
        self.response_headers = self.data.response_headers
        self.response_body_snippet = self.data.response_body_snippet
        self.cause = self.data.cause

        super().__init__(str(self))

    @classmethod
    def from_response(
        cls,
        response: httpx.Response,
        *,
        message: str,
        request_id: str | None = None,
        body_snippet_limit: int = 4096,
        cause: BaseException | None = None,
    ) -> ApiError:
        """Build an error carrying the status, headers and body of ``response``.

        The response body must already be read.
        """
        return cls(
            message=message,
            method=response.request.method,
            url=str(response.request.url),
            status_code=response.status_code,
            request_id=request_id or get_request_id(response.headers),
            response_headers=dict(response.headers),
            response_body_snippet=safe_snippet(response.content or b"", body_snippet_limit),
            cause=cause,
        )

    @classmethod
    def from_transport(
        cls, *, message: str, method: str, url: str, request_id: str | None, cause: BaseException
    ) -> ApiError:
        """Build an error for a request that never produced a response."""
        return cls(message=message, method=method, url=url, request_id=request_id, cause=cause)

    def __str__(self) -> str:
        parts = [self.message, f"{self.method} {self.url}"]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.request_id:
            parts.append(f"request_id={self.request_id}")
        return " | ".join(parts)


class NetworkError(ApiError):
    """Network-level error (DNS, connection reset, etc.)."""


class TimeoutError(ApiError):
    """Request timed out."""


class DecodeError(ApiError):
    """Failed to decode response body (JSON/schema)."""


class RateLimitError(ApiError):
    """HTTP 429 rate limit error."""


class AuthError(ApiError):
    """HTTP 401/403 authentication or authorization error."""


class ClientError(ApiError):
    """HTTP 4xx client error (excluding auth and rate limit)."""


class ServerError(ApiError):
    """HTTP 5xx server error."""


class UnexpectedStatusError(ApiError):
    """Non-2xx status that doesn't match a more specific category."""


def error_class_for_status(status_code: int) -> type[ApiError]:
    """Map an HTTP status code to its error class."""
    if status_code in (401, 403):
        return AuthError
    if status_code == 429:
        return RateLimitError
    if 400 <= status_code < 500:
        return ClientError
    if 500 <= status_code < 600:
        return ServerError
    return UnexpectedStatusError
