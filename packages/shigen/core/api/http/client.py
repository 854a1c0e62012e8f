"""Async HTTP client wrapper built on HTTPX.

Provides:
- Automatic retries with exponential backoff for idempotent requests
- Structured error handling (ApiError hierarchy)
- Request/response logging with header redaction
- Streamed responses for line-oriented generation endpoints
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from shigen.core.api.http.config import HttpClientConfig
from shigen.core.api.http.errors import (
    ApiError,
    DecodeError,
    NetworkError,
    TimeoutError,
    error_class_for_status,
)
from shigen.core.api.http.logging_utils import RequestLogContext, log_request, log_response
from shigen.core.api.http.retry import RetryPolicy, parse_retry_after_seconds
from shigen.core.api.http.utils import (
    default_request_id,
    get_request_id,
    is_json_response,
    join_url,
    merge_params,
)


class AsyncApiClient:
    """Asynchronous HTTP API client.

    Args:
        config: Client configuration
        retry_policy: Retry policy (defaults to safe retries on GET/HEAD/OPTIONS/DELETE)
        transport: Optional custom transport (``httpx.MockTransport`` in tests)

    Example:
        >>> config = HttpClientConfig(base_url="https://text.example.com")
        >>> async with AsyncApiClient(config) as client:
        ...     resp = await client.get("/models")
        ...     data = client.json(resp)
    """

    def __init__(
        self,
        config: HttpClientConfig,
        *,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.retry_policy = retry_policy or RetryPolicy()
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers={"User-Agent": config.user_agent, **config.headers},
            timeout=config.timeout,
            limits=config.limits,
            follow_redirects=config.follow_redirects,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncApiClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _prepare(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None,
        headers: Mapping[str, str] | None,
    ) -> tuple[str, str, str, dict[str, str]]:
        method_u = method.upper()
        url = join_url(str(self._client.base_url), path)
        # Extra params merge into any query already present in ``path``
        merged_params = merge_params(self.config.params, params)
        if merged_params:
            url = str(httpx.URL(url).copy_merge_params(merged_params))
        req_id = (headers or {}).get("X-Request-Id") or default_request_id()
        merged_headers = dict(self._client.headers)
        if headers:
            merged_headers.update(headers)
        merged_headers.setdefault("X-Request-Id", req_id)
        return method_u, url, req_id, merged_headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        json_body: Any = None,
        timeout: httpx.Timeout | None = None,
        expected_status: Sequence[int] | None = None,
        raise_for_status: bool = True,
    ) -> httpx.Response:
        """Send a request and read the full body.

        Args:
            method: HTTP method
            path: Path relative to ``base_url`` or an absolute URL
            params: Query parameters (``None`` values are dropped)
            headers: Extra headers
            json_body: JSON-serializable body
            timeout: Per-request timeout override
            expected_status: Acceptable status codes (default: any < 400)
            raise_for_status: When False, non-success responses are returned
                instead of raised, so callers can inspect the body themselves

        Raises:
            ApiError: On transport failure, or on an unexpected status when
                ``raise_for_status`` is set
        """
        method_u, url, req_id, merged_headers = self._prepare(method, path, params, headers)
        attempts = 0

        while True:
            attempts += 1
            ctx = RequestLogContext(method=method_u, url=url, attempt=attempts, request_id=req_id)
            start = log_request(ctx, merged_headers, self.config.redact_headers)

            try:
                resp = await self._client.request(
                    method_u,
                    url,
                    headers=merged_headers,
                    json=json_body,
                    timeout=timeout or self.config.timeout,
                )
                log_response(ctx, resp.status_code, time.perf_counter() - start)

                if raise_for_status:
                    unexpected = (
                        resp.status_code not in expected_status
                        if expected_status is not None
                        else resp.status_code >= 400
                    )
                    if unexpected:
                        raise error_class_for_status(resp.status_code).from_response(
                            resp,
                            message="HTTP error response",
                            request_id=req_id,
                            body_snippet_limit=self.config.max_response_body_for_error,
                        )
                return resp

            except ApiError as e:
                if (
                    e.status_code is None
                    or not self.retry_policy.allows_method(method_u)
                    or e.status_code not in self.retry_policy.retry_on_status
                    or attempts >= self.retry_policy.max_attempts
                ):
                    raise
                retry_after = None
                if e.response_headers:
                    retry_after = parse_retry_after_seconds(e.response_headers.get("Retry-After"))
                delay = (
                    retry_after
                    if retry_after is not None
                    else self.retry_policy.compute_delay(attempts)
                )
                await asyncio.sleep(delay)

            except httpx.TimeoutException as e:
                if (
                    not self.retry_policy.allows_method(method_u)
                    or attempts >= self.retry_policy.max_attempts
                ):
                    raise TimeoutError.from_transport(
                        message="Request timed out",
                        method=method_u,
                        url=url,
                        request_id=req_id,
                        cause=e,
                    ) from e
                await asyncio.sleep(self.retry_policy.compute_delay(attempts))

            except httpx.RequestError as e:
                if (
                    not self.retry_policy.allows_method(method_u)
                    or attempts >= self.retry_policy.max_attempts
                ):
                    raise NetworkError.from_transport(
                        message="Network error while sending request",
                        method=method_u,
                        url=url,
                        request_id=req_id,
                        cause=e,
                    ) from e
                await asyncio.sleep(self.retry_policy.compute_delay(attempts))

    async def open_stream(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        json_body: Any = None,
        timeout: httpx.Timeout | None = None,
    ) -> httpx.Response:
        """Send a request and return as soon as headers arrive.

        The body is left unread and the status is not checked. Streams are
        never retried. The caller owns the response and must ``aclose()`` it.

        Raises:
            TimeoutError: If the connection or headers time out
            NetworkError: On any other transport failure
        """
        method_u, url, req_id, merged_headers = self._prepare(method, path, params, headers)
        ctx = RequestLogContext(
            method=method_u, url=url, attempt=1, request_id=req_id, streaming=True
        )
        start = log_request(ctx, merged_headers, self.config.redact_headers)
        request = self._client.build_request(
            method_u,
            url,
            headers=merged_headers,
            json=json_body,
            timeout=timeout or self.config.timeout,
        )
        try:
            resp = await self._client.send(request, stream=True)
        except httpx.TimeoutException as e:
            raise TimeoutError.from_transport(
                message="Stream timed out before headers",
                method=method_u,
                url=url,
                request_id=req_id,
                cause=e,
            ) from e
        except httpx.RequestError as e:
            raise NetworkError.from_transport(
                message="Network error while opening stream",
                method=method_u,
                url=url,
                request_id=req_id,
                cause=e,
            ) from e
        log_response(ctx, resp.status_code, time.perf_counter() - start)
        return resp

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        """Perform async GET request."""
        return await self.request("GET", path, **kwargs)

    async def head(self, path: str, **kwargs: Any) -> httpx.Response:
        """Perform async HEAD request."""
        return await self.request("HEAD", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        """Perform async POST request."""
        return await self.request("POST", path, **kwargs)

    def json(self, response: httpx.Response, *, require_content_type: bool = False) -> Any:
        """Decode a JSON response body.

        Several generation backends label JSON as ``text/plain``, so the
        content-type is only enforced when ``require_content_type`` is set.

        Raises:
            DecodeError: If the body is not JSON
        """
        if response.status_code == 204 or not response.content:
            return None
        if require_content_type and not is_json_response(response.headers):
            raise DecodeError.from_response(
                response,
                message="Response is not JSON (content-type mismatch)",
                body_snippet_limit=self.config.max_response_body_for_error,
            )
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError.from_response(
                response,
                message="Failed to parse JSON response",
                request_id=get_request_id(response.headers),
                body_snippet_limit=self.config.max_response_body_for_error,
                cause=e,
            ) from e
