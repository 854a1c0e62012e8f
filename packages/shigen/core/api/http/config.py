from __future__ import annotations

import httpx
from pydantic import BaseModel, Field, field_validator


class HttpClientConfig(BaseModel):
    """Configuration for :class:`AsyncApiClient`.

    Args:
        base_url: Base URL for relative request paths
        timeout: HTTPX timeout; the read timeout bounds the gap between
            streamed chunks, so it must accommodate slow generations
        limits: Connection pool limits
        follow_redirects: Whether to follow HTTP redirects
        headers: Default headers applied to all requests
        params: Default query parameters applied to all requests
        user_agent: User-Agent header value
        redact_headers: Headers to redact in logs (case-insensitive)
        max_response_body_for_error: Max response bytes kept on an ApiError
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    base_url: str
    timeout: httpx.Timeout = Field(default_factory=lambda: httpx.Timeout(120.0, connect=10.0))
    limits: httpx.Limits = Field(
        default_factory=lambda: httpx.Limits(max_keepalive_connections=10, max_connections=50)
    )
    follow_redirects: bool = True
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, str] = Field(default_factory=dict)
    user_agent: str = "shigen/0.1"
    redact_headers: tuple[str, ...] = (
        "authorization",
        "proxy-authorization",
        "cookie",
        "set-cookie",
        "x-api-key",
    )
    max_response_body_for_error: int = 4096

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure base_url is an http(s) URL."""
        if not v:
            raise ValueError("base_url cannot be empty")
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v

    @classmethod
    def with_timeout(cls, base_url: str, timeout_s: float, **kwargs) -> HttpClientConfig:
        """Build a config whose read/write timeout is ``timeout_s``."""
        return cls(base_url=base_url, timeout=httpx.Timeout(timeout_s, connect=10.0), **kwargs)
