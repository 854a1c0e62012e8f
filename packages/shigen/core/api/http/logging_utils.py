from __future__ import annotations

import logging
import time
from collections.abc import Mapping

from pydantic import BaseModel

logger = logging.getLogger("shigen.core.api.http")


def redact_headers(headers: Mapping[str, str], redact: tuple[str, ...]) -> dict[str, str]:
    """Replace sensitive header values with ``***REDACTED***``.

    Args:
        headers: Headers to redact
        redact: Header names to redact (case-insensitive)
    """
    red = {v.lower() for v in redact}
    return {k: ("***REDACTED***" if k.lower() in red else v) for k, v in headers.items()}


class RequestLogContext(BaseModel):
    """Context for structured HTTP request logging."""

    method: str
    url: str
    attempt: int
    request_id: str | None = None
    streaming: bool = False


def log_request(
    ctx: RequestLogContext, headers: Mapping[str, str], redact: tuple[str, ...]
) -> float:
    """Log an outgoing request and return the start timestamp."""
    start = time.perf_counter()
    logger.debug(
        "HTTP request",
        extra={
            "method": ctx.method,
            "url": ctx.url,
            "attempt": ctx.attempt,
            "request_id": ctx.request_id,
            "streaming": ctx.streaming,
            "headers": redact_headers(headers, redact),
        },
    )
    return start


def log_response(ctx: RequestLogContext, status_code: int, elapsed_s: float) -> None:
    """Log response status with timing.

    For streamed requests ``elapsed_s`` covers only the time to headers.
    """
    logger.debug(
        "HTTP response",
        extra={
            "method": ctx.method,
            "url": ctx.url,
            "attempt": ctx.attempt,
            "request_id": ctx.request_id,
            "streaming": ctx.streaming,
            "status_code": status_code,
            "elapsed_ms": int(elapsed_s * 1000),
        },
    )
