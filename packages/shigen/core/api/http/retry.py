from __future__ import annotations

import random

from pydantic import BaseModel, Field, field_validator


class RetryPolicy(BaseModel):
    """Exponential backoff policy.

    Used by :class:`~shigen.core.api.http.client.AsyncApiClient` for transient
    HTTP failures and by the image resource loader for its fixed 1s/2s/4s/8s
    schedule (``base_delay_s=1.0, max_delay_s=8.0, jitter=0.0, max_attempts=5``).

    Args:
        max_attempts: Maximum number of attempts (including the initial one)
        base_delay_s: Delay before the first retry
        max_delay_s: Cap on the delay
        jitter: Jitter as fraction of delay (0.15 = +/-15% randomization)
        retry_on_status: HTTP status codes that trigger retries
        retry_methods: HTTP methods eligible for retry (idempotent by default)
        allow_non_idempotent: Allow retrying POST/PUT/PATCH

    Notes:
        Generation requests are POSTs and are therefore never retried by the
        transport; their resilience is the streaming-to-blocking fallback.
    """

    model_config = {"frozen": True}

    max_attempts: int = Field(default=3, ge=1)
    base_delay_s: float = Field(default=0.25, ge=0.0)
    max_delay_s: float = Field(default=5.0, ge=0.0)
    jitter: float = Field(default=0.15, ge=0.0, le=1.0)
    retry_on_status: tuple[int, ...] = (429, 500, 502, 503, 504)
    retry_methods: tuple[str, ...] = ("GET", "HEAD", "OPTIONS", "DELETE")
    allow_non_idempotent: bool = False

    @field_validator("max_delay_s")
    @classmethod
    def validate_max_delay(cls, v: float, info) -> float:
        """Ensure max_delay_s >= base_delay_s."""
        base = info.data.get("base_delay_s", 0.25)
        if v < base:
            raise ValueError("max_delay_s must be >= base_delay_s")
        return v

    @property
    def max_retries(self) -> int:
        """Number of retries after the initial attempt."""
        return self.max_attempts - 1

    def allows_method(self, method: str) -> bool:
        """Check if the given HTTP method is eligible for retry."""
        if method.upper() in self.retry_methods:
            return True
        return self.allow_non_idempotent

    def compute_delay(self, attempt: int) -> float:
        """Compute retry delay with exponential backoff and jitter.

        Args:
            attempt: 1-indexed retry number (1 = first retry after initial failure)

        Returns:
            Delay in seconds before next retry
        """
        delay: float = min(self.max_delay_s, self.base_delay_s * (2 ** (attempt - 1)))
        if self.jitter > 0:
            spread: float = delay * self.jitter
            delay = max(0.0, delay + random.uniform(-spread, spread))
        return delay

    def schedule(self) -> list[float]:
        """All retry delays in order (only meaningful without jitter)."""
        return [self.compute_delay(n) for n in range(1, self.max_attempts)]


def parse_retry_after_seconds(value: str | None) -> float | None:
    """Parse a numeric Retry-After header value to seconds.

    Returns:
        Seconds to wait, or None if missing, negative or not numeric
    """
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if seconds < 0:
        return None
    return seconds
