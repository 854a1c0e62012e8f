"""HTTP fakes and payload builders shared by tests."""

from __future__ import annotations

from collections.abc import Callable
import json
from typing import Any

import httpx

from shigen.core.api.http import AsyncApiClient, HttpClientConfig, RetryPolicy

Handler = Callable[[httpx.Request], httpx.Response]

TEXT_BASE = "https://text.example.test"
IMAGE_BASE = "https://image.example.test"


def request_json(request: httpx.Request) -> dict[str, Any]:
    """Decode the JSON body a client sent."""
    return json.loads(request.content)


def sse(*records: Any) -> bytes:
    """Encode records as ``data:`` lines; dicts become JSON."""
    lines = []
    for record in records:
        payload = record if isinstance(record, str) else json.dumps(record)
        lines.append(f"data: {payload}\n")
    return "".join(lines).encode()


def delta(text: str) -> dict[str, Any]:
    return {"choices": [{"delta": {"content": text}}]}


def message(text: str) -> dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


def make_http(handler: Handler, base_url: str = TEXT_BASE, **kwargs: Any) -> AsyncApiClient:
    """AsyncApiClient over a MockTransport; no retries unless a policy is given."""
    kwargs.setdefault("retry_policy", RetryPolicy(max_attempts=1))
    return AsyncApiClient(
        HttpClientConfig(base_url=base_url), transport=httpx.MockTransport(handler), **kwargs
    )


