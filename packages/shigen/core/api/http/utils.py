"""Utility functions for HTTP client operations."""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any
from urllib.parse import urljoin


def join_url(base_url: str, path: str) -> str:
    """Join base URL with path.

    Absolute ``path`` values (``http://``/``https://``) are returned unchanged,
    so one client can address the text, image and audio hosts.

    Args:
        base_url: Base URL (e.g. "https://text.example.com")
        path: Request path or absolute URL

    Returns:
        Joined URL
    """
    if path.startswith(("http://", "https://")):
        return path
    base = base_url if base_url.endswith("/") else base_url + "/"
    return urljoin(base, path.lstrip("/"))


def merge_params(base: Mapping[str, str], extra: Mapping[str, Any] | None) -> dict[str, str]:
    """Merge default query params with request-specific ones (values stringified)."""
    out = dict(base)
    if extra:
        out.update({k: str(v) for k, v in extra.items() if v is not None})
    return out


def default_request_id() -> str:
    """Generate a timestamp-based request ID."""
    return f"req_{int(time.time() * 1000)}"


def safe_snippet(content: bytes, limit: int) -> str:
    """Decode at most ``limit`` bytes of a body for logs and errors.

    Args:
        content: Response body bytes
        limit: Maximum number of bytes to include

    Returns:
        Truncated, decoded text snippet
    """
    if not content:
        return ""
    return content[:limit].decode("utf-8", errors="replace")


def get_request_id(headers: Mapping[str, str]) -> str | None:
    """Extract request ID from common tracing headers (case-insensitive)."""
    for key in ("x-request-id", "x-correlation-id", "request-id", "trace-id"):
        for hk, hv in headers.items():
            if hk.lower() == key:
                return hv
    return None


def is_json_response(headers: Mapping[str, str]) -> bool:
    """Check if a content-type header indicates JSON."""
    ctype = headers.get("content-type", "")
    return "application/json" in ctype or "+json" in ctype
