"""Classification of blocking generation responses."""

from __future__ import annotations

import json
from dataclasses import dataclass

from shigen.core.generation.chunks import describe_error, match_shapes
from shigen.core.generation.errors import (
    EmptyResponseError,
    GenerationError,
    PremiumRequiredError,
    RemoteError,
)

DEFAULT_PREMIUM_KEYWORDS: tuple[str, ...] = (
    "premium",
    "payment required",
    "higher tier",
    "subscription",
    "upgrade",
    "subscribe",
    "paid plan",
    "purchase",
    "unlock",
    "credits required",
    "requires payment",
    "grok",
    "insufficient_quota",
    "payment_required",
)

DEFAULT_EMPTY_SENTINELS: tuple[str, ...] = ("{}", "[]", "null", '""')


@dataclass(frozen=True)
class ResponseClassifier:
    """Turns raw status + body pairs into text or a typed failure.

    Keyword matching for paywalls is a heuristic; both keyword sets come from
    configuration.
    """

    premium_keywords: tuple[str, ...] = DEFAULT_PREMIUM_KEYWORDS
    empty_sentinels: tuple[str, ...] = DEFAULT_EMPTY_SENTINELS

    def is_premium_gate(self, body: str) -> bool:
        lowered = body.lower()
        return any(keyword.lower() in lowered for keyword in self.premium_keywords)

    def error_for_status(self, status_code: int, body: str, model: str) -> GenerationError:
        """Classify a non-success response.

        Paywall keywords anywhere in the body win; otherwise the nested
        ``error`` detail of a JSON body is used, else the raw body.
        """
        if self.is_premium_gate(body):
            return PremiumRequiredError()

        message = f'The model "{model}" failed with status {status_code}.'
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict) and payload.get("error"):
            message = f'Error from model "{model}": {describe_error(payload["error"])}'
        elif body:
            message += f" Details: {body}"
        return RemoteError(message, status_code=status_code)

    def text_from_body(self, body: str) -> str:
        """Extract generated text from a successful response body.

        Raises:
            EmptyResponseError: If the result is blank or an empty sentinel
        """
        text: str | None = None
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict):
            text = match_shapes(payload)
        if text is None:
            text = body.strip()
        if self.is_empty(text):
            raise EmptyResponseError()
        return text

    def is_empty(self, text: str) -> bool:
        stripped = text.strip()
        return not stripped or stripped in self.empty_sentinels
