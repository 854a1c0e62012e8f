"""Resilient text generation client.

Two entry points per mode:

- ``stream_text`` / ``complete_text`` yield or return text and raise typed
  errors (``GenerationError`` subclasses, ``GenerationCancelled``)
- ``stream`` / ``generate`` never raise for classified failures and return a
  :data:`GenerationOutcome` instead

Streaming is attempted in two phases. Opening the stream returns either a
live response or a :class:`StreamFallback` value; a fallback value reroutes
the whole call through the blocking request, whose result is delivered as a
single fragment. Errors declared by the backend mid-stream are raised, since
part of the answer may already have been shown.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from shigen.core.api.http import ApiError, AsyncApiClient, HttpClientConfig, RetryPolicy
from shigen.core.generation.cancellation import CancellationToken, ensure_token
from shigen.core.generation.chunks import RecordKind, parse_record
from shigen.core.generation.classify import ResponseClassifier
from shigen.core.generation.conversation import latest_prompt, normalize_conversation
from shigen.core.generation.errors import (
    GenerationCancelled,
    GenerationError,
    ProtocolError,
    RemoteError,
)
from shigen.core.generation.models import (
    CancelledOutcome,
    FailedOutcome,
    GenerationOutcome,
    TextOutcome,
    Turn,
)

logger = logging.getLogger(__name__)

DEFAULT_TEXT_BASE_URL = "https://text.pollinations.ai"

CHAT_MODEL_KEYWORDS: tuple[str, ...] = (
    "gpt",
    "openai",
    "grok",
    "llama",
    "mistral",
    "mixtral",
    "instruct",
    "hermes",
    "zephyr",
    "deepseek",
    "bidara",
)

CHAT_PATH = "/openai"
PROMPT_PATH = "/"


def is_chat_model(model: str, keywords: Sequence[str] = CHAT_MODEL_KEYWORDS) -> bool:
    """Chat-style models take a message list; others take a flat prompt."""
    lowered = model.lower()
    return any(keyword in lowered for keyword in keywords)


class FallbackReason(str, Enum):
    NETWORK = "network"
    STATUS = "status"
    NO_BODY = "no_body"


@dataclass(frozen=True)
class StreamFallback:
    """Why a stream could not be opened; the call continues without streaming."""

    reason: FallbackReason
    detail: str


@dataclass(frozen=True)
class GenerationRequest:
    """Path and JSON body of one generation call."""

    path: str
    model: str
    body: dict[str, Any] = field(default_factory=dict)


async def _next_line(lines: AsyncIterator[str]) -> str | None:
    try:
        return await anext(lines)
    except StopAsyncIteration:
        return None


class GenerationClient:
    """Client for a text generation backend.

    Args:
        http: Transport pointed at the text host
        classifier: Failure classification settings
        chat_model_keywords: Substrings identifying chat-style models

    Example:
        >>> async with GenerationClient.create() as client:
        ...     async for fragment in client.stream_text([Turn.user("hi")], "openai"):
        ...         print(fragment, end="")
    """

    def __init__(
        self,
        http: AsyncApiClient,
        *,
        classifier: ResponseClassifier | None = None,
        chat_model_keywords: Sequence[str] = CHAT_MODEL_KEYWORDS,
    ) -> None:
        self._http = http
        self.classifier = classifier or ResponseClassifier()
        self.chat_model_keywords = tuple(chat_model_keywords)

    @classmethod
    def create(
        cls,
        *,
        base_url: str = DEFAULT_TEXT_BASE_URL,
        timeout_s: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: Any,
    ) -> GenerationClient:
        """Build a client with its own transport."""
        http = AsyncApiClient(
            HttpClientConfig.with_timeout(base_url, timeout_s),
            retry_policy=RetryPolicy(),
            transport=transport,
        )
        return cls(http, **kwargs)

    @property
    def http(self) -> AsyncApiClient:
        return self._http

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> GenerationClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def is_chat_model(self, model: str) -> bool:
        return is_chat_model(model, self.chat_model_keywords)

    def build_request(
        self,
        turns: Sequence[Turn],
        model: str,
        *,
        system_instruction: str | None = None,
        stream: bool = False,
    ) -> GenerationRequest | None:
        """Build the request body, or None when there is nothing to send."""
        if self.is_chat_model(model):
            messages = normalize_conversation(turns, system_instruction)
            if not messages:
                return None
            body: dict[str, Any] = {"model": model, "messages": [m.to_wire() for m in messages]}
            path = CHAT_PATH
        else:
            prompt = latest_prompt(turns)
            if not prompt:
                return None
            body = {"model": model, "prompt": prompt}
            path = PROMPT_PATH
        if stream:
            body["stream"] = True
        return GenerationRequest(path=path, model=model, body=body)

    # =========================================================================
    # Blocking
    # =========================================================================

    async def complete_text(
        self,
        turns: Sequence[Turn],
        model: str,
        *,
        system_instruction: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> str:
        """Generate a complete answer in one request.

        Returns:
            Generated text; empty when the conversation has nothing to send

        Raises:
            GenerationCancelled: If ``cancel`` fires
            PremiumRequiredError, RemoteError, EmptyResponseError: On failure
        """
        cancel = ensure_token(cancel)
        cancel.raise_if_cancelled()
        request = self.build_request(turns, model, system_instruction=system_instruction)
        if request is None:
            logger.debug(f"Nothing to send to {model}")
            return ""

        try:
            response = await cancel.run(
                self._http.post(request.path, json_body=request.body, raise_for_status=False)
            )
        except ApiError as e:
            raise RemoteError(f'Could not reach model "{model}": {e.message}') from e

        body = response.text
        if not response.is_success:
            error = self.classifier.error_for_status(response.status_code, body, model)
            logger.warning(f"Generation with {model} failed: {error.kind.value} ({response.status_code})")
            raise error
        return self.classifier.text_from_body(body)

    async def generate(
        self,
        turns: Sequence[Turn],
        model: str,
        *,
        system_instruction: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> GenerationOutcome:
        """Blocking generation reported as an outcome value."""
        try:
            text = await self.complete_text(
                turns, model, system_instruction=system_instruction, cancel=cancel
            )
        except GenerationCancelled:
            logger.info("Text generation cancelled")
            return CancelledOutcome()
        except GenerationError as e:
            return FailedOutcome(kind=e.kind, message=e.message)
        return TextOutcome(text=text)

    # =========================================================================
    # Streaming
    # =========================================================================

    async def _open_stream(
        self, request: GenerationRequest, cancel: CancellationToken
    ) -> httpx.Response | StreamFallback:
        try:
            response = await cancel.run(
                self._http.open_stream("POST", request.path, json_body=request.body)
            )
        except ApiError as e:
            return StreamFallback(FallbackReason.NETWORK, e.message)

        if not response.is_success:
            await response.aclose()
            return StreamFallback(FallbackReason.STATUS, f"status {response.status_code}")
        if response.status_code == 204 or response.headers.get("content-length") == "0":
            await response.aclose()
            return StreamFallback(FallbackReason.NO_BODY, "response has no body")
        return response

    async def _read_stream(
        self, response: httpx.Response, cancel: CancellationToken
    ) -> AsyncIterator[str]:
        lines = response.aiter_lines()
        try:
            while True:
                cancel.raise_if_cancelled()
                line = await cancel.run(_next_line(lines))
                if line is None:
                    break
                record = parse_record(line)
                if record.kind is RecordKind.ERROR:
                    raise RemoteError(f"Error from model during stream: {record.text}")
                if record.kind is RecordKind.FRAGMENT:
                    yield record.text
        except httpx.TransportError as e:
            raise ProtocolError(f"Stream interrupted: {e}") from e
        finally:
            await response.aclose()

    async def stream_text(
        self,
        turns: Sequence[Turn],
        model: str,
        *,
        system_instruction: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        """Yield text fragments as the backend produces them.

        Falls back to :meth:`complete_text` when the stream cannot be opened;
        the caller sees a single fragment in that case.

        Raises:
            GenerationCancelled: If ``cancel`` fires; the connection is closed
            RemoteError: If the backend reports an error mid-stream
        """
        cancel = ensure_token(cancel)
        cancel.raise_if_cancelled()
        request = self.build_request(
            turns, model, system_instruction=system_instruction, stream=True
        )
        if request is None:
            logger.debug(f"Nothing to stream to {model}")
            return

        opened = await self._open_stream(request, cancel)
        if isinstance(opened, StreamFallback):
            logger.warning(
                f"Streaming unavailable for {model} ({opened.reason.value}: {opened.detail}); "
                "falling back to a blocking request"
            )
            yield await self.complete_text(
                turns, model, system_instruction=system_instruction, cancel=cancel
            )
            return

        async for fragment in self._read_stream(opened, cancel):
            yield fragment

    async def stream(
        self,
        turns: Sequence[Turn],
        model: str,
        *,
        system_instruction: str | None = None,
        cancel: CancellationToken | None = None,
        on_fragment: Callable[[str], None] | None = None,
    ) -> GenerationOutcome:
        """Streaming generation reported as an outcome value.

        Args:
            on_fragment: Called with each fragment as it arrives

        Returns:
            ``TextOutcome`` with the concatenated fragments, ``CancelledOutcome``
            or ``FailedOutcome``
        """
        fragments: list[str] = []
        try:
            async for fragment in self.stream_text(
                turns, model, system_instruction=system_instruction, cancel=cancel
            ):
                fragments.append(fragment)
                if on_fragment is not None:
                    on_fragment(fragment)
        except GenerationCancelled:
            logger.info("Text generation cancelled")
            return CancelledOutcome()
        except GenerationError as e:
            return FailedOutcome(kind=e.kind, message=e.message)
        return TextOutcome(text="".join(fragments))


def outcome_message(outcome: GenerationOutcome, model: str) -> str:
    """User-facing text for an outcome."""
    if isinstance(outcome, TextOutcome):
        return outcome.text
    if isinstance(outcome, CancelledOutcome):
        return "Generation cancelled."
    return outcome.message or f'An unknown error occurred with model "{model}".'
