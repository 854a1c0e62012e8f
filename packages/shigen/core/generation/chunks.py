"""Payload shape matching for generation responses.

Backends disagree on where generated text lives. Each known location is a
registered :class:`ChunkShape`; matchers are tried in registration order and
the first non-empty string wins. Supporting a new backend is one
``register_shape`` call.

The same registry serves streamed records and complete response bodies.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
END_OF_STREAM = "[DONE]"


@dataclass(frozen=True)
class ChunkShape:
    """A named extractor returning text from a decoded payload, or None."""

    name: str
    extract: Callable[[Any], str | None]


_SHAPES: list[ChunkShape] = []


def register_shape(name: str, extract: Callable[[Any], str | None], *, first: bool = False) -> None:
    """Register a payload shape.

    Args:
        name: Identifier used in debug logs
        extract: Function returning the text fragment or None
        first: Try this shape before the built-in ones
    """
    shape = ChunkShape(name=name, extract=extract)
    if first:
        _SHAPES.insert(0, shape)
    else:
        _SHAPES.append(shape)


def registered_shapes() -> list[ChunkShape]:
    return list(_SHAPES)


def match_shapes(payload: Any) -> str | None:
    """Return text from the first matching shape, or None."""
    for shape in _SHAPES:
        try:
            text = shape.extract(payload)
        except (KeyError, IndexError, TypeError, AttributeError):
            continue
        if isinstance(text, str) and text:
            return text
    return None


def _first_choice(payload: Any) -> dict[str, Any]:
    return payload["choices"][0]


def _chat_delta(payload: Any) -> str | None:
    return _first_choice(payload)["delta"]["content"]


def _chat_message(payload: Any) -> str | None:
    return _first_choice(payload)["message"]["content"]


def _flat_field(key: str) -> Callable[[Any], str | None]:
    def extract(payload: Any) -> str | None:
        value = payload.get(key) if isinstance(payload, dict) else None
        return value if isinstance(value, str) else None

    return extract


register_shape("openai.delta", _chat_delta)
register_shape("openai.message", _chat_message)
for _key in ("output", "text", "content", "completion", "response"):
    register_shape(f"field.{_key}", _flat_field(_key))


def describe_error(error: Any) -> str:
    """Human-readable detail from an ``error`` field of any shape."""
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
        return json.dumps(error)
    return str(error)


class RecordKind(str, Enum):
    SKIP = "skip"
    FRAGMENT = "fragment"
    ERROR = "error"


@dataclass(frozen=True)
class ParsedRecord:
    """Result of parsing one streamed record."""

    kind: RecordKind
    text: str = ""


SKIP = ParsedRecord(RecordKind.SKIP)


def parse_record(line: str) -> ParsedRecord:
    """Parse one line of a streamed response.

    - ``data:`` prefixes are stripped; blank lines and ``[DONE]`` are skipped
    - JSON objects with an ``error`` field become ERROR records
    - JSON objects matching a registered shape become FRAGMENT records
    - Anything that is not JSON (or is a bare JSON scalar) is passed through
      verbatim; raw-text backends stream this way
    """
    data = line.strip()
    if data.startswith(DATA_PREFIX):
        data = data[len(DATA_PREFIX) :].strip()
    if not data or data == END_OF_STREAM:
        return SKIP

    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return ParsedRecord(RecordKind.FRAGMENT, data)

    if isinstance(payload, (str, int, float)) and not isinstance(payload, bool):
        return ParsedRecord(RecordKind.FRAGMENT, data)
    if isinstance(payload, dict) and payload.get("error"):
        return ParsedRecord(RecordKind.ERROR, describe_error(payload["error"]))

    text = match_shapes(payload)
    if text is None:
        logger.debug(f"Stream record matched no known shape: {data[:120]}")
        return SKIP
    return ParsedRecord(RecordKind.FRAGMENT, text)
