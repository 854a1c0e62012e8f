"""Recovery of JSON records embedded in free-form model output.

Models asked for JSON routinely wrap it in prose or markdown fences. The span
from the first opening bracket to the last closing bracket is taken as the
payload. This is a best-effort heuristic: prose that itself contains brackets
can widen the span and make the parse fail.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from shigen.core.generation.errors import StructuredParseError, StructuredValidationError
from shigen.core.generation.models import StoryScene, Theme

logger = logging.getLogger(__name__)

_CLOSERS = {"[": "]", "{": "}"}

_SCENES = TypeAdapter(list[StoryScene])


def extract_json_span(text: str, opener: str) -> Any:
    """Parse the outermost ``opener``...closer span of ``text``.

    Args:
        text: Model output
        opener: ``"["`` for arrays or ``"{"`` for objects

    Returns:
        Decoded JSON value

    Raises:
        StructuredParseError: If no span exists or it is not valid JSON
    """
    closer = _CLOSERS.get(opener)
    if closer is None:
        raise ValueError(f"Unsupported opener: {opener!r}")

    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end < start:
        raise StructuredParseError(raw=text)
    try:
        return json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        logger.debug(f"JSON span failed to parse: {e}")
        raise StructuredParseError(raw=text) from e


def _describe(e: ValidationError) -> list[str]:
    return [f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()]


def parse_theme(text: str) -> Theme:
    """Extract and validate a theme object.

    Raises:
        StructuredParseError: If no JSON object can be parsed
        StructuredValidationError: If the object is not a complete theme
    """
    data = extract_json_span(text, "{")
    try:
        return Theme.model_validate(data)
    except ValidationError as e:
        errors = _describe(e)
        raise StructuredValidationError(
            "Model returned a theme with missing or invalid fields.", errors=errors
        ) from e


def parse_story_scenes(text: str) -> list[StoryScene]:
    """Extract and validate a list of story scenes.

    An empty list is valid and means the story has nothing more to add.

    Raises:
        StructuredParseError: If no JSON array can be parsed
        StructuredValidationError: If any element lacks text or an image prompt
    """
    data = extract_json_span(text, "[")
    try:
        return _SCENES.validate_python(data)
    except ValidationError as e:
        errors = _describe(e)
        raise StructuredValidationError(
            "Model returned story scenes with missing or invalid fields.", errors=errors
        ) from e
