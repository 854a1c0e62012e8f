"""Resilient generation client.

Text generation with streaming fallback and cancellation, failure
classification, structured output extraction, image URL building and
retrying image loads.
"""

from shigen.core.generation.cancellation import CancellationToken
from shigen.core.generation.chunks import register_shape
from shigen.core.generation.classify import ResponseClassifier
from shigen.core.generation.client import (
    GenerationClient,
    StreamFallback,
    is_chat_model,
    outcome_message,
)
from shigen.core.generation.conversation import normalize_conversation
from shigen.core.generation.errors import (
    EmptyResponseError,
    GenerationCancelled,
    GenerationError,
    PremiumRequiredError,
    ProtocolError,
    RemoteError,
    StructuredParseError,
    StructuredValidationError,
)
from shigen.core.generation.images import build_image_batch, build_image_url, normalize_dimensions
from shigen.core.generation.models import (
    CancelledOutcome,
    FailedOutcome,
    FailureKind,
    GenerationOutcome,
    ImageRequestSpec,
    StoryBeat,
    StoryScene,
    TextOutcome,
    Theme,
    Turn,
    TurnKind,
    TurnRole,
)
from shigen.core.generation.retry_loader import LoadStatus, ResourceLoader, RetryState
from shigen.core.generation.structured import (
    extract_json_span,
    parse_story_scenes,
    parse_theme,
)

__all__ = [
    # Client
    "GenerationClient",
    "StreamFallback",
    "ResponseClassifier",
    "CancellationToken",
    "is_chat_model",
    "outcome_message",
    "register_shape",
    "normalize_conversation",
    # Images
    "normalize_dimensions",
    "build_image_url",
    "build_image_batch",
    "ResourceLoader",
    "RetryState",
    "LoadStatus",
    # Structured output
    "extract_json_span",
    "parse_theme",
    "parse_story_scenes",
    # Models
    "Turn",
    "TurnRole",
    "TurnKind",
    "ImageRequestSpec",
    "GenerationOutcome",
    "TextOutcome",
    "CancelledOutcome",
    "FailedOutcome",
    "FailureKind",
    "Theme",
    "StoryScene",
    "StoryBeat",
    # Errors
    "GenerationCancelled",
    "GenerationError",
    "PremiumRequiredError",
    "RemoteError",
    "EmptyResponseError",
    "ProtocolError",
    "StructuredParseError",
    "StructuredValidationError",
]
