"""Failure taxonomy for the generation client.

``GenerationCancelled`` is not a ``GenerationError``: callers that
catch generation failures must never treat a user cancellation as one.
"""

from __future__ import annotations

from shigen.core.generation.models import FailureKind


class GenerationCancelled(Exception):
    """The caller cancelled the operation."""

    def __init__(self, message: str = "Generation cancelled") -> None:
        super().__init__(message)


class GenerationError(Exception):
    """Base class for classified generation failures.

    Attributes:
        kind: Failure category surfaced to the UI layer
        message: User-facing message
    """

    kind: FailureKind = FailureKind.REMOTE_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class PremiumRequiredError(GenerationError):
    """The backend refused the model behind a paywall."""

    kind = FailureKind.PREMIUM_REQUIRED

    def __init__(
        self,
        message: str = "This model requires a premium plan. Please select another model in the settings.",
    ) -> None:
        super().__init__(message)


class RemoteError(GenerationError):
    """The backend answered with an error."""

    kind = FailureKind.REMOTE_ERROR

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class EmptyResponseError(GenerationError):
    """Success status but nothing usable in the body."""

    kind = FailureKind.EMPTY_RESPONSE

    def __init__(self, message: str = "Model returned empty or invalid response.") -> None:
        super().__init__(message)


class ProtocolError(GenerationError):
    """Malformed payload from the backend."""

    kind = FailureKind.PROTOCOL_ERROR


class StructuredParseError(ProtocolError):
    """Model output did not contain parseable JSON."""

    def __init__(self, message: str = "Model did not return valid JSON.", *, raw: str = "") -> None:
        self.raw = raw
        super().__init__(message)


class StructuredValidationError(ProtocolError):
    """Model output was JSON but not of the expected shape."""

    def __init__(self, message: str, *, errors: list[str] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)
