"""Data model for the generation client.

Conversation turns come in from the UI layer; normalized messages, outcomes,
image request specs and validated records go back out.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator


class TurnRole(str, Enum):
    """Speaker of a conversation turn."""

    USER = "user"
    BOT = "bot"


class TurnKind(str, Enum):
    """Content kind of a conversation turn."""

    TEXT = "text"
    IMAGE = "image"
    LOADING = "loading"
    ERROR = "error"
    AUDIO = "audio"


class Turn(BaseModel):
    """One message of a conversation as held by the UI layer."""

    model_config = ConfigDict(frozen=True)

    role: TurnRole
    kind: TurnKind = TurnKind.TEXT
    text: str = ""

    @classmethod
    def user(cls, text: str) -> Turn:
        return cls(role=TurnRole.USER, kind=TurnKind.TEXT, text=text)

    @classmethod
    def bot(cls, text: str) -> Turn:
        return cls(role=TurnRole.BOT, kind=TurnKind.TEXT, text=text)

    @classmethod
    def error(cls, text: str) -> Turn:
        return cls(role=TurnRole.BOT, kind=TurnKind.ERROR, text=text)


class MessageRole(str, Enum):
    """Role of a message sent to the backend."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class NormalizedMessage(BaseModel):
    """One entry of a backend-safe message list."""

    role: MessageRole
    content: str

    def to_wire(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class FailureKind(str, Enum):
    """Actionable failure categories."""

    PREMIUM_REQUIRED = "premium_required"
    REMOTE_ERROR = "remote_error"
    EMPTY_RESPONSE = "empty_response"
    PROTOCOL_ERROR = "protocol_error"


class TextOutcome(BaseModel):
    """Generation produced text."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class CancelledOutcome(BaseModel):
    """The caller cancelled the generation."""

    model_config = ConfigDict(frozen=True)

    type: Literal["cancelled"] = "cancelled"


class FailedOutcome(BaseModel):
    """Generation failed with a classified error."""

    model_config = ConfigDict(frozen=True)

    type: Literal["failed"] = "failed"
    kind: FailureKind
    message: str


GenerationOutcome = Annotated[
    TextOutcome | CancelledOutcome | FailedOutcome, Field(discriminator="type")
]


class ImageRequestSpec(BaseModel):
    """Everything needed to build one generated-image URL."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    model: str
    seed: int | None = Field(default=None, ge=0)
    aspect_ratio: str | None = None
    source_image_url: str | None = None
    negative_prompt: str | None = None
    safe: bool = True


class ModelStatus(str, Enum):
    """Availability of a model as last observed."""

    UNCHECKED = "unchecked"
    CHECKING = "checking"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class TextModelCatalog(BaseModel):
    """Sorted text model names plus their observed statuses."""

    models: list[str]
    statuses: dict[str, ModelStatus]


NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

THEME_COLOR_KEYS: tuple[str, ...] = (
    "--color-background",
    "--color-surface",
    "--color-surface-variant",
    "--color-primary",
    "--color-primary-container",
    "--color-secondary",
    "--color-outline",
    "--color-on-background",
    "--color-on-surface",
    "--color-on-surface-variant",
    "--color-on-primary",
    "--color-on-primary-container",
    "--color-on-secondary",
    "--color-shadow",
)


class Theme(BaseModel):
    """A generated UI theme: a name, 14 CSS colors and two image ideas."""

    model_config = ConfigDict(populate_by_name=True)

    name: NonBlank
    colors: dict[str, str]
    user_dp_idea: NonBlank = Field(alias="userDpIdea")
    wallpaper_idea: NonBlank = Field(alias="wallpaperIdea")

    @field_validator("colors")
    @classmethod
    def validate_colors(cls, v: dict[str, str]) -> dict[str, str]:
        """Require every theme color key."""
        missing = [key for key in THEME_COLOR_KEYS if key not in v]
        if missing:
            raise ValueError(f"colors missing keys: {', '.join(missing)}")
        return v


class StoryScene(BaseModel):
    """One storyboard scene: narrative text plus an image prompt."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    story_text: NonBlank = Field(alias="storyText")
    image_prompt: NonBlank = Field(alias="imagePrompt")


class StoryBeat(BaseModel):
    """A scene already shown to the user, used as continuation context."""

    id: str
    story_text: str
    image_prompt: str = ""
    image_url: str = ""

    @property
    def is_temporary(self) -> bool:
        """Placeholder beats rendered while a continuation is loading."""
        return self.id.startswith("temp-")
