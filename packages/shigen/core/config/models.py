"""Configuration models for Shigen."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from shigen.core.api.http import RetryPolicy
from shigen.core.generation.audio import DEFAULT_AUDIO_BASE_URL
from shigen.core.generation.catalog import (
    EXCLUDED_MODEL_KEYWORDS,
    FALLBACK_IMAGE_MODELS,
    FALLBACK_TEXT_MODELS,
    WHITELISTED_IMAGE_MODELS,
)
from shigen.core.generation.classify import (
    DEFAULT_EMPTY_SENTINELS,
    DEFAULT_PREMIUM_KEYWORDS,
    ResponseClassifier,
)
from shigen.core.generation.client import CHAT_MODEL_KEYWORDS, DEFAULT_TEXT_BASE_URL
from shigen.core.generation.images import DEFAULT_IMAGE_BASE_URL
from shigen.core.generation.prompts import UTILITY_MODEL
from shigen.core.generation.retry_loader import image_retry_policy


class GenerationConfig(BaseModel):
    """Remote generation endpoints and classification settings."""

    model_config = ConfigDict(extra="ignore")

    text_base_url: str = Field(default=DEFAULT_TEXT_BASE_URL, description="Text generation host")
    image_base_url: str = Field(default=DEFAULT_IMAGE_BASE_URL, description="Image generation host")
    audio_base_url: str = Field(default=DEFAULT_AUDIO_BASE_URL, description="Speech host")

    default_text_model: str = Field(default="openai", description="Model used by the CLI chat")
    default_image_model: str = Field(default="flux", description="Model used by the CLI image")
    utility_model: str = Field(
        default=UTILITY_MODEL, description="Fast model for prompt rewriting helpers"
    )

    request_timeout_s: float = Field(
        default=120.0, gt=0, description="Read timeout; bounds the gap between streamed chunks"
    )

    chat_model_keywords: list[str] = Field(
        default_factory=lambda: list(CHAT_MODEL_KEYWORDS),
        description="Model name substrings that select the chat endpoint",
    )
    premium_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PREMIUM_KEYWORDS),
        description="Error body substrings that mean a paid plan is required",
    )
    empty_sentinels: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EMPTY_SENTINELS),
        description="Bodies treated as an empty answer",
    )

    fallback_text_models: list[str] = Field(default_factory=lambda: list(FALLBACK_TEXT_MODELS))
    fallback_image_models: list[str] = Field(default_factory=lambda: list(FALLBACK_IMAGE_MODELS))
    excluded_model_keywords: list[str] = Field(
        default_factory=lambda: list(EXCLUDED_MODEL_KEYWORDS)
    )
    whitelisted_image_models: list[str] = Field(
        default_factory=lambda: list(WHITELISTED_IMAGE_MODELS)
    )

    def response_classifier(self) -> ResponseClassifier:
        return ResponseClassifier(
            premium_keywords=tuple(self.premium_keywords),
            empty_sentinels=tuple(self.empty_sentinels),
        )


class ImageLoaderConfig(BaseModel):
    """Backoff for generated image loading (defaults give 1s, 2s, 4s, 8s)."""

    max_retries: int = Field(default=4, ge=0, description="Retries after the first attempt")
    base_delay_s: float = Field(default=1.0, ge=0.0, description="Delay before the first retry")
    max_delay_s: float = Field(default=8.0, ge=0.0, description="Cap on a single delay")

    def retry_policy(self) -> RetryPolicy:
        return image_retry_policy(self.max_retries, self.base_delay_s, self.max_delay_s)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = Field(default=False, description="Emit JSON log lines")
    filename: str | None = Field(default=None, description="Log file; stdout when unset")


class AppConfig(BaseModel):
    """Application-level configuration."""

    model_config = ConfigDict(extra="ignore")

    generation: GenerationConfig = GenerationConfig()
    image_loader: ImageLoaderConfig = ImageLoaderConfig()
    logging: LoggingConfig = LoggingConfig()

    @classmethod
    def default_path(cls) -> Path:
        """Default path for application config."""
        return Path("shigen.yaml")
