"""Configuration management for Shigen."""

from shigen.core.config.loader import (
    clear_config_cache,
    configure_logging,
    detect_format,
    load_app_config,
    load_config,
)
from shigen.core.config.models import AppConfig, GenerationConfig, ImageLoaderConfig, LoggingConfig

__all__ = [
    # Loaders
    "load_config",
    "load_app_config",
    "detect_format",
    "clear_config_cache",
    "configure_logging",
    # Models
    "AppConfig",
    "GenerationConfig",
    "ImageLoaderConfig",
    "LoggingConfig",
]
