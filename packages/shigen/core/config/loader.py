"""Configuration loading utilities with JSON and YAML support."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from shigen.core.config.models import AppConfig
from shigen.core.utils.json import read_json
from shigen.core.utils.logging import configure_logging as _configure_logging

logger = logging.getLogger(__name__)

_app_config_cache: AppConfig | None = None

# Environment variable -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "SHIGEN_TEXT_BASE_URL": ("generation", "text_base_url"),
    "SHIGEN_IMAGE_BASE_URL": ("generation", "image_base_url"),
    "SHIGEN_AUDIO_BASE_URL": ("generation", "audio_base_url"),
    "SHIGEN_LOG_LEVEL": ("logging", "level"),
}


def detect_format(file_path: Path | str) -> str:
    """Detect config file format from extension.

    Raises:
        ValueError: If format cannot be determined

    Example:
        >>> detect_format("shigen.json")
        'json'
        >>> detect_format("shigen.yml")
        'yaml'
    """
    suffix = Path(file_path).suffix.lower()
    if suffix == ".json":
        return "json"
    elif suffix in [".yaml", ".yml"]:
        return "yaml"
    else:
        raise ValueError(f"Unsupported config format: {suffix}")


def load_config(path: str | Path) -> dict[str, Any]:
    """Load a raw configuration dictionary from JSON or YAML.

    Raises:
        FileNotFoundError: If config file does not exist
        ValueError: If format is not supported or file content is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    fmt = detect_format(path)
    if fmt == "json":
        try:
            return read_json(path)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e

    try:
        with path.open("r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    # safe_load returns None for empty files
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(f"Expected a mapping in {path}, got {type(content).__name__}")
    return content


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration.

    A missing file yields the defaults. Environment overrides are applied last.
    The result for the default path is cached.

    Raises:
        ValidationError: If config is invalid
    """
    global _app_config_cache

    default_path = AppConfig.default_path()
    if path is None:
        path = default_path
    is_default = Path(path) == default_path

    if _app_config_cache is not None and is_default:
        return _app_config_cache

    if Path(path).exists():
        config = AppConfig.model_validate(load_config(path))
    else:
        config = AppConfig()

    config = _apply_env_overrides(config)

    if is_default:
        _app_config_cache = config
    return config


def clear_config_cache() -> None:
    global _app_config_cache
    _app_config_cache = None


def configure_logging(config: AppConfig | None = None) -> None:
    """Configure Python logging from app config (loads the default if None)."""
    if config is None:
        config = load_app_config()
    _configure_logging(
        level=config.logging.level,
        format_string=config.logging.format,
        filename=config.logging.filename,
        structured=config.logging.structured,
    )


def _apply_env_overrides(config: AppConfig) -> AppConfig:
    """Return ``config`` with set SHIGEN_* environment variables applied."""
    updates: dict[str, dict[str, str]] = {}
    for env_var, (section, field) in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            logger.debug(f"Loaded {env_var} from environment")
            if field == "level":
                value = value.upper()
            updates.setdefault(section, {})[field] = value

    if not updates:
        return config
    data = config.model_dump()
    for section, fields in updates.items():
        data[section].update(fields)
    return AppConfig.model_validate(data)
