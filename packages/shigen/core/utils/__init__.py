"""Shared utilities."""

from shigen.core.utils.json import dumps, read_json
from shigen.core.utils.logging import StructuredJSONFormatter, configure_logging, get_logger

__all__ = [
    "StructuredJSONFormatter",
    "configure_logging",
    "dumps",
    "get_logger",
    "read_json",
]
