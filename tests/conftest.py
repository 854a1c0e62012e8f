"""Shared pytest fixtures for shigen tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from shigen.core.config.loader import clear_config_cache
from shigen.core.generation.client import GenerationClient
from tests.helpers import Handler, make_http


@pytest.fixture
def make_client() -> Callable[..., GenerationClient]:
    """Factory for a GenerationClient whose requests go to ``handler``."""

    def factory(handler: Handler, **kwargs: Any) -> GenerationClient:
        return GenerationClient(make_http(handler), **kwargs)

    return factory


@pytest.fixture(autouse=True)
def _fresh_config_cache() -> Iterator[None]:
    clear_config_cache()
    yield
    clear_config_cache()
