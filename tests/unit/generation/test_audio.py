"""Tests for speech synthesis."""

from __future__ import annotations

import httpx
import pytest

from shigen.core.generation.audio import generate_audio, speech_url
from shigen.core.generation.errors import RemoteError
from tests.helpers import make_http

AUDIO_BASE = "https://audio.example.test"


def test_speech_url_encodes_text() -> None:
    assert speech_url("hello world?", base_url=f"{AUDIO_BASE}/") == (
        f"{AUDIO_BASE}/speech?text=hello%20world%3F"
    )


@pytest.mark.asyncio
async def test_returns_audio_bytes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/speech"
        assert request.url.params["text"] == "hi there"
        return httpx.Response(200, headers={"content-type": "audio/mpeg"}, content=b"ID3data")

    http = make_http(handler, base_url=AUDIO_BASE)
    assert await generate_audio(http, "hi there", base_url=AUDIO_BASE) == b"ID3data"


@pytest.mark.asyncio
async def test_error_status() -> None:
    http = make_http(lambda r: httpx.Response(429), base_url=AUDIO_BASE)
    with pytest.raises(RemoteError, match="status: 429") as exc_info:
        await generate_audio(http, "hi", base_url=AUDIO_BASE)
    assert exc_info.value.status_code == 429


@pytest.mark.asyncio
async def test_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    http = make_http(handler, base_url=AUDIO_BASE)
    with pytest.raises(RemoteError, match="Audio generation failed"):
        await generate_audio(http, "hi", base_url=AUDIO_BASE)
