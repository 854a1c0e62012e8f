"""Speech synthesis."""

from __future__ import annotations

import logging
from urllib.parse import quote

from shigen.core.api.http import ApiError, AsyncApiClient
from shigen.core.generation.cancellation import CancellationToken, ensure_token
from shigen.core.generation.errors import RemoteError

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_BASE_URL = "https://audio.pollinations.ai"


def speech_url(text: str, *, base_url: str = DEFAULT_AUDIO_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/speech?text={quote(text, safe='')}"


async def generate_audio(
    http: AsyncApiClient,
    text: str,
    *,
    base_url: str = DEFAULT_AUDIO_BASE_URL,
    cancel: CancellationToken | None = None,
) -> bytes:
    """Synthesize ``text`` and return the audio bytes.

    Raises:
        RemoteError: If the request fails or answers with a non-2xx status
        GenerationCancelled: If ``cancel`` fires
    """
    cancel = ensure_token(cancel)
    url = speech_url(text, base_url=base_url)
    try:
        response = await cancel.run(http.get(url, raise_for_status=False))
    except ApiError as e:
        raise RemoteError(f"Audio generation failed: {e.message}") from e
    if not response.is_success:
        raise RemoteError(
            f"Audio generation failed with status: {response.status_code}",
            status_code=response.status_code,
        )
    logger.debug(f"Generated {len(response.content)} bytes of audio")
    return response.content
