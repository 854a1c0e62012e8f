"""Model listing and health checks.

Listing endpoints disagree on shape and are often down, so every fetch
degrades to a built-in list instead of failing.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from shigen.core.api.http import ApiError, AsyncApiClient
from shigen.core.generation.cancellation import CancellationToken, ensure_token
from shigen.core.generation.client import DEFAULT_TEXT_BASE_URL, GenerationClient
from shigen.core.generation.errors import GenerationError
from shigen.core.generation.images import DEFAULT_IMAGE_BASE_URL, build_image_url
from shigen.core.generation.models import ImageRequestSpec, ModelStatus, TextModelCatalog, Turn

logger = logging.getLogger(__name__)

TEXT_MODEL_PATHS: tuple[str, ...] = ("/openai/v1/models", "/models")

FALLBACK_TEXT_MODELS: tuple[str, ...] = (
    "openai-fast",
    "openhermes-2.5-mistral-7b",
    "zephyr-7b-beta",
)
FALLBACK_IMAGE_MODELS: tuple[str, ...] = (
    "flux",
    "flux-realism",
    "flux-anime",
    "flux-3d",
    "turbo",
    "sdxl",
    "dall-e-3",
)
EXCLUDED_MODEL_KEYWORDS: tuple[str, ...] = (
    "whisper",
    "kontext",
    "mistral-7b-instruct-v0.2",
    "embedding",
    "audio",
    "music",
)
# Fast image models whose HEAD checks are unreliable
WHITELISTED_IMAGE_MODELS: tuple[str, ...] = FALLBACK_IMAGE_MODELS


def _online_status(info: Any) -> ModelStatus:
    if isinstance(info, dict) and isinstance(info.get("is_online"), bool):
        return ModelStatus.AVAILABLE if info["is_online"] else ModelStatus.UNAVAILABLE
    return ModelStatus.UNCHECKED


def _collect_models(raw: Any) -> dict[str, ModelStatus]:
    # OpenAI-compatible listing; presence implies availability
    if isinstance(raw, dict) and isinstance(raw.get("data"), list):
        return {
            item["id"]: ModelStatus.AVAILABLE
            for item in raw["data"]
            if isinstance(item, dict) and isinstance(item.get("id"), str)
        }
    if isinstance(raw, dict):
        return {name: _online_status(info) for name, info in raw.items()}
    if isinstance(raw, list) and all(isinstance(item, str) for item in raw):
        return {name: ModelStatus.UNCHECKED for name in raw}
    if isinstance(raw, list) and all(
        isinstance(item, dict) and (item.get("id") or item.get("name")) for item in raw
    ):
        return {str(item.get("id") or item.get("name")): _online_status(item) for item in raw}
    raise ValueError("Unexpected format for text models")


def is_excluded_model(name: str, excluded: Sequence[str] = EXCLUDED_MODEL_KEYWORDS) -> bool:
    """Models unsuitable for chat: speech, embeddings, music and old mistral builds."""
    lowered = name.lower()
    if any(keyword in lowered for keyword in excluded):
        return True
    return "mistral" in lowered and ("2.0" in lowered or "2.o" in lowered)


def parse_text_models(
    raw: Any, excluded: Sequence[str] = EXCLUDED_MODEL_KEYWORDS
) -> TextModelCatalog:
    """Parse any supported listing shape into a sorted, filtered catalog.

    Raises:
        ValueError: If the shape is unknown or nothing survives filtering
    """
    statuses = _collect_models(raw)
    models = sorted(name for name in statuses if not is_excluded_model(name, excluded))
    if not models:
        raise ValueError("Text model list is empty after filtering")
    return TextModelCatalog(models=models, statuses={m: statuses[m] for m in models})


def fallback_text_catalog(models: Sequence[str] = FALLBACK_TEXT_MODELS) -> TextModelCatalog:
    ordered = sorted(models)
    return TextModelCatalog(
        models=ordered, statuses={m: ModelStatus.UNCHECKED for m in ordered}
    )


async def fetch_text_models(
    http: AsyncApiClient,
    *,
    base_url: str = DEFAULT_TEXT_BASE_URL,
    excluded: Sequence[str] = EXCLUDED_MODEL_KEYWORDS,
    fallback: Sequence[str] = FALLBACK_TEXT_MODELS,
) -> TextModelCatalog:
    """List text models, trying each listing endpoint in turn.

    A 404 moves on to the next endpoint; any other failure is logged and does
    the same. When every endpoint fails the fallback list is returned.
    """
    for path in TEXT_MODEL_PATHS:
        url = f"{base_url.rstrip('/')}{path}"
        try:
            response = await http.get(url, raise_for_status=False)
            if response.status_code == 404:
                logger.warning(f"Model listing {url} not found, trying next")
                continue
            if not response.is_success:
                logger.warning(f"Model listing {url} failed with status {response.status_code}")
                continue
            catalog = parse_text_models(http.json(response), excluded)
        except (ApiError, ValueError) as e:
            logger.warning(f"Failed to list text models from {url}: {e}")
            continue
        logger.info(f"Fetched {len(catalog.models)} text models from {url}")
        return catalog

    logger.error("All text model listings failed; using fallback models")
    return fallback_text_catalog(fallback)


async def fetch_image_models(
    http: AsyncApiClient,
    *,
    base_url: str = DEFAULT_IMAGE_BASE_URL,
    fallback: Sequence[str] = FALLBACK_IMAGE_MODELS,
) -> list[str]:
    """List image models merged with the fallback list, sorted and de-duplicated."""
    url = f"{base_url.rstrip('/')}/models"
    try:
        raw = http.json(await http.get(url))
    except ApiError as e:
        logger.error(f"Failed to list image models: {e}")
        return sorted(fallback)

    if isinstance(raw, dict):
        models = list(raw)
    elif isinstance(raw, list) and all(isinstance(item, str) for item in raw):
        models = raw
    else:
        logger.error("Unexpected format for image models; using fallback models")
        return sorted(fallback)

    if not models:
        logger.warning("Image model list is empty; using fallback models")
        return sorted(fallback)
    return sorted(set(models) | set(fallback))


async def check_text_model_status(
    client: GenerationClient, model: str, *, cancel: CancellationToken | None = None
) -> ModelStatus:
    """Send a one-word prompt; any classified failure means unavailable.

    Raises:
        GenerationCancelled: If ``cancel`` fires
    """
    try:
        await client.complete_text([Turn.user("hi")], model, cancel=cancel)
    except GenerationError as e:
        logger.info(f"Text model {model} unavailable: {e.message}")
        return ModelStatus.UNAVAILABLE
    return ModelStatus.AVAILABLE


async def check_image_model_status(
    http: AsyncApiClient,
    model: str,
    *,
    base_url: str = DEFAULT_IMAGE_BASE_URL,
    whitelist: Sequence[str] = WHITELISTED_IMAGE_MODELS,
    cancel: CancellationToken | None = None,
) -> ModelStatus:
    """HEAD a test image; available when it answers 2xx with an image type.

    Raises:
        GenerationCancelled: If ``cancel`` fires
    """
    if model in whitelist:
        return ModelStatus.AVAILABLE

    cancel = ensure_token(cancel)
    url = build_image_url(ImageRequestSpec(prompt="test", model=model), base_url=base_url)
    try:
        response = await cancel.run(http.head(url, raise_for_status=False))
    except ApiError as e:
        logger.info(f"Image model {model} unavailable: {e}")
        return ModelStatus.UNAVAILABLE

    content_type = response.headers.get("content-type", "")
    if response.is_success and content_type.startswith("image/"):
        return ModelStatus.AVAILABLE
    return ModelStatus.UNAVAILABLE
