"""Image URL construction.

Generated images are addressed by URL; the backend renders on first GET. URL
building is pure: an explicit seed always yields byte-identical URLs.
"""

from __future__ import annotations

import random
from urllib.parse import quote, urlencode

from shigen.core.generation.models import ImageRequestSpec

DEFAULT_IMAGE_BASE_URL = "https://image.pollinations.ai"

DEFAULT_SIZE = 512
BASELINE_SIZE = 1024
SIZE_MULTIPLE = 8
MAX_RANDOM_SEED = 1_000_000


def _floor_to_multiple(value: int, multiple: int = SIZE_MULTIPLE) -> int:
    return max(multiple, (value // multiple) * multiple)


def _parse_ratio(aspect_ratio: str | None) -> tuple[int, int] | None:
    if not aspect_ratio:
        return None
    parts = aspect_ratio.split(":")
    if len(parts) != 2:
        return None
    try:
        w, h = int(parts[0].strip()), int(parts[1].strip())
    except ValueError:
        return None
    if w <= 0 or h <= 0:
        return None
    return w, h


def normalize_dimensions(aspect_ratio: str | None) -> tuple[int, int]:
    """Convert ``"W:H"`` into pixel dimensions.

    The longer side becomes 1024 and both sides are rounded down to a multiple
    of 8. Missing or malformed ratios give the default 512x512 square.

    Example:
        >>> normalize_dimensions("16:9")
        (1024, 576)
        >>> normalize_dimensions("9:16")
        (576, 1024)
        >>> normalize_dimensions("wide")
        (512, 512)
    """
    ratio = _parse_ratio(aspect_ratio)
    if ratio is None:
        return DEFAULT_SIZE, DEFAULT_SIZE
    w, h = ratio
    if w >= h:
        width, height = BASELINE_SIZE, round(BASELINE_SIZE * h / w)
    else:
        width, height = round(BASELINE_SIZE * w / h), BASELINE_SIZE
    return _floor_to_multiple(width), _floor_to_multiple(height)


def random_seed(rng: random.Random | None = None) -> int:
    """Random non-negative seed below one million."""
    return (rng or random).randrange(MAX_RANDOM_SEED)


def build_image_url(
    spec: ImageRequestSpec,
    *,
    base_url: str = DEFAULT_IMAGE_BASE_URL,
    rng: random.Random | None = None,
) -> str:
    """Build the URL for one generated image.

    Args:
        spec: Prompt, model and options for the image
        base_url: Image host
        rng: Random source used only when ``spec.seed`` is None

    Returns:
        Fully-qualified image URL
    """
    width, height = normalize_dimensions(spec.aspect_ratio)
    seed = spec.seed if spec.seed is not None else random_seed(rng)

    params: dict[str, str | int] = {
        "model": spec.model,
        "width": width,
        "height": height,
        "seed": seed,
        "safe": "true" if spec.safe else "false",
        "nologo": "true",
    }
    if spec.source_image_url:
        params["image"] = spec.source_image_url
    if spec.negative_prompt:
        params["negative_prompt"] = spec.negative_prompt

    path = quote(spec.prompt, safe="")
    query = urlencode(params, quote_via=quote, safe="")
    return f"{base_url.rstrip('/')}/prompt/{path}?{query}"


def build_image_batch(
    spec: ImageRequestSpec,
    count: int,
    *,
    base_url: str = DEFAULT_IMAGE_BASE_URL,
    rng: random.Random | None = None,
) -> list[str]:
    """Build ``count`` URLs whose seeds are ``seed + index``.

    A random base seed is drawn when none is given, so the batch is still
    reproducible from its first URL.
    """
    if count < 1:
        raise ValueError("count must be at least 1")
    base_seed = spec.seed if spec.seed is not None else random_seed(rng)
    return [
        build_image_url(spec.model_copy(update={"seed": base_seed + i}), base_url=base_url)
        for i in range(count)
    ]
