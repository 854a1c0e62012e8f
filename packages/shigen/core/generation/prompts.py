"""Image prompt helpers.

The generating helpers never surface a generation failure: each falls back
to a usable prompt instead. Cancellation always propagates.
"""

from __future__ import annotations

import logging
import re

from shigen.core.generation.cancellation import CancellationToken
from shigen.core.generation.client import GenerationClient
from shigen.core.generation.errors import GenerationError
from shigen.core.generation.models import Turn

logger = logging.getLogger(__name__)

UTILITY_MODEL = "openai-fast"

IMAGE_REQUEST_KEYWORDS: tuple[str, ...] = (
    "generate",
    "draw",
    "create",
    "make",
    "sketch",
    "paint",
    "render",
    "illustrate",
    "an image of",
    "a picture of",
    "a photo of",
    "a drawing of",
    "midjourney",
    "dall-e-3",
    "dalle-3",
    "playground",
    "ideogram",
    "flux",
)

RANDOM_PROMPT_FALLBACK = (
    "An astronaut jellyfish floating through a nebula, cinematic lighting, detailed, 4k"
)
CHARACTER_FALLBACK = "A mysterious figure in a long coat, face hidden in shadows."

REFINE_INSTRUCTION = (
    "You are a creative image prompt assistant. The user created an image with an original "
    "prompt and now has a modification request. Combine the original prompt and the "
    "modification request into a single, new, cohesive, and descriptive prompt for an image "
    "generation AI. The new prompt must be a complete idea that stands on its own. Only output "
    "the final prompt itself, with no extra conversational text, labels, or quotation marks."
)

ENHANCE_INSTRUCTION = (
    "You are an expert prompt engineer for a generative AI. Your task is to take a user's "
    "prompt and enhance it into a masterpiece. Make it more vivid, detailed, and imaginative. "
    "Add descriptive adjectives, specify the art style (e.g., photorealistic, oil painting, "
    "vector art), lighting (e.g., cinematic lighting), composition (e.g., rule of thirds, "
    "dynamic angle), and camera details (e.g., lens type, aperture). Do not just add keywords; "
    "weave them into a coherent, descriptive paragraph. Only output the final enhanced prompt, "
    "with no extra conversational text, labels, or quotation marks."
)

RANDOM_INSTRUCTION = (
    "You are a creative muse. Generate a single, highly detailed, and inspiring image "
    "generation prompt. The prompt should describe a unique concept, a fantastical scene, or a "
    "striking character. Think outside the box. Only output the prompt itself, with no extra "
    "conversational text, labels, or quotation marks."
)

CHARACTER_INSTRUCTION = (
    "You are a master character designer. Based on the user's story premise, create a single, "
    "compelling main character.\n"
    "Provide a detailed yet concise physical description (e.g., appearance, clothing, unique "
    "features) that can be used to generate consistent images of them.\n"
    "Focus only on the visual description. Do not describe their personality or background.\n"
    "Your output MUST be only the character description string, with no extra conversational "
    "text, labels, or quotation marks."
)

_EDGE_QUOTES = re.compile(r'^"|"$')
_LEADING_LABEL = re.compile(
    r"^(prompt:|new prompt:|enhanced prompt:|generate:|draw:|create:)", re.IGNORECASE
)
_CLI_FLAGS = re.compile(r"""\s--\w+\s+("([^"]*)"|'([^']*)'|(\S+))""")

_QUOTED_SPANS = (
    re.compile(r'"([^"]+)"'),
    re.compile(r"'([^']+)'"),
    re.compile(r"\*\*([^*]+)\*\*"),
)


def clean_prompt(text: str) -> str:
    """Strip wrapping quotes, a leading label and ``--flag value`` pairs."""
    cleaned = _EDGE_QUOTES.sub("", text.strip())
    cleaned = _LEADING_LABEL.sub("", cleaned)
    cleaned = _CLI_FLAGS.sub("", cleaned)
    return cleaned.strip()


def extract_potential_image_prompt(text: str) -> str | None:
    """Find a quoted or bold phrase in a reply that reads like an image prompt.

    Returns:
        The first candidate longer than 5 characters with more than two words
    """
    for pattern in _QUOTED_SPANS:
        match = pattern.search(text)
        if match:
            candidate = match.group(1).strip()
            if len(candidate) > 5 and len(candidate.split(" ")) > 2:
                return candidate
    return None


def is_image_generation_request(prompt: str) -> bool:
    """True for ``/draw ...`` style commands or prompts opening with an image verb."""
    lowered = prompt.lower().strip()
    if lowered.startswith("/") and any(f"/{k}" in lowered for k in IMAGE_REQUEST_KEYWORDS):
        return True
    return any(lowered.startswith(f"{k} ") for k in IMAGE_REQUEST_KEYWORDS)


async def refine_image_prompt(
    client: GenerationClient,
    original_prompt: str,
    modification: str,
    *,
    model: str = UTILITY_MODEL,
    cancel: CancellationToken | None = None,
) -> str:
    """Merge a modification request into an existing prompt.

    Falls back to ``"<original>, <modification>"``.
    """
    content = (
        f'The user had an image created with this prompt:\n"{original_prompt}"\n\n'
        f'Now, the user wants to change it with this request:\n"{modification}"\n\n'
        "Create a new, single, complete image prompt that merges the original idea with the "
        "modification. Do not ask questions. Only output the new prompt."
    )
    try:
        text = await client.complete_text(
            [Turn.user(content)], model, system_instruction=REFINE_INSTRUCTION, cancel=cancel
        )
    except GenerationError as e:
        logger.error(f"Failed to refine image prompt: {e.message}")
        return f"{original_prompt}, {modification}"
    return clean_prompt(text)


async def enhance_image_prompt(
    client: GenerationClient,
    prompt: str,
    *,
    model: str = UTILITY_MODEL,
    cancel: CancellationToken | None = None,
) -> str:
    """Rewrite a prompt with more detail; falls back to the prompt unchanged.

    Raises:
        ValueError: If ``prompt`` is blank
    """
    if not prompt.strip():
        raise ValueError("Prompt cannot be empty.")
    try:
        text = await client.complete_text(
            [Turn.user(prompt)], model, system_instruction=ENHANCE_INSTRUCTION, cancel=cancel
        )
    except GenerationError as e:
        logger.error(f"Failed to enhance image prompt: {e.message}")
        return prompt
    return clean_prompt(text)


async def random_image_prompt(
    client: GenerationClient,
    *,
    model: str = UTILITY_MODEL,
    cancel: CancellationToken | None = None,
) -> str:
    try:
        text = await client.complete_text(
            [Turn.user("Give me a random, creative image prompt.")],
            model,
            system_instruction=RANDOM_INSTRUCTION,
            cancel=cancel,
        )
    except GenerationError as e:
        logger.error(f"Failed to get random prompt: {e.message}")
        return RANDOM_PROMPT_FALLBACK
    return clean_prompt(text) or RANDOM_PROMPT_FALLBACK


async def generate_character_description(
    client: GenerationClient,
    premise: str,
    model: str,
    *,
    cancel: CancellationToken | None = None,
) -> str:
    """Visual description of a story's main character, for consistent images."""
    try:
        text = await client.complete_text(
            [Turn.user(f'Story Premise: "{premise}"')],
            model,
            system_instruction=CHARACTER_INSTRUCTION,
            cancel=cancel,
        )
    except GenerationError as e:
        logger.error(f"Failed to generate character description: {e.message}")
        return CHARACTER_FALLBACK
    return text.strip() or CHARACTER_FALLBACK
