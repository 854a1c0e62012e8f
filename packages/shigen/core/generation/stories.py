"""Structured generation: UI themes and storyboard continuations."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from shigen.core.generation.cancellation import CancellationToken
from shigen.core.generation.client import GenerationClient
from shigen.core.generation.errors import GenerationError
from shigen.core.generation.models import THEME_COLOR_KEYS, StoryBeat, StoryScene, Theme, Turn
from shigen.core.generation.structured import parse_story_scenes, parse_theme

logger = logging.getLogger(__name__)

THEME_VARIATIONS = 4
STORY_CONTEXT_BEATS = 5


def theme_instruction(variation: int) -> str:
    color_lines = "\n".join(f'- "{key}"' for key in THEME_COLOR_KEYS)
    return (
        "You are an expert UI theme designer who responds only in JSON.\n"
        "Based on the user's idea, generate a unique theme. This is one of several variations "
        f"(e.g., variation {variation}/{THEME_VARIATIONS}), so make it visually distinct from "
        "other potential interpretations.\n\n"
        "YOUR ENTIRE RESPONSE MUST BE A SINGLE, RAW, VALID JSON OBJECT.\n"
        "Do not include markdown, comments, or any text outside the JSON structure.\n"
        'The JSON object MUST have these exact top-level keys: "name", "colors", '
        '"userDpIdea", "wallpaperIdea".\n\n'
        f'The "colors" object MUST contain these exact {len(THEME_COLOR_KEYS)} keys, with valid '
        "hex color codes as string values:\n"
        f"{color_lines}\n\n"
        "DESIGN RULES:\n"
        "- The color palette MUST be accessible and high-contrast.\n"
        '- "userDpIdea" must be a creative, detailed prompt for a square profile picture.\n'
        '- "wallpaperIdea" must be a creative, detailed prompt for a vertical (9:16) mobile '
        "wallpaper."
    )


STORY_INSTRUCTION = """You are an elite storyteller and a master visual artist. Your task is to continue a story, generating a storyboard of multiple scenes.

**CRITICAL: YOUR OUTPUT MUST BE A SINGLE, RAW, VALID JSON ARRAY AND NOTHING ELSE.**
- The entire response MUST start with `[` and end with `]`.
- Do not use markdown, comments, or any text outside the JSON structure.
- Each object in the array represents one scene.
- **NO TRAILING COMMAS:** The VERY LAST object must NOT have a comma after its closing brace `}`.
- All strings must be in double quotes. Escape any double quotes within strings.
- If for any reason you cannot generate scenes, your entire response must be an empty array: `[]`. Do not explain why.

Each JSON object MUST have these two keys:
1. "storyText": A concise, cinematic paragraph (2-4 sentences, max 50 words) advancing the plot.
2. "imagePrompt": A hyper-detailed and vivid image generation prompt. Describe character appearance, actions, environment, lighting (e.g., "cinematic lighting"), camera angle (e.g., "low-angle shot"), and art style (e.g., "photorealistic, 8k").

**STORY CONTEXT:**
- Maintain character descriptions, plot points, and tone from the STORY HISTORY.
- **Generate between 5 and 10 new scenes** to create a substantial continuation of the story based on the user's direction."""


def story_instruction(character_description: str | None = None) -> str:
    instruction = STORY_INSTRUCTION
    if character_description:
        instruction += (
            "\n\n**CHARACTER CONTINUITY (ABSOLUTE REQUIREMENT):** The main character has a "
            "specific look. You MUST incorporate the following details into every single "
            f'"imagePrompt" you generate to maintain visual consistency: "{character_description}"'
        )
    return instruction + "\n\nNow, follow the user's direction and generate the JSON array."


def story_prompt(premise: str, history: Sequence[StoryBeat], direction: str) -> str:
    """User message for a continuation: recent scenes (or the premise) plus the direction.

    Placeholder beats are ignored; scene numbers count from the start of the story.
    """
    beats = [beat for beat in history if not beat.is_temporary]
    if beats:
        recent = beats[-STORY_CONTEXT_BEATS:]
        first_number = len(beats) - len(recent) + 1
        lines = [
            f"Scene {first_number + i}: {beat.story_text}" for i, beat in enumerate(recent)
        ]
        context = (
            "STORY HISTORY SO FAR (use this for context and to maintain consistency):\n"
            + "\n".join(lines)
            + "\n\n"
        )
    else:
        context = f'STORY PREMISE: "{premise}"\n\n'
    return (
        f"{context}USER'S DIRECTION FOR WHAT HAPPENS NEXT: \"{direction}\"\n\n"
        "Generate the next scenes as a single JSON array."
    )


async def generate_theme(
    client: GenerationClient,
    idea: str,
    model: str,
    variation: int = 1,
    *,
    cancel: CancellationToken | None = None,
) -> Theme:
    """Generate one theme variation for ``idea``.

    Raises:
        GenerationError: Including StructuredParseError/StructuredValidationError
        GenerationCancelled: If ``cancel`` fires
    """
    try:
        text = await client.complete_text(
            [Turn.user(f'User\'s theme idea: "{idea}"')],
            model,
            system_instruction=theme_instruction(variation),
            cancel=cancel,
        )
        return parse_theme(text)
    except GenerationError as e:
        logger.error(f"Failed to generate theme with {model}: {e.message}")
        raise


async def generate_story_continuation(
    client: GenerationClient,
    premise: str,
    history: Sequence[StoryBeat],
    direction: str,
    model: str,
    *,
    character_description: str | None = None,
    cancel: CancellationToken | None = None,
) -> list[StoryScene]:
    """Generate the next storyboard scenes.

    Returns:
        New scenes; empty when the model has nothing to add

    Raises:
        GenerationError: Including StructuredParseError/StructuredValidationError
        GenerationCancelled: If ``cancel`` fires
    """
    try:
        text = await client.complete_text(
            [Turn.user(story_prompt(premise, history, direction))],
            model,
            system_instruction=story_instruction(character_description),
            cancel=cancel,
        )
        scenes = parse_story_scenes(text)
    except GenerationError as e:
        logger.error(f"Failed to generate story continuation with {model}: {e.message}")
        raise
    logger.info(f"Generated {len(scenes)} story scenes")
    return scenes
