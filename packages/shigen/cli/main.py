"""Command-line interface for Shigen."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from shigen.core.config.loader import configure_logging, load_app_config
from shigen.core.config.models import AppConfig
from shigen.core.generation.audio import generate_audio
from shigen.core.generation.cancellation import CancellationToken
from shigen.core.generation.catalog import (
    check_image_model_status,
    check_text_model_status,
    fetch_image_models,
    fetch_text_models,
)
from shigen.core.generation.client import outcome_message
from shigen.core.generation.errors import GenerationCancelled, GenerationError
from shigen.core.generation.images import build_image_batch
from shigen.core.generation.models import (
    CancelledOutcome,
    FailedOutcome,
    FailureKind,
    ImageRequestSpec,
    StoryBeat,
    Turn,
)
from shigen.core.generation.prompts import (
    enhance_image_prompt,
    generate_character_description,
    random_image_prompt,
)
from shigen.core.generation.retry_loader import LoadStatus
from shigen.core.generation.stories import generate_story_continuation, generate_theme
from shigen.core.services import GenerationServices
from shigen.core.utils.json import dumps

console = Console()
logger = logging.getLogger(__name__)


def _install_interrupt(token: CancellationToken) -> None:
    """Cancel ``token`` on Ctrl+C instead of killing the loop."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel, "interrupted")
    except NotImplementedError:
        logger.debug("Signal handlers unavailable; Ctrl+C will abort immediately")


async def chat_async(config: AppConfig, args: argparse.Namespace) -> int:
    """Stream one reply to stdout."""
    model = args.model or config.generation.default_text_model
    token = CancellationToken()
    _install_interrupt(token)

    async with GenerationServices.from_config(config) as services:
        outcome = await services.text.stream(
            [Turn.user(args.prompt)],
            model,
            system_instruction=args.system,
            cancel=token,
            on_fragment=lambda fragment: console.print(fragment, end="", markup=False),
        )
    console.print()

    if isinstance(outcome, CancelledOutcome):
        console.print(f"[yellow]{outcome_message(outcome, model)}[/yellow]")
        return 130
    if isinstance(outcome, FailedOutcome):
        style = "yellow" if outcome.kind == FailureKind.PREMIUM_REQUIRED else "red"
        console.print(f"[{style}]{outcome_message(outcome, model)}[/{style}]")
        return 1
    return 0


def image_urls(config: AppConfig, args: argparse.Namespace) -> list[str]:
    spec = ImageRequestSpec(
        prompt=args.prompt,
        model=args.model or config.generation.default_image_model,
        seed=args.seed,
        aspect_ratio=args.aspect_ratio,
        negative_prompt=args.negative_prompt,
        safe=not args.unsafe,
    )
    return build_image_batch(spec, args.count, base_url=config.generation.image_base_url)


async def image_async(config: AppConfig, args: argparse.Namespace) -> int:
    """Print image URLs, optionally waiting for each to render."""
    urls = image_urls(config, args)
    if not args.wait:
        for url in urls:
            console.print(url, markup=False, soft_wrap=True)
        return 0

    async with GenerationServices.from_config(config) as services:
        for i, url in enumerate(urls):
            services.images.load(i, url)
        states = [await services.images.wait(i) for i in range(len(urls))]

    failed = 0
    for state in states:
        color = "green" if state.status is LoadStatus.LOADED else "red"
        failed += state.status is not LoadStatus.LOADED
        console.print(f"[{color}]{state.status.value:>7}[/{color}] {state.url}", soft_wrap=True)
    return 1 if failed else 0


async def models_async(config: AppConfig, args: argparse.Namespace) -> int:
    """List models; with ``--check`` also check each one."""
    gen = config.generation
    token = CancellationToken()
    _install_interrupt(token)
    async with GenerationServices.from_config(config) as services:
        catalog = await fetch_text_models(
            services.media,
            base_url=gen.text_base_url,
            excluded=gen.excluded_model_keywords,
            fallback=gen.fallback_text_models,
        )
        image_models = await fetch_image_models(
            services.media, base_url=gen.image_base_url, fallback=gen.fallback_image_models
        )
        text_statuses = dict(catalog.statuses)
        image_statuses = {}
        if args.check:
            for name in catalog.models:
                text_statuses[name] = await check_text_model_status(
                    services.text, name, cancel=token
                )
            for name in image_models:
                image_statuses[name] = await check_image_model_status(
                    services.media,
                    name,
                    base_url=gen.image_base_url,
                    whitelist=gen.whitelisted_image_models,
                    cancel=token,
                )

    table = Table(title="Text models")
    table.add_column("Model")
    table.add_column("Status")
    for name in catalog.models:
        table.add_row(name, text_statuses[name].value)
    console.print(table)

    if not image_statuses:
        console.print(f"[bold]Image models:[/bold] {', '.join(image_models)}")
        return 0
    images = Table(title="Image models")
    images.add_column("Model")
    images.add_column("Status")
    for name in image_models:
        images.add_row(name, image_statuses[name].value)
    console.print(images)
    return 0


async def enhance_async(config: AppConfig, args: argparse.Namespace) -> int:
    """Rewrite an image prompt (or invent one) with the utility model."""
    model = args.model or config.generation.utility_model
    token = CancellationToken()
    _install_interrupt(token)
    async with GenerationServices.from_config(config) as services:
        if args.prompt:
            prompt = await enhance_image_prompt(
                services.text, args.prompt, model=model, cancel=token
            )
        else:
            prompt = await random_image_prompt(services.text, model=model, cancel=token)
    console.print(prompt, markup=False, soft_wrap=True)
    return 0


async def speak_async(config: AppConfig, args: argparse.Namespace) -> int:
    """Synthesize speech and write it to a file."""
    token = CancellationToken()
    _install_interrupt(token)
    async with GenerationServices.from_config(config) as services:
        audio = await generate_audio(
            services.media, args.text, base_url=config.generation.audio_base_url, cancel=token
        )
    output = Path(args.output)
    output.write_bytes(audio)
    console.print(f"Wrote {len(audio)} bytes to {output}")
    return 0


async def theme_async(config: AppConfig, args: argparse.Namespace) -> int:
    model = args.model or config.generation.default_text_model
    token = CancellationToken()
    _install_interrupt(token)
    async with GenerationServices.from_config(config) as services:
        theme = await generate_theme(services.text, args.idea, model, args.variation, cancel=token)
    console.print_json(dumps(theme))
    return 0


async def story_async(config: AppConfig, args: argparse.Namespace) -> int:
    model = args.model or config.generation.default_text_model
    token = CancellationToken()
    _install_interrupt(token)
    history = [
        StoryBeat(id=f"beat-{i}", story_text=text) for i, text in enumerate(args.history or [])
    ]
    async with GenerationServices.from_config(config) as services:
        character = args.character
        if character is None and not history:
            character = await generate_character_description(
                services.text, args.premise, model, cancel=token
            )
            console.print(f"[dim]Character: {character}[/dim]")
        scenes = await generate_story_continuation(
            services.text,
            args.premise,
            history,
            args.direction,
            model,
            character_description=character,
            cancel=token,
        )

    if not scenes:
        console.print("[yellow]The model had nothing more to add.[/yellow]")
        return 0
    for number, scene in enumerate(scenes, start=len(history) + 1):
        console.print(f"[bold]Scene {number}[/bold] {scene.story_text}")
        console.print(f"  [dim]{scene.image_prompt}[/dim]")
    return 0


COMMANDS = {
    "chat": chat_async,
    "image": image_async,
    "models": models_async,
    "enhance": enhance_async,
    "speak": speak_async,
    "theme": theme_async,
    "story": story_async,
}


def run_command(args: argparse.Namespace) -> int:
    """Load config, set up logging and run one subcommand."""
    try:
        config = load_app_config(Path(args.config) if args.config else None)
    except (OSError, ValueError) as e:
        console.print(f"[red]ERROR: Could not load config: {e}[/red]")
        return 1
    if args.verbose:
        config = config.model_copy(
            update={"logging": config.logging.model_copy(update={"level": "DEBUG"})}
        )
    configure_logging(config)

    try:
        return asyncio.run(COMMANDS[args.cmd](config, args))
    except GenerationCancelled:
        console.print("[yellow]Generation cancelled.[/yellow]")
        return 130
    except GenerationError as e:
        console.print(f"[red]{e.message}[/red]")
        return 1


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI."""
    p = argparse.ArgumentParser(
        prog="shigen",
        description="Shigen - text, image and story generation from the terminal",
    )
    p.add_argument("--config", default=None, help="Path to config (.yaml/.yml/.json)")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    chat = sub.add_parser("chat", help="Stream a reply to a prompt")
    chat.add_argument("prompt", help="Message to send")
    chat.add_argument("--model", default=None, help="Text model")
    chat.add_argument("--system", default=None, help="System instruction")

    image = sub.add_parser("image", help="Build generated image URLs")
    image.add_argument("prompt", help="Image prompt")
    image.add_argument("--model", default=None, help="Image model")
    image.add_argument(
        "--count", type=_positive_int, default=1, help="Number of images (default: 1)"
    )
    image.add_argument("--seed", type=int, default=None, help="Base seed (random if omitted)")
    image.add_argument("--aspect-ratio", default=None, help='Aspect ratio such as "16:9"')
    image.add_argument("--negative-prompt", default=None, help="What to avoid")
    image.add_argument("--unsafe", action="store_true", help="Disable the safety filter")
    image.add_argument("--wait", action="store_true", help="Wait until each image renders")

    models = sub.add_parser("models", help="List available text and image models")
    models.add_argument(
        "--check", action="store_true", help="Send a test request to each model and show its status"
    )

    enhance = sub.add_parser("enhance", help="Improve an image prompt, or invent one")
    enhance.add_argument(
        "prompt", nargs="?", default=None, help="Prompt to improve (random if omitted)"
    )
    enhance.add_argument("--model", default=None, help="Text model (default: utility model)")

    speak = sub.add_parser("speak", help="Synthesize speech to an audio file")
    speak.add_argument("text", help="Text to speak")
    speak.add_argument("--output", default="speech.mp3", help="Output file (default: speech.mp3)")

    theme = sub.add_parser("theme", help="Generate a UI theme as JSON")
    theme.add_argument("idea", help="Theme idea")
    theme.add_argument("--model", default=None, help="Text model")
    theme.add_argument("--variation", type=int, default=1, help="Variation number (1-4)")

    story = sub.add_parser("story", help="Continue a story as a storyboard")
    story.add_argument("premise", help="Story premise")
    story.add_argument("direction", help="What should happen next")
    story.add_argument("--model", default=None, help="Text model")
    story.add_argument("--character", default=None, help="Main character description")
    story.add_argument(
        "--history", action="append", help="Previous scene text (repeatable, oldest first)"
    )

    return p


def main() -> None:
    """Main entry point for CLI."""
    p = build_arg_parser()
    args = p.parse_args()
    sys.exit(run_command(args))


if __name__ == "__main__":
    main()
