"""
AIPIM — command-line entry point.

Usage:
    uv run python main.py "Why is the sky blue?" --model claude-3-5-sonnet-20240620
    uv run python main.py --prompt blank_form --image form.jpg
    uv run python main.py --list-models
    uv run python main.py --check

Wires together:  config → client (provider dispatch) → message builder → display
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from aipim.cli.display import (
    console,
    show_error,
    show_models,
    show_provider_status,
    show_request,
    show_response,
)
from aipim.client import Client
from aipim.config import API_KEY_ENV_VARS, Config, load_config, setup_logging
from aipim.conv_logger import ConversationLogger
from aipim.providers import ProviderError, create_default_provider, known_models

logger = logging.getLogger("aipim")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Send one message (text plus optional images) to an LLM provider.",
    )
    parser.add_argument("text", nargs="?", help="Message text (or use --prompt).")
    parser.add_argument("-m", "--model", help="Model identifier, e.g. gpt-4o, claude-3-opus-20240229, gemini-1.5-pro.")
    parser.add_argument(
        "-i", "--image",
        action="append",
        default=[],
        metavar="PATH",
        help="Attach an image (jpg, jpeg, png, gif, webp). Repeatable.",
    )
    parser.add_argument("-p", "--prompt", help="Read the text from <prompt_dir>/<NAME>.txt.")
    parser.add_argument("-c", "--config", type=Path, help="Config file (default: $AIPIM_CONFIG or config.yaml).")
    parser.add_argument("--list-models", action="store_true", help="List the known model catalogue and exit.")
    parser.add_argument("--check", action="store_true", help="Verify the configured API keys and exit.")
    return parser.parse_args(argv)


async def _check_providers(config: Config) -> int:
    async def check(name: str) -> tuple[str, bool, bool]:
        try:
            provider = create_default_provider(name, config.providers)
        except ValueError:
            return name, False, False
        try:
            async with asyncio.timeout(8):
                return name, True, await provider.verify()
        except TimeoutError:
            return name, True, False

    rows = await asyncio.gather(*[check(name) for name in sorted(API_KEY_ENV_VARS)])
    show_provider_status(list(rows))
    return 0 if any(connected for _, _, connected in rows) else 1


async def _send(args: argparse.Namespace, config: Config) -> int:
    if not args.text and not args.prompt:
        show_error(ValueError("Give the message text or --prompt NAME"))
        return 2

    conversation_logger = None
    if config.logging.transcripts:
        conversation_logger = ConversationLogger(
            log_dir=config.log_dir_path,
            model=args.model or config.default_model or "default",
        )

    try:
        client = Client.from_config(
            config, args.model, conversation_logger=conversation_logger
        )
        builder = client.message()
        if args.prompt:
            builder.prompt(args.prompt)
        if args.text:
            builder.text(args.text)
        for path in args.image:
            builder.image_file(path)
        message = builder.build()

        show_request(client.provider.name, client.model, message)
        response = await client.send_message(message)
    except (ProviderError, ValueError, OSError) as exc:
        show_error(exc)
        return 1

    show_response(client.model, response)
    if conversation_logger:
        console.print(f"[dim]Log: {conversation_logger.path}[/]")
    return 0


async def _main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        config = load_config(args.config)
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        return 1
    setup_logging(config.logging)

    if args.list_models:
        show_models(known_models())
        return 0
    if args.check:
        return await _check_providers(config)
    return await _send(args, config)


def main() -> None:
    try:
        sys.exit(asyncio.run(_main()))
    except KeyboardInterrupt:
        # The in-flight request is simply abandoned.
        console.print("\n[yellow]Interrupted.[/]")
        sys.exit(130)


if __name__ == "__main__":
    main()
