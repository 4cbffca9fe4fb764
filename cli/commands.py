"""
CLI subcommand implementations for the Tabichan client.

Subcommands::

    tabichan chat  QUERY --user-id U [--country C] [--api-key K]
    tabichan poll  TASK_ID [--api-key K]
    tabichan image ID [--country C] [--output PATH] [--api-key K]
    tabichan ws    QUERY --user-id U [--base-url URL] [--preference k=v ...]
"""

import argparse
import asyncio
import base64
import logging
import sys
from pathlib import Path

from tabichan import (
    ConfigError,
    TabichanClient,
    TabichanError,
    TabichanWebSocket,
)
from tabichan.config import COUNTRIES, DEFAULT_COUNTRY

from .interface import parse_preferences, print_poll, print_result
from .session_loop import run_interactive_session


def _make_client(args) -> TabichanClient:
    try:
        return TabichanClient(args.api_key, base_url=getattr(args, "base_url", None))
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)


async def cmd_chat(args):
    """Start a chat job and wait for its result."""
    client = _make_client(args)
    try:
        task_id = await client.start_chat(args.query, args.user_id, args.country)
        print(f"  Task: {task_id}")
        result = await client.wait_for_chat(task_id, verbose=True)
    except TabichanError as e:
        print(f"Error: {e}")
        sys.exit(1)
    print_result(result)


async def cmd_poll(args):
    """Poll a chat job once."""
    client = _make_client(args)
    try:
        job = await client.poll_chat(args.task_id)
    except TabichanError as e:
        print(f"Error: {e}")
        sys.exit(1)
    print_poll(job.to_poll_data())


async def cmd_image(args):
    """Fetch an image by id."""
    client = _make_client(args)
    try:
        data = await client.get_image(args.id, args.country)
    except TabichanError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.output:
        output = Path(args.output)
        output.write_bytes(base64.b64decode(data))
        print(f"  ✓ Saved image to {output}")
    else:
        print(data)


async def cmd_ws(args):
    """Run an interactive WebSocket chat."""
    try:
        preferences = parse_preferences(args.preference)
        ws = TabichanWebSocket(args.user_id, args.api_key, base_url=args.base_url)
    except (ConfigError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    try:
        exit_code = await run_interactive_session(ws, args.query, preferences)
    except TabichanError as e:
        print(f"Error: {e}")
        sys.exit(1)
    if exit_code:
        sys.exit(exit_code)


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="tabichan",
        description="Client for the Tabichan trip-planning API",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- chat ---
    p_chat = subparsers.add_parser("chat", help="Start a chat job and wait for the result")
    p_chat.add_argument("query", help="Trip-planning request")
    p_chat.add_argument("--user-id", required=True, help="User identifier")
    p_chat.add_argument("--country", choices=COUNTRIES, default=DEFAULT_COUNTRY,
                        help=f"Destination country (default: {DEFAULT_COUNTRY})")
    p_chat.add_argument("--api-key", help="API key (or set TABICHAN_API_KEY)")
    p_chat.add_argument("--base-url", help="REST base URL override")

    # --- poll ---
    p_poll = subparsers.add_parser("poll", help="Poll a chat job once")
    p_poll.add_argument("task_id", help="Task id returned by chat")
    p_poll.add_argument("--api-key", help="API key (or set TABICHAN_API_KEY)")
    p_poll.add_argument("--base-url", help="REST base URL override")

    # --- image ---
    p_image = subparsers.add_parser("image", help="Fetch an image")
    p_image.add_argument("id", help="Image id")
    p_image.add_argument("--country", choices=COUNTRIES, default=DEFAULT_COUNTRY,
                         help=f"Destination country (default: {DEFAULT_COUNTRY})")
    p_image.add_argument("--output", "-o", help="Write the decoded image to this path")
    p_image.add_argument("--api-key", help="API key (or set TABICHAN_API_KEY)")
    p_image.add_argument("--base-url", help="REST base URL override")

    # --- ws ---
    p_ws = subparsers.add_parser("ws", help="Interactive WebSocket chat")
    p_ws.add_argument("query", help="Trip-planning request")
    p_ws.add_argument("--user-id", required=True, help="User identifier")
    p_ws.add_argument("--api-key", help="API key (or set TABICHAN_API_KEY)")
    p_ws.add_argument("--base-url", help="WebSocket base URL override")
    p_ws.add_argument(
        "--preference",
        action="append",
        help="Chat preference, format key=value (repeatable)",
    )

    return parser


async def main():
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == 'chat':
        await cmd_chat(args)
    elif args.command == 'poll':
        await cmd_poll(args)
    elif args.command == 'image':
        await cmd_image(args)
    elif args.command == 'ws':
        await cmd_ws(args)


def run():
    """Console-script entry point."""
    asyncio.run(main())
