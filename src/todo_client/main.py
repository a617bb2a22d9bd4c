"""CLI entrypoint for the interactive todo shell."""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import Any, Optional, Sequence

from .app import create_client
from .config import Settings
from .logging_config import configure_logging
from .shell import TodoShell


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Todo - terminal client for the todo service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  todo-client                                  Use TODO_API_BASE_URL or localhost
  todo-client --server https://host/api        Connect to a remote service
  todo-client --state /tmp/todo-state.json     Keep the token somewhere else

Environment Variables:
  TODO_API_BASE_URL    Default service URL
  TODO_STATE_PATH      Where the session token and theme are stored
  LOG_LEVEL, LOG_FILE  Logging configuration
""",
    )
    parser.add_argument("--server", "-s", default=None, help="Service base URL")
    parser.add_argument("--state", default=None, help="Local state file path")
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    parser.add_argument("--log-file", default=None, help="Write logs to this file")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {}
    if args.server:
        overrides["api_base_url"] = args.server
    if args.state:
        overrides["state_path"] = args.state
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_file:
        overrides["log_file"] = args.log_file
    return Settings(**overrides)  # pyright: ignore[reportCallIssue]


async def _run(settings: Settings) -> None:
    client = create_client(settings)
    try:
        await TodoShell(client).run()
    finally:
        await client.aclose()


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Run the shell."""

    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)
    # Console logging would interleave with the table; keep it to the file when one is set
    configure_logging(
        settings.log_level,
        settings.log_file,
        console=settings.log_file is None,
    )

    def signal_handler(sig, frame):
        print("\nExiting...")
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":  # pragma: no cover - manual invocation
    main()
