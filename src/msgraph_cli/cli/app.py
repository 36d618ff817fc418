"""Argument parsing and command dispatch for the ``msgraph`` executable."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Awaitable, Callable, Sequence

from msgraph_cli import __version__
from msgraph_cli.bootstrap import AppContext, build_context
from msgraph_cli.cli import auth, calendar, config, mail
from msgraph_cli.config import SettingsManager
from msgraph_cli.utils import (
    LoggingOptions,
    configure_logging,
    get_logger,
    log_file_path,
)
from msgraph_cli.utils.errors import render_error


logger = get_logger(__name__)

Handler = Callable[[AppContext, argparse.Namespace], Awaitable[int]]

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="msgraph",
        description="Microsoft Graph CLI - Mail and Calendar operations",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose output and debug logging.",
    )
    parser.add_argument("--client-id", help="Application (client) ID.")
    parser.add_argument("--tenant-id", help="Directory (tenant) ID.")
    parser.add_argument(
        "--client-secret",
        help="Client secret for the client credentials flow.",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    auth.register(subparsers)
    mail.register(subparsers)
    calendar.register(subparsers)
    config.register(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler: Handler | None = getattr(args, "handler", None)
    if handler is None:
        parser.print_help(sys.stderr)
        return EXIT_USAGE

    configure_logging(LoggingOptions(verbose=args.verbose))
    try:
        return asyncio.run(_run(handler, args))
    except KeyboardInterrupt:
        print("Aborted.", file=sys.stderr)
        return EXIT_INTERRUPTED
    except Exception as exc:  # noqa: BLE001 - every failure becomes exit code 1
        logger.debug("Command failed", command=args.command, error=str(exc))
        render_error(exc, verbose=args.verbose)
        path = log_file_path()
        if args.verbose and path is not None:
            print(f"  Log file: {path}", file=sys.stderr)
        return EXIT_ERROR


async def _run(handler: Handler, args: argparse.Namespace) -> int:
    manager = SettingsManager()
    settings = manager.load(
        client_id=args.client_id,
        tenant_id=args.tenant_id,
        client_secret=args.client_secret,
    )
    context = build_context(settings, settings_manager=manager)
    async with context.graph:
        return await handler(context, args)


__all__ = ["EXIT_ERROR", "EXIT_OK", "EXIT_USAGE", "build_parser", "main"]
