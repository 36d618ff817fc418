from __future__ import annotations

import argparse

from msgraph_cli.bootstrap import AppContext
from msgraph_cli.cli.common import emit
from msgraph_cli.config.settings import CONFIG_KEYS
from msgraph_cli.utils.sanitize import REDACTED


_SECRET_KEYS = frozenset({"clientSecret"})


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("config", help="Persisted configuration")
    commands = parser.add_subparsers(dest="config_command", metavar="<action>")
    commands.required = True

    show = commands.add_parser("show", help="Show the effective configuration")
    show.set_defaults(handler=show_command)

    set_parser = commands.add_parser("set", help="Store a value in the config file")
    set_parser.add_argument("key", choices=CONFIG_KEYS)
    set_parser.add_argument("value")
    set_parser.set_defaults(handler=set_command)

    unset = commands.add_parser("unset", help="Remove a value from the config file")
    unset.add_argument("key", choices=CONFIG_KEYS)
    unset.set_defaults(handler=unset_command)

    path = commands.add_parser("path", help="Print the config file location")
    path.set_defaults(handler=path_command)


def _display(key: str, value: str | None) -> str:
    if not value:
        return "(not set)"
    if key in _SECRET_KEYS:
        return REDACTED
    return value


async def show_command(ctx: AppContext, args: argparse.Namespace) -> int:
    settings = ctx.settings
    effective = {
        "clientId": settings.client_id,
        "tenantId": settings.tenant_id,
        "clientSecret": settings.client_secret,
        "scopes": ",".join(settings.configured_scopes()),
    }
    emit(f"Config file: {settings.config_path}")
    emit(f"Token cache: {settings.token_cache_path}")
    emit()
    for key in CONFIG_KEYS:
        emit(f"  {key:<13}{_display(key, effective[key])}")
    return 0


async def set_command(ctx: AppContext, args: argparse.Namespace) -> int:
    path = ctx.settings_manager.set_value(args.key, args.value)
    emit(f"Saved {args.key} to {path}")
    return 0


async def unset_command(ctx: AppContext, args: argparse.Namespace) -> int:
    if ctx.settings_manager.unset_value(args.key):
        emit(f"Removed {args.key} from {ctx.settings_manager.config_path}")
    else:
        emit(f"{args.key} is not set in {ctx.settings_manager.config_path}")
    return 0


async def path_command(ctx: AppContext, args: argparse.Namespace) -> int:
    emit(str(ctx.settings_manager.config_path))
    return 0


__all__ = [
    "path_command",
    "register",
    "set_command",
    "show_command",
    "unset_command",
]
