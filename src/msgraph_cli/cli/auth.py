from __future__ import annotations

import argparse

from msgraph_cli.bootstrap import AppContext
from msgraph_cli.cli.common import emit


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("auth", help="Authentication management")
    commands = parser.add_subparsers(dest="auth_command", metavar="<action>")
    commands.required = True

    login = commands.add_parser("login", help="Login to Microsoft Graph")
    login.add_argument(
        "--client-credentials",
        action="store_true",
        help="Use the client credentials flow (requires a client secret).",
    )
    login.set_defaults(handler=login_command)

    logout = commands.add_parser("logout", help="Logout and clear cached tokens")
    logout.set_defaults(handler=logout_command)

    status = commands.add_parser("status", help="Show current authentication status")
    status.set_defaults(handler=status_command)


async def login_command(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.client_credentials:
        emit("Authenticating with client credentials...")
        result = await ctx.identity.login_with_client_credentials()
        emit("Successfully authenticated with client credentials.")
    else:
        emit("Starting device code authentication...")
        emit()
        result = await ctx.identity.login_with_device_code(on_message=emit)
        emit()
        username = result.account.username if result.account else None
        emit(f"Successfully logged in as {username or 'unknown user'}.")
    if args.verbose:
        emit(f"  Token expires: {result.expires_on.isoformat()}")
    return 0


async def logout_command(ctx: AppContext, args: argparse.Namespace) -> int:
    if await ctx.identity.logout():
        emit("Successfully logged out. Token cache cleared.")
    else:
        emit("Already logged out. No token cache found.")
    return 0


async def status_command(ctx: AppContext, args: argparse.Namespace) -> int:
    status = await ctx.identity.get_status()
    account = status.account
    if status.authenticated:
        emit("Authenticated")
        if account is not None:
            emit(f"  User: {account.username or 'N/A'}")
            emit(f"  Name: {account.name or 'N/A'}")
            emit(f"  Tenant: {account.tenant_id or 'N/A'}")
        if status.expires_on is not None:
            emit(f"  Token expires: {status.expires_on.isoformat()}")
        return 0

    emit("Not authenticated")
    if account is not None:
        emit(f"  Last known account: {account.username} (token expired)")
    emit('  Run "msgraph auth login" to authenticate.')
    return 0


__all__ = ["login_command", "logout_command", "register", "status_command"]
