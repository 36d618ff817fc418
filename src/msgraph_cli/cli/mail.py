from __future__ import annotations

import argparse

from msgraph_cli.bootstrap import AppContext
from msgraph_cli.cli.common import add_format_argument, emit, positive_int, split_addresses
from msgraph_cli.graph.requests import DEFAULT_MESSAGE_COUNT
from msgraph_cli.utils.formatters import OutputFormat, format_mail_detail, format_mail_list


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("mail", help="Mail operations")
    commands = parser.add_subparsers(dest="mail_command", metavar="<action>")
    commands.required = True

    list_parser = commands.add_parser("list", help="List mail messages")
    list_parser.add_argument(
        "-n",
        "--top",
        type=positive_int,
        default=DEFAULT_MESSAGE_COUNT,
        help=f"Number of messages to show. Default: {DEFAULT_MESSAGE_COUNT}.",
    )
    list_parser.add_argument(
        "--since",
        metavar="TIMESPEC",
        help=(
            "Filter by time (last60min, last6hours, yesterday, today, "
            "last7days, or ISO date)."
        ),
    )
    list_parser.add_argument("--filter", help="Additional OData $filter clause.")
    list_parser.add_argument("--search", help="Free-text $search query.")
    add_format_argument(list_parser, default=OutputFormat.TABLE)
    list_parser.set_defaults(handler=list_command)

    read = commands.add_parser("read", help="Read a specific mail message")
    read.add_argument("message_id", metavar="MESSAGE_ID")
    add_format_argument(
        read,
        default=OutputFormat.TEXT,
        choices=(OutputFormat.TEXT, OutputFormat.JSON),
    )
    read.set_defaults(handler=read_command)

    send = commands.add_parser("send", help="Send a mail message")
    send.add_argument(
        "-t",
        "--to",
        required=True,
        help="Recipient email addresses (comma-separated).",
    )
    send.add_argument("-s", "--subject", required=True, help="Mail subject.")
    send.add_argument("-b", "--body", default="", help="Mail body.")
    send.add_argument("--html", action="store_true", help="Send body as HTML.")
    send.set_defaults(handler=send_command)


async def list_command(ctx: AppContext, args: argparse.Namespace) -> int:
    messages = await ctx.mail.list_messages(
        top=args.top,
        since=args.since,
        filter=args.filter,
        search=args.search,
    )
    if not messages and args.output_format is not OutputFormat.JSON:
        emit("No messages found.")
        return 0
    emit(format_mail_list(messages, args.output_format))
    return 0


async def read_command(ctx: AppContext, args: argparse.Namespace) -> int:
    message = await ctx.mail.read_message(args.message_id)
    emit(format_mail_detail(message, args.output_format))
    return 0


async def send_command(ctx: AppContext, args: argparse.Namespace) -> int:
    await ctx.mail.send_message(
        split_addresses(args.to) or [args.to],
        args.subject,
        args.body,
        "html" if args.html else "text",
    )
    emit("Message sent successfully.")
    return 0


__all__ = ["list_command", "read_command", "register", "send_command"]
