from __future__ import annotations

import argparse

from msgraph_cli.bootstrap import AppContext
from msgraph_cli.cli.common import add_format_argument, emit, positive_int, split_addresses
from msgraph_cli.services import EventCreateOptions, EventUpdateOptions
from msgraph_cli.utils.dates import default_event_window
from msgraph_cli.utils.formatters import (
    OutputFormat,
    format_calendar_detail,
    format_calendar_list,
    format_calendars,
)


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("calendar", help="Calendar operations")
    commands = parser.add_subparsers(dest="calendar_command", metavar="<action>")
    commands.required = True

    list_parser = commands.add_parser("list", help="List calendar events")
    list_parser.add_argument(
        "--start", help="Start date (ISO 8601). Default: start of today."
    )
    list_parser.add_argument(
        "--end", help="End date (ISO 8601). Default: end of the day in 7 days."
    )
    list_parser.add_argument(
        "-n", "--top", type=positive_int, help="Number of events to show."
    )
    list_parser.add_argument("--timezone", help="IANA or Windows time zone name.")
    list_parser.add_argument("--calendar", help="Calendar name (partial match).")
    add_format_argument(list_parser, default=OutputFormat.TABLE)
    list_parser.set_defaults(handler=list_command)

    get = commands.add_parser("get", help="Get a specific calendar event")
    get.add_argument("event_id", metavar="EVENT_ID")
    get.add_argument("--timezone", help="IANA or Windows time zone name.")
    add_format_argument(
        get,
        default=OutputFormat.TEXT,
        choices=(OutputFormat.TEXT, OutputFormat.JSON),
    )
    get.set_defaults(handler=get_command)

    add = commands.add_parser("add", help="Create a new calendar event")
    add.add_argument("-s", "--subject", required=True, help="Event subject.")
    add.add_argument("--start", required=True, help="Start date and time (ISO 8601).")
    add.add_argument("--end", required=True, help="End date and time (ISO 8601).")
    add.add_argument("--body", help="Event body/description.")
    add.add_argument("--location", help="Event location.")
    add.add_argument(
        "--attendees", help="Attendee email addresses (comma-separated)."
    )
    add.add_argument(
        "--online", action="store_true", help="Create as online meeting."
    )
    add.add_argument("--all-day", action="store_true", help="Create as all-day event.")
    add.add_argument("--timezone", help="IANA or Windows time zone name.")
    add.add_argument("--calendar", help="Calendar name (partial match).")
    add.set_defaults(handler=add_command)

    edit = commands.add_parser("edit", help="Edit an existing calendar event")
    edit.add_argument("event_id", metavar="EVENT_ID")
    edit.add_argument("-s", "--subject", help="New event subject.")
    edit.add_argument("--start", help="New start date and time (ISO 8601).")
    edit.add_argument("--end", help="New end date and time (ISO 8601).")
    edit.add_argument("--body", help="New event body/description.")
    edit.add_argument("--location", help="New event location.")
    edit.add_argument(
        "--attendees", help="Replacement attendee list (comma-separated)."
    )
    edit.add_argument(
        "--online",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Turn the online meeting on or off.",
    )
    edit.add_argument("--timezone", help="IANA or Windows time zone name.")
    edit.set_defaults(handler=edit_command)

    calendars = commands.add_parser("calendars", help="List available calendars")
    add_format_argument(calendars, default=OutputFormat.TABLE)
    calendars.set_defaults(handler=calendars_command)


async def list_command(ctx: AppContext, args: argparse.Namespace) -> int:
    window = default_event_window()
    start = args.start or window.start_iso
    end = args.end or window.end_iso or ""
    calendar_id = None
    if args.calendar:
        calendar_id = await ctx.calendar.resolve_calendar_id(args.calendar)

    events = await ctx.calendar.list_events(
        start,
        end,
        top=args.top,
        time_zone=args.timezone,
        calendar_id=calendar_id,
    )
    if args.output_format is OutputFormat.JSON:
        emit(format_calendar_list(events, OutputFormat.JSON))
        return 0
    if not events:
        emit("No events found for the specified period.")
        return 0
    emit(format_calendar_list(events, args.output_format))
    emit(f"{len(events)} event(s) found.")
    return 0


async def get_command(ctx: AppContext, args: argparse.Namespace) -> int:
    event = await ctx.calendar.get_event(args.event_id, time_zone=args.timezone)
    emit(format_calendar_detail(event, args.output_format))
    return 0


async def add_command(ctx: AppContext, args: argparse.Namespace) -> int:
    options = EventCreateOptions(
        subject=args.subject,
        start=args.start,
        end=args.end,
        body=args.body,
        location=args.location,
        attendees=split_addresses(args.attendees),
        is_online_meeting=args.online,
        time_zone=args.timezone,
    )
    calendar_id = None
    if args.calendar:
        calendar_id = await ctx.calendar.resolve_calendar_id(args.calendar)

    event = await ctx.calendar.create_event(
        options, all_day=args.all_day, calendar_id=calendar_id
    )
    emit(f"Event created: {event.subject or ''}")
    if args.verbose:
        emit(f"  ID: {event.id}")
        emit(f"  Start: {event.start.date_time}")
        emit(f"  End: {event.end.date_time}")
    return 0


async def edit_command(ctx: AppContext, args: argparse.Namespace) -> int:
    options = EventUpdateOptions(
        event_id=args.event_id,
        subject=args.subject,
        start=args.start,
        end=args.end,
        body=args.body,
        location=args.location,
        attendees=split_addresses(args.attendees) if args.attendees else None,
        is_online_meeting=args.online,
        time_zone=args.timezone,
    )
    event = await ctx.calendar.update_event(options)
    emit(f"Event updated: {event.subject or ''}")
    if args.verbose:
        emit(f"  ID: {event.id}")
    return 0


async def calendars_command(ctx: AppContext, args: argparse.Namespace) -> int:
    calendars = await ctx.calendar.list_calendars()
    if args.output_format is OutputFormat.JSON:
        emit(format_calendars(calendars, OutputFormat.JSON))
        return 0
    if not calendars:
        emit("No calendars found.")
        return 0
    emit(format_calendars(calendars, args.output_format))
    emit(f"{len(calendars)} calendar(s) found.")
    return 0


__all__ = [
    "add_command",
    "calendars_command",
    "edit_command",
    "get_command",
    "list_command",
    "register",
]
