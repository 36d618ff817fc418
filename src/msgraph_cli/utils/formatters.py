"""Formatting utilities for printing mail and calendar resources."""

from __future__ import annotations

import html
import json
import re
from datetime import datetime, tzinfo
from enum import StrEnum
from typing import Iterable, Sequence

from msgraph_cli.data import CalendarEvent, CalendarInfo, GraphBaseModel, MailMessage
from msgraph_cli.data.models import EmailAddress, ItemBody, Recipient


class OutputFormat(StrEnum):
    TABLE = "table"
    JSON = "json"
    TEXT = "text"


NO_SUBJECT = "(No Subject)"
SEPARATOR = "─" * 60

_BLOCK_PATTERNS = (
    re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL),
)
_LINE_BREAK_PATTERN = re.compile(r"<br\s*/?>|</p>|</div>|</li>", re.IGNORECASE)
_TAG_PATTERN = re.compile(r"<[^>]+>")
_BLANK_LINES_PATTERN = re.compile(r"\n{3,}")
_FRACTION_PATTERN = re.compile(r"(\.\d{6})\d+")


def strip_html(markup: str) -> str:
    """Reduce an HTML body to readable plain text.

    Args:
        markup: HTML content as returned by Graph

    Returns:
        Text with tags removed, block ends turned into newlines, common
        entities decoded and runs of blank lines collapsed

    Examples:
        >>> strip_html("<p>Hello</p><p>World &amp; more</p>")
        "Hello\\nWorld & more"
    """
    text = markup
    for pattern in _BLOCK_PATTERNS:
        text = pattern.sub("", text)
    text = _LINE_BREAK_PATTERN.sub("\n", text)
    text = _TAG_PATTERN.sub("", text)
    text = html.unescape(text).replace("\xa0", " ")
    text = _BLANK_LINES_PATTERN.sub("\n\n", text)
    return text.strip()


def truncate(value: str, max_length: int) -> str:
    """Shorten ``value`` to ``max_length`` characters, ending with ``...``.

    Examples:
        >>> truncate("Quarterly planning", 10)
        "Quarter..."
        >>> truncate("Short", 10)
        "Short"
    """
    if len(value) <= max_length:
        return value
    return value[: max(max_length - 3, 0)] + "..."


def format_datetime(value: str | None, tz: tzinfo | None = None) -> str:
    """Render a Graph timestamp as ``YYYY-MM-DD HH:MM``.

    Timestamps carrying an offset (``Z`` included) are shown in ``tz``, or
    the system zone when ``tz`` is omitted. Naive timestamps are already in
    the zone requested from Graph and are printed unchanged. Unparseable
    input is returned as-is.
    """
    if not value:
        return ""
    text = _FRACTION_PATTERN.sub(r"\1", value.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return value
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz)
    return parsed.strftime("%Y-%m-%d %H:%M")


def render_table(
    headers: Sequence[str],
    rows: Iterable[Sequence[str]],
    widths: Sequence[int] | None = None,
) -> str:
    """Lay out rows as a plain-text table with aligned columns.

    Cells longer than the matching entry in ``widths`` are truncated.
    """
    limits = list(widths) if widths else [0] * len(headers)
    prepared: list[list[str]] = []
    for row in rows:
        cells = []
        for index, cell in enumerate(row):
            text = " ".join(str(cell).split())
            limit = limits[index] if index < len(limits) else 0
            cells.append(truncate(text, limit) if limit else text)
        prepared.append(cells)

    column_widths = [len(header) for header in headers]
    for cells in prepared:
        for index, cell in enumerate(cells):
            column_widths[index] = max(column_widths[index], len(cell))

    def _line(cells: Sequence[str]) -> str:
        return "  ".join(
            cell.ljust(column_widths[index]) for index, cell in enumerate(cells)
        ).rstrip()

    lines = [_line(headers), _line(["-" * width for width in column_widths])]
    lines.extend(_line(cells) for cells in prepared)
    return "\n".join(lines)


def to_json(items: GraphBaseModel | Sequence[GraphBaseModel]) -> str:
    if isinstance(items, GraphBaseModel):
        payload: object = items.to_graph()
    else:
        payload = [item.to_graph() for item in items]
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _address(recipient: Recipient | None) -> EmailAddress:
    if recipient is None:
        return EmailAddress()
    return recipient.email_address


def _body_text(body: ItemBody | None) -> str:
    if body is None or not body.content:
        return ""
    return strip_html(body.content) if body.is_html else body.content


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


# --- Mail -----------------------------------------------------------------


def format_mail_list(
    messages: Sequence[MailMessage],
    output: OutputFormat = OutputFormat.TABLE,
    *,
    tz: tzinfo | None = None,
) -> str:
    if output is OutputFormat.JSON:
        return to_json(messages)

    if output is OutputFormat.TEXT:
        blocks = []
        for index, message in enumerate(messages, start=1):
            flags = ("" if message.is_read else "[Unread] ") + (
                "[Attach] " if message.has_attachments else ""
            )
            blocks.append(
                "\n".join(
                    [
                        f"#{index} {flags}{message.subject or NO_SUBJECT}",
                        f"  From: {_address(message.sender).display()}",
                        f"  Date: {format_datetime(message.received_date_time, tz)}",
                        f"  ID:   {message.id}",
                    ]
                )
            )
        return "\n\n".join(blocks)

    rows = []
    for message in messages:
        sender = _address(message.sender)
        rows.append(
            [
                format_datetime(message.received_date_time, tz),
                sender.name or sender.address or "",
                message.subject or NO_SUBJECT,
                _yes_no(message.is_read),
            ]
        )
    return render_table(["Date", "From", "Subject", "Read"], rows, [20, 25, 37, 4])


def format_mail_detail(
    message: MailMessage,
    output: OutputFormat = OutputFormat.TEXT,
    *,
    tz: tzinfo | None = None,
) -> str:
    if output is OutputFormat.JSON:
        return to_json(message)

    recipients = ", ".join(
        _address(recipient).display() for recipient in message.to_recipients
    )
    lines = [
        f"Subject: {message.subject or NO_SUBJECT}",
        f"From:    {_address(message.sender).display()}",
        f"To:      {recipients}",
        f"Date:    {format_datetime(message.received_date_time, tz)}",
        f"Read:    {_yes_no(message.is_read)}",
        f"Attach:  {_yes_no(message.has_attachments)}",
        f"ID:      {message.id}",
        "",
        SEPARATOR,
        "",
        _body_text(message.body),
    ]
    return "\n".join(lines)


# --- Calendar -------------------------------------------------------------


def format_calendar_list(
    events: Sequence[CalendarEvent],
    output: OutputFormat = OutputFormat.TABLE,
    *,
    tz: tzinfo | None = None,
) -> str:
    if output is OutputFormat.JSON:
        return to_json(events)

    if output is OutputFormat.TEXT:
        blocks = []
        for index, event in enumerate(events, start=1):
            online = " [Online]" if event.is_online_meeting else ""
            location = event.location.display_name if event.location else None
            blocks.append(
                "\n".join(
                    [
                        f"#{index} {event.subject or NO_SUBJECT}{online}",
                        f"  Start:    {format_datetime(event.start.date_time, tz)}",
                        f"  End:      {format_datetime(event.end.date_time, tz)}",
                        f"  Location: {location or 'N/A'}",
                        f"  ID:       {event.id}",
                    ]
                )
            )
        return "\n\n".join(blocks)

    rows = []
    for event in events:
        organizer = _address(event.organizer)
        rows.append(
            [
                format_datetime(event.start.date_time, tz),
                format_datetime(event.end.date_time, tz),
                event.subject or NO_SUBJECT,
                (event.location.display_name if event.location else None) or "",
                organizer.name or organizer.address or "",
            ]
        )
    return render_table(
        ["Start", "End", "Subject", "Location", "Organizer"],
        rows,
        [16, 16, 32, 20, 20],
    )


def format_calendar_detail(
    event: CalendarEvent,
    output: OutputFormat = OutputFormat.TEXT,
    *,
    tz: tzinfo | None = None,
) -> str:
    if output is OutputFormat.JSON:
        return to_json(event)

    location = event.location.display_name if event.location else None
    lines = [
        f"Subject:   {event.subject or NO_SUBJECT}",
        f"Start:     {format_datetime(event.start.date_time, tz)} ({event.start.time_zone or ''})",
        f"End:       {format_datetime(event.end.date_time, tz)} ({event.end.time_zone or ''})",
        f"Location:  {location or 'N/A'}",
        f"Organizer: {_address(event.organizer).display()}",
        f"Online:    {_yes_no(event.is_online_meeting)}",
    ]
    if event.online_meeting_url:
        lines.append(f"Meet URL:  {event.online_meeting_url}")
    lines.append(f"ID:        {event.id}")

    if event.attendees:
        lines.extend(["", "Attendees:"])
        for attendee in event.attendees:
            lines.append(
                f"  - {attendee.email_address.display()} ({attendee.type or 'required'})"
            )

    body = _body_text(event.body)
    if body:
        lines.extend(["", SEPARATOR, "", body])
    return "\n".join(lines)


def format_calendars(
    calendars: Sequence[CalendarInfo],
    output: OutputFormat = OutputFormat.TABLE,
) -> str:
    if output is OutputFormat.JSON:
        return to_json(calendars)

    if output is OutputFormat.TEXT:
        return "\n".join(
            f"{calendar.name or ''}{' (default)' if calendar.is_default_calendar else ''}"
            f"  [{calendar.id}]"
            for calendar in calendars
        )

    rows = []
    for calendar in calendars:
        owner = calendar.owner or EmailAddress()
        rows.append(
            [
                calendar.name or "",
                owner.name or owner.address or "",
                "Yes" if calendar.is_default_calendar else "",
                _yes_no(calendar.can_edit),
            ]
        )
    return render_table(["Name", "Owner", "Default", "Can Edit"], rows, [40, 30, 7, 8])


__all__ = [
    "OutputFormat",
    "format_calendar_detail",
    "format_calendar_list",
    "format_calendars",
    "format_datetime",
    "format_mail_detail",
    "format_mail_list",
    "render_table",
    "strip_html",
    "to_json",
    "truncate",
]
