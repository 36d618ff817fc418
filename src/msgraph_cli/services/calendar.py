from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from msgraph_cli.data import CalendarEvent, CalendarInfo
from msgraph_cli.data.models import AttendeeType
from msgraph_cli.graph.client import GraphClient, response_values
from msgraph_cli.graph.errors import (
    AmbiguousCalendarError,
    CalendarNotFoundError,
    InvalidEventIdError,
)
from msgraph_cli.graph.requests import (
    calendar_view_request,
    create_event_request,
    get_event_request,
    list_calendars_request,
    update_event_request,
)
from msgraph_cli.services.mail import validate_recipients
from msgraph_cli.utils import get_logger
from msgraph_cli.utils.dates import local_time_zone


logger = get_logger(__name__)

ATTENDEE_LABEL = "attendee email address"


@dataclass(slots=True)
class EventCreateOptions:
    subject: str
    start: str
    end: str
    body: str | None = None
    location: str | None = None
    attendees: Sequence[str] = field(default_factory=tuple)
    is_online_meeting: bool = False
    time_zone: str | None = None


@dataclass(slots=True)
class EventUpdateOptions:
    """Fields left as ``None`` are not sent, so Graph keeps their values."""

    event_id: str
    subject: str | None = None
    start: str | None = None
    end: str | None = None
    body: str | None = None
    location: str | None = None
    attendees: Sequence[str] | None = None
    is_online_meeting: bool | None = None
    time_zone: str | None = None


def _date_time(value: str, time_zone: str) -> dict[str, str]:
    return {"dateTime": value, "timeZone": time_zone}


def _all_day(value: str) -> str:
    return f"{value[:10]}T00:00:00"


def _attendees(addresses: Sequence[str]) -> list[dict[str, Any]]:
    return [
        {"emailAddress": {"address": address}, "type": AttendeeType.REQUIRED.value}
        for address in validate_recipients(addresses, label=ATTENDEE_LABEL)
    ]


def build_create_payload(
    options: EventCreateOptions, *, all_day: bool = False
) -> dict[str, Any]:
    time_zone = options.time_zone or local_time_zone()
    start = _all_day(options.start) if all_day else options.start
    end = _all_day(options.end) if all_day else options.end
    payload: dict[str, Any] = {
        "subject": options.subject,
        "start": _date_time(start, time_zone),
        "end": _date_time(end, time_zone),
    }
    if options.body:
        payload["body"] = {"contentType": "text", "content": options.body}
    if options.location:
        payload["location"] = {"displayName": options.location}
    if options.attendees:
        payload["attendees"] = _attendees(options.attendees)
    if options.is_online_meeting:
        payload["isOnlineMeeting"] = True
    if all_day:
        payload["isAllDay"] = True
    return payload


def build_update_payload(options: EventUpdateOptions) -> dict[str, Any]:
    time_zone = options.time_zone or local_time_zone()
    payload: dict[str, Any] = {}
    if options.subject:
        payload["subject"] = options.subject
    if options.body:
        payload["body"] = {"contentType": "text", "content": options.body}
    if options.start:
        payload["start"] = _date_time(options.start, time_zone)
    if options.end:
        payload["end"] = _date_time(options.end, time_zone)
    if options.location:
        payload["location"] = {"displayName": options.location}
    if options.attendees:
        payload["attendees"] = _attendees(options.attendees)
    if options.is_online_meeting is not None:
        payload["isOnlineMeeting"] = options.is_online_meeting
    return payload


def match_calendar(calendars: Sequence[CalendarInfo], name: str) -> CalendarInfo:
    """Pick the calendar called ``name``.

    A case-insensitive exact match wins. Otherwise the name must be contained
    in exactly one calendar name.
    """

    wanted = name.strip().lower()
    for calendar in calendars:
        if (calendar.name or "").lower() == wanted:
            return calendar
    partial = [
        calendar for calendar in calendars if wanted in (calendar.name or "").lower()
    ]
    if not partial:
        raise CalendarNotFoundError(name)
    if len(partial) > 1:
        raise AmbiguousCalendarError(name, [c.name or c.id for c in partial])
    return partial[0]


class CalendarService:
    """Query and edit events in the signed-in user's calendars."""

    def __init__(self, client: GraphClient) -> None:
        self._client = client

    async def list_calendars(self) -> list[CalendarInfo]:
        payload = await self._client.execute(list_calendars_request())
        return [CalendarInfo.from_graph(item) for item in response_values(payload)]

    async def resolve_calendar_id(self, name: str) -> str:
        calendar = match_calendar(await self.list_calendars(), name)
        logger.debug("Resolved calendar", name=name, calendar_id=calendar.id)
        return calendar.id

    async def list_events(
        self,
        start: str,
        end: str,
        *,
        top: int | None = None,
        time_zone: str | None = None,
        calendar_id: str | None = None,
    ) -> list[CalendarEvent]:
        request = calendar_view_request(
            start,
            end,
            time_zone=time_zone or local_time_zone(),
            top=top,
            calendar_id=calendar_id,
        )
        payload = await self._client.execute(request)
        events = [CalendarEvent.from_graph(item) for item in response_values(payload)]
        logger.debug("Fetched events", count=len(events), calendar_id=calendar_id)
        return events

    async def get_event(
        self, event_id: str, *, time_zone: str | None = None
    ) -> CalendarEvent:
        if not event_id or not event_id.strip():
            raise InvalidEventIdError()
        request = get_event_request(event_id, time_zone=time_zone or local_time_zone())
        payload = await self._client.execute(request)
        return CalendarEvent.from_graph(payload or {})

    async def create_event(
        self,
        options: EventCreateOptions,
        *,
        all_day: bool = False,
        calendar_id: str | None = None,
    ) -> CalendarEvent:
        payload = build_create_payload(options, all_day=all_day)
        request = create_event_request(payload, calendar_id=calendar_id)
        created = await self._client.execute(request)
        event = CalendarEvent.from_graph(created or {})
        logger.info("Created event", event_id=event.id)
        return event

    async def update_event(self, options: EventUpdateOptions) -> CalendarEvent:
        if not options.event_id or not options.event_id.strip():
            raise InvalidEventIdError()
        payload = build_update_payload(options)
        updated = await self._client.execute(
            update_event_request(options.event_id, payload)
        )
        event = CalendarEvent.from_graph(updated or {})
        logger.info("Updated event", event_id=event.id, fields=sorted(payload))
        return event


__all__ = [
    "CalendarService",
    "EventCreateOptions",
    "EventUpdateOptions",
    "build_create_payload",
    "build_update_payload",
    "match_calendar",
]
