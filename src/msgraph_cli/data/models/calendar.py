from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from .common import EmailAddress, GraphResource, GraphBaseModel, ItemBody, Recipient


class AttendeeType(StrEnum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    RESOURCE = "resource"


class DateTimeTimeZone(GraphBaseModel):
    date_time: str = Field(alias="dateTime")
    time_zone: str | None = Field(default=None, alias="timeZone")


class Location(GraphBaseModel):
    display_name: str | None = Field(default=None, alias="displayName")


class Attendee(Recipient):
    type: str | None = None


class CalendarEvent(GraphResource):
    subject: str | None = None
    body: ItemBody | None = None
    start: DateTimeTimeZone
    end: DateTimeTimeZone
    location: Location | None = None
    attendees: list[Attendee] = Field(default_factory=list)
    organizer: Recipient | None = None
    is_online_meeting: bool = Field(default=False, alias="isOnlineMeeting")
    online_meeting_url: str | None = Field(default=None, alias="onlineMeetingUrl")
    is_all_day: bool = Field(default=False, alias="isAllDay")


class CalendarInfo(GraphResource):
    name: str | None = None
    owner: EmailAddress | None = None
    color: str | None = None
    is_default_calendar: bool = Field(default=False, alias="isDefaultCalendar")
    can_edit: bool = Field(default=False, alias="canEdit")


__all__ = [
    "Attendee",
    "AttendeeType",
    "CalendarEvent",
    "CalendarInfo",
    "DateTimeTimeZone",
    "Location",
]
