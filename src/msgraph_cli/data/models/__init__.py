"""Domain models representing Microsoft Graph mail and calendar resources."""

from .calendar import (
    Attendee,
    AttendeeType,
    CalendarEvent,
    CalendarInfo,
    DateTimeTimeZone,
    Location,
)
from .common import EmailAddress, GraphBaseModel, GraphResource, ItemBody, Recipient
from .mail import MailMessage

__all__ = [
    "GraphBaseModel",
    "GraphResource",
    "EmailAddress",
    "Recipient",
    "ItemBody",
    "MailMessage",
    "Attendee",
    "AttendeeType",
    "CalendarEvent",
    "CalendarInfo",
    "DateTimeTimeZone",
    "Location",
]
