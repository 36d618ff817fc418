"""Resource clients for Microsoft Graph mail and calendar endpoints."""

from .calendar import (
    CalendarService,
    EventCreateOptions,
    EventUpdateOptions,
)
from .mail import MailService

__all__ = [
    "CalendarService",
    "EventCreateOptions",
    "EventUpdateOptions",
    "MailService",
]
