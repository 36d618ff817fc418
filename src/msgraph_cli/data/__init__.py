"""Typed views over Microsoft Graph payloads."""

from .models import CalendarEvent, CalendarInfo, GraphBaseModel, MailMessage

__all__ = ["CalendarEvent", "CalendarInfo", "GraphBaseModel", "MailMessage"]
