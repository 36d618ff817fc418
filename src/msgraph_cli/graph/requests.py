from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Sequence
from urllib.parse import quote


GraphMethod = Literal["GET", "POST", "PATCH", "DELETE"]

MESSAGE_LIST_FIELDS = (
    "id,subject,from,toRecipients,receivedDateTime,isRead,hasAttachments,bodyPreview"
)
EVENT_LIST_FIELDS = (
    "id,subject,start,end,location,organizer,isOnlineMeeting,onlineMeetingUrl,attendees"
)
DEFAULT_MESSAGE_COUNT = 25


@dataclass(slots=True)
class GraphRequest:
    """Structured representation of a Microsoft Graph request."""

    method: GraphMethod
    url: str
    headers: dict[str, str] | None = None
    body: Any | None = None
    params: dict[str, Any] | None = None


def _segment(value: str) -> str:
    return quote(value.strip(), safe="")


def timezone_preference(time_zone: str) -> dict[str, str]:
    """Ask Graph to express event times in ``time_zone``."""

    return {"Prefer": f'outlook.timezone="{time_zone}"'}


def combine_filters(*clauses: str | None) -> str | None:
    parts = [clause for clause in clauses if clause]
    if not parts:
        return None
    return " and ".join(parts)


def received_range_filter(start: str, end: str | None = None) -> str:
    clause = f"receivedDateTime ge {start}"
    if end:
        clause += f" and receivedDateTime le {end}"
    return clause


def list_messages_request(
    *,
    top: int = DEFAULT_MESSAGE_COUNT,
    filter: str | None = None,
    search: str | None = None,
) -> GraphRequest:
    params: dict[str, Any] = {
        "$top": top,
        "$select": MESSAGE_LIST_FIELDS,
    }
    if search:
        # Graph rejects $orderby together with $search; results come back by relevance.
        text = search if search.startswith('"') else f'"{search}"'
        params["$search"] = text
    else:
        params["$orderby"] = "receivedDateTime desc"
    if filter:
        params["$filter"] = filter
    return GraphRequest(method="GET", url="/me/messages", params=params)


def get_message_request(message_id: str) -> GraphRequest:
    return GraphRequest(method="GET", url=f"/me/messages/{_segment(message_id)}")


def send_mail_request(
    recipients: Sequence[str],
    subject: str,
    body: str,
    *,
    content_type: str = "text",
) -> GraphRequest:
    payload = {
        "message": {
            "subject": subject,
            "body": {
                "contentType": "HTML" if content_type.lower() == "html" else "Text",
                "content": body,
            },
            "toRecipients": [
                {"emailAddress": {"address": address.strip()}} for address in recipients
            ],
        },
    }
    return GraphRequest(method="POST", url="/me/sendMail", body=payload)


def list_calendars_request() -> GraphRequest:
    return GraphRequest(method="GET", url="/me/calendars")


def calendar_view_request(
    start: str,
    end: str,
    *,
    time_zone: str,
    top: int | None = None,
    calendar_id: str | None = None,
) -> GraphRequest:
    url = "/me/calendarView"
    if calendar_id:
        url = f"/me/calendars/{_segment(calendar_id)}/calendarView"
    params: dict[str, Any] = {
        "startDateTime": start,
        "endDateTime": end,
        "$select": EVENT_LIST_FIELDS,
        "$orderby": "start/dateTime",
    }
    if top:
        params["$top"] = top
    return GraphRequest(
        method="GET",
        url=url,
        params=params,
        headers=timezone_preference(time_zone),
    )


def get_event_request(event_id: str, *, time_zone: str) -> GraphRequest:
    return GraphRequest(
        method="GET",
        url=f"/me/events/{_segment(event_id)}",
        headers=timezone_preference(time_zone),
    )


def create_event_request(
    payload: dict[str, Any], *, calendar_id: str | None = None
) -> GraphRequest:
    url = "/me/events"
    if calendar_id:
        url = f"/me/calendars/{_segment(calendar_id)}/events"
    return GraphRequest(method="POST", url=url, body=payload)


def update_event_request(event_id: str, payload: dict[str, Any]) -> GraphRequest:
    return GraphRequest(
        method="PATCH", url=f"/me/events/{_segment(event_id)}", body=payload
    )


__all__ = [
    "DEFAULT_MESSAGE_COUNT",
    "EVENT_LIST_FIELDS",
    "GraphMethod",
    "GraphRequest",
    "MESSAGE_LIST_FIELDS",
    "calendar_view_request",
    "combine_filters",
    "create_event_request",
    "get_event_request",
    "get_message_request",
    "list_calendars_request",
    "list_messages_request",
    "received_range_filter",
    "send_mail_request",
    "timezone_preference",
    "update_event_request",
]
