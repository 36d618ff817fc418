from __future__ import annotations

from datetime import datetime
from typing import Sequence

from msgraph_cli.data import MailMessage
from msgraph_cli.graph.client import GraphClient, response_values
from msgraph_cli.graph.errors import InvalidMessageIdError, InvalidRecipientError
from msgraph_cli.graph.requests import (
    DEFAULT_MESSAGE_COUNT,
    combine_filters,
    get_message_request,
    list_messages_request,
    received_range_filter,
    send_mail_request,
)
from msgraph_cli.utils import get_logger
from msgraph_cli.utils.dates import parse_time_range


logger = get_logger(__name__)


def validate_recipients(
    addresses: Sequence[str], *, label: str = "email address"
) -> list[str]:
    """Return trimmed addresses; raise on the first one without ``@``."""

    cleaned: list[str] = []
    for address in addresses:
        if "@" not in address:
            raise InvalidRecipientError(address, label=label)
        cleaned.append(address.strip())
    return cleaned


class MailService:
    """Read and send mail for the signed-in user."""

    def __init__(self, client: GraphClient) -> None:
        self._client = client

    async def list_messages(
        self,
        *,
        top: int = DEFAULT_MESSAGE_COUNT,
        since: str | None = None,
        filter: str | None = None,
        search: str | None = None,
        now: datetime | None = None,
    ) -> list[MailMessage]:
        since_clause = None
        if since:
            time_range = parse_time_range(since, now=now)
            since_clause = received_range_filter(
                time_range.start_iso, time_range.end_iso
            )
        request = list_messages_request(
            top=top or DEFAULT_MESSAGE_COUNT,
            filter=combine_filters(since_clause, filter),
            search=search,
        )
        payload = await self._client.execute(request)
        messages = [MailMessage.from_graph(item) for item in response_values(payload)]
        logger.debug("Fetched messages", count=len(messages), since=since)
        return messages

    async def read_message(self, message_id: str) -> MailMessage:
        if not message_id or not message_id.strip():
            raise InvalidMessageIdError()
        payload = await self._client.execute(get_message_request(message_id))
        return MailMessage.from_graph(payload or {})

    async def send_message(
        self,
        to: Sequence[str],
        subject: str,
        body: str,
        content_type: str = "text",
    ) -> None:
        recipients = validate_recipients(to)
        request = send_mail_request(
            recipients, subject, body, content_type=content_type
        )
        await self._client.execute(request)
        logger.info("Sent message", recipients=len(recipients))


__all__ = ["MailService", "validate_recipients"]
