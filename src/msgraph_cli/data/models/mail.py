from __future__ import annotations

from pydantic import Field

from .common import GraphResource, ItemBody, Recipient


class MailMessage(GraphResource):
    subject: str | None = None
    sender: Recipient | None = Field(default=None, alias="from")
    to_recipients: list[Recipient] = Field(default_factory=list, alias="toRecipients")
    body: ItemBody | None = None
    body_preview: str | None = Field(default=None, alias="bodyPreview")
    # Kept as the raw Graph string so JSON output round-trips unchanged.
    received_date_time: str | None = Field(default=None, alias="receivedDateTime")
    is_read: bool = Field(default=False, alias="isRead")
    has_attachments: bool = Field(default=False, alias="hasAttachments")


__all__ = ["MailMessage"]
