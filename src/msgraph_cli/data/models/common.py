from __future__ import annotations

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field


class GraphBaseModel(BaseModel):
    """Base class for Graph payload helpers.

    Unknown properties are kept so that a model dumped with :meth:`to_graph`
    carries everything Graph returned.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        extra="allow",
        frozen=True,
    )

    @classmethod
    def from_graph(cls, payload: dict[str, Any]) -> Self:
        """Hydrate a model from a raw Graph response."""
        return cls.model_validate(payload)

    def to_graph(self) -> dict[str, Any]:
        """Serialize back to the Graph shape, omitting fields never received."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude_unset=True,
            serialize_as_any=True,
        )


class GraphResource(GraphBaseModel):
    """Shared identifier for Graph resources."""

    id: str = Field(alias="id")


class EmailAddress(GraphBaseModel):
    name: str | None = None
    address: str | None = None

    def display(self) -> str:
        return f"{self.name or ''} <{self.address or ''}>"


class Recipient(GraphBaseModel):
    email_address: EmailAddress = Field(
        default_factory=EmailAddress, alias="emailAddress"
    )


class ItemBody(GraphBaseModel):
    content_type: str | None = Field(default=None, alias="contentType")
    content: str | None = None

    @property
    def is_html(self) -> bool:
        return (self.content_type or "").lower() == "html"


__all__ = [
    "EmailAddress",
    "GraphBaseModel",
    "GraphResource",
    "ItemBody",
    "Recipient",
]
