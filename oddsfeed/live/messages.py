"""
Wire records of the odds stream.

Every record is a JSON object tagged by its ``type`` field. The tagged union
below is validated with a pydantic discriminator, so routing is a match on the
``type`` tag rather than on which keys happen to be present.

Example record:
{
    "type": "updated",
    "timestamp": "2025-01-01T12:00:00Z",
    "id": "62924717",
    "bookie": "Bet365",
    "markets": [
        {
            "name": "ML",
            "updatedAt": "2025-01-01T11:59:58Z",
            "odds": [{"home": "1.85", "draw": "3.40", "away": "4.20", "max": 500}]
        }
    ]
}
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from oddsfeed.api.models import MarketRecord
from oddsfeed.live.types import MessageType


class _FeedMessage(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    timestamp: Optional[datetime] = None

    @property
    def message_type(self) -> MessageType:
        return MessageType(self.type)  # type: ignore[attr-defined]


class WelcomeMessage(_FeedMessage):
    """Sent once per session; echoes the effective filters."""

    type: Literal["welcome"]
    message: Optional[str] = None
    filters: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)


class CreatedMessage(_FeedMessage):
    type: Literal["created"]
    event_id: str = Field(alias="id")
    bookmaker: str = Field(alias="bookie")
    markets: tuple[MarketRecord, ...] = ()


class UpdatedMessage(_FeedMessage):
    type: Literal["updated"]
    event_id: str = Field(alias="id")
    bookmaker: str = Field(alias="bookie")
    markets: tuple[MarketRecord, ...] = ()


class DeletedMessage(_FeedMessage):
    type: Literal["deleted"]
    event_id: str = Field(alias="id")
    bookmaker: str = Field(alias="bookie")


class NoMarketsMessage(_FeedMessage):
    """The bookmaker confirmed it has no markets for the event."""

    type: Literal["no_markets"]
    event_id: str = Field(alias="id")
    bookmaker: Optional[str] = Field(default=None, alias="bookie")


InboundMessage = Annotated[
    Union[WelcomeMessage, CreatedMessage, UpdatedMessage, DeletedMessage, NoMarketsMessage],
    Field(discriminator="type"),
]

INBOUND_MESSAGE_ADAPTER: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)

KNOWN_TYPES: frozenset[str] = frozenset(t.value for t in MessageType)


def parse_message(data: Any) -> InboundMessage:
    """Validate a decoded JSON object into its message class."""
    return INBOUND_MESSAGE_ADAPTER.validate_python(data)
