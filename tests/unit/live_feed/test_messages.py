"""
Unit tests for the wire record models.
"""

import pytest
from pydantic import ValidationError

from oddsfeed.live.messages import (
    CreatedMessage,
    UpdatedMessage,
    WelcomeMessage,
    parse_message,
)
from oddsfeed.live.types import MessageType


class TestParseMessage:
    def test_discriminates_on_type(self) -> None:
        created = parse_message({"type": "created", "id": "1", "bookie": "A"})
        updated = parse_message({"type": "updated", "id": "1", "bookie": "A"})

        assert isinstance(created, CreatedMessage)
        assert isinstance(updated, UpdatedMessage)
        assert created.message_type is MessageType.CREATED
        assert created.markets == ()

    def test_extra_fields_are_ignored(self) -> None:
        message = parse_message(
            {"type": "deleted", "id": "1", "bookie": "A", "sport": "football", "seq": 9}
        )

        assert message.event_id == "1"

    def test_timestamp_is_parsed(self) -> None:
        message = parse_message(
            {"type": "welcome", "timestamp": "2025-01-01T12:00:00Z", "message": "hi"}
        )

        assert isinstance(message, WelcomeMessage)
        assert message.timestamp is not None
        assert message.timestamp.year == 2025

    def test_unknown_type_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_message({"type": "heartbeat"})

    def test_market_prices(self) -> None:
        message = parse_message(
            {
                "type": "updated",
                "id": "1",
                "bookie": "A",
                "markets": [
                    {
                        "name": "Totals",
                        "odds": [{"hdp": "2.5", "over": "1.95", "under": "1.85", "max": 250}],
                    }
                ],
            }
        )

        quote = message.markets[0].odds[0]
        assert quote.hdp == 2.5
        assert quote.prices == {"over": 1.95, "under": 1.85}

    def test_messages_are_frozen(self) -> None:
        message = parse_message({"type": "deleted", "id": "1", "bookie": "A"})

        with pytest.raises(ValidationError):
            message.bookmaker = "B"
