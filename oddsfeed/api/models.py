"""
Typed records returned by the odds API and carried by the stream.

Prices arrive as numbers or numeric strings depending on the endpoint; both
are coerced to float.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

OUTCOME_LABELS: tuple[str, ...] = ("home", "draw", "away", "over", "under")

_MISSING_PRICE = {"", "-", "n/a", "na", "null"}


class OddsQuote(BaseModel):
    """One line of prices inside a market."""

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    home: Optional[float] = None
    draw: Optional[float] = None
    away: Optional[float] = None
    over: Optional[float] = None
    under: Optional[float] = None
    hdp: Optional[float] = None  # handicap / total line
    max: Optional[float] = None  # maximum stake

    @field_validator("home", "draw", "away", "over", "under", "hdp", "max", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in _MISSING_PRICE:
            return None
        return value

    @property
    def prices(self) -> dict[str, float]:
        """Outcome label -> price for the outcomes present on this line."""
        return {
            label: getattr(self, label)
            for label in OUTCOME_LABELS
            if getattr(self, label) is not None
        }


class MarketRecord(BaseModel):
    """A bettable market (ML, Spread, Totals, ...) with its quotes."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    name: str
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    odds: tuple[OddsQuote, ...] = ()


class Event(BaseModel):
    """A sporting fixture as listed by the events endpoints."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    id: str
    home: Optional[str] = None
    away: Optional[str] = None
    date: Optional[str] = None
    status: Optional[str] = None
    sport: Optional[Any] = None
    league: Optional[Any] = None


class EventOdds(BaseModel):
    """Odds for one event, keyed by bookmaker."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    event_id: str = Field(validation_alias=AliasChoices("id", "eventId", "event_id"))
    bookmakers: dict[str, list[MarketRecord]] = Field(default_factory=dict)

    @field_validator("bookmakers", mode="before")
    @classmethod
    def _null_bookmakers(cls, value: Any) -> Any:
        return {} if value is None else value
