"""
REST client for the odds API.

Usage:
    from oddsfeed.api import OddsAPIClient

    async with OddsAPIClient(api_key="...") as api:
        events = await api.get_events("basketball", league="usa-nba")
"""

from oddsfeed.api.client import DEFAULT_BASE_URL, ClientConfig, OddsAPIClient
from oddsfeed.api.errors import (
    InvalidAPIKeyError,
    NetworkError,
    NotFoundError,
    OddsAPIError,
    RateLimitExceededError,
    RequestTimeoutError,
)
from oddsfeed.api.models import Event, EventOdds, MarketRecord, OddsQuote

__all__ = [
    # Client
    "OddsAPIClient",
    "ClientConfig",
    "DEFAULT_BASE_URL",
    # Models
    "Event",
    "EventOdds",
    "MarketRecord",
    "OddsQuote",
    # Errors
    "OddsAPIError",
    "InvalidAPIKeyError",
    "RateLimitExceededError",
    "NotFoundError",
    "RequestTimeoutError",
    "NetworkError",
]
