"""
Configuration types for the live odds feed.

Provides immutable, validated configuration dataclasses for all live feed components.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from urllib.parse import urlencode

from oddsfeed.live.errors import ConfigurationError

# Streaming endpoint
DEFAULT_WS_URL = "wss://api.odds-api.io/v3/ws"

# Server-side filter limits
MAX_MARKETS = 20
MAX_SPORTS = 10
MAX_LEAGUES = 20


class EventStatus(str, Enum):
    """Event status filter accepted by the stream."""

    LIVE = "live"
    PREMATCH = "prematch"


@dataclass(frozen=True)
class ConnectionConfig:
    """Configuration for the feed WebSocket connection."""

    # Connection behavior
    connect_timeout_s: float = 30.0
    ping_interval_s: float = 30.0  # Keepalive interval while open
    max_reconnect_attempts: int = 10
    base_reconnect_delay_s: float = 1.0
    max_reconnect_delay_s: float = 30.0
    reconnect_jitter: float = 0.0  # 0.3 would mean ±30%

    def __post_init__(self) -> None:
        if self.connect_timeout_s <= 0:
            raise ConfigurationError(
                "connect_timeout_s must be positive",
                field="connect_timeout_s",
                value=self.connect_timeout_s,
            )
        if self.ping_interval_s <= 0:
            raise ConfigurationError(
                "ping_interval_s must be positive",
                field="ping_interval_s",
                value=self.ping_interval_s,
            )
        if self.max_reconnect_attempts < 0:
            raise ConfigurationError(
                "max_reconnect_attempts must be non-negative",
                field="max_reconnect_attempts",
                value=self.max_reconnect_attempts,
            )
        if self.base_reconnect_delay_s <= 0:
            raise ConfigurationError(
                "base_reconnect_delay_s must be positive",
                field="base_reconnect_delay_s",
                value=self.base_reconnect_delay_s,
            )
        if self.max_reconnect_delay_s < self.base_reconnect_delay_s:
            raise ConfigurationError(
                "max_reconnect_delay_s must not be below base_reconnect_delay_s",
                field="max_reconnect_delay_s",
                value=self.max_reconnect_delay_s,
            )
        if not (0 <= self.reconnect_jitter <= 1):
            raise ConfigurationError(
                "reconnect_jitter must be between 0 and 1",
                field="reconnect_jitter",
                value=self.reconnect_jitter,
            )


def _normalize(values: tuple[str, ...] | list[str] | str, name: str) -> tuple[str, ...]:
    """Strip, drop empties and de-duplicate while keeping order."""
    if isinstance(values, str):
        values = values.split(",")
    seen: dict[str, None] = {}
    for value in values:
        if not isinstance(value, str):
            raise ConfigurationError(f"{name} entries must be strings", field=name, value=value)
        value = value.strip()
        if value:
            seen[value] = None
    return tuple(seen)


@dataclass(frozen=True)
class ConnectionParams:
    """
    Filters and credentials for one stream connection.

    Immutable for the lifetime of a connection: build a new one (and a new
    connection) when the filters change.

    Example:
        params = ConnectionParams(
            api_key="...",
            markets=("ML", "Spread", "Totals"),
            sports=("football",),
            status=EventStatus.LIVE,
        )
    """

    api_key: str = field(repr=False)
    markets: tuple[str, ...]
    sports: tuple[str, ...] = field(default_factory=tuple)
    leagues: tuple[str, ...] = field(default_factory=tuple)
    status: Optional[EventStatus] = None

    def __post_init__(self) -> None:
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError("api_key is required", field="api_key")

        # Accept lists or comma-separated strings from callers and config files
        object.__setattr__(self, "markets", _normalize(self.markets, "markets"))
        object.__setattr__(self, "sports", _normalize(self.sports, "sports"))
        object.__setattr__(self, "leagues", _normalize(self.leagues, "leagues"))

        if not self.markets:
            raise ConfigurationError("At least one market must be configured", field="markets")
        if len(self.markets) > MAX_MARKETS:
            raise ConfigurationError(
                f"At most {MAX_MARKETS} markets are allowed",
                field="markets",
                value=len(self.markets),
            )
        if len(self.sports) > MAX_SPORTS:
            raise ConfigurationError(
                f"At most {MAX_SPORTS} sports are allowed",
                field="sports",
                value=len(self.sports),
            )
        if len(self.leagues) > MAX_LEAGUES:
            raise ConfigurationError(
                f"At most {MAX_LEAGUES} leagues are allowed",
                field="leagues",
                value=len(self.leagues),
            )

        if self.status is not None and not isinstance(self.status, EventStatus):
            try:
                object.__setattr__(self, "status", EventStatus(self.status))
            except ValueError as e:
                raise ConfigurationError(
                    "status must be 'live' or 'prematch'",
                    field="status",
                    value=self.status,
                ) from e

    def query_params(self) -> dict[str, str]:
        """Query parameters for the stream URI; empty filters are omitted."""
        params = {"apiKey": self.api_key, "markets": ",".join(self.markets)}
        if self.sports:
            params["sport"] = ",".join(self.sports)
        if self.leagues:
            params["leagues"] = ",".join(self.leagues)
        if self.status is not None:
            params["status"] = self.status.value
        return params

    def build_url(self, base_url: str = DEFAULT_WS_URL) -> str:
        """Build the stream URI with every non-empty filter query-encoded."""
        return f"{base_url}?{urlencode(self.query_params(), safe=',')}"


@dataclass(frozen=True)
class SnapshotConfig:
    """Configuration for the initial REST snapshot."""

    enabled: bool = False
    bookmakers: tuple[str, ...] = field(default_factory=tuple)
    concurrency: int = 1  # 1 = one event at a time

    def __post_init__(self) -> None:
        object.__setattr__(self, "bookmakers", _normalize(self.bookmakers, "bookmakers"))
        if self.concurrency < 1:
            raise ConfigurationError(
                "concurrency must be at least 1",
                field="concurrency",
                value=self.concurrency,
            )
        if self.enabled and not self.bookmakers:
            raise ConfigurationError(
                "bookmakers are required when the initial snapshot is enabled",
                field="bookmakers",
            )


@dataclass(frozen=True)
class FeedConfig:
    """
    Immutable top-level configuration for the odds feed client.

    Example:
        config = FeedConfig(
            params=ConnectionParams(api_key="...", markets=("ML",), sports=("football",)),
            snapshot=SnapshotConfig(enabled=True, bookmakers=("Bet365",)),
        )
    """

    params: ConnectionParams
    ws_url: str = DEFAULT_WS_URL
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)

    def __post_init__(self) -> None:
        if not self.ws_url.startswith(("ws://", "wss://")):
            raise ConfigurationError(
                "ws_url must be a ws:// or wss:// URL",
                field="ws_url",
                value=self.ws_url,
            )
        # The events endpoint needs a sport, so the snapshot needs one too
        if self.snapshot.enabled and not self.params.sports:
            raise ConfigurationError(
                "At least one sport is required when the initial snapshot is enabled",
                field="sports",
            )

    def get_ws_url(self) -> str:
        """Build the stream WebSocket URL."""
        return self.params.build_url(self.ws_url)
