"""
Live Odds Feed Module.

This module consumes the odds-api.io WebSocket stream and keeps an in-memory
snapshot of the latest odds per event and bookmaker.

Components:
- OddsFeedClient: Top-level orchestration and lifecycle management
- ConnectionManager: WebSocket lifecycle, reconnection, keepalive
- ReconnectPolicy: Exponential backoff bounded by attempts and delay
- LivenessProber: Periodic pings while the connection is open
- MessageDecoder: Frame splitting, record validation and routing
- SnapshotStore: event -> bookmaker -> markets
- InitialSnapshotLoader: Optional REST snapshot before streaming

Usage:
    from oddsfeed.live import ConnectionParams, FeedConfig, OddsFeedClient

    config = FeedConfig(
        params=ConnectionParams(api_key="...", markets=("ML", "Totals"), sports=("football",)),
    )
    feed = OddsFeedClient(config)
    await feed.start()
"""

from oddsfeed.live.backoff import ReconnectPolicy
from oddsfeed.live.client import OddsFeedClient
from oddsfeed.live.config import (
    ConnectionConfig,
    ConnectionParams,
    EventStatus,
    FeedConfig,
    SnapshotConfig,
)
from oddsfeed.live.connection import ConnectionManager
from oddsfeed.live.decoder import MessageDecoder
from oddsfeed.live.errors import (
    ConfigurationError,
    ConnectionError,
    LiveFeedError,
    MessageParseError,
    ReconnectExhaustedError,
)
from oddsfeed.live.keepalive import LivenessProber
from oddsfeed.live.loader import InitialSnapshotLoader, LoadReport
from oddsfeed.live.messages import (
    CreatedMessage,
    DeletedMessage,
    InboundMessage,
    NoMarketsMessage,
    UpdatedMessage,
    WelcomeMessage,
)
from oddsfeed.live.store import SnapshotStore
from oddsfeed.live.types import (
    ConnectionHealth,
    ConnectionState,
    FeedState,
    MessageType,
)

__all__ = [
    # Main entry point
    "OddsFeedClient",
    "FeedConfig",
    "ConnectionParams",
    "ConnectionConfig",
    "SnapshotConfig",
    "EventStatus",
    # Components
    "ConnectionManager",
    "ReconnectPolicy",
    "LivenessProber",
    "MessageDecoder",
    "SnapshotStore",
    "InitialSnapshotLoader",
    "LoadReport",
    # Messages
    "InboundMessage",
    "WelcomeMessage",
    "CreatedMessage",
    "UpdatedMessage",
    "DeletedMessage",
    "NoMarketsMessage",
    # Types
    "ConnectionState",
    "FeedState",
    "MessageType",
    "ConnectionHealth",
    # Errors
    "LiveFeedError",
    "ConnectionError",
    "ReconnectExhaustedError",
    "MessageParseError",
    "ConfigurationError",
]
