"""
Shared types, enums, and data structures for the live odds feed.

This module contains types that are used across multiple components
of the live feed system.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class FeedState(str, Enum):
    """State machine for OddsFeedClient."""

    STOPPED = "stopped"
    LOADING = "loading"
    RUNNING = "running"
    STOPPING = "stopping"
    FAILED = "failed"


class ConnectionState(str, Enum):
    """State machine for the feed WebSocket connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"


class MessageType(str, Enum):
    """Types of records received from the feed."""

    WELCOME = "welcome"
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    NO_MARKETS = "no_markets"


_API_KEY_RE = re.compile(r"(apiKey=)[^&]*")


def redact_url(url: str) -> str:
    """Mask the API key in a URL before it is logged or exposed."""
    return _API_KEY_RE.sub(r"\1***REDACTED***", url)


@dataclass
class ConnectionHealth:
    """Health snapshot for the feed connection."""

    state: ConnectionState
    url: str
    connected_since: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    reconnect_count: int = 0
    reconnect_attempt: int = 0
    message_count: int = 0
    error_count: int = 0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    @property
    def uptime_s(self) -> Optional[float]:
        """Connection uptime in seconds, or None if not connected."""
        if self.connected_since is None:
            return None
        now = datetime.now(timezone.utc)
        return (now - self.connected_since).total_seconds()

    @property
    def is_healthy(self) -> bool:
        """Check if connection is in a healthy state."""
        return self.state == ConnectionState.OPEN

    @property
    def seconds_since_message(self) -> Optional[float]:
        """Seconds since last message, or None if no messages yet."""
        if self.last_message_at is None:
            return None
        now = datetime.now(timezone.utc)
        return (now - self.last_message_at).total_seconds()


@dataclass
class ConnectionMetrics:
    """Counters for the feed connection."""

    frames_received: int = 0
    bytes_received: int = 0
    pings_sent: int = 0
    ping_failures: int = 0
    connections_opened: int = 0
    reconnections: int = 0
    errors: int = 0


@dataclass
class DecoderStats:
    """Statistics for frame decoding."""

    frames: int = 0
    lines: int = 0
    decoded: int = 0
    parse_errors: int = 0
    unknown_types: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
