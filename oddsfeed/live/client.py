"""
Odds Feed Client - Top-level orchestration.

Coordinates all live feed components:
- InitialSnapshotLoader for the optional REST snapshot
- ConnectionManager for WebSocket lifecycle and reconnects
- MessageDecoder for frame decoding and routing
- SnapshotStore holding the latest odds
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from oddsfeed.live.config import FeedConfig
from oddsfeed.live.connection import ConnectionManager
from oddsfeed.live.decoder import Listener, MessageDecoder
from oddsfeed.live.errors import ConfigurationError, ReconnectExhaustedError
from oddsfeed.live.loader import InitialSnapshotLoader, LoadReport
from oddsfeed.live.messages import WelcomeMessage
from oddsfeed.live.store import SnapshotStore
from oddsfeed.live.types import ConnectionHealth, ConnectionState, FeedState
from oddsfeed.ports.odds_source import OddsSource

logger = logging.getLogger(__name__)


class OddsFeedClient:
    """
    Real-time odds feed with snapshot reconciliation.

    Manages the complete lifecycle of the feed:
    1. Optional initial snapshot over REST (streaming starts only afterwards)
    2. Connection establishment
    3. Frame decoding into the snapshot store
    4. Reconnects with backoff, and a terminal give-up
    5. Graceful shutdown

    State Machine:
        [STOPPED] --start()--> [LOADING] --> [RUNNING] --stop()--> [STOPPING] --> [STOPPED]
                                                 |
                                      reconnects exhausted
                                                 v
                                             [FAILED]

    Usage:
        config = FeedConfig(
            params=ConnectionParams(api_key="...", markets=("ML",), sports=("football",)),
        )
        async with OddsAPIClient(api_key="...") as api:
            feed = OddsFeedClient(config, api=api)
            await feed.start()
            try:
                await feed.wait()  # raises ReconnectExhaustedError on give-up
            finally:
                await feed.stop()
    """

    def __init__(
        self,
        config: FeedConfig,
        api: Optional[OddsSource] = None,
        store: Optional[SnapshotStore] = None,
        on_give_up: Optional[Callable[[ReconnectExhaustedError], Awaitable[None]]] = None,
        session: Optional[aiohttp.ClientSession] = None,
        name: str = "odds_feed",
    ) -> None:
        """
        Initialize the feed client.

        Args:
            config: Feed configuration
            api: REST collaborator, required when the initial snapshot is enabled
            store: Store to fill; a fresh one is created when omitted
            on_give_up: Callback fired once when reconnects are exhausted
            session: Optional aiohttp session shared with the caller
            name: Name for logging purposes
        """
        if config.snapshot.enabled and api is None:
            raise ConfigurationError(
                "An API client is required when the initial snapshot is enabled",
                field="api",
            )

        self._config = config
        self._name = name
        self._on_give_up = on_give_up

        # State
        self._state = FeedState.STOPPED
        self._started_at: Optional[datetime] = None
        self._stop_requested = False
        self._load_report: Optional[LoadReport] = None
        self._load_task: Optional[asyncio.Task[LoadReport]] = None

        # Components
        self._store = store if store is not None else SnapshotStore()
        self._decoder = MessageDecoder(self._store, name=f"{name}_decoder")
        self._loader: Optional[InitialSnapshotLoader] = None
        if config.snapshot.enabled and api is not None:
            self._loader = InitialSnapshotLoader(
                source=api,
                store=self._store,
                params=config.params,
                config=config.snapshot,
                name=f"{name}_snapshot",
            )
        self._connection = ConnectionManager(
            url=config.get_ws_url(),
            config=config.connection,
            on_frame=self._decoder.process_frame,
            on_state_change=self._on_connection_state_change,
            on_error=self._on_connection_error,
            on_give_up=self._handle_give_up,
            session=session,
            name=f"{name}_ws",
        )

    @property
    def state(self) -> FeedState:
        """Current feed state."""
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == FeedState.RUNNING

    @property
    def config(self) -> FeedConfig:
        return self._config

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def decoder(self) -> MessageDecoder:
        return self._decoder

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    @property
    def last_welcome(self) -> Optional[WelcomeMessage]:
        """Welcome record of the current (or last) session, for diagnostics."""
        return self._decoder.last_welcome

    @property
    def load_report(self) -> Optional[LoadReport]:
        return self._load_report

    def add_listener(self, listener: Listener) -> None:
        """Receive every decoded message after it has been applied to the store."""
        self._decoder.add_listener(listener)

    async def __aenter__(self) -> OddsFeedClient:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        """
        Load the initial snapshot (when enabled), then open the stream.
        """
        if self._state not in (FeedState.STOPPED, FeedState.FAILED):
            logger.warning(f"[{self._name}] Cannot start from state: {self._state.value}")
            return

        logger.info(f"[{self._name}] Starting odds feed...")
        self._stop_requested = False

        if self._loader is not None:
            self._state = FeedState.LOADING
            self._load_task = asyncio.create_task(
                self._loader.load(), name=f"{self._name}_snapshot"
            )
            try:
                self._load_report = await self._load_task
            except asyncio.CancelledError:
                if not self._stop_requested:
                    raise
            finally:
                self._load_task = None
            if self._stop_requested:
                logger.info(f"[{self._name}] Stopped during snapshot load")
                return

        self._state = FeedState.RUNNING
        self._started_at = datetime.now(timezone.utc)
        await self._connection.start()
        logger.info(f"[{self._name}] Odds feed started")

    async def stop(self) -> None:
        """Stop the feed gracefully. Safe to call in any state."""
        self._stop_requested = True
        if self._state == FeedState.STOPPING:
            return

        previous = self._state
        self._state = FeedState.STOPPING
        await self._cancel_load()
        await self._connection.stop()
        # A feed that gave up stays FAILED so the owner can tell
        self._state = FeedState.FAILED if previous == FeedState.FAILED else FeedState.STOPPED
        logger.info(f"[{self._name}] Odds feed stopped")

    async def _cancel_load(self) -> None:
        """Halt an in-flight snapshot load so nothing is fetched or written after stop()."""
        if self._loader is not None:
            self._loader.cancel()
        task = self._load_task
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def wait(self) -> None:
        """
        Block until the feed is stopped.

        Raises:
            ReconnectExhaustedError: If the feed gave up reconnecting
        """
        await self._connection.wait_closed()

    # --- Connection callbacks ---

    async def _on_connection_state_change(self, state: ConnectionState) -> None:
        logger.info(f"[{self._name}] Connection state: {state.value}")

    async def _on_connection_error(self, error: Exception) -> None:
        logger.error(f"[{self._name}] Connection error: {error}")

    async def _handle_give_up(self, error: ReconnectExhaustedError) -> None:
        self._state = FeedState.FAILED
        logger.error(f"[{self._name}] Feed failed: {error}")
        if self._on_give_up:
            await self._on_give_up(error)

    # --- Public methods ---

    def get_health(self) -> ConnectionHealth:
        """Get current connection health."""
        return self._connection.get_health()

    def get_stats(self) -> dict[str, Any]:
        """Get statistics summary."""
        decoder_stats = self._decoder.stats
        stats: dict[str, Any] = {
            "state": self._state.value,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "connection_state": self._connection.state.value,
            "events": self._store.size(),
            "decoder": {
                "frames": decoder_stats.frames,
                "decoded": decoder_stats.decoded,
                "parse_errors": decoder_stats.parse_errors,
                "unknown_types": decoder_stats.unknown_types,
                "by_type": dict(decoder_stats.by_type),
            },
            "connection": {
                "opened": self._connection.metrics.connections_opened,
                "reconnections": self._connection.metrics.reconnections,
                "pings_sent": self._connection.metrics.pings_sent,
                "errors": self._connection.metrics.errors,
            },
        }

        if self._load_report is not None:
            stats["snapshot"] = {
                "events_listed": self._load_report.events_listed,
                "events_loaded": self._load_report.events_loaded,
                "events_failed": self._load_report.events_failed,
                "entries_written": self._load_report.entries_written,
            }

        return stats
