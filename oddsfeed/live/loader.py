"""
Initial Snapshot Loader.

Fills the SnapshotStore from the REST API before the stream is opened, so
nothing is missed while the connection is being set up.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from oddsfeed.api.errors import OddsAPIError
from oddsfeed.api.models import MarketRecord
from oddsfeed.live.config import ConnectionParams, EventStatus, SnapshotConfig
from oddsfeed.live.store import SnapshotStore
from oddsfeed.ports.odds_source import OddsSource

logger = logging.getLogger(__name__)

# Stream status filter -> events endpoint status
REST_STATUS: dict[EventStatus, str] = {
    EventStatus.LIVE: "live",
    EventStatus.PREMATCH: "upcoming",
}


@dataclass
class LoadReport:
    """Outcome of one snapshot load."""

    events_listed: int = 0
    events_loaded: int = 0
    events_failed: int = 0
    listing_failures: int = 0
    entries_written: int = 0


class InitialSnapshotLoader:
    """
    Populates the store the same way streamed ``created`` records would.

    Failures are contained: a failing event listing or a failing per-event
    odds fetch is logged and skipped. An event's odds are written only after
    its fetch fully succeeded, so a failed event never leaves partial data.
    """

    def __init__(
        self,
        source: OddsSource,
        store: SnapshotStore,
        params: ConnectionParams,
        config: SnapshotConfig,
        name: str = "snapshot",
    ) -> None:
        self._source = source
        self._store = store
        self._params = params
        self._config = config
        self._name = name
        self._markets = {m.lower() for m in params.markets}
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop issuing fetches and writing to the store; the running load returns early."""
        self._cancelled = True

    async def load(self) -> LoadReport:
        """Fetch the events for the configured filters and their current odds."""
        self._cancelled = False
        report = LoadReport()
        event_ids = await self._list_event_ids(report)
        report.events_listed = len(event_ids)
        logger.info(f"[{self._name}] Loading odds for {len(event_ids)} event(s)")

        if self._config.concurrency == 1:
            for event_id in event_ids:
                await self._load_event(event_id, report)
        else:
            semaphore = asyncio.Semaphore(self._config.concurrency)

            async def bounded(event_id: str) -> None:
                async with semaphore:
                    await self._load_event(event_id, report)

            await asyncio.gather(*(bounded(event_id) for event_id in event_ids))

        logger.info(
            f"[{self._name}] Snapshot loaded: {report.events_loaded} ok, "
            f"{report.events_failed} failed, {report.entries_written} entries"
        )
        return report

    async def _list_event_ids(self, report: LoadReport) -> list[str]:
        status = REST_STATUS[self._params.status] if self._params.status else None
        leagues: tuple[Optional[str], ...] = self._params.leagues or (None,)
        event_ids: dict[str, None] = {}

        for sport in self._params.sports:
            for league in leagues:
                if self._cancelled:
                    return list(event_ids)
                try:
                    events = await self._source.get_events(sport, league, status=status)
                except (OddsAPIError, ValidationError) as e:
                    report.listing_failures += 1
                    logger.warning(
                        f"[{self._name}] Event listing failed for {sport}/{league or '*'}: {e}"
                    )
                    continue
                for event in events:
                    event_ids[event.id] = None

        return list(event_ids)

    async def _load_event(self, event_id: str, report: LoadReport) -> None:
        if self._cancelled:
            return
        try:
            odds = await self._source.get_event_odds(event_id, self._config.bookmakers)
        except (OddsAPIError, ValidationError) as e:
            report.events_failed += 1
            logger.warning(f"[{self._name}] Skipping event {event_id}: {e}")
            return
        if self._cancelled:
            logger.debug(f"[{self._name}] Discarding odds for {event_id}: load cancelled")
            return

        entries = {
            bookmaker: self._filter_markets(markets)
            for bookmaker, markets in odds.bookmakers.items()
        }
        for bookmaker, markets in entries.items():
            if not markets:
                continue
            self._store.upsert(event_id, bookmaker, markets)
            report.entries_written += 1

        report.events_loaded += 1

    def _filter_markets(self, markets: list[MarketRecord]) -> list[MarketRecord]:
        """Keep only the markets the stream is subscribed to."""
        return [m for m in markets if m.name.lower() in self._markets]
