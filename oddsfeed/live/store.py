"""
In-memory snapshot of the odds the feed has observed.

Two-level container: event id -> bookmaker -> ordered markets. An absent
event key means no data has been seen for it yet, not zero odds.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Iterator

from oddsfeed.api.models import MarketRecord

logger = logging.getLogger(__name__)

BookmakerMarkets = dict[str, tuple[MarketRecord, ...]]


class SnapshotStore:
    """
    Latest markets per (event, bookmaker).

    Writes replace the whole market list of a bookmaker (last write wins);
    there is no per-market merge. Mutated only from the feed's event loop, so
    no lock is taken.
    """

    def __init__(self) -> None:
        self._events: dict[str, BookmakerMarkets] = {}

    def upsert(self, event_id: str, bookmaker: str, markets: Iterable[MarketRecord]) -> None:
        """Replace all markets stored for (event_id, bookmaker)."""
        self._events.setdefault(event_id, {})[bookmaker] = tuple(markets)

    def remove(self, event_id: str, bookmaker: str) -> bool:
        """
        Remove the (event_id, bookmaker) entry.

        Returns whether an entry was removed; removing an absent entry is a
        no-op. The event key is dropped together with its last bookmaker.
        """
        bookmakers = self._events.get(event_id)
        if bookmakers is None or bookmaker not in bookmakers:
            logger.debug(f"Remove of absent entry ignored: {event_id}/{bookmaker}")
            return False

        del bookmakers[bookmaker]
        if not bookmakers:
            del self._events[event_id]
        return True

    def get(self, event_id: str) -> BookmakerMarkets:
        """Markets per bookmaker for an event; empty when nothing was observed."""
        return dict(self._events.get(event_id, {}))

    def get_markets(self, event_id: str, bookmaker: str) -> tuple[MarketRecord, ...]:
        return self._events.get(event_id, {}).get(bookmaker, ())

    def size(self) -> int:
        """Number of distinct events held."""
        return len(self._events)

    def event_ids(self) -> list[str]:
        return list(self._events)

    def bookmakers(self, event_id: str) -> list[str]:
        return list(self._events.get(event_id, {}))

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._events))
