"""OddsSource Port Interface.

Contract: The two REST reads the initial snapshot needs. OddsAPIClient
satisfies it; tests pass fakes.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from oddsfeed.api.models import Event, EventOdds


class OddsSource(Protocol):
    async def get_events(
        self, sport: str, league: Optional[str] = None, *, status: Optional[str] = None
    ) -> list[Event]: ...

    async def get_event_odds(self, event_id: str, bookmakers: Sequence[str]) -> EventOdds: ...
