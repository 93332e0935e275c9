"""
Asynchronous REST client for the odds API.

Every endpoint goes through ``fetch``, which builds the query string, applies
the request timeout and classifies failures into the OddsAPIError family.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Literal, Optional, Union

import aiohttp
import orjson
from pydantic import BaseModel, Field, TypeAdapter

from oddsfeed.api.errors import (
    InvalidAPIKeyError,
    NetworkError,
    NotFoundError,
    OddsAPIError,
    RateLimitExceededError,
    RequestTimeoutError,
)
from oddsfeed.api.models import Event, EventOdds

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api2.odds-api.io/v3"

_EVENTS = TypeAdapter(list[Event])
_EVENT_ODDS_LIST = TypeAdapter(list[EventOdds])

EventStatusFilter = Literal["upcoming", "live", "finished", "pending", "settled"]


class ClientConfig(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    timeout_s: float = Field(default=10.0, gt=0)
    user_agent: str = "oddsfeed-python/0.1.0"


def _format_param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(str(v) for v in value)
    return str(value)


def _join(values: Union[str, Sequence[str]]) -> str:
    if isinstance(values, str):
        return values
    return ",".join(values)


class OddsAPIClient:
    """
    REST client for odds-api.io.

    Usage:
        async with OddsAPIClient(api_key="...") as api:
            events = await api.get_events("football", league="england-premier-league")
            odds = await api.get_event_odds(events[0].id, ["Bet365", "SingBet"])
    """

    def __init__(
        self,
        api_key: str,
        config: Optional[ClientConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """
        Args:
            api_key: API key, sent as the ``apiKey`` query parameter
            config: Base URL, timeout and user agent
            session: Optional shared session; the client only closes sessions it created
        """
        self._api_key = api_key
        self._config = config or ClientConfig()
        self._session = session
        self._owns_session = session is None

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def __aenter__(self) -> OddsAPIClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def fetch(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        *,
        requires_auth: bool = True,
        method: str = "GET",
    ) -> Any:
        """
        Perform a request and return the decoded JSON body.

        None-valued parameters are dropped; sequences are comma-joined.

        Raises:
            InvalidAPIKeyError: 401
            RateLimitExceededError: 429
            NotFoundError: 404
            OddsAPIError: Any other non-2xx status or an undecodable body
            RequestTimeoutError: The request exceeded the configured timeout
            NetworkError: Connection-level failure
        """
        url = f"{self._config.base_url.rstrip('/')}/{path.lstrip('/')}"
        query = {k: _format_param(v) for k, v in (params or {}).items() if v is not None}
        logger.debug(f"{method} {path} params={sorted(query)}")
        if requires_auth:
            query["apiKey"] = self._api_key

        session = self._get_session()
        timeout = aiohttp.ClientTimeout(total=self._config.timeout_s)

        try:
            async with session.request(
                method,
                url,
                params=query,
                headers={"User-Agent": self._config.user_agent},
                timeout=timeout,
            ) as response:
                if response.status >= 400:
                    await self._raise_for_status(response)
                return await response.json(content_type=None, loads=orjson.loads)

        except OddsAPIError:
            raise
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(
                f"Request timeout after {self._config.timeout_s}s"
            ) from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Network request failed: {e}") from e
        except orjson.JSONDecodeError as e:
            raise OddsAPIError(f"Invalid JSON response from {path}: {e}") from e

    async def _raise_for_status(self, response: aiohttp.ClientResponse) -> None:
        status = response.status
        try:
            body = await response.text()
        except (aiohttp.ClientError, UnicodeDecodeError):
            body = ""
        error_message = body or (response.reason or "")

        if status == 401:
            raise InvalidAPIKeyError("Invalid API key")
        if status == 429:
            retry_after = response.headers.get("Retry-After")
            try:
                retry_after_s = float(retry_after) if retry_after is not None else None
            except ValueError:
                retry_after_s = None
            raise RateLimitExceededError(retry_after_s=retry_after_s)
        if status == 404:
            raise NotFoundError("Resource not found")
        raise OddsAPIError(f"API error {status}: {error_message}", status=status)

    # --- Sports & leagues ---

    async def get_sports(self) -> list[dict[str, Any]]:
        return await self.fetch("sports", requires_auth=False)

    async def get_leagues(self, sport: str) -> list[dict[str, Any]]:
        return await self.fetch("leagues", {"sport": sport})

    # --- Events ---

    async def get_events(
        self,
        sport: str,
        league: Optional[str] = None,
        *,
        participant_id: Optional[int] = None,
        status: Optional[EventStatusFilter] = None,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        bookmaker: Optional[str] = None,
    ) -> list[Event]:
        """List events for a sport, optionally narrowed by league, status and time window."""
        data = await self.fetch(
            "events",
            {
                "sport": sport,
                "league": league,
                "participantId": participant_id,
                "status": status,
                "from": from_,
                "to": to,
                "bookmaker": bookmaker,
            },
        )
        return _EVENTS.validate_python(data or [])

    async def get_event_by_id(self, event_id: str) -> Event:
        return Event.model_validate(await self.fetch(f"events/{event_id}"))

    async def get_live_events(self, sport: str) -> list[Event]:
        return _EVENTS.validate_python(await self.fetch("events/live", {"sport": sport}) or [])

    async def search_events(self, query: str) -> list[Event]:
        return _EVENTS.validate_python(await self.fetch("events/search", {"query": query}) or [])

    # --- Odds ---

    async def get_event_odds(
        self, event_id: str, bookmakers: Union[str, Sequence[str]]
    ) -> EventOdds:
        """Current odds of one event for the given bookmakers."""
        data = await self.fetch("odds", {"eventId": event_id, "bookmakers": _join(bookmakers)})
        return EventOdds.model_validate(data)

    async def get_odds_movement(
        self,
        event_id: str,
        bookmaker: str,
        market: str,
        market_line: Optional[Union[str, float]] = None,
    ) -> dict[str, Any]:
        return await self.fetch(
            "odds/movements",
            {
                "eventId": event_id,
                "bookmaker": bookmaker,
                "market": market,
                "marketLine": market_line,
            },
        )

    async def get_odds_for_multiple_events(
        self,
        event_ids: Union[str, Sequence[str]],
        bookmakers: Union[str, Sequence[str]],
    ) -> list[EventOdds]:
        data = await self.fetch(
            "odds/multi",
            {"eventIds": _join(event_ids), "bookmakers": _join(bookmakers)},
        )
        return _EVENT_ODDS_LIST.validate_python(data or [])

    async def get_updated_odds_since(
        self, since: int, bookmaker: str, sport: str
    ) -> list[EventOdds]:
        data = await self.fetch(
            "odds/updated",
            {"since": since, "bookmaker": bookmaker, "sport": sport},
        )
        return _EVENT_ODDS_LIST.validate_python(data or [])

    # --- Participants ---

    async def get_participants(
        self, sport: str, search: Optional[str] = None
    ) -> list[dict[str, Any]]:
        return await self.fetch("participants", {"sport": sport, "search": search})

    async def get_participant_by_id(self, participant_id: int) -> dict[str, Any]:
        return await self.fetch(f"participants/{participant_id}")

    # --- Bookmakers ---

    async def get_bookmakers(self) -> list[dict[str, Any]]:
        return await self.fetch("bookmakers", requires_auth=False)

    async def get_selected_bookmakers(self) -> list[dict[str, Any]]:
        return await self.fetch("bookmakers/selected")

    async def select_bookmakers(self, bookmakers: Union[str, Sequence[str]]) -> dict[str, Any]:
        return await self.fetch(
            "bookmakers/selected/select",
            {"bookmakers": _join(bookmakers)},
            method="PUT",
        )

    async def clear_selected_bookmakers(self) -> dict[str, Any]:
        return await self.fetch("bookmakers/selected/clear", method="PUT")

    # --- Betting analysis (pass-through) ---

    async def get_arbitrage_bets(
        self,
        bookmakers: Union[str, Sequence[str]],
        limit: Optional[int] = None,
        include_event_details: Optional[bool] = None,
    ) -> list[dict[str, Any]]:
        return await self.fetch(
            "arbitrage-bets",
            {
                "bookmakers": _join(bookmakers),
                "limit": limit,
                "includeEventDetails": include_event_details,
            },
        )

    async def get_value_bets(
        self,
        bookmaker: str,
        include_event_details: Optional[bool] = None,
    ) -> list[dict[str, Any]]:
        return await self.fetch(
            "value-bets",
            {"bookmaker": bookmaker, "includeEventDetails": include_event_details},
        )
