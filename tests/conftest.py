"""
Shared fakes for the live feed tests.

FakeWebSocket mimics the parts of aiohttp.ClientWebSocketResponse the feed
uses (async iteration, close, ping, exception); FakeSession scripts the
outcome of each ws_connect call; FakeOddsSource stands in for the REST API.
"""

import asyncio
from typing import Any, Awaitable, Callable, NamedTuple, Optional, Sequence, Union

import aiohttp
import pytest

from oddsfeed.api.errors import NetworkError, OddsAPIError
from oddsfeed.api.models import Event, EventOdds


class FakeMessage(NamedTuple):
    type: aiohttp.WSMsgType
    data: Any
    extra: Any = None


class FakeWebSocket:
    """Scriptable stand-in for a client WebSocket."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[FakeMessage] = asyncio.Queue()
        self._exception: Optional[BaseException] = None
        self.closed = False
        self.close_code: Optional[int] = None
        self.pings = 0
        self.fail_ping = False
        self.close_calls = 0

    # --- scripting ---

    def feed_text(self, data: str) -> None:
        self._queue.put_nowait(FakeMessage(aiohttp.WSMsgType.TEXT, data))

    def feed_error(self, error: BaseException) -> None:
        self._exception = error
        self._queue.put_nowait(FakeMessage(aiohttp.WSMsgType.ERROR, error))

    def drop(self, code: int = 1006) -> None:
        """Simulate the server side going away."""
        self.close_code = code
        self._queue.put_nowait(FakeMessage(aiohttp.WSMsgType.CLOSED, None))

    # --- aiohttp surface ---

    def __aiter__(self) -> "FakeWebSocket":
        return self

    async def __anext__(self) -> FakeMessage:
        msg = await self._queue.get()
        if msg.type in (
            aiohttp.WSMsgType.CLOSE,
            aiohttp.WSMsgType.CLOSING,
            aiohttp.WSMsgType.CLOSED,
        ):
            self.closed = True
            raise StopAsyncIteration
        return msg

    async def close(self, *, code: int = 1000, message: bytes = b"") -> bool:
        self.close_calls += 1
        if self.closed:
            return False
        self.closed = True
        if self.close_code is None:
            self.close_code = code
        self._queue.put_nowait(FakeMessage(aiohttp.WSMsgType.CLOSED, None))
        return True

    async def ping(self, message: bytes = b"") -> None:
        if self.fail_ping:
            raise ConnectionResetError("socket is gone")
        self.pings += 1

    def exception(self) -> Optional[BaseException]:
        return self._exception


class FakeSession:
    """Session whose ws_connect returns scripted sockets or raises scripted errors."""

    def __init__(self, script: Sequence[Union[FakeWebSocket, BaseException]] = ()) -> None:
        self._script = list(script)
        self.urls: list[str] = []
        self.closed = False
        self.hang = False

    def push(self, item: Union[FakeWebSocket, BaseException]) -> None:
        self._script.append(item)

    async def ws_connect(self, url: str, **kwargs: Any) -> FakeWebSocket:
        self.urls.append(url)
        if self.hang:
            await asyncio.Event().wait()
        if not self._script:
            raise aiohttp.ClientConnectionError("connection refused")
        item = self._script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True

    @property
    def connect_attempts(self) -> int:
        return len(self.urls)


class FakeOddsSource:
    """In-memory REST collaborator for the snapshot loader."""

    def __init__(
        self,
        events: Optional[dict[str, list[dict[str, Any]]]] = None,
        odds: Optional[dict[str, dict[str, Any]]] = None,
        failing_events: Sequence[str] = (),
        failing_sports: Sequence[str] = (),
    ) -> None:
        self._events = events or {}
        self._odds = odds or {}
        self._failing_events = set(failing_events)
        self._failing_sports = set(failing_sports)
        self.event_calls: list[tuple[str, Optional[str], Optional[str]]] = []
        self.odds_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        # Awaited inside each odds fetch, before it returns
        self.on_fetch: Optional[Callable[[str], Awaitable[None]]] = None

    async def get_events(
        self, sport: str, league: Optional[str] = None, *, status: Optional[str] = None
    ) -> list[Event]:
        self.event_calls.append((sport, league, status))
        if sport in self._failing_sports:
            raise NetworkError("Network request failed: connection reset")
        return [Event.model_validate(e) for e in self._events.get(sport, [])]

    async def get_event_odds(self, event_id: str, bookmakers: Sequence[str]) -> EventOdds:
        self.odds_calls.append(event_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if self.on_fetch is not None:
                await self.on_fetch(event_id)
            if event_id in self._failing_events:
                raise OddsAPIError("API error 500: boom", status=500)
            return EventOdds.model_validate(self._odds[event_id])
        finally:
            self.in_flight -= 1


async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def socket_factory() -> Callable[[], FakeWebSocket]:
    return FakeWebSocket


@pytest.fixture
def session_factory() -> Callable[..., FakeSession]:
    return FakeSession


@pytest.fixture
def odds_source_factory() -> Callable[..., FakeOddsSource]:
    return FakeOddsSource


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    return _wait_until
