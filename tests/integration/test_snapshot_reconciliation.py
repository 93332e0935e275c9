"""
End-to-end: REST snapshot first, then stream records reconcile the store.
"""

import asyncio

import orjson
import pytest

from oddsfeed.live.client import OddsFeedClient
from oddsfeed.live.config import ConnectionConfig, ConnectionParams, FeedConfig, SnapshotConfig
from oddsfeed.live.types import FeedState


def market(name: str, home: str) -> dict:
    return {"name": name, "updatedAt": "2025-01-01T12:00:00Z", "odds": [{"home": home, "away": "3.0"}]}


@pytest.mark.asyncio
async def test_snapshot_then_stream_updates(
    socket_factory, session_factory, odds_source_factory, wait_until
) -> None:
    source = odds_source_factory(
        events={"football": [{"id": "A"}, {"id": "B"}]},
        odds={
            "A": {"id": "A", "bookmakers": {"X": [market("ML", "1.5")], "Y": [market("ML", "1.6")]}},
            "B": {"id": "B", "bookmakers": {"X": [market("ML", "2.5")]}},
        },
    )
    first, second = socket_factory(), socket_factory()
    session = session_factory([first, second])
    config = FeedConfig(
        params=ConnectionParams(
            api_key="k", markets=("ML", "Totals"), sports=("football",), status="live"
        ),
        connection=ConnectionConfig(base_reconnect_delay_s=0.01, max_reconnect_delay_s=0.02),
        snapshot=SnapshotConfig(enabled=True, bookmakers=("X", "Y")),
    )
    feed = OddsFeedClient(config, api=source, session=session)

    await feed.start()

    # Snapshot covers both events before any stream record
    assert feed.store.event_ids() == ["A", "B"]
    assert feed.load_report.events_loaded == 2
    assert source.event_calls == [("football", None, "live")]

    # An update replaces the whole market list of A/X
    first.feed_text(
        orjson.dumps(
            {"type": "updated", "id": "A", "bookie": "X", "markets": [market("ML", "1.4"), market("Totals", "1.9")]}
        ).decode()
    )
    await wait_until(lambda: len(feed.store.get_markets("A", "X")) == 2)
    assert [m.odds[0].home for m in feed.store.get_markets("A", "X")] == [1.4, 1.9]

    # A drop is recovered transparently, and the store survives it
    first.drop()
    await wait_until(lambda: feed.connection.metrics.connections_opened == 2)
    assert feed.state == FeedState.RUNNING

    # A delete removes only A/X; a malformed line in the same frame is skipped
    second.feed_text(
        "{broken\n" + orjson.dumps({"type": "deleted", "id": "A", "bookie": "X"}).decode()
    )
    await wait_until(lambda: "X" not in feed.store.get("A"))

    assert feed.store.bookmakers("A") == ["Y"]
    assert feed.store.bookmakers("B") == ["X"]
    assert feed.decoder.stats.parse_errors == 1

    await feed.stop()
    await asyncio.wait_for(feed.wait(), timeout=1.0)
    assert feed.state == FeedState.STOPPED
