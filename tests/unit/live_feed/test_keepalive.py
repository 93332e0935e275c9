"""
Unit tests for the LivenessProber.
"""

import asyncio

import pytest

from oddsfeed.live.keepalive import LivenessProber
from oddsfeed.live.types import ConnectionMetrics


class TestLivenessProber:
    """Tests for LivenessProber."""

    @pytest.mark.asyncio
    async def test_pings_on_interval(self, socket_factory, wait_until) -> None:
        """Test pings are sent while the socket is open."""
        ws = socket_factory()
        metrics = ConnectionMetrics()
        prober = LivenessProber(interval_s=0.01, metrics=metrics)

        prober.start(ws)
        await wait_until(lambda: ws.pings >= 3)
        prober.stop()

        assert metrics.pings_sent >= 3
        assert not prober.is_running

    @pytest.mark.asyncio
    async def test_ping_failure_is_counted_not_raised(self, socket_factory, wait_until) -> None:
        """Test a failing ping does not stop the prober."""
        ws = socket_factory()
        ws.fail_ping = True
        metrics = ConnectionMetrics()
        prober = LivenessProber(interval_s=0.01, metrics=metrics)

        prober.start(ws)
        await wait_until(lambda: metrics.ping_failures >= 2)

        assert prober.is_running
        assert metrics.pings_sent == 0
        prober.stop()

    @pytest.mark.asyncio
    async def test_exits_when_socket_closed(self, socket_factory, wait_until) -> None:
        ws = socket_factory()
        await ws.close()
        prober = LivenessProber(interval_s=0.01)

        prober.start(ws)
        await wait_until(lambda: not prober.is_running)

        assert ws.pings == 0

    @pytest.mark.asyncio
    async def test_restart_replaces_previous_task(self, socket_factory) -> None:
        first, second = socket_factory(), socket_factory()
        prober = LivenessProber(interval_s=0.01)

        prober.start(first)
        prober.start(second)
        await asyncio.sleep(0.05)
        first_pings = first.pings
        await asyncio.sleep(0.05)
        prober.stop()

        assert first.pings == first_pings == 0
        assert second.pings > 0

    def test_stop_when_not_started(self) -> None:
        prober = LivenessProber()

        prober.stop()

        assert not prober.is_running
