"""
Liveness prober for the feed connection.

Sends a WebSocket ping on a fixed interval while the connection is open so
that silently dead connections surface as a close.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

from oddsfeed.live.types import ConnectionMetrics

logger = logging.getLogger(__name__)


class LivenessProber:
    """
    Periodic keepalive owned by the ConnectionManager.

    Failure to send is logged and counted, never raised: the close event that
    follows a dead socket is what drives reconnection.
    """

    def __init__(
        self,
        interval_s: float = 30.0,
        metrics: Optional[ConnectionMetrics] = None,
        name: str = "prober",
    ) -> None:
        self._interval_s = interval_s
        self._metrics = metrics or ConnectionMetrics()
        self._name = name
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Start probing the given socket, replacing any previous probe task."""
        self.stop()
        self._task = asyncio.create_task(self._probe_loop(ws), name=f"{self._name}_ping")

    def stop(self) -> None:
        """Cancel the probe task. Safe to call when not running."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _probe_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval_s)

                if ws.closed:
                    break

                try:
                    await ws.ping()
                    self._metrics.pings_sent += 1
                    logger.debug(f"[{self._name}] Sent ping")
                except Exception as e:
                    self._metrics.ping_failures += 1
                    logger.warning(f"[{self._name}] Ping failed: {e}")

        except asyncio.CancelledError:
            pass
