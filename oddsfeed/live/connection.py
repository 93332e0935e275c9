"""
WebSocket Connection Manager for the odds stream.

Handles WebSocket lifecycle including:
- Connection establishment with timeout
- Exponential backoff reconnection scheduled as an owned, cancellable task
- Keepalive pings through the LivenessProber
- A terminal give-up signal once reconnect attempts are exhausted
- Connection-level metrics and health tracking
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Union

import aiohttp

from oddsfeed.live.backoff import ReconnectPolicy
from oddsfeed.live.config import ConnectionConfig
from oddsfeed.live.errors import ReconnectExhaustedError
from oddsfeed.live.keepalive import LivenessProber
from oddsfeed.live.types import (
    ConnectionHealth,
    ConnectionMetrics,
    ConnectionState,
    redact_url,
)

logger = logging.getLogger(__name__)

FrameCallback = Callable[[Union[str, bytes], int], Awaitable[None]]


class ConnectionManager:
    """
    Owns exactly one feed WebSocket at a time.

    State Machine:
        [DISCONNECTED] --start()--> [CONNECTING] --open--> [OPEN]
              ^                          |                    |
              |<------- open failed -----+<------ close ------+
              |                  (reconnect scheduled unless stopped)
              +<------------- [CLOSING] <--- stop() ---------(any)

    The ConnectionManager does NOT parse messages - it hands raw frames, in
    arrival order, to the registered callback. Decoding is handled by
    MessageDecoder.

    Usage:
        manager = ConnectionManager(
            url=params.build_url(),
            config=ConnectionConfig(),
            on_frame=decoder.process_frame,
        )
        await manager.start()
        # ... later ...
        await manager.stop()
    """

    def __init__(
        self,
        url: str,
        config: ConnectionConfig,
        on_frame: FrameCallback,
        on_state_change: Optional[Callable[[ConnectionState], Awaitable[None]]] = None,
        on_error: Optional[Callable[[Exception], Awaitable[None]]] = None,
        on_give_up: Optional[Callable[[ReconnectExhaustedError], Awaitable[None]]] = None,
        session: Optional[aiohttp.ClientSession] = None,
        name: str = "connection",
    ) -> None:
        """
        Initialize the connection manager.

        Args:
            url: WebSocket URL to connect to (may carry the API key)
            config: Connection configuration
            on_frame: Async callback for received frames (data, recv_ts_ms)
            on_state_change: Optional callback for state changes
            on_error: Optional callback for transport errors
            on_give_up: Optional callback fired once when reconnects are exhausted
            session: Optional shared session; only sessions created here are closed here
            name: Name for logging purposes
        """
        self._url = url
        self._config = config
        self._on_frame = on_frame
        self._on_state_change = on_state_change
        self._on_error = on_error
        self._on_give_up = on_give_up
        self._name = name

        # State
        self._state = ConnectionState.DISCONNECTED
        self._session = session
        self._owns_session = session is None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None

        # Tasks
        self._receive_task: Optional[asyncio.Task[None]] = None
        self._reconnect_task: Optional[asyncio.Task[None]] = None

        # Reconnection state
        self._policy = ReconnectPolicy.from_config(config)
        self._stop_requested = False
        self._terminal_error: Optional[ReconnectExhaustedError] = None
        self._closed_event = asyncio.Event()

        # Metrics
        self._metrics = ConnectionMetrics()
        self._prober = LivenessProber(
            interval_s=config.ping_interval_s,
            metrics=self._metrics,
            name=name,
        )
        self._connected_at: Optional[datetime] = None
        self._last_message_at: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._last_error_at: Optional[datetime] = None

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == ConnectionState.OPEN

    @property
    def url(self) -> str:
        """Connection URL with the API key masked."""
        return redact_url(self._url)

    @property
    def metrics(self) -> ConnectionMetrics:
        """Connection metrics."""
        return self._metrics

    @property
    def policy(self) -> ReconnectPolicy:
        return self._policy

    @property
    def prober(self) -> LivenessProber:
        return self._prober

    @property
    def reconnect_pending(self) -> bool:
        """Whether a reconnect timer is scheduled and not yet fired."""
        return self._reconnect_task is not None and not self._reconnect_task.done()

    @property
    def terminal_error(self) -> Optional[ReconnectExhaustedError]:
        return self._terminal_error

    async def _set_state(self, new_state: ConnectionState) -> None:
        """Update state and notify listener."""
        old_state = self._state
        self._state = new_state

        if old_state != new_state:
            logger.debug(f"[{self._name}] State: {old_state.value} -> {new_state.value}")
            if self._on_state_change:
                try:
                    await self._on_state_change(new_state)
                except Exception as e:
                    logger.warning(f"[{self._name}] State change callback error: {e}")

    def _record_error(self, error: BaseException) -> None:
        self._metrics.errors += 1
        self._last_error = str(error) or type(error).__name__
        self._last_error_at = datetime.now(timezone.utc)

    async def start(self) -> None:
        """
        Open the connection.

        A failed open is handled like an unexpected close: the reconnect
        policy schedules the next attempt. Only the terminal give-up is
        surfaced, through ``on_give_up`` and ``wait_closed()``.
        """
        if self._state != ConnectionState.DISCONNECTED or self.reconnect_pending:
            logger.warning(f"[{self._name}] Already started")
            return

        self._stop_requested = False
        self._terminal_error = None
        self._closed_event.clear()
        self._policy.reset()
        await self._connect()

    async def _connect(self) -> None:
        await self._set_state(ConnectionState.CONNECTING)

        try:
            ws = await self._establish_connection()
        except Exception as e:
            self._record_error(e)
            logger.warning(f"[{self._name}] Connection failed: {e!r}")
            if self._state == ConnectionState.CONNECTING:
                await self._set_state(ConnectionState.DISCONNECTED)
            await self._schedule_reconnect()
            return

        if self._stop_requested:
            # stop() ran while the handshake was in flight
            await ws.close()
            return

        self._ws = ws
        self._policy.reset()
        self._metrics.connections_opened += 1
        self._connected_at = datetime.now(timezone.utc)
        await self._set_state(ConnectionState.OPEN)
        logger.info(f"[{self._name}] Connected successfully")

        self._prober.start(ws)
        self._receive_task = asyncio.create_task(
            self._receive_loop(ws), name=f"{self._name}_receive"
        )

    async def _establish_connection(self) -> aiohttp.ClientWebSocketResponse:
        """Establish the actual WebSocket connection."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

        logger.info(f"[{self._name}] Connecting to {self.url}")
        return await asyncio.wait_for(
            self._session.ws_connect(self._url, autoping=True),
            timeout=self._config.connect_timeout_s,
        )

    async def _receive_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Hand frames to the callback until the socket closes."""
        try:
            async for msg in ws:
                recv_ts = int(time.time() * 1000)
                self._last_message_at = datetime.now(timezone.utc)

                if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                    self._metrics.frames_received += 1
                    self._metrics.bytes_received += len(msg.data)
                    try:
                        await self._on_frame(msg.data, recv_ts)
                    except Exception as e:
                        logger.error(f"[{self._name}] Frame handling error: {e}", exc_info=True)
                        self._metrics.errors += 1

                elif msg.type == aiohttp.WSMsgType.ERROR:
                    error = ws.exception() or RuntimeError("unknown WebSocket error")
                    logger.error(f"[{self._name}] WebSocket error: {error}")
                    await self._report_error(error)

                elif msg.type == aiohttp.WSMsgType.PONG:
                    logger.debug(f"[{self._name}] Received pong")

        except asyncio.CancelledError:
            logger.debug(f"[{self._name}] Receive loop cancelled")
            raise
        except Exception as e:
            logger.error(f"[{self._name}] Receive loop error: {e}")
            await self._report_error(e)

        await self._handle_close(ws)

    async def _report_error(self, error: Exception) -> None:
        self._record_error(error)
        if self._on_error:
            try:
                await self._on_error(error)
            except Exception as cb_err:
                logger.warning(f"[{self._name}] Error callback failed: {cb_err}")

    async def _handle_close(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Close handling: stop probing, go DISCONNECTED, then maybe reconnect."""
        self._prober.stop()
        if not ws.closed:
            await ws.close()
        if self._ws is ws:
            self._ws = None
        self._connected_at = None

        logger.info(f"[{self._name}] Connection closed (code: {ws.close_code})")
        await self._set_state(ConnectionState.DISCONNECTED)

        if self._stop_requested:
            return
        await self._schedule_reconnect()

    async def _schedule_reconnect(self) -> None:
        """Ask the policy for the next delay and arm the reconnect timer."""
        if self._stop_requested:
            return

        delay = self._policy.next_delay()
        if delay is None:
            await self._give_up()
            return

        self._metrics.reconnections += 1
        logger.warning(
            f"[{self._name}] Reconnecting in {delay:.2f}s "
            f"(attempt {self._policy.attempts}/{self._policy.max_attempts})"
        )
        self._reconnect_task = asyncio.create_task(
            self._reconnect_after(delay), name=f"{self._name}_reconnect"
        )

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._stop_requested:
            return
        await self._connect()

    async def _give_up(self) -> None:
        """Raise the terminal signal, once."""
        if self._terminal_error is not None:
            return

        error = ReconnectExhaustedError(
            f"Giving up after {self._policy.max_attempts} reconnect attempts",
            url=self.url,
            reconnect_attempt=self._policy.attempts,
            component="ConnectionManager",
        )
        self._terminal_error = error
        logger.error(f"[{self._name}] {error}")

        await self._close_session()
        self._closed_event.set()

        if self._on_give_up:
            try:
                await self._on_give_up(error)
            except Exception as cb_err:
                logger.warning(f"[{self._name}] Give-up callback failed: {cb_err}")

    async def stop(self) -> None:
        """
        Close the connection and suppress any further reconnect.

        Idempotent and safe in any state, including from inside the frame
        callback.
        """
        self._stop_requested = True

        idle = (
            self._state == ConnectionState.DISCONNECTED
            and self._ws is None
            and not self.reconnect_pending
        )
        if not idle:
            logger.info(f"[{self._name}] Closing connection")
            await self._set_state(ConnectionState.CLOSING)

        await self._cancel_task(self._reconnect_task)
        self._reconnect_task = None
        self._prober.stop()
        await self._cancel_task(self._receive_task)
        self._receive_task = None

        if self._ws is not None:
            ws, self._ws = self._ws, None
            if not ws.closed:
                await ws.close()

        await self._close_session()
        self._connected_at = None
        await self._set_state(ConnectionState.DISCONNECTED)
        self._closed_event.set()
        if not idle:
            logger.info(f"[{self._name}] Connection closed")

    async def wait_closed(self) -> None:
        """
        Wait until the connection is stopped or given up.

        Raises:
            ReconnectExhaustedError: If reconnect attempts were exhausted
        """
        await self._closed_event.wait()
        if self._terminal_error is not None:
            raise self._terminal_error

    @staticmethod
    async def _cancel_task(task: Optional[asyncio.Task[None]]) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _close_session(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    def get_health(self) -> ConnectionHealth:
        """Get current connection health snapshot."""
        return ConnectionHealth(
            state=self._state,
            url=self.url,
            connected_since=self._connected_at,
            last_message_at=self._last_message_at,
            reconnect_count=self._metrics.reconnections,
            reconnect_attempt=self._policy.attempts,
            message_count=self._metrics.frames_received,
            error_count=self._metrics.errors,
            last_error=self._last_error,
            last_error_at=self._last_error_at,
        )
