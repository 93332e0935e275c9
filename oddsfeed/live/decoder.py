"""
Message Decoder for the odds stream.

Splits each inbound frame into newline-delimited JSON records, validates each
record into its message class and routes it by ``type`` to the snapshot store.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Iterator, Optional, Union

import orjson
from pydantic import ValidationError

from oddsfeed.live.errors import MessageParseError
from oddsfeed.live.messages import (
    KNOWN_TYPES,
    CreatedMessage,
    DeletedMessage,
    InboundMessage,
    NoMarketsMessage,
    UpdatedMessage,
    WelcomeMessage,
    parse_message,
)
from oddsfeed.live.store import SnapshotStore
from oddsfeed.live.types import DecoderStats, MessageType

logger = logging.getLogger(__name__)

Listener = Callable[[InboundMessage], Awaitable[None]]


class MessageDecoder:
    """
    Decodes frames and applies them to a SnapshotStore.

    A frame may hold one record or several records separated by newlines.
    Each line is parsed on its own: a malformed line is logged and skipped and
    the rest of the frame is still applied. Records with an unknown ``type``
    are logged and ignored.

    Routing:
        welcome     -> kept as last_welcome, store untouched
        created     -> store.upsert (replaces the bookmaker's markets)
        updated     -> store.upsert (replaces the bookmaker's markets)
        deleted     -> store.remove (no-op when absent)
        no_markets  -> logged, store untouched
    """

    def __init__(self, store: SnapshotStore, name: str = "decoder") -> None:
        self._store = store
        self._name = name
        self._stats = DecoderStats()
        self._listeners: list[Listener] = []
        self._last_welcome: Optional[WelcomeMessage] = None

        self._dispatch: dict[MessageType, Callable[[Any], None]] = {
            MessageType.WELCOME: self._on_welcome,
            MessageType.CREATED: self._on_upsert,
            MessageType.UPDATED: self._on_upsert,
            MessageType.DELETED: self._on_deleted,
            MessageType.NO_MARKETS: self._on_no_markets,
        }

    @property
    def stats(self) -> DecoderStats:
        """Get decoding statistics."""
        return self._stats

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def last_welcome(self) -> Optional[WelcomeMessage]:
        """Most recent welcome record, kept for diagnostics."""
        return self._last_welcome

    def add_listener(self, listener: Listener) -> None:
        """
        Register a callback for every decoded message.

        Listeners run after the store has been updated, in registration order.
        """
        self._listeners.append(listener)

    def decode_line(self, line: Union[str, bytes]) -> Optional[InboundMessage]:
        """
        Parse one record.

        Returns None for records with an unknown ``type``.

        Raises:
            MessageParseError: If the line is not a valid record
        """
        try:
            data = orjson.loads(line)
        except orjson.JSONDecodeError as e:
            raise MessageParseError(
                f"Invalid JSON: {e}",
                raw_data=line if isinstance(line, str) else line.decode("utf-8", "replace"),
                component="MessageDecoder",
            ) from e

        if not isinstance(data, dict):
            raise MessageParseError(
                f"Expected a JSON object, got {type(data).__name__}",
                component="MessageDecoder",
            )

        msg_type = data.get("type")
        if msg_type is not None and not isinstance(msg_type, str):
            raise MessageParseError(
                f"Record type must be a string, got {type(msg_type).__name__}",
                component="MessageDecoder",
            )
        if msg_type not in KNOWN_TYPES:
            return None

        try:
            return parse_message(data)
        except ValidationError as e:
            raise MessageParseError(
                f"Invalid {msg_type} record: {e.error_count()} validation error(s)",
                expected_type=str(msg_type),
                component="MessageDecoder",
                details={"errors": [err["loc"] for err in e.errors()]},
            ) from e

    def _iter_messages(self, frame: Union[str, bytes]) -> Iterator[InboundMessage]:
        self._stats.frames += 1
        separator = "\n" if isinstance(frame, str) else b"\n"

        # Only LF separates records; U+2028 and friends may appear inside JSON strings
        for raw_line in frame.split(separator):  # type: ignore[arg-type]
            line = raw_line.strip()
            if not line:
                continue
            self._stats.lines += 1

            try:
                message = self.decode_line(line)
            except MessageParseError as e:
                self._stats.parse_errors += 1
                logger.warning(f"[{self._name}] Skipping malformed record: {e}")
                continue

            if message is None:
                self._stats.unknown_types += 1
                logger.info(f"[{self._name}] Ignoring record with unknown type")
                continue

            self._stats.decoded += 1
            type_key = message.type
            self._stats.by_type[type_key] = self._stats.by_type.get(type_key, 0) + 1
            yield message

    def decode(self, frame: Union[str, bytes]) -> list[InboundMessage]:
        """Decode every valid record of a frame, in order."""
        return list(self._iter_messages(frame))

    async def process_frame(self, frame: Union[str, bytes], recv_ts: Optional[int] = None) -> int:
        """
        Decode a frame and apply its records in arrival order.

        Each record is applied as soon as it is decoded, so a bad line later
        in the frame never discards the records before it.

        Args:
            frame: Raw frame text (or UTF-8 bytes)
            recv_ts: Local receive timestamp in milliseconds, for logging only

        Returns:
            Number of records applied
        """
        applied = 0
        for message in self._iter_messages(frame):
            await self.apply(message)
            applied += 1
        if recv_ts is not None and applied:
            logger.debug(f"[{self._name}] Applied {applied} record(s) received at {recv_ts}")
        return applied

    async def apply(self, message: InboundMessage) -> None:
        """Route one decoded message and notify listeners."""
        self._dispatch[message.message_type](message)

        for listener in self._listeners:
            try:
                await listener(message)
            except Exception as e:
                logger.error(f"[{self._name}] Listener error for {message.type}: {e}", exc_info=True)

    # --- Routing targets ---

    def _on_welcome(self, message: WelcomeMessage) -> None:
        self._last_welcome = message
        logger.info(
            f"[{self._name}] Welcome: {message.message or 'N/A'} filters={message.filters}"
        )
        for warning in message.warnings:
            logger.warning(f"[{self._name}] Server warning: {warning}")

    def _on_upsert(self, message: Union[CreatedMessage, UpdatedMessage]) -> None:
        self._store.upsert(message.event_id, message.bookmaker, message.markets)
        logger.debug(
            f"[{self._name}] {message.type} {message.event_id}/{message.bookmaker}: "
            f"{len(message.markets)} market(s)"
        )

    def _on_deleted(self, message: DeletedMessage) -> None:
        self._store.remove(message.event_id, message.bookmaker)
        logger.debug(f"[{self._name}] deleted {message.event_id}/{message.bookmaker}")

    def _on_no_markets(self, message: NoMarketsMessage) -> None:
        logger.info(f"[{self._name}] No markets available for event {message.event_id}")

    def reset_stats(self) -> None:
        """Reset decoding statistics."""
        self._stats = DecoderStats()
