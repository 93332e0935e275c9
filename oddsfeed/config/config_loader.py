"""
Purpose:
    - Loads a TOML config file
    - Builds the validated feed and REST client configs from it

Layout:
    [feed]
    markets = ["ML", "Spread", "Totals"]
    sports = ["football"]
    status = "live"
    # api_key = "..."   (otherwise taken from the secrets provider)

    [connection]
    max_reconnect_attempts = 10

    [snapshot]
    enabled = true
    bookmakers = ["Bet365", "SingBet"]

    [api]
    timeout_s = 10.0
"""

import tomllib
from dataclasses import fields
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from oddsfeed.adapters.env_provider import MissingSecretError
from oddsfeed.api.client import ClientConfig
from oddsfeed.live.config import (
    DEFAULT_WS_URL,
    ConnectionConfig,
    ConnectionParams,
    FeedConfig,
    SnapshotConfig,
)
from oddsfeed.live.errors import ConfigurationError
from oddsfeed.ports.secrets_provider import SecretsProvider

FEED_KEYS: set[str] = {"api_key", "markets", "sports", "leagues", "status", "ws_url"}


def _check_keys(section: str, data: dict[str, Any], allowed: set[str]) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in [{section}]: {', '.join(unknown)}",
            field=section,
        )


class ConfigLoader:
    """
    Config-loader; loading toml file.
    """

    def __init__(self, base_dir: str = ".", secrets: Optional[SecretsProvider] = None) -> None:
        self._base_dir = base_dir
        self._secrets = secrets

    def load(self, file_name: str) -> dict[str, Any]:
        path = Path(file_name)
        if not path.is_absolute():
            path = Path(self._base_dir) / file_name

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with path.open("rb") as f:
            return tomllib.load(f)

    def load_feed_config(self, file_name: str) -> FeedConfig:
        data = self.load(file_name)
        return self.build_feed_config(data)

    def build_feed_config(self, data: dict[str, Any]) -> FeedConfig:
        # 1. Stream filters and credentials
        feed_data = dict(data.get("feed", {}))
        _check_keys("feed", feed_data, FEED_KEYS)

        api_key = feed_data.get("api_key") or self._resolve_api_key()
        params = ConnectionParams(
            api_key=api_key,
            markets=feed_data.get("markets", ()),
            sports=feed_data.get("sports", ()),
            leagues=feed_data.get("leagues", ()),
            status=feed_data.get("status"),
        )

        # 2. Connection behaviour
        conn_data = dict(data.get("connection", {}))
        _check_keys("connection", conn_data, {f.name for f in fields(ConnectionConfig)})
        connection = ConnectionConfig(**conn_data)

        # 3. Initial snapshot
        snap_data = dict(data.get("snapshot", {}))
        _check_keys("snapshot", snap_data, {f.name for f in fields(SnapshotConfig)})
        snapshot = SnapshotConfig(
            enabled=snap_data.get("enabled", False),
            bookmakers=snap_data.get("bookmakers", ()),
            concurrency=snap_data.get("concurrency", 1),
        )

        return FeedConfig(
            params=params,
            ws_url=feed_data.get("ws_url", DEFAULT_WS_URL),
            connection=connection,
            snapshot=snapshot,
        )

    def build_client_config(self, data: dict[str, Any]) -> ClientConfig:
        api_data = dict(data.get("api", {}))
        _check_keys("api", api_data, set(ClientConfig.model_fields))
        try:
            return ClientConfig(**api_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid [api] section: {e}", field="api") from e

    def _resolve_api_key(self) -> str:
        if self._secrets is None:
            raise ConfigurationError(
                "api_key missing from [feed] and no secrets provider configured",
                field="api_key",
            )
        try:
            return self._secrets.get("api_key")
        except MissingSecretError as e:
            raise ConfigurationError(str(e), field="api_key") from e
