import logging

import pytest

from oddsfeed.adapters.env_provider import EnvSecretsProvider, MissingSecretError


@pytest.fixture(autouse=True)
def reset_logging_handlers():
    # Keep test logging deterministic and avoid leaking handlers between tests.
    logging.getLogger("oddsfeed.adapters.env_provider").handlers = []


def test_get_returns_env_value(monkeypatch):
    monkeypatch.setenv("ODDS_API_KEY", "super-secret")

    provider = EnvSecretsProvider()

    assert provider.get("api_key") == "super-secret"


def test_missing_secret_raises_for_unknown_name(monkeypatch):
    monkeypatch.setenv("ODDS_API_KEY", "super-secret")
    provider = EnvSecretsProvider()

    with pytest.raises(MissingSecretError) as exc:
        provider.get("nonexistent")

    assert "nonexistent" in str(exc.value)


def test_missing_secret_raises_when_env_absent(monkeypatch):
    monkeypatch.delenv("ODDS_API_KEY", raising=False)
    provider = EnvSecretsProvider()

    with pytest.raises(MissingSecretError) as exc:
        provider.get("api_key")

    assert "api_key" in str(exc.value)


def test_blank_value_is_missing(monkeypatch):
    monkeypatch.setenv("ODDS_API_KEY", "   ")
    provider = EnvSecretsProvider()

    with pytest.raises(MissingSecretError):
        provider.get("api_key")


def test_custom_prefix_and_allowlist(monkeypatch):
    monkeypatch.setenv("MY_APP_TOKEN", "token-123")
    provider = EnvSecretsProvider(prefix="MY_", allowed={"app_token": "APP_TOKEN"})

    assert provider.get("app_token") == "token-123"


def test_empty_prefix_rejected():
    with pytest.raises(ValueError):
        EnvSecretsProvider(prefix="")


def test_resolution_logged_without_value(monkeypatch, caplog):
    monkeypatch.setenv("ODDS_API_KEY", "super-secret")
    provider = EnvSecretsProvider()

    with caplog.at_level(logging.DEBUG, logger="oddsfeed.adapters.env_provider"):
        provider.get("api_key")

    assert any(getattr(r, "event", None) == "secret_resolved" for r in caplog.records)
    assert "super-secret" not in caplog.text
