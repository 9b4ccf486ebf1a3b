import json

import pytest
from pydantic import ValidationError

from gateway.config import Settings

KEY = "0x" + "22" * 32


def test_wallet_keys_load_from_json_env(monkeypatch):
    """Wallet keys come from a JSON list and are stripped of whitespace."""

    monkeypatch.setenv("GATEWAY_WALLET_PRIVATE_KEYS", json.dumps([f"  {KEY} ", "", "   "]))

    settings = Settings(_env_file=None)

    assert settings.wallet_private_keys == [KEY]
    assert settings.has_wallets


def test_defaults_without_env(monkeypatch):
    monkeypatch.delenv("GATEWAY_WALLET_PRIVATE_KEYS", raising=False)
    monkeypatch.delenv("GATEWAY_SUBMIT_TIMEOUT_SECONDS", raising=False)

    settings = Settings(_env_file=None)

    assert settings.wallet_private_keys == []
    assert not settings.has_wallets
    assert settings.submit_timeout_seconds == 30.0
    assert settings.config_path.name == "gateway.yml"


def test_timeouts_use_prefixed_env(monkeypatch):
    monkeypatch.setenv("GATEWAY_SUBMIT_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("GATEWAY_NONCE_RESYNC_INTERVAL_SECONDS", "60")

    settings = Settings(_env_file=None)

    assert settings.submit_timeout_seconds == 2.5
    assert settings.nonce_resync_interval_seconds == 60


def test_non_positive_timeout_is_rejected(monkeypatch):
    monkeypatch.setenv("GATEWAY_SUBMIT_TIMEOUT_SECONDS", "0")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
