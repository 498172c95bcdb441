"""
Tests for provider registry.
"""

from datetime import date
from typing import List

import pytest

from market_data.config import ProviderSettings
from market_data.data import Candle
from market_data.providers import (
    AlpacaProvider,
    CandleProvider,
    CboeProvider,
    ProviderConfigError,
    YahooProvider,
    get_provider,
    list_providers,
    register_provider,
)
from market_data.providers import registry


class MockProvider(CandleProvider):
    """Mock provider for testing"""

    def __init__(self, settings: ProviderSettings):
        self.settings = settings

    @classmethod
    def from_settings(cls, settings: ProviderSettings) -> "MockProvider":
        return cls(settings)

    @property
    def name(self) -> str:
        return "mock"

    def fetch_candles(self, symbol: str, day: date) -> List[Candle]:
        return []


def test_register_provider():
    """Test provider registration"""
    original_registry = registry._provider_registry.copy()

    try:
        @register_provider("test_provider")
        class TestProvider(MockProvider):
            pass

        assert "test_provider" in list_providers()

        settings = ProviderSettings(timeout_seconds=5)
        provider = get_provider("test_provider", settings)
        assert isinstance(provider, TestProvider)
        assert provider.settings.timeout_seconds == 5

    finally:
        # Restore original registry
        registry._provider_registry.clear()
        registry._provider_registry.update(original_registry)


def test_get_provider_unknown():
    """Test that unknown provider raises friendly error"""
    with pytest.raises(ValueError, match="Unknown provider"):
        get_provider("nonexistent_provider")


def test_list_providers():
    """Built-in providers register on import"""
    providers = list_providers()
    assert providers == sorted(providers)
    for name in ("alpaca", "cboe", "yahoo"):
        assert name in providers


def test_get_provider_case_insensitive():
    assert isinstance(get_provider("Yahoo"), YahooProvider)
    assert isinstance(get_provider(" CBOE "), CboeProvider)


def test_get_provider_uses_settings():
    settings = ProviderSettings(
        alpaca_api_key_id="key",
        alpaca_api_secret_key="secret",
        alpaca_feed="sip",
        timeout_seconds=7,
    )
    provider = get_provider("alpaca", settings)
    assert isinstance(provider, AlpacaProvider)
    assert provider.api_key_id == "key"
    assert provider.feed == "sip"
    assert provider.timeout == 7


def test_get_provider_alpaca_from_env(monkeypatch):
    monkeypatch.setenv("ALPACA_API_KEY_ID", "env-key")
    monkeypatch.setenv("ALPACA_API_SECRET_KEY", "env-secret")
    provider = get_provider("alpaca")
    assert provider.api_key_id == "env-key"
    assert provider.api_secret_key == "env-secret"


def test_get_provider_alpaca_missing_credentials(monkeypatch):
    monkeypatch.delenv("ALPACA_API_KEY_ID", raising=False)
    monkeypatch.delenv("ALPACA_API_SECRET_KEY", raising=False)
    with pytest.raises(ProviderConfigError, match="ALPACA_API_KEY_ID not set"):
        get_provider("alpaca")
