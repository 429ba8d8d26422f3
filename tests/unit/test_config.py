"""
Unit tests for SeennConfig.

Tests cover:
- Defaults and explicit values
- Environment variable fallback
- API key validation before any network call
"""

import pytest
from dataclasses import FrozenInstanceError

from seenn.config import (
    SeennConfig,
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
)
from seenn.client import SeennClient, get_seenn_client


class TestSeennConfig:
    """Tests for config construction and validation."""

    def test_defaults(self):
        config = SeennConfig(api_key="sk_test_123")

        assert config.base_url == DEFAULT_BASE_URL
        assert config.timeout == DEFAULT_TIMEOUT_SECONDS
        assert config.max_retries == DEFAULT_MAX_RETRIES == 3
        assert config.debug is False
        assert config.user_agent.startswith("seenn-python/")

    def test_strips_trailing_slash(self):
        config = SeennConfig(api_key="sk_test_123", base_url="https://seenn.local/")
        assert config.base_url == "https://seenn.local"

    def test_missing_key_raises(self):
        with pytest.raises(ValueError, match="API key is required"):
            SeennConfig(api_key="")

    def test_key_without_prefix_raises(self):
        with pytest.raises(ValueError, match="must start with sk_"):
            SeennConfig(api_key="pk_live_123")

    def test_invalid_retry_ceiling_raises(self):
        with pytest.raises(ValueError, match="max_retries"):
            SeennConfig(api_key="sk_test_123", max_retries=0)

    def test_invalid_timeout_raises(self):
        with pytest.raises(ValueError, match="timeout"):
            SeennConfig(api_key="sk_test_123", timeout=0)

    def test_config_is_immutable(self):
        config = SeennConfig(api_key="sk_test_123")
        with pytest.raises(FrozenInstanceError):
            config.base_url = "https://elsewhere"

    def test_repr_hides_api_key(self):
        config = SeennConfig(api_key="sk_live_secret")
        assert "sk_live_secret" not in repr(config)


class TestConfigFromEnv:
    """Tests for environment variable fallback."""

    def test_reads_env(self, monkeypatch):
        monkeypatch.setenv("SEENN_API_KEY", "sk_live_env")
        monkeypatch.setenv("SEENN_BASE_URL", "https://env.seenn.local")
        monkeypatch.setenv("SEENN_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("SEENN_MAX_RETRIES", "5")
        monkeypatch.setenv("SEENN_DEBUG", "true")

        config = SeennConfig.from_env()

        assert config.api_key == "sk_live_env"
        assert config.base_url == "https://env.seenn.local"
        assert config.timeout == 5.0
        assert config.max_retries == 5
        assert config.debug is True

    def test_explicit_values_win(self, monkeypatch):
        monkeypatch.setenv("SEENN_API_KEY", "sk_live_env")
        monkeypatch.setenv("SEENN_MAX_RETRIES", "5")

        config = SeennConfig.from_env(api_key="sk_test_explicit", max_retries=2)

        assert config.api_key == "sk_test_explicit"
        assert config.max_retries == 2

    def test_non_numeric_env_raises(self, monkeypatch):
        monkeypatch.setenv("SEENN_API_KEY", "sk_live_env")
        monkeypatch.setenv("SEENN_TIMEOUT_SECONDS", "soon")

        with pytest.raises(ValueError, match="SEENN_TIMEOUT_SECONDS"):
            SeennConfig.from_env()


class TestClientInitialization:
    """Configuration errors surface at client construction."""

    def test_client_rejects_bad_key(self):
        with pytest.raises(ValueError):
            SeennClient(api_key="not-a-key")

    def test_client_requires_key(self):
        with pytest.raises(ValueError, match="API key is required"):
            SeennClient()

    def test_explicit_config_object(self):
        config = SeennConfig(api_key="sk_test_123", max_retries=7)
        client = SeennClient(config=config)
        assert client.config is config

    def test_factory_function(self, monkeypatch):
        monkeypatch.setenv("SEENN_API_KEY", "sk_test_factory")
        client = get_seenn_client()
        assert client.config.api_key == "sk_test_factory"
