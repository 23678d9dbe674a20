"""Tests for environment-driven configuration."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from context_sync.config.settings import Settings, get_settings
from context_sync.context.config import SyncConfig


class TestSettings:
    """Tests for application Settings."""

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PLATFORM_API_URL", "http://gateway:5000")
        monkeypatch.setenv("PLATFORM_API_TOKEN", "t0k3n")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        settings = Settings(_env_file=None)

        assert settings.platform_api_url == "http://gateway:5000"
        assert settings.platform_configured
        assert settings.embedding_configured
        assert settings.platform_api_token.get_secret_value() == "t0k3n"

    def test_unconfigured_credentials(self, monkeypatch):
        monkeypatch.delenv("PLATFORM_API_TOKEN", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        settings = Settings(_env_file=None)

        assert not settings.platform_configured
        assert not settings.embedding_configured

    def test_production_flag(self, test_settings):
        assert not test_settings.is_production
        assert Settings(_env_file=None, environment="production").is_production

    def test_invalid_retries(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, max_http_retries=50)

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()


class TestSyncConfig:
    """Tests for SyncConfig."""

    def test_defaults(self, monkeypatch):
        for name in ("SYNC_FRESHNESS_WINDOW_HOURS", "SYNC_MAX_CONCURRENCY"):
            monkeypatch.delenv(name, raising=False)

        config = SyncConfig(_env_file=None)

        assert config.freshness_window == timedelta(hours=24)
        assert config.max_concurrency == 5

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SYNC_FRESHNESS_WINDOW_HOURS", "6")
        monkeypatch.setenv("SYNC_MAX_CONCURRENCY", "2")

        config = SyncConfig(_env_file=None)

        assert config.freshness_window == timedelta(hours=6)
        assert config.max_concurrency == 2

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValidationError):
            SyncConfig(_env_file=None, max_concurrency=0)
