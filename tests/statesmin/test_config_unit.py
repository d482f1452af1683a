"""Tests for settings loading and logging configuration."""

import logging

import pytest
import structlog
from pydantic import ValidationError

from statesmin.config import StatesminSettings, get_settings
from statesmin.logging_config import configure_logging


class TestStatesminSettings:

    def test_defaults(self):
        settings = StatesminSettings()

        assert settings.log_level == "INFO"
        assert settings.log_json is True
        assert settings.default_max_retries == 1

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("STATESMIN_LOG_LEVEL", "debug")
        monkeypatch.setenv("STATESMIN_LOG_JSON", "false")
        monkeypatch.setenv("STATESMIN_DEFAULT_MAX_RETRIES", "4")

        settings = StatesminSettings()

        assert settings.log_level == "DEBUG"
        assert settings.log_json is False
        assert settings.default_max_retries == 4

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("STATESMIN_LOG_LEVEL", "chatty")
        with pytest.raises(ValidationError):
            StatesminSettings()

    def test_negative_retries_rejected(self):
        with pytest.raises(ValidationError):
            StatesminSettings(default_max_retries=-1)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestConfigureLogging:

    def test_configures_structlog(self):
        configure_logging(StatesminSettings(log_level="WARNING", log_json=False))

        assert structlog.is_configured()
        assert logging.getLogger("statesmin").level == logging.WARNING

    def test_uses_process_settings_by_default(self, monkeypatch):
        monkeypatch.setenv("STATESMIN_LOG_LEVEL", "ERROR")

        configure_logging()

        assert logging.getLogger("statesmin").level == logging.ERROR
