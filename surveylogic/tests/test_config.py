"""
Unit tests for engine configuration.

Tests cover:
- Defaults when no environment variables are set
- Cache lifetime and diagnostic logging from the environment
- Unknown cache lifetimes fall back with a warning
- Diagnostic log level selection
- configure_logging level resolution
"""

import logging

import pytest

from surveylogic.core.config import LOG_FORMAT, EngineConfig, _is_truthy, configure_logging, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SURVEYLOGIC_CACHE_LIFETIME", "SURVEYLOGIC_LOG_DIAGNOSTICS", "SURVEYLOGIC_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


class TestIsTruthy:

    @pytest.mark.parametrize("value", ["1", "true", "YES", " on "])
    def test_truthy(self, value):
        assert _is_truthy(value) is True

    @pytest.mark.parametrize("value", ["0", "false", "no", ""])
    def test_falsy(self, value):
        assert _is_truthy(value) is False

    def test_default_when_unset(self):
        assert _is_truthy(None) is False
        assert _is_truthy(None, default=True) is True


class TestLoadConfig:

    def test_defaults(self):
        config = load_config()
        assert config.cache_lifetime == "single-pass"
        assert config.log_diagnostics is False

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("SURVEYLOGIC_CACHE_LIFETIME", "None")
        monkeypatch.setenv("SURVEYLOGIC_LOG_DIAGNOSTICS", "true")
        config = load_config()
        assert config.cache_lifetime == "none"
        assert config.log_diagnostics is True

    def test_unknown_cache_lifetime_falls_back(self, monkeypatch, caplog):
        monkeypatch.setenv("SURVEYLOGIC_CACHE_LIFETIME", "forever")
        with caplog.at_level("WARNING", logger="surveylogic.core.config"):
            config = load_config()
        assert config.cache_lifetime == "single-pass"
        assert "forever" in caplog.text


class TestEngineConfig:

    def test_diagnostic_log_level(self):
        assert EngineConfig().diagnostic_log_level == logging.DEBUG
        assert EngineConfig(log_diagnostics=True).diagnostic_log_level == logging.WARNING

    def test_invalid_cache_lifetime_rejected(self):
        with pytest.raises(ValueError):
            EngineConfig(cache_lifetime="forever")


class TestConfigureLogging:

    @pytest.fixture
    def basic_config_calls(self, monkeypatch):
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
        return calls

    def test_explicit_level(self, basic_config_calls):
        configure_logging("DEBUG")
        assert basic_config_calls == [{"level": "DEBUG", "format": LOG_FORMAT}]

    def test_level_from_environment(self, monkeypatch, basic_config_calls):
        monkeypatch.setenv("SURVEYLOGIC_LOG_LEVEL", "warning")
        configure_logging()
        assert basic_config_calls[0]["level"] == "WARNING"

    def test_default_level(self, basic_config_calls):
        configure_logging()
        assert basic_config_calls[0]["level"] == "INFO"
