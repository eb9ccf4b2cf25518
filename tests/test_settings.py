"""
Tests for settings.py

Run with: pytest tests/test_settings.py -v
"""

import pytest
from pydantic import ValidationError

from odds_engine.config.constants import DROP_THRESHOLD_PRESETS, OddsFormat
from odds_engine.config.settings import MovementSettings, Settings, get_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.log_level == "INFO"
        assert settings.odds.default_format == OddsFormat.DECIMAL
        assert settings.arbitrage.default_stake == 100
        assert settings.movement.threshold_presets == list(DROP_THRESHOLD_PRESETS)
        assert settings.movement.default_threshold == 20
        assert settings.betslip.default_stake == "10"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("ARB_DEFAULT_STAKE", "250")
        monkeypatch.setenv("ODDS_DEFAULT_FORMAT", "fractional")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings()
        assert settings.arbitrage.default_stake == 250
        assert settings.odds.default_format == OddsFormat.FRACTIONAL
        assert settings.log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD")

    def test_default_threshold_must_be_preset(self):
        with pytest.raises(ValidationError):
            MovementSettings(default_threshold=25)

    def test_non_positive_stake_rejected(self, monkeypatch):
        monkeypatch.setenv("ARB_DEFAULT_STAKE", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
