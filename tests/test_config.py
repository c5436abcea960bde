"""Tests for environment-backed settings."""

import logging

import pytest
from pydantic import ValidationError

from alphagate.config import Settings, get_settings


def test_defaults():
    s = Settings(_env_file=None)
    assert s.tick_seconds == 2.0
    assert s.execution_log_capacity == 100
    assert s.metric_history_capacity == 50
    assert s.alert_history_capacity == 20


def test_env_override(monkeypatch):
    monkeypatch.setenv("MAX_OPEN_POSITIONS", "5")
    monkeypatch.setenv("VOLATILITY_KILL_SWITCH", "80")
    s = Settings(_env_file=None)
    assert s.max_open_positions == 5
    assert s.volatility_kill_switch == 80.0


def test_invalid_kill_switch_rejected():
    with pytest.raises(ValidationError):
        Settings(volatility_kill_switch=150, _env_file=None)


def test_weight_sum_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="alphagate.config"):
        Settings(volume_weight=0.9, _env_file=None)
    assert "not renormalized" in caplog.text


def test_balanced_weights_no_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="alphagate.config"):
        Settings(_env_file=None)
    assert "not renormalized" not in caplog.text


def test_narrative_credentials_follow_model():
    assert Settings(anthropic_api_key="k", _env_file=None).has_narrative_credentials()
    assert not Settings(anthropic_api_key="", _env_file=None).has_narrative_credentials()
    gpt = Settings(narrative_model="gpt-5.2-nano", openai_api_key="k", anthropic_api_key="", _env_file=None)
    assert gpt.has_narrative_credentials()


def test_get_settings_is_singleton():
    assert get_settings() is get_settings()
