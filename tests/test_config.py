"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from zenith.config import AppSettings, get_settings, validate_all_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    settings = AppSettings()
    assert settings.plan_timeout_seconds == 60
    assert settings.recent_transaction_window == 20
    assert settings.plan_request_policy == "reject"
    assert settings.supported_formats_list == ["jpeg", "png", "webp"]
    assert settings.max_receipt_size_bytes == 10 * 1024 * 1024


def test_policy_from_environment(monkeypatch):
    monkeypatch.setenv("PLAN_REQUEST_POLICY", "last_issued_wins")
    assert AppSettings().plan_request_policy == "last_issued_wins"


def test_unknown_policy_rejected(monkeypatch):
    monkeypatch.setenv("PLAN_REQUEST_POLICY", "queue")
    with pytest.raises(ValidationError):
        AppSettings()


def test_missing_api_key_is_reported(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    results = validate_all_settings()
    assert results["gemini"] is False
    assert results["app"] is True


def test_api_key_from_environment(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    assert get_settings().gemini.api_key == "abc"
    assert validate_all_settings()["gemini"] is True
