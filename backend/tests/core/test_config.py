import pytest
from pydantic import ValidationError

from timebank.core.config import Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_defaults():
    settings = _settings()
    assert settings.settlement_policy == "pay_on_complete"
    assert settings.signup_bonus_credits == 10
    assert settings.reminder_lead_minutes == 60


def test_rejects_unknown_settlement_policy():
    with pytest.raises(ValidationError):
        _settings(settlement_policy="pay_whenever")


def test_log_level_normalized():
    assert _settings(log_level=" debug ").log_level == "DEBUG"
    with pytest.raises(ValidationError):
        _settings(log_level="chatty")


def test_fallback_url_trailing_slash_stripped():
    assert _settings(meeting_fallback_base_url="https://meet.jit.si/").meeting_fallback_base_url == (
        "https://meet.jit.si"
    )


def test_test_database_url_used_when_testing():
    settings = _settings(is_testing=True, test_database_url="sqlite://")
    assert settings.get_database_url() == "sqlite://"


def test_production_detection():
    assert _settings(environment="Production").is_production is True
    assert _settings(environment="development").is_production is False
