"""
Tests for configuration validation
"""
import pytest
from pydantic import ValidationError
from leave_approval.core.config import Settings


def _settings(**overrides):
    values = {"DATABASE_URL": "postgresql://test", "JWT_SECRET_KEY": "test-key"}
    values.update(overrides)
    return Settings(**values)


def test_prod_settings_rejects_wildcard_origins():
    settings = _settings(JWT_SECRET_KEY="a" * 32, APP_ENV="prod", ALLOWED_ORIGINS="*")

    with pytest.raises(ValueError, match="ALLOWED_ORIGINS"):
        settings.validate_production()


def test_prod_settings_rejects_short_jwt_secret():
    settings = _settings(JWT_SECRET_KEY="short", APP_ENV="prod", ALLOWED_ORIGINS="https://example.com")

    with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
        settings.validate_production()


def test_local_settings_allows_wildcard_origins():
    settings = _settings(APP_ENV="local", ALLOWED_ORIGINS="*")

    settings.validate_production()
    assert settings.get_allowed_origins_list() == ["*"]


def test_get_allowed_origins_list():
    settings = _settings(ALLOWED_ORIGINS="https://example.com, https://app.example.com")

    assert settings.get_allowed_origins_list() == ["https://example.com", "https://app.example.com"]


def test_invalid_app_env_rejected():
    with pytest.raises(ValidationError, match="APP_ENV"):
        _settings(APP_ENV="production")


def test_log_level_normalized():
    assert _settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"


def test_default_approval_chain():
    assert _settings().get_approval_chain_levels() == ["MANAGER", "ADMIN"]


def test_approval_chain_is_normalized():
    settings = _settings(APPROVAL_CHAIN=" manager , Manager,admin ")

    assert settings.APPROVAL_CHAIN == "MANAGER,MANAGER,ADMIN"
    assert settings.get_approval_chain_levels() == ["MANAGER", "MANAGER", "ADMIN"]


def test_approval_chain_rejects_unknown_level():
    with pytest.raises(ValidationError, match="APPROVAL_CHAIN"):
        _settings(APPROVAL_CHAIN="MANAGER,HR")


def test_approval_chain_must_not_be_empty():
    with pytest.raises(ValidationError, match="at least one level"):
        _settings(APPROVAL_CHAIN=" , ")


def test_negative_default_balance_rejected():
    with pytest.raises(ValidationError):
        _settings(DEFAULT_SICK_LEAVE=-1)
