"""
Unit tests for configuration module.
"""
import pytest
from pydantic import ValidationError

from core.config import get_settings, reset_settings


def test_settings_defaults():
    """Test default configuration values."""
    settings = get_settings()
    assert settings.app_name == "Receipt Parser"
    assert settings.host == "0.0.0.0"
    assert settings.port == 8000
    assert settings.log_level == "INFO"
    assert settings.openai_api_key is None
    assert settings.openai_model == "gpt-4o-mini"
    assert settings.auto_start is True
    assert settings.extraction_timeout is None
    assert settings.notification_ttl_seconds == 5.0
    assert settings.storage_key == "receipts"


def test_missing_api_key_is_not_an_error():
    """The key can be supplied later at runtime."""
    assert get_settings().openai_api_key is None


def test_blank_api_key_means_missing(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "   ")
    assert get_settings().openai_api_key is None


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("AUTO_START", "false")
    monkeypatch.setenv("EXTRACTION_TIMEOUT", "30")
    monkeypatch.setenv("log_level", "debug")

    settings = get_settings()
    assert settings.openai_api_key == "sk-test"
    assert settings.auto_start is False
    assert settings.extraction_timeout == 30.0
    assert settings.log_level == "DEBUG"


def test_settings_validation_port(monkeypatch):
    """Test port validation."""
    monkeypatch.setenv("PORT", "99999")
    with pytest.raises(ValidationError):
        get_settings()


def test_settings_validation_log_level(monkeypatch):
    """Test log level validation."""
    monkeypatch.setenv("LOG_LEVEL", "INVALID")
    with pytest.raises(ValidationError):
        get_settings()


def test_settings_validation_timeout(monkeypatch):
    monkeypatch.setenv("EXTRACTION_TIMEOUT", "0")
    with pytest.raises(ValidationError):
        get_settings()


def test_settings_singleton():
    """Test settings singleton behavior."""
    settings1 = get_settings()
    settings2 = get_settings()
    assert settings1 is settings2

    reset_settings()
    assert get_settings() is not settings1


def test_database_directory_created(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "nested" / "dir" / "receipts.db"))
    get_settings()
    assert (tmp_path / "nested" / "dir").is_dir()
