"""
Centralized configuration management.
All environment variables and settings are defined here.
"""
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = Field(default="Receipt Parser", alias="APP_NAME")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # OpenAI (the key may also be supplied at runtime)
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: Optional[str] = Field(default=None, alias="OPENAI_BASE_URL")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_timeout: int = Field(default=60, alias="OPENAI_TIMEOUT")

    # Processing
    auto_start: bool = Field(default=True, alias="AUTO_START")
    extraction_timeout: Optional[float] = Field(default=None, alias="EXTRACTION_TIMEOUT")
    notification_ttl_seconds: float = Field(default=5.0, alias="NOTIFICATION_TTL_SECONDS")

    # Storage
    database_path: str = Field(default="receipts.db", alias="DATABASE_PATH")
    storage_key: str = Field(default="receipts", alias="STORAGE_KEY")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v_upper

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        """Validate port is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("openai_api_key")
    @classmethod
    def blank_key_is_missing(cls, v):
        """Treat an empty key as no key at all."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("extraction_timeout", "notification_ttl_seconds")
    @classmethod
    def validate_positive_seconds(cls, v):
        """Durations must be positive when given."""
        if v is not None and v <= 0:
            raise ValueError("Durations must be greater than zero")
        return v

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"
        populate_by_name = True

    def ensure_directories(self) -> None:
        """Ensure the directory holding the database exists."""
        Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.ensure_directories()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None
