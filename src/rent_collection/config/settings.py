"""Configuration settings for rent collection tracking."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables (or a .env file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Links embedded in landlord e-mails
    app_url: str = Field(default="https://coridor.fr", validation_alias="APP_URL")

    # Tracking generation
    default_rent_payment_day: int = Field(
        default=5, ge=1, le=31, validation_alias="DEFAULT_RENT_PAYMENT_DAY"
    )
    timezone: str = Field(default="UTC", validation_alias="RENT_TIMEZONE")

    # Sweeps
    sweep_concurrency: int = Field(default=10, ge=1, validation_alias="SWEEP_CONCURRENCY")

    # Notification sink
    notifications_api_url: str | None = Field(
        default=None, validation_alias="NOTIFICATIONS_API_URL"
    )
    notifications_api_token: SecretStr | None = Field(
        default=None, validation_alias="NOTIFICATIONS_API_TOKEN"
    )

    # E-mail sender
    email_api_url: str | None = Field(default=None, validation_alias="EMAIL_API_URL")
    email_api_token: SecretStr | None = Field(default=None, validation_alias="EMAIL_API_TOKEN")
    email_sender: str = Field(default="no-reply@coridor.fr", validation_alias="EMAIL_SENDER")

    # HTTP
    http_timeout: float = Field(default=30.0, validation_alias="HTTP_TIMEOUT")
    http_max_retries: int = Field(default=3, validation_alias="HTTP_MAX_RETRIES")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
