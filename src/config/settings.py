"""Application settings using Pydantic Settings.

Centralized configuration for the quote platform. Every value can be
overridden through environment variables (or a ``.env`` file):

- APP_PUBLIC_BASE_URL: base URL used in customer approval links
- APP_SITE_NAME: business name shown in notification emails
- SMTP_HOST / SMTP_PORT / SMTP_USERNAME / SMTP_PASSWORD: outbound email
- SMTP_FROM_EMAIL / SMTP_FROM_NAME: sender identity

When SMTP_HOST is unset, outbound email falls back to a logging-only
provider (development mode).
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class EmailSettings(BaseSettings):
    """SMTP configuration for outbound notifications."""

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: Optional[str] = Field(default=None, description="SMTP server host")
    port: int = Field(default=587, description="SMTP server port")
    username: Optional[str] = Field(default=None, description="SMTP username")
    password: Optional[str] = Field(default=None, description="SMTP password")
    use_tls: bool = Field(default=True, description="Use STARTTLS")
    use_ssl: bool = Field(default=False, description="Use implicit SSL (port 465)")
    timeout: int = Field(default=30, ge=1, description="Connection timeout in seconds")

    from_email: str = Field(default="noreply@example.com", description="Sender address")
    from_name: str = Field(default="Logoz Custom", description="Sender display name")

    @property
    def is_configured(self) -> bool:
        return bool(self.host)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application info
    name: str = Field(default="Quote Platform", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment name")

    # Links and branding used in customer-facing messages
    public_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL for artwork and quote approval links",
    )
    site_name: str = Field(default="Logoz Custom", description="Business name in emails")
    currency_symbol: str = Field(default="$", description="Currency symbol for display")

    # Quotes
    quote_number_prefix: str = Field(default="Q", min_length=1, description="Quote number prefix")
    customer_notes_max_length: int = Field(default=2000, ge=1, description="Max customer response notes")

    # Audit
    audit_page_size: int = Field(default=50, ge=1, le=500, description="Default audit page size")

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def artwork_approval_url(self, token: str) -> str:
        return f"{self.public_base_url}/artwork/{token}"

    def quote_approval_url(self, token: str, action: Optional[str] = None) -> str:
        url = f"{self.public_base_url}/quote/{token}"
        if action:
            url += f"?action={action}"
        return url


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Cached settings loaded from environment.
    """
    settings = Settings()
    logger.debug(f"Loaded settings for environment {settings.environment}")
    return settings


@lru_cache
def get_email_settings() -> EmailSettings:
    """Get cached SMTP settings."""
    return EmailSettings()
