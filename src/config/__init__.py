"""Configuration module for the quote platform."""

from .database import DatabaseSettings, get_database_settings
from .settings import EmailSettings, Settings, get_email_settings, get_settings

__all__ = [
    "DatabaseSettings",
    "get_database_settings",
    "EmailSettings",
    "get_email_settings",
    "Settings",
    "get_settings",
]
