"""Repository implementations for the quote platform."""

from .quote_repository import QuoteRepository
from .audit_repository import SqlAuditStorage
from .notification_repository import SqlNotificationLogStore, SqlNotificationSettingStore
from .directory_repository import DirectoryRepository

__all__ = [
    "QuoteRepository",
    "SqlAuditStorage",
    "SqlNotificationLogStore",
    "SqlNotificationSettingStore",
    "DirectoryRepository",
]
