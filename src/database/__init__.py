"""
Database Layer for the Quote Platform.

This module provides:
- SQLAlchemy ORM models for quotes, line items, artwork history,
  customers, users, audit logs and notification settings/logs
- Sync engine and session management
- Repository implementations of the domain storage contracts
- In-memory stores for tests and local development
"""

from .models import (
    Base,
    ArtworkVersionRecord,
    CustomerRecord,
    NotificationLogRecord,
    NotificationSettingRecord,
    QuoteAuditLogRecord,
    QuoteLineItemRecord,
    QuoteRecord,
    UserRecord,
)
from .connection import (
    create_db_engine,
    create_session_factory,
    init_schema,
    session_scope,
)
from .memory_store import InMemoryDirectory, InMemoryQuoteRepository

__all__ = [
    # Models
    "Base",
    "ArtworkVersionRecord",
    "CustomerRecord",
    "NotificationLogRecord",
    "NotificationSettingRecord",
    "QuoteAuditLogRecord",
    "QuoteLineItemRecord",
    "QuoteRecord",
    "UserRecord",
    # Connection
    "create_db_engine",
    "create_session_factory",
    "init_schema",
    "session_scope",
    # In-memory stores
    "InMemoryDirectory",
    "InMemoryQuoteRepository",
]
