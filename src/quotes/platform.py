"""
Quote platform assembly.

Wires the stores, event bus, audit recorder, notification stack and the
lifecycle service into one object. The audit recorder subscribes to the
bus before the notifier so audit entries are written first.

Usage:
    platform = build_memory_platform()              # tests, local dev
    platform = build_sql_platform(session_factory)  # production
    platform.lifecycle.create_quote(...)
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from audit import AuditStorageBackend, InMemoryAuditStorage, QuoteAuditRecorder
from config import Settings, get_settings
from database import InMemoryDirectory, InMemoryQuoteRepository, init_schema
from database.repositories import (
    DirectoryRepository,
    QuoteRepository,
    SqlAuditStorage,
    SqlNotificationLogStore,
    SqlNotificationSettingStore,
)
from domain import EventBus, IDirectory, IQuoteRepository, utcnow
from notifications import (
    EmailProvider,
    InMemoryNotificationLogStore,
    InMemoryNotificationSettingStore,
    NotificationDispatcher,
    NotificationLogStore,
    NotificationSettingStore,
    QuoteNotifier,
    get_email_provider,
)

from .service import QuoteLifecycleService

logger = logging.getLogger(__name__)


@dataclass
class QuotePlatform:
    """Everything a caller needs to run the quote lifecycle."""
    settings: Settings
    event_bus: EventBus
    quotes: IQuoteRepository
    directory: IDirectory
    audit: QuoteAuditRecorder
    notification_settings: NotificationSettingStore
    notification_logs: NotificationLogStore
    email_provider: EmailProvider
    dispatcher: NotificationDispatcher
    notifier: QuoteNotifier
    lifecycle: QuoteLifecycleService


def assemble_platform(
    quotes: IQuoteRepository,
    directory: IDirectory,
    audit_storage: AuditStorageBackend,
    notification_settings: NotificationSettingStore,
    notification_logs: NotificationLogStore,
    settings: Optional[Settings] = None,
    email_provider: Optional[EmailProvider] = None,
    clock: Callable = utcnow,
) -> QuotePlatform:
    """Wire a platform from explicit stores."""
    settings = settings or get_settings()
    email_provider = email_provider or get_email_provider()
    event_bus = EventBus()

    audit = QuoteAuditRecorder(audit_storage)
    dispatcher = NotificationDispatcher(email_provider, notification_logs)
    notifier = QuoteNotifier(dispatcher, notification_settings, settings)

    # Order matters: audit entries are written before notifications go out
    audit.register(event_bus)
    notifier.register(event_bus)

    notification_settings.initialize_defaults()

    lifecycle = QuoteLifecycleService(
        quotes=quotes,
        directory=directory,
        event_bus=event_bus,
        notifier=notifier,
        audit=audit,
        settings=settings,
        clock=clock,
    )
    logger.info(f"Quote platform ready (email provider: {email_provider.provider_name})")

    return QuotePlatform(
        settings=settings,
        event_bus=event_bus,
        quotes=quotes,
        directory=directory,
        audit=audit,
        notification_settings=notification_settings,
        notification_logs=notification_logs,
        email_provider=email_provider,
        dispatcher=dispatcher,
        notifier=notifier,
        lifecycle=lifecycle,
    )


def build_memory_platform(
    settings: Optional[Settings] = None,
    email_provider: Optional[EmailProvider] = None,
    clock: Callable = utcnow,
) -> QuotePlatform:
    """Platform backed entirely by in-memory stores."""
    return assemble_platform(
        quotes=InMemoryQuoteRepository(),
        directory=InMemoryDirectory(),
        audit_storage=InMemoryAuditStorage(),
        notification_settings=InMemoryNotificationSettingStore(),
        notification_logs=InMemoryNotificationLogStore(),
        settings=settings,
        email_provider=email_provider,
        clock=clock,
    )


def build_sql_platform(
    session_factory: sessionmaker,
    settings: Optional[Settings] = None,
    email_provider: Optional[EmailProvider] = None,
    clock: Callable = utcnow,
    create_schema: bool = True,
) -> QuotePlatform:
    """Platform backed by the quote database."""
    if create_schema:
        init_schema(session_factory)
    return assemble_platform(
        quotes=QuoteRepository(session_factory),
        directory=DirectoryRepository(session_factory),
        audit_storage=SqlAuditStorage(session_factory),
        notification_settings=SqlNotificationSettingStore(session_factory),
        notification_logs=SqlNotificationLogStore(session_factory),
        settings=settings,
        email_provider=email_provider,
        clock=clock,
    )
