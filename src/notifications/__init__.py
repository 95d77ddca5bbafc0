"""
Notifications Module

Templated notification delivery for the quote lifecycle.

Components:
- notification_types: closed NotificationType set, settings, log entries, results
- templates: typed context, token formatters, default templates
- dispatcher: gate, render, resolve recipients, send and log
- owner_alerts: non-template alerts to quote owners
- quote_notifier: event subscriptions and direct user-triggered sends
- email_provider / smtp_provider: outbound email capability

Usage:
    from notifications import NotificationDispatcher, NotificationType

    dispatcher = NotificationDispatcher(get_email_provider(), log_store)
    result = dispatcher.dispatch(
        NotificationType.INTERNAL_QUOTE_CREATED,
        context,
        settings_store.snapshot(),
    )
"""

from .email_provider import (
    DeliveryResult,
    DeliveryStatus,
    EmailMessage,
    EmailProvider,
    NullEmailProvider,
    get_email_provider,
    set_email_provider,
)
from .notification_types import (
    DispatchResult,
    DispatchStatus,
    NotificationChannel,
    NotificationLogEntry,
    NotificationLogStatus,
    NotificationSetting,
    NotificationSettingsSnapshot,
    NotificationType,
    default_settings,
)
from .notification_store import (
    InMemoryNotificationLogStore,
    InMemoryNotificationSettingStore,
    NotificationLogStore,
    NotificationSettingStore,
)
from .templates import (
    DEFAULT_TEMPLATES,
    MessageTemplate,
    NotificationContext,
    TemplateToken,
    TOKEN_FORMATTERS,
    render,
    resolve_template,
)
from .dispatcher import NotificationDispatcher
from .owner_alerts import build_artwork_response_alert, build_quote_response_alert
from .quote_notifier import QuoteNotifier

__all__ = [
    # Email
    "DeliveryResult",
    "DeliveryStatus",
    "EmailMessage",
    "EmailProvider",
    "NullEmailProvider",
    "get_email_provider",
    "set_email_provider",
    # Types
    "DispatchResult",
    "DispatchStatus",
    "NotificationChannel",
    "NotificationLogEntry",
    "NotificationLogStatus",
    "NotificationSetting",
    "NotificationSettingsSnapshot",
    "NotificationType",
    "default_settings",
    # Stores
    "InMemoryNotificationLogStore",
    "InMemoryNotificationSettingStore",
    "NotificationLogStore",
    "NotificationSettingStore",
    # Templates
    "DEFAULT_TEMPLATES",
    "MessageTemplate",
    "NotificationContext",
    "TemplateToken",
    "TOKEN_FORMATTERS",
    "render",
    "resolve_template",
    # Dispatch
    "NotificationDispatcher",
    "build_artwork_response_alert",
    "build_quote_response_alert",
    "QuoteNotifier",
]
