"""
Notification Dispatcher

Turns a notification type plus a typed context into delivered email:

1. Gate on the setting in the injected snapshot (disabled or missing
   settings are skipped, which is not a failure), unless ``force`` is set
   for direct user-triggered sends.
2. Resolve and render the subject/body.
3. Resolve recipients: override, else the setting's recipient list for
   internal types, else the customer's email from the context.
4. Send to each recipient independently and log every attempt.

The dispatcher never raises for delivery problems; the caller decides
what a failed ``DispatchResult`` means.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from .email_provider import EmailMessage, EmailProvider
from .notification_store import NotificationLogStore
from .notification_types import (
    DispatchResult,
    DispatchStatus,
    NotificationChannel,
    NotificationLogEntry,
    NotificationLogStatus,
    NotificationSettingsSnapshot,
    NotificationType,
)
from .templates import NotificationContext, render, resolve_template

logger = logging.getLogger(__name__)

NO_RECIPIENTS = "No recipients configured"
SMS_NOT_IMPLEMENTED = "SMS not yet implemented"


def _unique(addresses: List[str]) -> List[str]:
    seen = set()
    result = []
    for address in addresses:
        address = (address or "").strip()
        if address and address.lower() not in seen:
            seen.add(address.lower())
            result.append(address)
    return result


class NotificationDispatcher:
    """Dispatches templated notifications through an email provider."""

    def __init__(self, email_provider: EmailProvider, log_store: NotificationLogStore):
        self.email_provider = email_provider
        self.log_store = log_store

    def dispatch(
        self,
        notification_type: NotificationType,
        context: NotificationContext,
        settings: NotificationSettingsSnapshot,
        override_recipient: Optional[str] = None,
        force: bool = False,
    ) -> DispatchResult:
        """
        Dispatch one notification.

        Args:
            notification_type: Which notification to send
            context: Template values and traceability ids
            settings: Settings snapshot taken by the caller
            override_recipient: Send only to this address
            force: Bypass the enabled gate (direct user actions)

        Returns:
            DispatchResult; SKIPPED when the setting is disabled or missing
        """
        setting = settings.get(notification_type)

        if not force and (setting is None or not setting.enabled):
            logger.debug(f"Notification {notification_type.value} disabled, skipping")
            return DispatchResult.skip(f"{notification_type.value} is disabled")

        template = resolve_template(notification_type, setting)
        subject = render(template.subject, context)
        body = render(template.body, context, escape_html=True)

        if override_recipient:
            recipients = [override_recipient]
        elif notification_type.is_internal:
            recipients = list(setting.recipient_emails) if setting else []
        else:
            recipients = [context.customer_email] if context.customer_email else []
        recipients = _unique(recipients)

        if not recipients:
            logger.warning(
                f"Notification {notification_type.value} has no recipients",
                extra={"quote_id": context.quote_id},
            )
            return DispatchResult.fail(NO_RECIPIENTS)

        channel = setting.channel if setting else NotificationChannel.EMAIL
        return self._deliver_all(notification_type, channel, recipients, subject, body, context)

    def send_direct(
        self,
        notification_type: NotificationType,
        recipient: str,
        subject: str,
        body: str,
        context: NotificationContext,
    ) -> DispatchResult:
        """
        Send a pre-rendered message, bypassing settings and templates.

        Used for operational alerts that cannot be disabled. The attempt is
        logged under ``notification_type``.
        """
        recipients = _unique([recipient])
        if not recipients:
            return DispatchResult.fail(NO_RECIPIENTS)
        return self._deliver_all(
            notification_type, NotificationChannel.EMAIL, recipients, subject, body, context
        )

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    def _deliver_all(
        self,
        notification_type: NotificationType,
        channel: NotificationChannel,
        recipients: List[str],
        subject: str,
        body: str,
        context: NotificationContext,
    ) -> DispatchResult:
        logs = [
            self._deliver(notification_type, channel, recipient, subject, body, context)
            for recipient in recipients
        ]
        errors = [f"{log.recipient}: {log.error_message}" for log in logs
                  if log.status == NotificationLogStatus.FAILED]

        if errors:
            return DispatchResult(
                status=DispatchStatus.FAILED,
                error=", ".join(errors),
                recipients=recipients,
                logs=logs,
            )
        return DispatchResult(status=DispatchStatus.SENT, recipients=recipients, logs=logs)

    def _deliver(
        self,
        notification_type: NotificationType,
        channel: NotificationChannel,
        recipient: str,
        subject: str,
        body: str,
        context: NotificationContext,
    ) -> NotificationLogEntry:
        entry = NotificationLogEntry(
            type=notification_type,
            channel=channel,
            recipient=recipient,
            subject=subject,
            quote_id=context.quote_id,
            customer_id=context.customer_id,
            user_id=context.user_id,
        )

        if channel != NotificationChannel.EMAIL:
            entry.status = NotificationLogStatus.FAILED
            entry.error_message = SMS_NOT_IMPLEMENTED
        else:
            try:
                result = self.email_provider.send(
                    EmailMessage(to=recipient, subject=subject, body=body, is_html=True)
                )
            except Exception as e:
                logger.error(f"Email provider raised sending to {recipient}: {e}", exc_info=True)
                entry.status = NotificationLogStatus.FAILED
                entry.error_message = str(e) or type(e).__name__
            else:
                if result.success:
                    entry.status = NotificationLogStatus.SENT
                    entry.message_id = result.message_id
                    entry.sent_at = datetime.now(timezone.utc)
                else:
                    entry.status = NotificationLogStatus.FAILED
                    entry.error_message = result.error_message or "Unknown delivery error"

        self._log_delivery(entry)
        return entry

    def _log_delivery(self, entry: NotificationLogEntry) -> None:
        """Persist the attempt; log storage problems are not delivery failures."""
        log = logger.info if entry.status == NotificationLogStatus.SENT else logger.warning
        log(
            f"Notification {entry.type.value} to {entry.recipient}: {entry.status.value}",
            extra={
                "notification_type": entry.type.value,
                "recipient": entry.recipient,
                "quote_id": entry.quote_id,
                "error": entry.error_message,
            },
        )
        try:
            self.log_store.add(entry)
        except Exception as e:
            logger.error(f"Failed to write notification log: {e}", exc_info=True)
