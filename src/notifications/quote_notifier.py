"""
Quote notifications.

Bridges quote events to the dispatcher. Automatic notifications are
driven by events after each committed mutation and are setting-gated;
their failures are logged and swallowed. Direct user-triggered sends
(quote and artwork) bypass the gate and return the ``DispatchResult`` so
the caller can surface failures.

A fresh settings snapshot is read from the settings store for every
notification and passed explicitly to the dispatcher.
"""

import logging
from typing import Optional

from config import Settings
from domain import (
    Actor,
    ArtworkResponded,
    Customer,
    EventBus,
    Quote,
    QuoteCreated,
    QuoteResponded,
    QuoteStatusChanged,
    QuoteUpdated,
    StaffUser,
    ChangeDimension,
)

from .dispatcher import NotificationDispatcher
from .notification_store import NotificationSettingStore
from .notification_types import (
    DispatchResult,
    NotificationSettingsSnapshot,
    NotificationType,
)
from .owner_alerts import build_artwork_response_alert, build_quote_response_alert
from .templates import NotificationContext

logger = logging.getLogger(__name__)


class QuoteNotifier:
    """Sends every quote-related notification."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        settings_store: NotificationSettingStore,
        app_settings: Settings,
    ):
        self.dispatcher = dispatcher
        self.settings_store = settings_store
        self.app_settings = app_settings

    # =========================================================================
    # CONTEXT
    # =========================================================================

    def build_context(
        self,
        quote: Quote,
        customer: Optional[Customer] = None,
        owner: Optional[StaffUser] = None,
        actor: Optional[Actor] = None,
        **extra,
    ) -> NotificationContext:
        """Flatten a quote and its related records into template values."""
        if customer is not None:
            customer_name = customer.contact_name or quote.customer_name
            customer_email = customer.email or quote.customer_email
            customer_company = customer.company_name or quote.customer_company
        else:
            customer_name = quote.customer_name
            customer_email = quote.customer_email
            customer_company = quote.customer_company

        user_name = user_email = user_id = None
        if actor is not None and actor.id:
            user_id, user_name, user_email = actor.id, actor.name, actor.email
        elif owner is not None:
            user_id, user_name, user_email = owner.id, owner.name, owner.email

        values = dict(
            quote_id=quote.id,
            customer_id=quote.customer_id,
            user_id=user_id,
            site_name=self.app_settings.site_name,
            currency_symbol=self.app_settings.currency_symbol,
            quote_number=quote.quote_number,
            quote_total=quote.total,
            quote_title=quote.title,
            quote_status=quote.status.value,
            valid_until=quote.valid_until,
            customer_name=customer_name,
            customer_company=customer_company,
            customer_email=customer_email,
            user_name=user_name,
            user_email=user_email,
            artwork_url=quote.artwork_url,
            artwork_file_name=quote.artwork_file_name,
            artwork_version=quote.artwork_version or None,
            artwork_notes=quote.artwork_notes,
            line_items_summary=", ".join(
                f"{item.quantity} x {item.name}" for item in quote.line_items
            ) or None,
        )
        if quote.access_token:
            approval_url = self.app_settings.quote_approval_url
            values["quote_approval_url"] = approval_url(quote.access_token)
            values["quote_approve_url"] = approval_url(quote.access_token, action="approve")
            values["quote_decline_url"] = approval_url(quote.access_token, action="decline")
        if quote.artwork_token:
            values["artwork_approval_url"] = self.app_settings.artwork_approval_url(quote.artwork_token)
        values.update(extra)
        return NotificationContext(**values)

    def _snapshot(self) -> NotificationSettingsSnapshot:
        return self.settings_store.snapshot()

    # =========================================================================
    # DIRECT SENDS (user-triggered, bypass the enabled gate)
    # =========================================================================

    def send_quote(
        self,
        quote: Quote,
        recipient: str,
        customer: Optional[Customer] = None,
        owner: Optional[StaffUser] = None,
        actor: Optional[Actor] = None,
    ) -> DispatchResult:
        """Email the quote with its approval link."""
        context = self.build_context(quote, customer, owner, actor)
        return self.dispatcher.dispatch(
            NotificationType.CUSTOMER_QUOTE_SENT,
            context,
            self._safe_snapshot(),
            override_recipient=recipient,
            force=True,
        )

    def send_artwork_for_approval(
        self,
        quote: Quote,
        recipient: str,
        customer: Optional[Customer] = None,
        owner: Optional[StaffUser] = None,
        actor: Optional[Actor] = None,
    ) -> DispatchResult:
        """Email the current artwork version with its approval link."""
        context = self.build_context(quote, customer, owner, actor)
        return self.dispatcher.dispatch(
            NotificationType.CUSTOMER_ARTWORK_APPROVAL,
            context,
            self._safe_snapshot(),
            override_recipient=recipient,
            force=True,
        )

    def _safe_snapshot(self) -> NotificationSettingsSnapshot:
        # Direct sends work without settings; overrides are optional
        try:
            return self._snapshot()
        except Exception as e:
            logger.error(f"Could not load notification settings, using defaults: {e}", exc_info=True)
            return NotificationSettingsSnapshot()

    def send_user_verification(self, user: StaffUser, verification_url: str) -> DispatchResult:
        """Setting-gated verification email to a new staff user."""
        context = NotificationContext(
            user_id=user.id,
            user_name=user.name,
            user_email=user.email,
            verification_url=verification_url,
            site_name=self.app_settings.site_name,
        )
        return self.dispatcher.dispatch(
            NotificationType.INTERNAL_USER_VERIFICATION,
            context,
            self._snapshot(),
            override_recipient=user.email,
        )

    # =========================================================================
    # AUTOMATIC NOTIFICATIONS (event-driven, setting-gated)
    # =========================================================================

    def register(self, bus: EventBus) -> None:
        bus.subscribe(QuoteCreated, self.on_quote_created)
        bus.subscribe(QuoteUpdated, self.on_quote_updated)
        bus.subscribe(QuoteStatusChanged, self.on_status_changed)
        bus.subscribe(QuoteResponded, self.on_quote_responded)
        bus.subscribe(ArtworkResponded, self.on_artwork_responded)

    def _automatic(
        self,
        notification_type: NotificationType,
        context: NotificationContext,
        snapshot: NotificationSettingsSnapshot,
    ) -> DispatchResult:
        result = self.dispatcher.dispatch(notification_type, context, snapshot)
        if not result.success:
            logger.warning(
                f"Automatic notification {notification_type.value} failed: {result.error}",
                extra={"quote_id": context.quote_id},
            )
        return result

    def on_quote_created(self, event: QuoteCreated) -> None:
        context = self.build_context(event.quote, event.customer, event.owner, event.actor)
        self._automatic(NotificationType.INTERNAL_QUOTE_CREATED, context, self._snapshot())

    def on_quote_updated(self, event: QuoteUpdated) -> None:
        if ChangeDimension.STATUS not in event.changes:
            return
        context = self.build_context(
            event.quote, event.customer, event.owner, event.actor,
            previous_status=event.previous.status.value,
            new_status=event.quote.status.value,
        )
        self._automatic(NotificationType.INTERNAL_QUOTE_STATUS_CHANGE, context, self._snapshot())

    def on_status_changed(self, event: QuoteStatusChanged) -> None:
        context = self.build_context(
            event.quote, event.customer, event.owner, event.actor,
            previous_status=event.previous_status.value,
            new_status=event.quote.status.value,
        )
        self._automatic(NotificationType.INTERNAL_QUOTE_STATUS_CHANGE, context, self._snapshot())

    def on_quote_responded(self, event: QuoteResponded) -> None:
        context = self.build_context(
            event.quote, event.customer, event.owner,
            previous_status=event.previous_status.value,
            new_status=event.quote.status.value,
        )
        snapshot = self._snapshot()
        self._automatic(NotificationType.CUSTOMER_QUOTE_STATUS_CHANGE, context, snapshot)
        self._automatic(NotificationType.INTERNAL_QUOTE_STATUS_CHANGE, context, snapshot)

        if event.owner and event.owner.email:
            subject, body = build_quote_response_alert(context, event.decision.approved, event.notes)
            self._alert_owner(
                NotificationType.INTERNAL_QUOTE_STATUS_CHANGE, event.owner, subject, body, context
            )

    def on_artwork_responded(self, event: ArtworkResponded) -> None:
        context = self.build_context(
            event.quote, event.customer, event.owner,
            artwork_approved=event.decision.approved,
            artwork_notes=event.notes,
        )
        self._automatic(NotificationType.INTERNAL_ARTWORK_RESPONSE, context, self._snapshot())

        if event.owner and event.owner.email:
            subject, body = build_artwork_response_alert(context, event.decision.approved)
            self._alert_owner(
                NotificationType.INTERNAL_ARTWORK_RESPONSE, event.owner, subject, body, context
            )

    def _alert_owner(
        self,
        notification_type: NotificationType,
        owner: StaffUser,
        subject: str,
        body: str,
        context: NotificationContext,
    ) -> DispatchResult:
        result = self.dispatcher.send_direct(notification_type, owner.email, subject, body, context)
        if not result.success:
            logger.warning(f"Owner alert to {owner.email} failed: {result.error}")
        return result
