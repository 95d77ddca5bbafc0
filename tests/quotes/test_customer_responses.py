"""
Tests for customer quote responses through approval links.

Tests:
- Approve and decline
- One response per quote
- Expiry
- Token handling
- Response notifications and owner alerts
"""

from datetime import date

import pytest
from pydantic import ValidationError

from audit import QuoteAuditAction
from config import Settings
from domain import ActorType, QuoteStatus
from notifications import NotificationLogStatus, NotificationType
from quotes import (
    CustomerResponse,
    InvalidTransitionError,
    QuoteUpdate,
    QuoteValidationError,
    TokenError,
    build_memory_platform,
)


@pytest.fixture
def sent_quote(lifecycle, create_quote, admin):
    quote = create_quote()
    return lifecycle.send_to_customer(quote.id, admin).quote


class TestRespondToQuote:
    """Tests for approving and declining quotes."""

    def test_approve(self, lifecycle, sent_quote, clock):
        quote = lifecycle.respond_to_quote(sent_quote.access_token, CustomerResponse(action="approve"))

        assert quote.status == QuoteStatus.APPROVED
        assert quote.approved_at == clock.now
        latest = lifecycle.get_audit_logs(quote.id)[0]
        assert latest.action == QuoteAuditAction.APPROVED_BY_CUSTOMER
        assert latest.description == "Quote approved by customer (walkin@example.test)"
        assert latest.actor_type == ActorType.CUSTOMER

    def test_decline_with_notes(self, lifecycle, sent_quote):
        response = CustomerResponse(action="decline", notes="  Over budget  ")

        quote = lifecycle.respond_to_quote(sent_quote.access_token, response)

        assert quote.status == QuoteStatus.DECLINED
        assert quote.declined_at is not None
        latest = lifecycle.get_audit_logs(quote.id)[0]
        assert latest.description == 'Quote declined by customer (walkin@example.test): "Over budget"'
        assert latest.new_value["notes"] == "Over budget"

    def test_second_response_rejected(self, lifecycle, sent_quote):
        lifecycle.respond_to_quote(sent_quote.access_token, CustomerResponse(action="approve"))

        with pytest.raises(QuoteValidationError, match="already been approved"):
            lifecycle.respond_to_quote(sent_quote.access_token, CustomerResponse(action="decline"))

    def test_expired_quote(self, lifecycle, create_quote, admin):
        quote = create_quote(valid_until=date(2026, 3, 14))
        token = lifecycle.send_to_customer(quote.id, admin).quote.access_token

        with pytest.raises(QuoteValidationError, match="This quote expired on 2026-03-14"):
            lifecycle.respond_to_quote(token, CustomerResponse(action="approve"))

    def test_valid_until_today_is_not_expired(self, lifecycle, create_quote, admin):
        quote = create_quote(valid_until=date(2026, 3, 15))
        token = lifecycle.send_to_customer(quote.id, admin).quote.access_token

        assert lifecycle.respond_to_quote(token, CustomerResponse(action="approve")).status == QuoteStatus.APPROVED

    def test_unknown_token(self, lifecycle):
        with pytest.raises(TokenError, match="Quote not found or link expired"):
            lifecycle.respond_to_quote("0" * 64, CustomerResponse(action="approve"))

    def test_empty_token(self, lifecycle):
        with pytest.raises(TokenError):
            lifecycle.get_quote_by_token("")

    def test_quote_must_be_sent(self, lifecycle, sent_quote, admin):
        lifecycle.update_quote(sent_quote.id, QuoteUpdate(status=QuoteStatus.REVIEWING), admin)

        with pytest.raises(InvalidTransitionError, match="Only quotes sent to the customer"):
            lifecycle.respond_to_quote(sent_quote.access_token, CustomerResponse(action="approve"))

    def test_reopened_quote_can_be_answered_again(self, lifecycle, sent_quote, admin):
        token = sent_quote.access_token
        lifecycle.respond_to_quote(token, CustomerResponse(action="decline"))
        reopened = lifecycle.update_quote(sent_quote.id, QuoteUpdate(status=QuoteStatus.REVIEWING), admin)
        assert reopened.declined_at is None

        lifecycle.send_to_customer(sent_quote.id, admin)
        quote = lifecycle.respond_to_quote(token, CustomerResponse(action="approve"))

        assert quote.status == QuoteStatus.APPROVED

    def test_archived_quote_rejects_response(self, lifecycle, sent_quote, admin):
        lifecycle.archive_quote(sent_quote.id, admin)
        with pytest.raises(InvalidTransitionError):
            lifecycle.respond_to_quote(sent_quote.access_token, CustomerResponse(action="approve"))

    def test_notes_length_limit(self, email_provider, clock, admin, make_quote_data):
        platform = build_memory_platform(Settings(customer_notes_max_length=10), email_provider, clock)
        quote = platform.lifecycle.create_quote(make_quote_data(), admin)
        token = platform.lifecycle.send_to_customer(quote.id, admin).quote.access_token

        with pytest.raises(QuoteValidationError, match="at most 10 characters"):
            platform.lifecycle.respond_to_quote(token, CustomerResponse(action="decline", notes="x" * 11))
        assert platform.lifecycle.get_quote(quote.id).status == QuoteStatus.SENT

    def test_invalid_action(self):
        with pytest.raises(ValidationError):
            CustomerResponse(action="maybe")


class TestResponseNotifications:
    """Tests for notifications triggered by customer responses."""

    def test_customer_status_email_when_enabled(self, lifecycle, sent_quote, enable_notification, email_provider):
        enable_notification(NotificationType.CUSTOMER_QUOTE_STATUS_CHANGE)

        lifecycle.respond_to_quote(sent_quote.access_token, CustomerResponse(action="approve"))

        subjects = [m.subject for m in email_provider.messages_to("walkin@example.test")]
        assert subjects[-1] == "Quote Update - Q2026-0001"

    def test_owner_alert(self, lifecycle, create_quote, admin, owner, email_provider):
        quote = create_quote(owner_id=owner.id)
        token = lifecycle.send_to_customer(quote.id, admin).quote.access_token

        lifecycle.respond_to_quote(token, CustomerResponse(action="approve"))

        [alert] = email_provider.messages_to("olivia@logoz.test")
        assert alert.subject == "✅ Quote Q2026-0001 Approved by Customer"
        assert "$300.00" in alert.body

    def test_missing_internal_recipients_do_not_fail_response(
        self, platform, lifecycle, sent_quote, enable_notification,
    ):
        enable_notification(NotificationType.INTERNAL_QUOTE_STATUS_CHANGE, recipients=[])

        quote = lifecycle.respond_to_quote(sent_quote.access_token, CustomerResponse(action="decline"))

        assert quote.status == QuoteStatus.DECLINED
        logs = platform.notification_logs.list(
            quote_id=quote.id, notification_type=NotificationType.INTERNAL_QUOTE_STATUS_CHANGE,
        )
        assert logs == []

    def test_failed_owner_alert_is_logged(self, lifecycle, create_quote, admin, owner, email_provider, platform):
        email_provider.fail_for.add("olivia@logoz.test")
        quote = create_quote(owner_id=owner.id)
        token = lifecycle.send_to_customer(quote.id, admin).quote.access_token

        lifecycle.respond_to_quote(token, CustomerResponse(action="decline"))

        [log] = platform.notification_logs.list(quote_id=quote.id, notification_type=NotificationType.INTERNAL_QUOTE_STATUS_CHANGE)
        assert log.status == NotificationLogStatus.FAILED
        assert log.recipient == "olivia@logoz.test"
