"""
Tests for the quote lifecycle service.

Tests:
- Quote creation and validation
- Partial updates and per-dimension audit entries
- Manual status edits
- Sending quotes to customers
- Archive and delete
- Side-effect ordering (audit before notifications, failures contained)
"""

from datetime import date
from decimal import Decimal

import pytest

from audit import AuditStorageBackend, InMemoryAuditStorage, QuoteAuditAction
from domain import QuoteStatus
from notifications import (
    InMemoryNotificationLogStore,
    InMemoryNotificationSettingStore,
    NotificationType,
)
from pricing import DiscountType
from database import InMemoryDirectory, InMemoryQuoteRepository
from quotes import (
    ArtworkUpload,
    InvalidTransitionError,
    LineItemInput,
    PermissionDeniedError,
    QuoteNotFoundError,
    QuoteUpdate,
    QuoteValidationError,
    assemble_platform,
    build_memory_platform,
)


class BrokenAuditStorage(AuditStorageBackend):
    def append(self, entry):
        raise RuntimeError("audit table locked")

    def list_for_quote(self, quote_id, newest_first=True, limit=None, offset=0):
        return []

    def count_for_quote(self, quote_id):
        return 0


def actions(lifecycle, quote_id):
    return [entry.action for entry in lifecycle.get_audit_logs(quote_id)]


class TestCreateQuote:
    """Tests for quote creation."""

    def test_create_computes_totals(self, create_quote):
        quote = create_quote()

        assert quote.status == QuoteStatus.PENDING
        assert quote.quote_number == "Q2026-0001"
        assert quote.subtotal == Decimal("300")
        assert quote.total == Decimal("300")
        assert [item.total for item in quote.line_items] == [Decimal("250"), Decimal("50")]

    def test_create_with_adjustments(self, create_quote):
        quote = create_quote(
            discount_value=Decimal("10"),
            discount_type=DiscountType.PERCENTAGE,
            tax_rate=Decimal("8.25"),
            shipping=Decimal("15"),
        )

        assert quote.discount == Decimal("30.00")
        assert quote.tax == Decimal("22.28")
        assert quote.total == Decimal("307.28")

    def test_create_writes_one_audit_entry(self, lifecycle, create_quote, admin):
        quote = create_quote()

        [entry] = lifecycle.get_audit_logs(quote.id)
        assert entry.action == QuoteAuditAction.CREATED
        assert entry.description == "Quote Q2026-0001 created"
        assert entry.actor_id == admin.id

    def test_client_totals_ignored(self, create_quote):
        items = [LineItemInput(name="Mug", quantity=2, unit_price=Decimal("5"), total=Decimal("999"))]
        quote = create_quote(line_items=items)
        assert quote.total == Decimal("10")

    def test_zero_line_items_rejected_without_side_effects(self, platform, create_quote):
        """Test that a failed create consumes no number and writes nothing."""
        with pytest.raises(QuoteValidationError, match="At least one line item is required"):
            create_quote(line_items=[])

        assert len(platform.quotes) == 0
        assert platform.notification_logs.list() == []
        assert create_quote().quote_number == "Q2026-0001"

    def test_customer_required(self, create_quote):
        with pytest.raises(QuoteValidationError, match="Select a customer"):
            create_quote(customer_name="  ", customer_email=None)

    def test_unknown_customer_rejected(self, create_quote):
        with pytest.raises(QuoteValidationError, match="Customer missing not found"):
            create_quote(customer_id="missing")

    def test_linked_customer_clears_manual_fields(self, create_quote, customer):
        quote = create_quote(customer_id=customer.id)

        assert quote.customer_id == "cust-acme"
        assert quote.customer_name is None
        assert quote.customer_email is None

    def test_sequential_numbers(self, create_quote):
        numbers = [create_quote().quote_number for _ in range(3)]
        assert numbers == ["Q2026-0001", "Q2026-0002", "Q2026-0003"]

    def test_number_sequence_restarts_each_year(self, create_quote, clock):
        create_quote()
        clock.advance(days=300)
        assert create_quote().quote_number == "Q2027-0001"

    def test_negative_total_is_allowed(self, create_quote):
        quote = create_quote(discount_value=Decimal("500"))
        assert quote.total == Decimal("-200")


class TestUpdateQuote:
    """Tests for partial updates and their audit entries."""

    def test_detail_edit(self, lifecycle, create_quote, admin):
        quote = create_quote()

        updated = lifecycle.update_quote(quote.id, QuoteUpdate(title="Summer Polos"), admin)

        assert updated.title == "Summer Polos"
        latest = lifecycle.get_audit_logs(quote.id)[0]
        assert latest.action == QuoteAuditAction.UPDATED
        assert latest.description == "Quote updated: title"

    def test_pricing_edit(self, lifecycle, create_quote, admin):
        quote = create_quote()

        updated = lifecycle.update_quote(quote.id, QuoteUpdate(tax_rate=Decimal("10")), admin)

        assert updated.total == Decimal("330")
        latest = lifecycle.get_audit_logs(quote.id)[0]
        assert latest.action == QuoteAuditAction.PRICING_UPDATED
        assert latest.description == "Pricing updated: tax, total changed"
        assert latest.previous_value["total"] == "300.00"
        assert latest.new_value["total"] == "330.00"

    def test_line_items_added(self, lifecycle, create_quote, admin):
        quote = create_quote()
        items = [LineItemInput(**item.model_dump()) for item in quote.line_items]
        items.append(LineItemInput(name="Tote Bag", quantity=10, unit_price=Decimal("6")))

        updated = lifecycle.update_quote(quote.id, QuoteUpdate(line_items=items), admin)

        assert updated.subtotal == Decimal("360")
        entries = lifecycle.get_audit_logs(quote.id)
        assert [e.action for e in entries[:2]] == [
            QuoteAuditAction.PRICING_UPDATED,
            QuoteAuditAction.LINE_ITEM_ADDED,
        ]
        assert entries[1].description == "1 line item(s) added"

    def test_line_items_cannot_be_emptied(self, lifecycle, create_quote, admin):
        quote = create_quote()
        with pytest.raises(QuoteValidationError, match="at least one line item"):
            lifecycle.update_quote(quote.id, QuoteUpdate(line_items=[]), admin)

    def test_customer_and_owner_change(self, lifecycle, create_quote, admin, customer, owner):
        quote = create_quote()

        lifecycle.update_quote(quote.id, QuoteUpdate(customer_id=customer.id, owner_id=owner.id), admin)

        descriptions = [e.description for e in lifecycle.get_audit_logs(quote.id)]
        assert 'Customer changed from "Walk-in Customer" to "Acme Corp"' in descriptions
        assert 'Owner changed from "Unassigned" to "Olivia Owner"' in descriptions

    def test_unknown_owner_rejected(self, lifecycle, create_quote, admin):
        quote = create_quote()
        with pytest.raises(QuoteValidationError, match="User ghost not found"):
            lifecycle.update_quote(quote.id, QuoteUpdate(owner_id="ghost"), admin)

    def test_noop_update_writes_nothing(self, lifecycle, create_quote, admin):
        quote = create_quote()

        result = lifecycle.update_quote(quote.id, QuoteUpdate(title="Team Polos"), admin)

        assert result.last_modified_at == quote.last_modified_at
        assert actions(lifecycle, quote.id) == [QuoteAuditAction.CREATED]

    def test_explicit_none_clears_field(self, lifecycle, create_quote, admin):
        quote = create_quote(valid_until=date(2026, 4, 1))

        updated = lifecycle.update_quote(quote.id, QuoteUpdate(valid_until=None), admin)

        assert updated.valid_until is None

    def test_unknown_quote(self, lifecycle, admin):
        with pytest.raises(QuoteNotFoundError):
            lifecycle.update_quote("nope", QuoteUpdate(title="x"), admin)


class TestStatusEdits:
    """Tests for status changes made through a generic edit."""

    def test_pending_to_reviewing(self, lifecycle, create_quote, admin):
        quote = create_quote()

        updated = lifecycle.update_quote(quote.id, QuoteUpdate(status=QuoteStatus.REVIEWING), admin)

        assert updated.status == QuoteStatus.REVIEWING
        latest = lifecycle.get_audit_logs(quote.id)[0]
        assert latest.description == "Status changed from PENDING to REVIEWING by Alex Admin"

    def test_send_only_status_rejected(self, lifecycle, create_quote, admin):
        quote = create_quote()

        with pytest.raises(InvalidTransitionError, match="Use the send action"):
            lifecycle.update_quote(quote.id, QuoteUpdate(status=QuoteStatus.SENT), admin)

    @pytest.mark.parametrize("target", [QuoteStatus.ARTWORK_APPROVED, QuoteStatus.ARTWORK_DECLINED])
    def test_customer_artwork_decision_rejected(self, lifecycle, create_quote, admin, target):
        """Test that staff cannot record the customer's artwork decision."""
        quote = create_quote(artwork_required=True)
        artwork = ArtworkUpload(url="https://files.test/logo.png", file_name="logo.png")
        lifecycle.upload_artwork(quote.id, artwork, admin)
        lifecycle.send_artwork(quote.id, admin)

        with pytest.raises(InvalidTransitionError, match="Only the customer") as exc_info:
            lifecycle.update_quote(quote.id, QuoteUpdate(status=target), admin)

        assert exc_info.value.current_status == "ARTWORK_PENDING"
        assert exc_info.value.target_status == target.value
        stored = lifecycle.get_quote(quote.id)
        assert stored.status == QuoteStatus.ARTWORK_PENDING
        assert stored.artwork_approved_at is None
        assert stored.artwork_declined_at is None

    def test_illegal_transition_has_no_side_effects(self, platform, lifecycle, create_quote, admin, email_provider):
        """Test that an illegal edit leaves the quote, audit and notifications untouched."""
        quote = create_quote()

        with pytest.raises(InvalidTransitionError) as exc_info:
            lifecycle.update_quote(
                quote.id, QuoteUpdate(status=QuoteStatus.APPROVED, title="Changed"), admin,
            )

        assert exc_info.value.current_status == "PENDING"
        assert exc_info.value.target_status == "APPROVED"
        stored = lifecycle.get_quote(quote.id)
        assert stored.status == QuoteStatus.PENDING
        assert stored.title == "Team Polos"
        assert actions(lifecycle, quote.id) == [QuoteAuditAction.CREATED]
        assert email_provider.attempts == []

    def test_manual_approval_sets_timestamp(self, lifecycle, create_quote, admin, clock):
        quote = create_quote()
        lifecycle.send_to_customer(quote.id, admin)

        approved = lifecycle.update_quote(quote.id, QuoteUpdate(status=QuoteStatus.APPROVED), admin)

        assert approved.approved_at == clock.now

    def test_manual_approval_requires_artwork(self, lifecycle, create_quote, admin):
        quote = create_quote(artwork_required=True)
        lifecycle.send_to_customer(quote.id, admin)

        with pytest.raises(InvalidTransitionError, match="Artwork must be approved"):
            lifecycle.update_quote(quote.id, QuoteUpdate(status=QuoteStatus.APPROVED), admin)

    def test_archive_status_needs_archive_action(self, lifecycle, create_quote, admin):
        quote = create_quote()
        with pytest.raises(InvalidTransitionError, match="archive action"):
            lifecycle.update_quote(quote.id, QuoteUpdate(status=QuoteStatus.ARCHIVED), admin)


class TestSendToCustomer:
    """Tests for emailing a quote to the customer."""

    def test_send(self, lifecycle, create_quote, admin, email_provider, clock):
        quote = create_quote()

        outcome = lifecycle.send_to_customer(quote.id, admin)

        assert outcome.success
        assert outcome.quote.status == QuoteStatus.SENT
        assert outcome.quote.sent_at == clock.now
        assert len(outcome.quote.access_token) == 64

        [message] = email_provider.sent
        assert message.to == "walkin@example.test"
        assert message.subject == "Your Quote from Logoz Custom - Q2026-0001"
        assert f"https://quotes.example.com/quote/{outcome.quote.access_token}" in message.body

    def test_email_has_approve_and_decline_links(self, lifecycle, create_quote, admin, email_provider):
        quote = create_quote()

        token = lifecycle.send_to_customer(quote.id, admin).quote.access_token

        [message] = email_provider.sent
        assert f"https://quotes.example.com/quote/{token}?action=approve" in message.body
        assert f"https://quotes.example.com/quote/{token}?action=decline" in message.body
        assert "10 x Embroidered Polo, 1 x Setup Fee" in message.body

    def test_send_audit_entry(self, lifecycle, create_quote, admin):
        quote = create_quote()
        lifecycle.send_to_customer(quote.id, admin)

        latest = lifecycle.get_audit_logs(quote.id)[0]
        assert latest.action == QuoteAuditAction.SENT_TO_CUSTOMER
        assert latest.description == "Quote sent to walkin@example.test"
        assert latest.previous_status == "PENDING"
        assert latest.new_status == "SENT"

    def test_send_ignores_disabled_setting(self, platform, lifecycle, create_quote, admin, email_provider):
        assert not platform.notification_settings.get(NotificationType.CUSTOMER_QUOTE_SENT).enabled

        lifecycle.send_to_customer(create_quote().id, admin)

        assert len(email_provider.sent) == 1

    def test_prefers_linked_customer_email(self, lifecycle, create_quote, admin, customer, email_provider):
        quote = create_quote(customer_id=customer.id)
        lifecycle.send_to_customer(quote.id, admin)
        assert email_provider.sent[0].to == "jane@acme.test"

    def test_resend_keeps_token(self, lifecycle, create_quote, admin, email_provider):
        quote = create_quote()
        first = lifecycle.send_to_customer(quote.id, admin)
        second = lifecycle.send_to_customer(quote.id, admin)

        assert second.quote.access_token == first.quote.access_token
        assert len(email_provider.sent) == 2

    def test_email_required(self, lifecycle, create_quote, admin):
        quote = create_quote(customer_email=None)
        with pytest.raises(QuoteValidationError, match="Customer email is required"):
            lifecycle.send_to_customer(quote.id, admin)
        assert lifecycle.get_quote(quote.id).status == QuoteStatus.PENDING

    def test_approved_quote_cannot_be_sent(self, lifecycle, create_quote, admin):
        quote = create_quote()
        lifecycle.send_to_customer(quote.id, admin)
        lifecycle.update_quote(quote.id, QuoteUpdate(status=QuoteStatus.APPROVED), admin)

        with pytest.raises(InvalidTransitionError, match="cannot be sent"):
            lifecycle.send_to_customer(quote.id, admin)

    def test_failed_email_keeps_committed_status(self, app_settings, failing_email_provider, clock, admin, make_quote_data):
        """Test that a delivery failure is reported but the quote stays SENT."""
        platform = build_memory_platform(app_settings, failing_email_provider, clock)
        quote = platform.lifecycle.create_quote(make_quote_data(), admin)

        outcome = platform.lifecycle.send_to_customer(quote.id, admin)

        assert not outcome.success
        assert outcome.delivery.error == "walkin@example.test: Connection refused"
        assert platform.lifecycle.get_quote(quote.id).status == QuoteStatus.SENT
        assert platform.lifecycle.get_audit_logs(quote.id)[0].action == QuoteAuditAction.SENT_TO_CUSTOMER
        [log] = platform.notification_logs.list(quote_id=quote.id)
        assert log.error_message == "Connection refused"


class TestArchiveAndDelete:
    """Tests for archiving and deleting quotes."""

    def test_archive(self, lifecycle, create_quote, admin):
        quote = create_quote()

        archived = lifecycle.archive_quote(quote.id, admin)

        assert archived.status == QuoteStatus.ARCHIVED
        latest = lifecycle.get_audit_logs(quote.id)[0]
        assert latest.description == "Status changed from PENDING to ARCHIVED by Alex Admin"

    def test_archived_is_terminal(self, lifecycle, create_quote, admin):
        quote = create_quote()
        lifecycle.archive_quote(quote.id, admin)

        with pytest.raises(InvalidTransitionError):
            lifecycle.archive_quote(quote.id, admin)
        with pytest.raises(InvalidTransitionError, match="Archived quotes cannot be modified"):
            lifecycle.update_quote(quote.id, QuoteUpdate(title="x"), admin)
        with pytest.raises(InvalidTransitionError):
            lifecycle.send_to_customer(quote.id, admin)

    def test_editor_cannot_archive(self, lifecycle, create_quote, editor):
        quote = create_quote()
        with pytest.raises(PermissionDeniedError):
            lifecycle.archive_quote(quote.id, editor)
        assert lifecycle.get_quote(quote.id).status == QuoteStatus.PENDING

    def test_only_super_admin_deletes(self, lifecycle, create_quote, admin):
        quote = create_quote()
        with pytest.raises(PermissionDeniedError, match="delete quotes"):
            lifecycle.delete_quote(quote.id, admin)
        assert lifecycle.get_quote(quote.id)

    def test_delete_keeps_audit_history(self, lifecycle, create_quote, super_admin):
        quote = create_quote()

        lifecycle.delete_quote(quote.id, super_admin)

        with pytest.raises(QuoteNotFoundError):
            lifecycle.get_quote(quote.id)
        entries = lifecycle.get_audit_logs(quote.id)
        assert [e.action for e in entries] == [QuoteAuditAction.DELETED, QuoteAuditAction.CREATED]
        assert entries[0].description == "Quote Q2026-0001 deleted"


class TestSideEffects:
    """Tests for audit and notification side effects."""

    def test_quote_created_notification(self, create_quote, enable_notification, email_provider):
        enable_notification(NotificationType.INTERNAL_QUOTE_CREATED, recipients=["sales@logoz.test"])

        create_quote()

        [message] = email_provider.sent
        assert message.to == "sales@logoz.test"
        assert message.subject == "New Quote Created: Q2026-0001"
        assert "Alex Admin" in message.body

    def test_disabled_notifications_send_nothing(self, platform, create_quote, email_provider):
        create_quote()
        assert email_provider.attempts == []
        assert platform.notification_logs.list() == []

    def test_status_edit_notifies_staff(self, lifecycle, create_quote, admin, enable_notification, email_provider):
        enable_notification(NotificationType.INTERNAL_QUOTE_STATUS_CHANGE, recipients=["ops@logoz.test"])
        quote = create_quote()

        lifecycle.update_quote(quote.id, QuoteUpdate(status=QuoteStatus.REVIEWING), admin)
        lifecycle.update_quote(quote.id, QuoteUpdate(title="No status change"), admin)

        assert [m.subject for m in email_provider.sent] == ["Quote Status Changed: Q2026-0001 - REVIEWING"]

    def test_failed_automatic_notification_does_not_fail_create(
        self, app_settings, failing_email_provider, clock, admin, make_quote_data,
    ):
        platform = build_memory_platform(app_settings, failing_email_provider, clock)
        setting = platform.notification_settings.get(NotificationType.INTERNAL_QUOTE_CREATED)
        platform.notification_settings.save(
            setting.model_copy(update={"enabled": True, "recipient_emails": ["sales@logoz.test"]})
        )

        quote = platform.lifecycle.create_quote(make_quote_data(), admin)

        assert failing_email_provider.attempts == 1
        assert platform.lifecycle.get_quote(quote.id).quote_number == "Q2026-0001"

    def test_audit_failure_does_not_block_mutation(self, app_settings, email_provider, clock, admin, make_quote_data):
        platform = assemble_platform(
            quotes=InMemoryQuoteRepository(),
            directory=InMemoryDirectory(),
            audit_storage=BrokenAuditStorage(),
            notification_settings=InMemoryNotificationSettingStore(),
            notification_logs=InMemoryNotificationLogStore(),
            settings=app_settings,
            email_provider=email_provider,
            clock=clock,
        )

        quote = platform.lifecycle.create_quote(make_quote_data(), admin)
        outcome = platform.lifecycle.send_to_customer(quote.id, admin)

        assert outcome.success
        assert platform.lifecycle.get_quote(quote.id).status == QuoteStatus.SENT

    def test_audit_written_before_notification(
        self, platform, create_quote, enable_notification, email_provider, monkeypatch,
    ):
        """Test that the audit entry already exists when the notification goes out."""
        enable_notification(NotificationType.INTERNAL_QUOTE_CREATED, recipients=["sales@logoz.test"])
        audit_counts = []
        original_send = email_provider.send

        def send(message):
            [stored] = platform.quotes.list()
            audit_counts.append(platform.audit.count(stored.id))
            return original_send(message)

        monkeypatch.setattr(email_provider, "send", send)
        create_quote()

        assert audit_counts == [1]


class TestQueries:
    """Tests for quote listing."""

    def test_list_newest_first_with_filters(self, lifecycle, create_quote, admin, clock):
        first = create_quote(title="Polos")
        clock.advance(minutes=5)
        second = create_quote(title="Mugs")
        lifecycle.send_to_customer(second.id, admin)

        assert [q.id for q in lifecycle.list_quotes()] == [second.id, first.id]
        assert [q.id for q in lifecycle.list_quotes(status=QuoteStatus.SENT)] == [second.id]
        assert [q.id for q in lifecycle.list_quotes(search="polo")] == [first.id]
        assert [q.id for q in lifecycle.list_quotes(limit=1, offset=1)] == [first.id]
