"""
Quote Lifecycle Service

The quote state machine. Every mutating operation follows the same shape:

1. Load the quote and validate the request and the status transition.
   Any failure raises before anything is written: no mutation, no audit
   entry, no notification.
2. Recompute pricing where inputs changed and commit the quote in a
   single store write.
3. Publish a QuoteMutated event. The audit recorder and the notifier
   consume it independently; their failures are logged by the event bus
   and never undo the committed write.
4. For direct user actions (send quote, send artwork) deliver the email
   synchronously and return the delivery result to the caller.

Usage:
    service = platform.lifecycle
    quote = service.create_quote(QuoteCreate(...), actor)
    outcome = service.send_to_customer(quote.id, actor)
    if not outcome.success:
        ...  # show outcome.delivery.error, let the user retry
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from audit import QuoteAuditEntry, QuoteAuditRecorder
from config import Settings
from domain import (
    Actor,
    ArtworkRemoved,
    ArtworkResponded,
    ArtworkSent,
    ArtworkUploaded,
    ArtworkVersion,
    Customer,
    EventBus,
    IDirectory,
    IQuoteRepository,
    Quote,
    QuoteCreated,
    QuoteDeleted,
    QuoteMutated,
    QuoteResponded,
    QuoteSent,
    QuoteStatus,
    QuoteStatusChanged,
    QuoteUpdated,
    StaffUser,
    UserRole,
    diff_quotes,
    utcnow,
)
from notifications import DispatchResult, QuoteNotifier

from .commands import ArtworkUpload, CustomerResponse, QuoteCreate, QuoteUpdate
from .errors import (
    InvalidTransitionError,
    PermissionDeniedError,
    QuoteNotFoundError,
    QuoteValidationError,
    TokenError,
)
from .numbering import QuoteNumberGenerator
from .tokens import generate_token, tokens_match
from .transitions import (
    ARTWORK_SEND_ADVANCES,
    ARTWORK_STATUSES,
    CUSTOMER_ONLY_STATUSES,
    SEND_ONLY_STATUSES,
    SENDABLE_STATUSES,
    ensure_not_archived,
    ensure_transition,
)

logger = logging.getLogger(__name__)

MANUAL_CUSTOMER_FIELDS = (
    "customer_name",
    "customer_email",
    "customer_phone",
    "customer_company",
)
PRICING_INPUT_FIELDS = ("discount_value", "discount_type", "tax_rate", "shipping")
DETAIL_INPUT_FIELDS = ("title", "notes", "internal_notes", "valid_until", "requested_delivery_date")

STAFF_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN)


@dataclass
class SendOutcome:
    """Committed quote plus the result of the email sent for it."""
    quote: Quote
    delivery: DispatchResult

    @property
    def success(self) -> bool:
        return self.delivery.success


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class QuoteLifecycleService:
    """Validates and applies every quote lifecycle operation."""

    def __init__(
        self,
        quotes: IQuoteRepository,
        directory: IDirectory,
        event_bus: EventBus,
        notifier: QuoteNotifier,
        audit: QuoteAuditRecorder,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.quotes = quotes
        self.directory = directory
        self.event_bus = event_bus
        self.notifier = notifier
        self.audit = audit
        self.settings = settings
        self.clock = clock
        self.numbers = QuoteNumberGenerator(quotes, settings.quote_number_prefix)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _load(self, quote_id: str) -> Quote:
        quote = self.quotes.get(quote_id)
        if quote is None:
            raise QuoteNotFoundError(quote_id)
        return quote

    def _related(self, quote: Quote) -> Tuple[Optional[Customer], Optional[StaffUser]]:
        customer = self.directory.get_customer(quote.customer_id) if quote.customer_id else None
        owner = self.directory.get_user(quote.owner_id) if quote.owner_id else None
        return customer, owner

    def _require_customer(self, customer_id: str) -> Customer:
        customer = self.directory.get_customer(customer_id)
        if customer is None:
            raise QuoteValidationError(f"Customer {customer_id} not found")
        return customer

    def _require_owner(self, user_id: str) -> StaffUser:
        user = self.directory.get_user(user_id)
        if user is None:
            raise QuoteValidationError(f"User {user_id} not found")
        return user

    @staticmethod
    def _require_role(actor: Actor, roles: Tuple[UserRole, ...], action: str) -> None:
        if not actor.has_role(*roles):
            raise PermissionDeniedError(f"You do not have permission to {action}")

    @staticmethod
    def _recipient_email(quote: Quote, customer: Optional[Customer]) -> Optional[str]:
        if customer is not None and customer.email:
            return customer.email
        return _clean(quote.customer_email)

    def _check_notes(self, notes: Optional[str]) -> Optional[str]:
        notes = _clean(notes)
        if notes and len(notes) > self.settings.customer_notes_max_length:
            raise QuoteValidationError(
                f"Notes must be at most {self.settings.customer_notes_max_length} characters"
            )
        return notes

    @staticmethod
    def _warn_if_negative(quote: Quote) -> None:
        if quote.total < 0:
            logger.warning(
                f"Quote {quote.quote_number} total is negative ({quote.total}); treated as a credit",
                extra={"quote_id": quote.id},
            )

    def _publish(self, event: QuoteMutated) -> None:
        self.event_bus.publish(event)

    # =========================================================================
    # CREATE / UPDATE
    # =========================================================================

    def create_quote(self, data: QuoteCreate, actor: Actor) -> Quote:
        """
        Create a quote in PENDING status.

        Requires at least one line item and either a stored customer or a
        manual customer name/email. The quote number is assigned only after
        validation succeeds.
        """
        if not data.line_items:
            raise QuoteValidationError("At least one line item is required")

        customer = None
        if data.customer_id:
            customer = self._require_customer(data.customer_id)
        elif not (_clean(data.customer_name) or _clean(data.customer_email)):
            raise QuoteValidationError("Select a customer or enter a customer name or email")

        owner = self._require_owner(data.owner_id) if data.owner_id else None
        now = self.clock()

        manual = {
            field: None if customer else _clean(getattr(data, field))
            for field in MANUAL_CUSTOMER_FIELDS
        }

        with self.numbers.lock:
            quote = Quote(
                quote_number=self.numbers.next_number(now.date()),
                title=_clean(data.title),
                status=QuoteStatus.PENDING,
                customer_id=data.customer_id or None,
                owner_id=data.owner_id or None,
                created_by_id=actor.id,
                line_items=[item.to_line_item() for item in data.line_items],
                discount_value=data.discount_value,
                discount_type=data.discount_type,
                tax_rate=data.tax_rate,
                shipping=data.shipping,
                notes=data.notes,
                internal_notes=data.internal_notes,
                valid_until=data.valid_until,
                requested_delivery_date=data.requested_delivery_date,
                artwork_required=data.artwork_required,
                created_at=now,
                last_modified_at=now,
                **manual,
            )
            quote.recalculate()
            self._warn_if_negative(quote)
            self.quotes.add(quote)

        logger.info(
            f"Quote {quote.quote_number} created",
            extra={"quote_id": quote.id, "actor_id": actor.id},
        )
        self._publish(QuoteCreated(
            quote=quote.model_copy(deep=True), actor=actor, customer=customer, owner=owner,
        ))
        return quote

    def update_quote(self, quote_id: str, data: QuoteUpdate, actor: Actor) -> Quote:
        """
        Apply a partial edit.

        Pricing is recomputed from the stored line items and adjustments;
        every changed dimension is audited separately. An edit that changes
        nothing writes nothing.
        """
        quote = self._load(quote_id)
        ensure_not_archived(quote.status)

        before = quote.model_copy(deep=True)
        previous_customer, previous_owner = self._related(before)
        fields = data.provided()
        now = self.clock()

        if "status" in fields and data.status is not None and data.status != quote.status:
            self._apply_status_edit(quote, data.status, now)

        if "customer_id" in fields:
            if data.customer_id:
                self._require_customer(data.customer_id)
                quote.customer_id = data.customer_id
                for field in MANUAL_CUSTOMER_FIELDS:
                    setattr(quote, field, None)
            else:
                quote.customer_id = None
        if not quote.customer_id:
            for field in MANUAL_CUSTOMER_FIELDS:
                if field in fields:
                    setattr(quote, field, _clean(getattr(data, field)))
            if not (quote.customer_name or quote.customer_email):
                raise QuoteValidationError("Select a customer or enter a customer name or email")

        if "owner_id" in fields:
            if data.owner_id:
                self._require_owner(data.owner_id)
            quote.owner_id = data.owner_id or None

        if "line_items" in fields:
            if not data.line_items:
                raise QuoteValidationError("A quote must keep at least one line item")
            quote.line_items = [item.to_line_item() for item in data.line_items]

        for field in PRICING_INPUT_FIELDS:
            value = getattr(data, field)
            if field in fields and value is not None:
                setattr(quote, field, value)

        for field in DETAIL_INPUT_FIELDS:
            if field in fields:
                value = getattr(data, field)
                setattr(quote, field, _clean(value) if field == "title" else value)

        if "artwork_required" in fields and data.artwork_required is not None:
            if not data.artwork_required and quote.status in ARTWORK_STATUSES:
                raise QuoteValidationError("Artwork approval is in progress and cannot be switched off")
            quote.artwork_required = data.artwork_required

        quote.recalculate()
        changes = diff_quotes(before, quote)
        if changes.is_empty:
            return before

        quote.touch(now)
        self._warn_if_negative(quote)
        self.quotes.save(quote)

        customer, owner = self._related(quote)
        self._publish(QuoteUpdated(
            quote=quote.model_copy(deep=True),
            previous=before,
            changes=changes,
            actor=actor,
            customer=customer,
            owner=owner,
            previous_customer=previous_customer,
            previous_owner=previous_owner,
        ))
        return quote

    def _apply_status_edit(self, quote: Quote, target: QuoteStatus, now: datetime) -> None:
        if target in SEND_ONLY_STATUSES:
            raise InvalidTransitionError(
                f"Use the send action to move a quote to {target.value}",
                current_status=quote.status.value,
                target_status=target.value,
            )
        if target in CUSTOMER_ONLY_STATUSES:
            raise InvalidTransitionError(
                f"Only the customer can move a quote to {target.value}",
                current_status=quote.status.value,
                target_status=target.value,
            )
        if target == QuoteStatus.ARCHIVED:
            raise InvalidTransitionError(
                "Use the archive action to archive a quote",
                current_status=quote.status.value,
                target_status=target.value,
            )
        ensure_transition(quote.status, target)

        if target == QuoteStatus.APPROVED:
            if quote.artwork_required and quote.artwork_approved_at is None:
                raise InvalidTransitionError(
                    "Artwork must be approved before the quote can be approved",
                    current_status=quote.status.value,
                    target_status=target.value,
                )
            quote.approved_at = quote.approved_at or now
        elif target == QuoteStatus.DECLINED:
            quote.declined_at = quote.declined_at or now
        elif target == QuoteStatus.REVIEWING:
            # Reopened for revision; the customer may respond again
            quote.declined_at = None

        quote.status = target

    # =========================================================================
    # SEND TO CUSTOMER
    # =========================================================================

    def send_to_customer(self, quote_id: str, actor: Actor) -> SendOutcome:
        """
        Move the quote to SENT and email it to the customer.

        Re-sending a SENT quote is allowed and emails it again. The status
        change is committed before the email is attempted; a failed email
        is reported through ``SendOutcome.delivery``.
        """
        quote = self._load(quote_id)
        ensure_not_archived(quote.status)
        if quote.status not in SENDABLE_STATUSES:
            raise InvalidTransitionError(
                f"Quotes in status {quote.status.value} cannot be sent",
                current_status=quote.status.value,
                target_status=QuoteStatus.SENT.value,
            )
        if not quote.line_items:
            raise QuoteValidationError("At least one line item is required")

        customer, owner = self._related(quote)
        recipient = self._recipient_email(quote, customer)
        if not recipient:
            raise QuoteValidationError("Customer email is required to send a quote")

        now = self.clock()
        previous_status = quote.status
        if not quote.access_token:
            quote.access_token = generate_token()
        quote.status = QuoteStatus.SENT
        quote.sent_at = now
        quote.touch(now)
        self.quotes.save(quote)

        self._publish(QuoteSent(
            quote=quote.model_copy(deep=True),
            actor=actor,
            customer=customer,
            owner=owner,
            previous_status=previous_status,
            sent_to=recipient,
        ))

        delivery = self.notifier.send_quote(quote, recipient, customer, owner, actor)
        if not delivery.success:
            logger.warning(f"Quote {quote.quote_number} email to {recipient} failed: {delivery.error}")
        return SendOutcome(quote=quote, delivery=delivery)

    # =========================================================================
    # ARTWORK
    # =========================================================================

    def upload_artwork(self, quote_id: str, upload: ArtworkUpload, actor: Actor) -> Quote:
        """
        Store a new artwork version.

        The previous version moves to the history, any previous response is
        cleared and a fresh approval token replaces the old one.
        """
        self._require_role(actor, STAFF_ROLES, "upload artwork")
        quote = self._load(quote_id)
        ensure_not_archived(quote.status)
        if not quote.artwork_required:
            raise QuoteValidationError("Artwork is not required for this quote")

        superseded = quote.current_artwork_version()
        if superseded is not None:
            quote.artwork_history.append(superseded)

        quote.artwork_version += 1
        quote.artwork_url = upload.url
        quote.artwork_file_name = upload.file_name
        quote.artwork_token = generate_token()
        quote.clear_artwork_response()
        quote.touch(self.clock())
        self.quotes.save(quote)

        customer, owner = self._related(quote)
        self._publish(ArtworkUploaded(
            quote=quote.model_copy(deep=True),
            actor=actor,
            customer=customer,
            owner=owner,
            superseded=superseded,
        ))
        return quote

    def remove_artwork(self, quote_id: str, actor: Actor) -> Quote:
        """
        Withdraw the current artwork (super admins only).

        The version counter is kept so later uploads continue the sequence;
        the approval token is revoked.
        """
        self._require_role(actor, (UserRole.SUPER_ADMIN,), "remove artwork")
        quote = self._load(quote_id)
        ensure_not_archived(quote.status)
        if not quote.has_artwork:
            raise QuoteValidationError("This quote has no artwork to remove")

        removed = quote.current_artwork_version()
        quote.artwork_history.append(removed)
        previous_status = quote.status

        quote.artwork_url = None
        quote.artwork_file_name = None
        quote.artwork_token = None
        quote.clear_artwork_response()
        if quote.status in ARTWORK_STATUSES:
            quote.status = QuoteStatus.PENDING
        quote.touch(self.clock())
        self.quotes.save(quote)

        customer, owner = self._related(quote)
        self._publish(ArtworkRemoved(
            quote=quote.model_copy(deep=True),
            actor=actor,
            customer=customer,
            owner=owner,
            removed=removed,
            previous_status=previous_status,
        ))
        return quote

    def send_artwork(self, quote_id: str, actor: Actor) -> SendOutcome:
        """
        Email the current artwork to the customer for approval.

        Moves the quote to ARTWORK_PENDING unless a quote-level decision
        has already been made, and issues the quote access token if the
        quote has none yet. Always attempts delivery, regardless of
        notification settings.
        """
        self._require_role(actor, STAFF_ROLES, "send artwork")
        quote = self._load(quote_id)
        ensure_not_archived(quote.status)
        if not quote.has_artwork or not quote.artwork_token:
            raise QuoteValidationError("Upload artwork before sending it to the customer")

        customer, owner = self._related(quote)
        recipient = self._recipient_email(quote, customer)
        if not recipient:
            raise QuoteValidationError("Customer email is required to send artwork")

        now = self.clock()
        previous_status = quote.status
        # The artwork email also links to the quote for the decision after approval
        if not quote.access_token:
            quote.access_token = generate_token()
        if quote.status in ARTWORK_SEND_ADVANCES:
            quote.status = QuoteStatus.ARTWORK_PENDING
        quote.clear_artwork_response()
        quote.artwork_sent_at = now
        quote.touch(now)
        self.quotes.save(quote)

        self._publish(ArtworkSent(
            quote=quote.model_copy(deep=True),
            actor=actor,
            customer=customer,
            owner=owner,
            previous_status=previous_status,
            sent_to=recipient,
        ))

        delivery = self.notifier.send_artwork_for_approval(quote, recipient, customer, owner, actor)
        if not delivery.success:
            logger.warning(f"Artwork email for {quote.quote_number} to {recipient} failed: {delivery.error}")
        return SendOutcome(quote=quote, delivery=delivery)

    def get_artwork_versions(self, quote_id: str) -> List[ArtworkVersion]:
        """Current and archived artwork versions, newest first."""
        quote = self._load(quote_id)
        versions = list(quote.artwork_history)
        current = quote.current_artwork_version()
        if current is not None:
            versions.append(current)
        return sorted(versions, key=lambda v: v.version, reverse=True)

    # =========================================================================
    # CUSTOMER RESPONSES (token-authenticated)
    # =========================================================================

    def _quote_for_artwork_token(self, token: str) -> Quote:
        quote = self.quotes.get_by_artwork_token(token) if token else None
        if quote is None or not tokens_match(quote.artwork_token, token):
            raise TokenError("Artwork not found or link expired")
        return quote

    def _quote_for_token(self, token: str) -> Quote:
        # Artwork tokens only answer artwork; quote decisions need the access token
        quote = self.quotes.get_by_access_token(token) if token else None
        if quote is None or not tokens_match(quote.access_token, token):
            raise TokenError("Quote not found or link expired")
        return quote

    def get_shared_artwork(self, token: str) -> Quote:
        """Quote behind an artwork link, once the artwork has been sent."""
        quote = self._quote_for_artwork_token(token)
        if quote.artwork_sent_at is None:
            raise QuoteValidationError("Artwork has not been shared yet")
        return quote

    def get_quote_by_token(self, token: str) -> Quote:
        return self._quote_for_token(token)

    def respond_to_artwork(self, token: str, response: CustomerResponse) -> Quote:
        """Record the customer's decision on the current artwork version."""
        quote = self.get_shared_artwork(token)
        ensure_not_archived(quote.status)
        if quote.artwork_responded:
            raise QuoteValidationError("You have already responded to this artwork")

        approved = response.action.approved
        target = QuoteStatus.ARTWORK_APPROVED if approved else QuoteStatus.ARTWORK_DECLINED
        ensure_transition(quote.status, target)
        notes = self._check_notes(response.notes)

        now = self.clock()
        previous_status = quote.status
        if approved:
            quote.artwork_approved_at = now
        else:
            quote.artwork_declined_at = now
        quote.artwork_notes = notes
        quote.status = target
        quote.touch(now)
        self.quotes.save(quote)

        customer, owner = self._related(quote)
        recipient = self._recipient_email(quote, customer)
        self._publish(ArtworkResponded(
            quote=quote.model_copy(deep=True),
            actor=Actor.customer(email=recipient),
            customer=customer,
            owner=owner,
            previous_status=previous_status,
            decision=response.action,
            notes=notes,
        ))
        return quote

    def respond_to_quote(self, token: str, response: CustomerResponse) -> Quote:
        """
        Record the customer's decision on the quote.

        Quotes with artwork gating can only be answered once the current
        artwork version is approved; others must be SENT.
        """
        quote = self._quote_for_token(token)
        ensure_not_archived(quote.status)

        if quote.customer_responded:
            state = "approved" if quote.approved_at else "declined"
            raise QuoteValidationError(f"This quote has already been {state}")

        now = self.clock()
        if quote.is_expired(now.date()):
            raise QuoteValidationError(f"This quote expired on {quote.valid_until.isoformat()}")

        if quote.artwork_required:
            if quote.status != QuoteStatus.ARTWORK_APPROVED or quote.artwork_approved_at is None:
                raise InvalidTransitionError(
                    "Please approve the artwork before responding to the quote",
                    current_status=quote.status.value,
                )
        elif quote.status != QuoteStatus.SENT:
            raise InvalidTransitionError(
                "Only quotes sent to the customer can be approved or declined",
                current_status=quote.status.value,
            )

        approved = response.action.approved
        target = QuoteStatus.APPROVED if approved else QuoteStatus.DECLINED
        ensure_transition(quote.status, target)
        notes = self._check_notes(response.notes)

        previous_status = quote.status
        if approved:
            quote.approved_at = now
        else:
            quote.declined_at = now
        quote.status = target
        quote.touch(now)
        self.quotes.save(quote)

        customer, owner = self._related(quote)
        recipient = self._recipient_email(quote, customer)
        self._publish(QuoteResponded(
            quote=quote.model_copy(deep=True),
            actor=Actor.customer(email=recipient),
            customer=customer,
            owner=owner,
            previous_status=previous_status,
            decision=response.action,
            notes=notes,
        ))
        return quote

    # =========================================================================
    # ARCHIVE / DELETE
    # =========================================================================

    def archive_quote(self, quote_id: str, actor: Actor) -> Quote:
        """Move a quote to ARCHIVED. There is no way back."""
        self._require_role(actor, STAFF_ROLES, "archive quotes")
        quote = self._load(quote_id)
        ensure_transition(quote.status, QuoteStatus.ARCHIVED)

        previous_status = quote.status
        quote.status = QuoteStatus.ARCHIVED
        quote.touch(self.clock())
        self.quotes.save(quote)

        customer, owner = self._related(quote)
        self._publish(QuoteStatusChanged(
            quote=quote.model_copy(deep=True),
            actor=actor,
            customer=customer,
            owner=owner,
            previous_status=previous_status,
        ))
        return quote

    def delete_quote(self, quote_id: str, actor: Actor) -> None:
        """
        Permanently delete a quote and its line items (super admins only).

        The DELETED audit entry is written before removal and outlives the
        quote.
        """
        self._require_role(actor, (UserRole.SUPER_ADMIN,), "delete quotes")
        quote = self._load(quote_id)
        customer, owner = self._related(quote)

        self._publish(QuoteDeleted(quote=quote, actor=actor, customer=customer, owner=owner))
        self.quotes.delete(quote_id)
        logger.info(f"Quote {quote.quote_number} deleted", extra={"quote_id": quote_id, "actor_id": actor.id})

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_quote(self, quote_id: str) -> Quote:
        return self._load(quote_id)

    def list_quotes(
        self,
        status: Optional[QuoteStatus] = None,
        customer_id: Optional[str] = None,
        owner_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Quote]:
        return self.quotes.list(
            status=status,
            customer_id=customer_id,
            owner_id=owner_id,
            search=search,
            limit=limit,
            offset=offset,
        )

    def get_audit_logs(
        self,
        quote_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[QuoteAuditEntry]:
        """Audit history, newest first. Works for deleted quotes too."""
        return self.audit.get_audit_logs(quote_id, limit=limit, offset=offset)

    def related_records(self, quote: Quote) -> Tuple[Optional[Customer], Optional[StaffUser]]:
        return self._related(quote)
