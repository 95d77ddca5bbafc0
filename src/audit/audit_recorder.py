"""
Quote Audit Recorder

Appends immutable audit entries describing every material mutation of a
quote. ``record`` is best-effort: a failing storage backend is logged to
the operational log and swallowed, never failing the primary operation.

The recorder subscribes to quote events on the event bus, so entries are
written right after the mutation is committed, before the notification
layer runs.

Usage:
    recorder = QuoteAuditRecorder(InMemoryAuditStorage())
    recorder.register(event_bus)

    recorder.log_status_change(quote_id, "PENDING", "REVIEWING", actor)
    entries = recorder.get_audit_logs(quote_id, limit=50)
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from domain import (
    Actor,
    ArtworkRemoved,
    ArtworkResponded,
    ArtworkSent,
    ArtworkUploaded,
    ArtworkVersion,
    ChangeDimension,
    Customer,
    EventBus,
    LineItemChangeKind,
    Quote,
    QuoteCreated,
    QuoteDeleted,
    QuoteResponded,
    QuoteSent,
    QuoteStatusChanged,
    QuoteUpdated,
    StaffUser,
)

from .audit_models import QuoteAuditAction, QuoteAuditEntry
from .audit_storage import AuditStorageBackend

logger = logging.getLogger(__name__)

NOTES_PREVIEW_LENGTH = 100

PRICING_LABELS = {
    "discount_value": "discount",
    "discount_type": "discount",
    "discount": "discount",
    "tax_rate": "tax",
    "tax": "tax",
    "shipping": "shipping",
    "subtotal": "subtotal",
    "total": "total",
}


def truncate_notes(notes: Optional[str], length: int = NOTES_PREVIEW_LENGTH) -> str:
    """Shorten customer notes for descriptions."""
    if not notes:
        return ""
    if len(notes) <= length:
        return notes
    return notes[:length] + "..."


def verify_status_chain(entries: Iterable[QuoteAuditEntry]) -> bool:
    """
    Replay entries in creation order and check status continuity.

    Every entry that records a status transition must start from the
    status the previous transition ended in.
    """
    current = None
    for entry in entries:
        if entry.new_status is None:
            continue
        if entry.previous_status is not None and current is not None:
            if entry.previous_status != current:
                return False
        current = entry.new_status
    return True


def _customer_label(customer: Optional[Customer], quote: Quote) -> Optional[str]:
    if customer is not None:
        return customer.company_name or customer.contact_name or customer.email
    return quote.customer_company or quote.customer_name or quote.customer_email


def _owner_label(owner: Optional[StaffUser]) -> Optional[str]:
    if owner is None:
        return None
    return owner.name or owner.email or owner.id


class QuoteAuditRecorder:
    """Writes quote audit entries and answers audit queries."""

    def __init__(self, storage: AuditStorageBackend):
        self._storage = storage

    @property
    def storage(self) -> AuditStorageBackend:
        return self._storage

    # =========================================================================
    # CORE
    # =========================================================================

    def record(
        self,
        quote_id: str,
        action: QuoteAuditAction,
        description: str,
        actor: Optional[Actor] = None,
        previous_value: Optional[Dict[str, Any]] = None,
        new_value: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[QuoteAuditEntry]:
        """
        Append one audit entry.

        Returns:
            The written entry, or None if the write failed
        """
        try:
            entry = QuoteAuditEntry.build(
                quote_id=quote_id,
                action=action,
                description=description,
                actor=actor,
                previous_value=previous_value,
                new_value=new_value,
                metadata=metadata,
            )
            self._storage.append(entry)
        except Exception as e:
            logger.error(
                f"Failed to write audit entry {action.value} for quote {quote_id}: {e}",
                exc_info=True,
                extra={"quote_id": quote_id, "action": action.value},
            )
            return None

        logger.debug(f"AUDIT: quote={quote_id} action={action.value} {description}")
        return entry

    def get_audit_logs(
        self,
        quote_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[QuoteAuditEntry]:
        """Audit history for a quote, newest first."""
        return self._storage.list_for_quote(quote_id, newest_first=True, limit=limit, offset=offset)

    def get_history(self, quote_id: str) -> List[QuoteAuditEntry]:
        """Audit history in creation order, for replay."""
        return self._storage.list_for_quote(quote_id, newest_first=False)

    def count(self, quote_id: str) -> int:
        return self._storage.count_for_quote(quote_id)

    # =========================================================================
    # CONVENIENCE WRAPPERS
    # =========================================================================

    def log_quote_created(self, quote: Quote, actor: Optional[Actor] = None):
        return self.record(
            quote.id,
            QuoteAuditAction.CREATED,
            f"Quote {quote.quote_number} created",
            actor,
            new_value={
                "quote_number": quote.quote_number,
                "status": quote.status,
                "total": quote.total,
                "item_count": len(quote.line_items),
            },
        )

    def log_status_change(
        self,
        quote_id: str,
        previous_status: str,
        new_status: str,
        actor: Optional[Actor] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        actor = actor or Actor.system()
        previous_status = getattr(previous_status, "value", previous_status)
        new_status = getattr(new_status, "value", new_status)
        return self.record(
            quote_id,
            QuoteAuditAction.STATUS_CHANGED,
            f"Status changed from {previous_status} to {new_status} by {actor.description}",
            actor,
            previous_value={"status": previous_status},
            new_value={"status": new_status},
            metadata=metadata,
        )

    def log_quote_sent(
        self,
        quote: Quote,
        recipient_email: str,
        previous_status: str,
        actor: Optional[Actor] = None,
    ):
        return self.record(
            quote.id,
            QuoteAuditAction.SENT_TO_CUSTOMER,
            f"Quote sent to {recipient_email}",
            actor,
            previous_value={"status": previous_status},
            new_value={"status": quote.status},
            metadata={"recipient_email": recipient_email},
        )

    def log_line_items_changed(
        self,
        quote_id: str,
        before: Quote,
        after: Quote,
        kind: LineItemChangeKind,
        actor: Optional[Actor] = None,
    ):
        difference = abs(len(after.line_items) - len(before.line_items))
        if kind == LineItemChangeKind.ADDED:
            action = QuoteAuditAction.LINE_ITEM_ADDED
            description = f"{difference} line item(s) added"
        elif kind == LineItemChangeKind.REMOVED:
            action = QuoteAuditAction.LINE_ITEM_REMOVED
            description = f"{difference} line item(s) removed"
        else:
            action = QuoteAuditAction.LINE_ITEM_UPDATED
            description = "Line items modified"

        return self.record(
            quote_id,
            action,
            description,
            actor,
            previous_value=before.line_items_snapshot(),
            new_value=after.line_items_snapshot(),
        )

    def log_customer_changed(
        self,
        quote_id: str,
        previous_label: Optional[str],
        new_label: Optional[str],
        actor: Optional[Actor] = None,
        previous_value: Optional[Dict[str, Any]] = None,
        new_value: Optional[Dict[str, Any]] = None,
    ):
        return self.record(
            quote_id,
            QuoteAuditAction.CUSTOMER_CHANGED,
            f'Customer changed from "{previous_label or "None"}" to "{new_label or "None"}"',
            actor,
            previous_value=previous_value,
            new_value=new_value,
        )

    def log_owner_changed(
        self,
        quote_id: str,
        previous_owner_id: Optional[str],
        new_owner_id: Optional[str],
        previous_label: Optional[str],
        new_label: Optional[str],
        actor: Optional[Actor] = None,
    ):
        return self.record(
            quote_id,
            QuoteAuditAction.OWNER_CHANGED,
            f'Owner changed from "{previous_label or "Unassigned"}" to "{new_label or "Unassigned"}"',
            actor,
            previous_value={"owner_id": previous_owner_id},
            new_value={"owner_id": new_owner_id},
        )

    def log_pricing_updated(
        self,
        quote_id: str,
        previous_pricing: Dict[str, Any],
        new_pricing: Dict[str, Any],
        changed_fields: Iterable[str],
        actor: Optional[Actor] = None,
    ):
        labels: List[str] = []
        for name in changed_fields:
            label = PRICING_LABELS.get(name, name)
            if label not in labels:
                labels.append(label)

        return self.record(
            quote_id,
            QuoteAuditAction.PRICING_UPDATED,
            f"Pricing updated: {', '.join(labels)} changed",
            actor,
            previous_value=previous_pricing,
            new_value=new_pricing,
        )

    def log_quote_updated(
        self,
        quote_id: str,
        changed_labels: Iterable[str],
        actor: Optional[Actor] = None,
        previous_value: Optional[Dict[str, Any]] = None,
        new_value: Optional[Dict[str, Any]] = None,
    ):
        return self.record(
            quote_id,
            QuoteAuditAction.UPDATED,
            f"Quote updated: {', '.join(changed_labels)}",
            actor,
            previous_value=previous_value,
            new_value=new_value,
        )

    def log_artwork_uploaded(
        self,
        quote: Quote,
        superseded: Optional[ArtworkVersion] = None,
        actor: Optional[Actor] = None,
    ):
        new_value = {
            "version": quote.artwork_version,
            "file_name": quote.artwork_file_name,
            "url": quote.artwork_url,
        }
        if superseded is None:
            return self.record(
                quote.id,
                QuoteAuditAction.ARTWORK_UPLOADED,
                f'Artwork "{quote.artwork_file_name}" uploaded (version {quote.artwork_version})',
                actor,
                new_value=new_value,
            )

        return self.record(
            quote.id,
            QuoteAuditAction.ARTWORK_UPDATED,
            f'Artwork updated to version {quote.artwork_version}: "{quote.artwork_file_name}"',
            actor,
            previous_value={
                "version": superseded.version,
                "file_name": superseded.file_name,
                "url": superseded.url,
                "artwork_status": superseded.status,
            },
            new_value=new_value,
        )

    def log_artwork_removed(
        self,
        quote: Quote,
        removed: ArtworkVersion,
        previous_status: str,
        actor: Optional[Actor] = None,
    ):
        return self.record(
            quote.id,
            QuoteAuditAction.ARTWORK_UPDATED,
            f'Artwork "{removed.file_name}" removed (version {removed.version})',
            actor,
            previous_value={
                "version": removed.version,
                "file_name": removed.file_name,
                "status": previous_status,
            },
            new_value={"version": None, "file_name": None, "status": quote.status},
        )

    def log_artwork_sent(
        self,
        quote: Quote,
        recipient_email: str,
        previous_status: str,
        actor: Optional[Actor] = None,
    ):
        return self.record(
            quote.id,
            QuoteAuditAction.ARTWORK_SENT_TO_CUSTOMER,
            f"Artwork sent to {recipient_email} for approval",
            actor,
            previous_value={"status": previous_status},
            new_value={"status": quote.status, "version": quote.artwork_version},
            metadata={"recipient_email": recipient_email, "file_name": quote.artwork_file_name},
        )

    def log_artwork_response(
        self,
        quote: Quote,
        approved: bool,
        previous_status: str,
        notes: Optional[str] = None,
        actor: Optional[Actor] = None,
    ):
        verb = "approved" if approved else "declined"
        description = f"Artwork version {quote.artwork_version} {verb} by customer"
        if notes:
            description += f': "{truncate_notes(notes)}"'

        return self.record(
            quote.id,
            QuoteAuditAction.ARTWORK_APPROVED_BY_CUSTOMER if approved
            else QuoteAuditAction.ARTWORK_DECLINED_BY_CUSTOMER,
            description,
            actor or Actor.customer(),
            previous_value={"status": previous_status},
            new_value={"status": quote.status, "version": quote.artwork_version, "notes": notes},
        )

    def log_quote_response(
        self,
        quote: Quote,
        approved: bool,
        previous_status: str,
        customer_email: Optional[str] = None,
        notes: Optional[str] = None,
        actor: Optional[Actor] = None,
    ):
        verb = "approved" if approved else "declined"
        description = f"Quote {verb} by customer ({customer_email or 'unknown'})"
        if notes and not approved:
            description += f': "{truncate_notes(notes)}"'

        return self.record(
            quote.id,
            QuoteAuditAction.APPROVED_BY_CUSTOMER if approved
            else QuoteAuditAction.DECLINED_BY_CUSTOMER,
            description,
            actor or Actor.customer(email=customer_email),
            previous_value={"status": previous_status},
            new_value={"status": quote.status, "notes": notes},
        )

    def log_quote_deleted(self, quote: Quote, actor: Optional[Actor] = None):
        return self.record(
            quote.id,
            QuoteAuditAction.DELETED,
            f"Quote {quote.quote_number} deleted",
            actor,
            previous_value={
                "quote_number": quote.quote_number,
                "status": quote.status,
                "total": quote.total,
                "item_count": len(quote.line_items),
            },
        )

    # =========================================================================
    # EVENT SUBSCRIPTION
    # =========================================================================

    def register(self, bus: EventBus) -> None:
        """Subscribe the recorder to every quote event it audits."""
        bus.subscribe(QuoteCreated, self._on_created)
        bus.subscribe(QuoteUpdated, self._on_updated)
        bus.subscribe(QuoteStatusChanged, self._on_status_changed)
        bus.subscribe(QuoteSent, self._on_sent)
        bus.subscribe(QuoteResponded, self._on_quote_responded)
        bus.subscribe(QuoteDeleted, self._on_deleted)
        bus.subscribe(ArtworkUploaded, self._on_artwork_uploaded)
        bus.subscribe(ArtworkRemoved, self._on_artwork_removed)
        bus.subscribe(ArtworkSent, self._on_artwork_sent)
        bus.subscribe(ArtworkResponded, self._on_artwork_responded)

    def _on_created(self, event: QuoteCreated) -> None:
        self.log_quote_created(event.quote, event.actor)

    def _on_updated(self, event: QuoteUpdated) -> None:
        before, after, changes = event.previous, event.quote, event.changes

        if ChangeDimension.STATUS in changes:
            self.log_status_change(after.id, before.status, after.status, event.actor)

        if ChangeDimension.CUSTOMER in changes:
            self.log_customer_changed(
                after.id,
                _customer_label(event.previous_customer, before),
                _customer_label(event.customer, after),
                event.actor,
                previous_value={"customer_id": before.customer_id, "customer_email": before.customer_email},
                new_value={"customer_id": after.customer_id, "customer_email": after.customer_email},
            )

        if ChangeDimension.OWNER in changes:
            self.log_owner_changed(
                after.id,
                before.owner_id,
                after.owner_id,
                _owner_label(event.previous_owner),
                _owner_label(event.owner),
                event.actor,
            )

        if ChangeDimension.LINE_ITEMS in changes:
            self.log_line_items_changed(after.id, before, after, changes.line_item_change, event.actor)

        if ChangeDimension.PRICING in changes:
            self.log_pricing_updated(
                after.id,
                before.pricing_snapshot(),
                after.pricing_snapshot(),
                changes.pricing_fields,
                event.actor,
            )

        if ChangeDimension.DETAILS in changes:
            self.log_quote_updated(after.id, changes.detail_fields, event.actor)

    def _on_status_changed(self, event: QuoteStatusChanged) -> None:
        self.log_status_change(event.quote_id, event.previous_status, event.quote.status, event.actor)

    def _on_sent(self, event: QuoteSent) -> None:
        self.log_quote_sent(event.quote, event.sent_to, event.previous_status, event.actor)

    def _on_quote_responded(self, event: QuoteResponded) -> None:
        self.log_quote_response(
            event.quote,
            event.decision.approved,
            event.previous_status,
            customer_email=event.recipient_email,
            notes=event.notes,
            actor=event.actor,
        )

    def _on_deleted(self, event: QuoteDeleted) -> None:
        self.log_quote_deleted(event.quote, event.actor)

    def _on_artwork_uploaded(self, event: ArtworkUploaded) -> None:
        self.log_artwork_uploaded(event.quote, event.superseded, event.actor)

    def _on_artwork_removed(self, event: ArtworkRemoved) -> None:
        self.log_artwork_removed(event.quote, event.removed, event.previous_status, event.actor)

    def _on_artwork_sent(self, event: ArtworkSent) -> None:
        self.log_artwork_sent(event.quote, event.sent_to, event.previous_status, event.actor)

    def _on_artwork_responded(self, event: ArtworkResponded) -> None:
        self.log_artwork_response(
            event.quote,
            event.decision.approved,
            event.previous_status,
            notes=event.notes,
            actor=event.actor,
        )
