"""
Quote domain events.

Every committed quote mutation is announced as a ``QuoteMutated`` event on
the event bus. The audit recorder and the notification layer subscribe
independently; a failing subscriber never affects the committed mutation
or the other subscribers.

Each event carries a post-commit snapshot of the quote plus the resolved
customer and owner so subscribers do not need to read the store again.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from .aggregates import ArtworkVersion, Quote, utcnow
from .changes import QuoteChangeSet
from .value_objects import Actor, CustomerDecision, Customer, QuoteStatus, StaffUser


class QuoteEventType(str, Enum):
    """Types of quote events."""
    QUOTE_CREATED = "quote.created"
    QUOTE_UPDATED = "quote.updated"
    QUOTE_STATUS_CHANGED = "quote.status_changed"
    QUOTE_SENT = "quote.sent"
    QUOTE_RESPONDED = "quote.responded"
    QUOTE_DELETED = "quote.deleted"
    ARTWORK_UPLOADED = "artwork.uploaded"
    ARTWORK_REMOVED = "artwork.removed"
    ARTWORK_SENT = "artwork.sent"
    ARTWORK_RESPONDED = "artwork.responded"


class QuoteMutated(BaseModel):
    """
    Base class for all quote events.

    Events are immutable once published.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    event_id: UUID = Field(default_factory=uuid4)
    event_type: QuoteEventType
    occurred_at: datetime = Field(default_factory=utcnow)

    quote: Quote
    actor: Actor = Field(default_factory=Actor.system)
    customer: Optional[Customer] = None
    owner: Optional[StaffUser] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def quote_id(self) -> str:
        return self.quote.id

    @property
    def recipient_email(self) -> Optional[str]:
        """Customer email, preferring the linked customer record."""
        if self.customer and self.customer.email:
            return self.customer.email
        return self.quote.customer_email


class QuoteCreated(QuoteMutated):
    event_type: QuoteEventType = QuoteEventType.QUOTE_CREATED


class QuoteUpdated(QuoteMutated):
    """Generic edit; ``changes`` lists every dimension that moved."""
    event_type: QuoteEventType = QuoteEventType.QUOTE_UPDATED
    previous: Quote
    changes: QuoteChangeSet
    previous_customer: Optional[Customer] = None
    previous_owner: Optional[StaffUser] = None


class QuoteStatusChanged(QuoteMutated):
    """Status-only transition performed by staff (e.g. archive)."""
    event_type: QuoteEventType = QuoteEventType.QUOTE_STATUS_CHANGED
    previous_status: QuoteStatus


class QuoteSent(QuoteMutated):
    event_type: QuoteEventType = QuoteEventType.QUOTE_SENT
    previous_status: QuoteStatus
    sent_to: str


class QuoteResponded(QuoteMutated):
    """Customer approved or declined the quote itself."""
    event_type: QuoteEventType = QuoteEventType.QUOTE_RESPONDED
    previous_status: QuoteStatus
    decision: CustomerDecision
    notes: Optional[str] = None


class QuoteDeleted(QuoteMutated):
    event_type: QuoteEventType = QuoteEventType.QUOTE_DELETED


class ArtworkUploaded(QuoteMutated):
    """New artwork version; ``superseded`` is the archived prior version."""
    event_type: QuoteEventType = QuoteEventType.ARTWORK_UPLOADED
    superseded: Optional[ArtworkVersion] = None


class ArtworkRemoved(QuoteMutated):
    event_type: QuoteEventType = QuoteEventType.ARTWORK_REMOVED
    removed: ArtworkVersion
    previous_status: QuoteStatus


class ArtworkSent(QuoteMutated):
    event_type: QuoteEventType = QuoteEventType.ARTWORK_SENT
    previous_status: QuoteStatus
    sent_to: str


class ArtworkResponded(QuoteMutated):
    """Customer approved or declined the current artwork version."""
    event_type: QuoteEventType = QuoteEventType.ARTWORK_RESPONDED
    previous_status: QuoteStatus
    decision: CustomerDecision
    notes: Optional[str] = None
