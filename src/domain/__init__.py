"""
Domain layer for the quote lifecycle.

Contains the Quote aggregate, value objects, change sets, the quote
events published after each committed mutation, the event bus that
delivers them, and the repository interfaces.
"""

from .value_objects import (
    Actor,
    ActorType,
    ArtworkVersionStatus,
    Customer,
    CustomerDecision,
    LineItemType,
    QuoteStatus,
    ServiceOptions,
    StaffUser,
    UserRole,
)
from .aggregates import ArtworkVersion, LineItem, Quote, new_id, utcnow
from .changes import ChangeDimension, LineItemChangeKind, QuoteChangeSet, diff_quotes
from .events import (
    ArtworkRemoved,
    ArtworkResponded,
    ArtworkSent,
    ArtworkUploaded,
    QuoteCreated,
    QuoteDeleted,
    QuoteEventType,
    QuoteMutated,
    QuoteResponded,
    QuoteSent,
    QuoteStatusChanged,
    QuoteUpdated,
)
from .event_bus import EventBus
from .repositories import ConcurrentModificationError, IDirectory, IQuoteRepository

__all__ = [
    # Value objects
    "Actor",
    "ActorType",
    "ArtworkVersionStatus",
    "Customer",
    "CustomerDecision",
    "LineItemType",
    "QuoteStatus",
    "ServiceOptions",
    "StaffUser",
    "UserRole",
    # Aggregate
    "ArtworkVersion",
    "LineItem",
    "Quote",
    "new_id",
    "utcnow",
    # Changes
    "ChangeDimension",
    "LineItemChangeKind",
    "QuoteChangeSet",
    "diff_quotes",
    # Events
    "ArtworkRemoved",
    "ArtworkResponded",
    "ArtworkSent",
    "ArtworkUploaded",
    "QuoteCreated",
    "QuoteDeleted",
    "QuoteEventType",
    "QuoteMutated",
    "QuoteResponded",
    "QuoteSent",
    "QuoteStatusChanged",
    "QuoteUpdated",
    "EventBus",
    # Repositories
    "ConcurrentModificationError",
    "IDirectory",
    "IQuoteRepository",
]
