"""
Quote Audit Trail Data Models

Defines the structure for quote audit entries. Entries are immutable once
written and record one material mutation of a quote: who performed it,
a human-readable description and the changed slice before and after.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from domain import Actor, ActorType


class QuoteAuditAction(str, Enum):
    """Types of auditable quote actions."""
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    SENT_TO_CUSTOMER = "SENT_TO_CUSTOMER"
    APPROVED_BY_CUSTOMER = "APPROVED_BY_CUSTOMER"
    DECLINED_BY_CUSTOMER = "DECLINED_BY_CUSTOMER"
    LINE_ITEM_ADDED = "LINE_ITEM_ADDED"
    LINE_ITEM_UPDATED = "LINE_ITEM_UPDATED"
    LINE_ITEM_REMOVED = "LINE_ITEM_REMOVED"
    CUSTOMER_CHANGED = "CUSTOMER_CHANGED"
    OWNER_CHANGED = "OWNER_CHANGED"
    PRICING_UPDATED = "PRICING_UPDATED"
    ARTWORK_UPLOADED = "ARTWORK_UPLOADED"
    ARTWORK_SENT_TO_CUSTOMER = "ARTWORK_SENT_TO_CUSTOMER"
    ARTWORK_APPROVED_BY_CUSTOMER = "ARTWORK_APPROVED_BY_CUSTOMER"
    ARTWORK_DECLINED_BY_CUSTOMER = "ARTWORK_DECLINED_BY_CUSTOMER"
    ARTWORK_UPDATED = "ARTWORK_UPDATED"
    DELETED = "DELETED"


def serialize_value(value: Any) -> Any:
    """Convert a snapshot value into JSON-safe primitives."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {str(k): serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [serialize_value(v) for v in value]
    return str(value)


@dataclass(frozen=True)
class QuoteAuditEntry:
    """
    A single audit log entry for a quote.

    ``previous_value``/``new_value`` hold only the changed slice of the
    quote, never the full record.
    """
    quote_id: str
    action: QuoteAuditAction
    description: str
    actor_type: ActorType = ActorType.SYSTEM
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    actor_email: Optional[str] = None
    previous_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def build(
        cls,
        quote_id: str,
        action: QuoteAuditAction,
        description: str,
        actor: Optional[Actor] = None,
        previous_value: Optional[Dict[str, Any]] = None,
        new_value: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "QuoteAuditEntry":
        """Create an entry from an actor, serializing the snapshots."""
        actor = actor or Actor.system()
        return cls(
            quote_id=quote_id,
            action=action,
            description=description,
            actor_type=actor.actor_type,
            actor_id=actor.id,
            actor_name=actor.name,
            actor_email=actor.email,
            previous_value=serialize_value(previous_value),
            new_value=serialize_value(new_value),
            metadata=serialize_value(metadata),
        )

    def to_dict(self) -> dict:
        """Convert audit entry to dictionary for serialization."""
        return {
            "id": self.id,
            "quote_id": self.quote_id,
            "action": self.action.value,
            "description": self.description,
            "actor_type": self.actor_type.value,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "actor_email": self.actor_email,
            "previous_value": self.previous_value,
            "new_value": self.new_value,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QuoteAuditEntry":
        """Create audit entry from dictionary."""
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            quote_id=data["quote_id"],
            action=QuoteAuditAction(data["action"]),
            description=data.get("description", ""),
            actor_type=ActorType(data.get("actor_type", ActorType.SYSTEM.value)),
            actor_id=data.get("actor_id"),
            actor_name=data.get("actor_name"),
            actor_email=data.get("actor_email"),
            previous_value=data.get("previous_value"),
            new_value=data.get("new_value"),
            metadata=data.get("metadata"),
            created_at=created_at or datetime.now(timezone.utc),
        )

    @property
    def previous_status(self) -> Optional[str]:
        return (self.previous_value or {}).get("status")

    @property
    def new_status(self) -> Optional[str]:
        return (self.new_value or {}).get("status")
