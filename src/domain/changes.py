"""
Quote change sets.

Diffs two snapshots of a quote into the dimensions that changed, so that
each dimension can be audited with its own specific entry.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .aggregates import Quote


class ChangeDimension(str, Enum):
    """Category of change made by a generic quote edit."""
    STATUS = "status"
    CUSTOMER = "customer"
    OWNER = "owner"
    LINE_ITEMS = "line_items"
    PRICING = "pricing"
    DETAILS = "details"


class LineItemChangeKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    UPDATED = "updated"


CUSTOMER_FIELDS = (
    "customer_id",
    "customer_name",
    "customer_email",
    "customer_phone",
    "customer_company",
)

PRICING_FIELDS = ("discount_value", "discount_type", "tax_rate", "shipping")
PRICING_OUTPUTS = ("subtotal", "discount", "tax", "total")

# Field name -> label used in audit descriptions
DETAIL_FIELDS = {
    "title": "title",
    "notes": "notes",
    "internal_notes": "internal notes",
    "valid_until": "valid until date",
    "requested_delivery_date": "requested delivery date",
    "artwork_required": "artwork requirement",
}


@dataclass
class QuoteChangeSet:
    """What changed between two versions of a quote."""
    dimensions: List[ChangeDimension] = field(default_factory=list)
    line_item_change: Optional[LineItemChangeKind] = None
    pricing_fields: List[str] = field(default_factory=list)
    detail_fields: List[str] = field(default_factory=list)

    def __contains__(self, dimension: ChangeDimension) -> bool:
        return dimension in self.dimensions

    @property
    def is_empty(self) -> bool:
        return not self.dimensions


def diff_quotes(before: Quote, after: Quote) -> QuoteChangeSet:
    """Compare two quote snapshots dimension by dimension."""
    changes = QuoteChangeSet()

    if before.status != after.status:
        changes.dimensions.append(ChangeDimension.STATUS)

    if any(getattr(before, f) != getattr(after, f) for f in CUSTOMER_FIELDS):
        changes.dimensions.append(ChangeDimension.CUSTOMER)

    if before.owner_id != after.owner_id:
        changes.dimensions.append(ChangeDimension.OWNER)

    old_items = [item.summary() for item in before.line_items]
    new_items = [item.summary() for item in after.line_items]
    if old_items != new_items:
        changes.dimensions.append(ChangeDimension.LINE_ITEMS)
        if len(new_items) > len(old_items):
            changes.line_item_change = LineItemChangeKind.ADDED
        elif len(new_items) < len(old_items):
            changes.line_item_change = LineItemChangeKind.REMOVED
        else:
            changes.line_item_change = LineItemChangeKind.UPDATED

    pricing_fields = [
        f for f in PRICING_FIELDS + PRICING_OUTPUTS
        if getattr(before, f) != getattr(after, f)
    ]
    if pricing_fields:
        changes.dimensions.append(ChangeDimension.PRICING)
        changes.pricing_fields = pricing_fields

    detail_fields = [
        label for name, label in DETAIL_FIELDS.items()
        if getattr(before, name) != getattr(after, name)
    ]
    if detail_fields:
        changes.dimensions.append(ChangeDimension.DETAILS)
        changes.detail_fields = detail_fields

    return changes
