"""
Quote aggregate.

The Quote is the root entity of the quoting domain. Line items and the
artwork version history live inside its boundary and are only ever
persisted together with the quote.

Invariants:
- LineItem.total == quantity * unit_price - discount (recomputed on build)
- Quote.total == (subtotal - discount) * (1 + tax_rate/100) + shipping
  (recomputed by ``recalculate``; client-submitted totals are ignored)
- artwork_version never decreases
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from pricing import DiscountType, QuoteTotals, calculate_quote_totals, line_item_total

from .value_objects import (
    ArtworkVersionStatus,
    LineItemType,
    QuoteStatus,
    ServiceOptions,
)


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


# =============================================================================
# LINE ITEMS
# =============================================================================

class LineItem(BaseModel):
    """One priced row within a quote."""
    id: str = Field(default_factory=new_id)
    item_type: LineItemType = LineItemType.PRODUCT
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    sku: Optional[str] = None
    quantity: int = Field(default=1, gt=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    total: Decimal = Decimal("0")
    product_id: Optional[str] = None
    supplier_id: Optional[str] = None
    service_options: Optional[ServiceOptions] = None

    @model_validator(mode="after")
    def _compute_total(self) -> "LineItem":
        self.total = line_item_total(self)
        if self.item_type != LineItemType.SERVICE:
            self.service_options = None
        return self

    def summary(self) -> Dict[str, Any]:
        """The slice of the item compared when diffing line items."""
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "discount": self.discount,
        }


# =============================================================================
# ARTWORK
# =============================================================================

class ArtworkVersion(BaseModel):
    """An archived (superseded) artwork version."""
    version: int
    url: str
    file_name: str
    status: ArtworkVersionStatus = ArtworkVersionStatus.PENDING
    sent_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    notes: Optional[str] = None
    archived_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# QUOTE AGGREGATE
# =============================================================================

class Quote(BaseModel):
    """
    A priced proposal sent to a customer.

    The customer is either a stored record (``customer_id``) or inline
    manual fields. Artwork fields are meaningful only when
    ``artwork_required`` is set.
    """
    id: str = Field(default_factory=new_id)
    quote_number: str
    title: Optional[str] = None
    status: QuoteStatus = QuoteStatus.PENDING

    # Customer reference
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_company: Optional[str] = None

    owner_id: Optional[str] = None
    created_by_id: Optional[str] = None

    line_items: List[LineItem] = Field(default_factory=list)

    # Pricing
    subtotal: Decimal = Decimal("0")
    discount_value: Decimal = Decimal("0")
    discount_type: DiscountType = DiscountType.FIXED
    discount: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    shipping: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    valid_until: Optional[date] = None
    requested_delivery_date: Optional[date] = None

    # Customer quote approval link
    access_token: Optional[str] = None

    # Artwork sub-workflow
    artwork_required: bool = False
    artwork_url: Optional[str] = None
    artwork_file_name: Optional[str] = None
    artwork_version: int = 0
    artwork_token: Optional[str] = None
    artwork_sent_at: Optional[datetime] = None
    artwork_approved_at: Optional[datetime] = None
    artwork_declined_at: Optional[datetime] = None
    artwork_notes: Optional[str] = None
    artwork_history: List[ArtworkVersion] = Field(default_factory=list)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    last_modified_at: datetime = Field(default_factory=utcnow)
    sent_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None

    # Row version for optimistic locking; 0 until the quote is first stored
    version_id: int = 0

    # -------------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------------

    def compute_totals(self) -> QuoteTotals:
        return calculate_quote_totals(
            self.line_items,
            self.discount_value,
            self.discount_type,
            self.tax_rate,
            self.shipping,
        )

    def recalculate(self) -> QuoteTotals:
        """Recompute line and quote totals from the current inputs."""
        for item in self.line_items:
            item.total = line_item_total(item)
        totals = self.compute_totals()
        # Computed at full precision, stored rounded to cents
        stored = totals.rounded()
        self.subtotal = stored.subtotal
        self.discount = stored.discount_amount
        self.tax = stored.tax_amount
        self.total = stored.total
        return totals

    def pricing_snapshot(self) -> Dict[str, str]:
        return {
            "subtotal": str(self.subtotal),
            "discount_value": str(self.discount_value),
            "discount_type": self.discount_type.value,
            "discount": str(self.discount),
            "tax_rate": str(self.tax_rate),
            "tax": str(self.tax),
            "shipping": str(self.shipping),
            "total": str(self.total),
        }

    def line_items_snapshot(self) -> Dict[str, Any]:
        return {
            "item_count": len(self.line_items),
            "items": [item.name for item in self.line_items],
        }

    # -------------------------------------------------------------------------
    # Artwork
    # -------------------------------------------------------------------------

    @property
    def has_artwork(self) -> bool:
        return bool(self.artwork_url)

    @property
    def artwork_responded(self) -> bool:
        return self.artwork_approved_at is not None or self.artwork_declined_at is not None

    @property
    def artwork_status(self) -> ArtworkVersionStatus:
        if self.artwork_approved_at:
            return ArtworkVersionStatus.APPROVED
        if self.artwork_declined_at:
            return ArtworkVersionStatus.DECLINED
        if self.artwork_sent_at:
            return ArtworkVersionStatus.SENT
        return ArtworkVersionStatus.PENDING

    def current_artwork_version(self) -> Optional[ArtworkVersion]:
        """The current artwork as a version record, or None if none uploaded."""
        if not self.has_artwork:
            return None
        return ArtworkVersion(
            version=self.artwork_version,
            url=self.artwork_url,
            file_name=self.artwork_file_name or "",
            status=self.artwork_status,
            sent_at=self.artwork_sent_at,
            approved_at=self.artwork_approved_at,
            declined_at=self.artwork_declined_at,
            notes=self.artwork_notes,
        )

    def clear_artwork_response(self) -> None:
        self.artwork_sent_at = None
        self.artwork_approved_at = None
        self.artwork_declined_at = None
        self.artwork_notes = None

    # -------------------------------------------------------------------------
    # Customer response
    # -------------------------------------------------------------------------

    @property
    def customer_responded(self) -> bool:
        return self.approved_at is not None or self.declined_at is not None

    def is_expired(self, today: Optional[date] = None) -> bool:
        if self.valid_until is None:
            return False
        return self.valid_until < (today or utcnow().date())

    def touch(self, now: Optional[datetime] = None) -> None:
        self.last_modified_at = now or utcnow()
