"""
Input models for quote lifecycle operations.

These are what callers (the API layer, scripts, tests) submit. Totals,
status and quote numbers are never accepted from input: unknown fields
are ignored and pricing is always recomputed server-side.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from domain import CustomerDecision, LineItem, LineItemType, QuoteStatus, ServiceOptions
from pricing import DiscountType


class LineItemInput(BaseModel):
    """A line item as submitted by a client; any ``total`` is discarded."""
    model_config = ConfigDict(extra="ignore")

    item_type: LineItemType = LineItemType.PRODUCT
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    sku: Optional[str] = None
    quantity: int = Field(default=1, gt=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    product_id: Optional[str] = None
    supplier_id: Optional[str] = None
    service_options: Optional[ServiceOptions] = None

    def to_line_item(self) -> LineItem:
        return LineItem(**self.model_dump())


class QuoteCreate(BaseModel):
    """Fields accepted when creating a quote."""
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(default=None, max_length=255)

    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_company: Optional[str] = None

    owner_id: Optional[str] = None

    line_items: List[LineItemInput] = Field(default_factory=list)

    discount_value: Decimal = Field(default=Decimal("0"), ge=0)
    discount_type: DiscountType = DiscountType.FIXED
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0)
    shipping: Decimal = Field(default=Decimal("0"), ge=0)

    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    valid_until: Optional[date] = None
    requested_delivery_date: Optional[date] = None
    artwork_required: bool = False


class QuoteUpdate(BaseModel):
    """
    Partial update. Only fields explicitly set are applied, so an explicit
    ``None`` clears a field while an omitted field is left unchanged.
    """
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(default=None, max_length=255)
    status: Optional[QuoteStatus] = None

    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_company: Optional[str] = None

    owner_id: Optional[str] = None

    line_items: Optional[List[LineItemInput]] = None

    discount_value: Optional[Decimal] = Field(default=None, ge=0)
    discount_type: Optional[DiscountType] = None
    tax_rate: Optional[Decimal] = Field(default=None, ge=0)
    shipping: Optional[Decimal] = Field(default=None, ge=0)

    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    valid_until: Optional[date] = None
    requested_delivery_date: Optional[date] = None
    artwork_required: Optional[bool] = None

    def provided(self) -> set:
        return set(self.model_fields_set)


class ArtworkUpload(BaseModel):
    """A new artwork version; the file itself is stored elsewhere."""
    url: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1, max_length=255)


class CustomerResponse(BaseModel):
    """Approve/decline submitted through a customer approval link."""
    action: CustomerDecision
    notes: Optional[str] = Field(default=None, max_length=2000)
