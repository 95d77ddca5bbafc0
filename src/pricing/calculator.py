"""
Quote pricing calculator.

Pure functions turning line items plus discount/tax/shipping inputs into
quote totals. All arithmetic is done on Decimal at full precision; rounding
(half-up to cents) is applied only when a value is displayed or exposed
through ``QuoteTotals.rounded()``.

Formula:
    line total     = quantity * unit_price - discount
    subtotal       = sum(line totals)
    discount       = subtotal * value / 100   (PERCENTAGE)
                   = value                    (FIXED)
    after discount = subtotal - discount
    tax            = after discount * tax_rate / 100
    total          = after discount + tax + shipping

Negative line or quote totals are allowed (credits) and are never clamped.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union

NumberLike = Union[Decimal, int, float, str]

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


class DiscountType(str, Enum):
    """How a quote-level discount value is interpreted."""
    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"


def to_decimal(value: Optional[NumberLike]) -> Decimal:
    """
    Convert a number-like value to Decimal.

    Floats are converted through ``str`` so that ``2.1`` becomes
    ``Decimal("2.1")`` rather than its binary expansion. ``None`` is zero.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Not a valid monetary amount: {value!r}") from e


def round_money(value: NumberLike) -> Decimal:
    """Round to cents using round-half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(value: NumberLike, symbol: str = "$") -> str:
    """Format an amount for display, e.g. ``$1,234.50`` or ``-$5.00``."""
    amount = round_money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def line_item_total(item: Any) -> Decimal:
    """
    Compute ``quantity * unit_price - discount`` for a line item.

    Accepts any object exposing ``quantity``, ``unit_price`` and ``discount``
    attributes, or a mapping with those keys.
    """
    if isinstance(item, dict):
        quantity = item.get("quantity", 1)
        unit_price = item.get("unit_price", 0)
        discount = item.get("discount", 0)
    else:
        quantity = item.quantity
        unit_price = item.unit_price
        discount = getattr(item, "discount", 0)

    return to_decimal(quantity) * to_decimal(unit_price) - to_decimal(discount)


@dataclass(frozen=True)
class QuoteTotals:
    """Result of a pricing computation, at full precision."""
    subtotal: Decimal
    discount_amount: Decimal
    after_discount: Decimal
    tax_amount: Decimal
    shipping: Decimal
    total: Decimal

    def rounded(self) -> "QuoteTotals":
        """Return a copy with every amount rounded half-up to cents."""
        return QuoteTotals(
            subtotal=round_money(self.subtotal),
            discount_amount=round_money(self.discount_amount),
            after_discount=round_money(self.after_discount),
            tax_amount=round_money(self.tax_amount),
            shipping=round_money(self.shipping),
            total=round_money(self.total),
        )

    def to_dict(self) -> Dict[str, str]:
        """Serialize rounded amounts as strings (JSON-safe, no float drift)."""
        r = self.rounded()
        return {
            "subtotal": str(r.subtotal),
            "discount": str(r.discount_amount),
            "after_discount": str(r.after_discount),
            "tax": str(r.tax_amount),
            "shipping": str(r.shipping),
            "total": str(r.total),
        }


def calculate_quote_totals(
    line_items: Iterable[Any],
    discount_value: Optional[NumberLike] = None,
    discount_type: Union[DiscountType, str] = DiscountType.FIXED,
    tax_rate: Optional[NumberLike] = None,
    shipping: Optional[NumberLike] = None,
) -> QuoteTotals:
    """
    Compute quote totals from line items and quote-level adjustments.

    Args:
        line_items: Items exposing quantity/unit_price/discount
        discount_value: Raw user-entered discount (amount or percent)
        discount_type: FIXED or PERCENTAGE
        tax_rate: Tax rate in percent
        shipping: Flat shipping amount

    Returns:
        QuoteTotals at full precision. An empty item list yields a
        subtotal of zero and a total equal to shipping.
    """
    discount_type = DiscountType(discount_type)
    subtotal = sum((line_item_total(item) for item in line_items), ZERO)

    value = to_decimal(discount_value)
    if discount_type == DiscountType.PERCENTAGE:
        discount_amount = subtotal * value / HUNDRED
    else:
        discount_amount = value

    after_discount = subtotal - discount_amount
    tax_amount = after_discount * to_decimal(tax_rate) / HUNDRED
    shipping_amount = to_decimal(shipping)

    return QuoteTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        after_discount=after_discount,
        tax_amount=tax_amount,
        shipping=shipping_amount,
        total=after_discount + tax_amount + shipping_amount,
    )
