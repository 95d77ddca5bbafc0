"""
Pricing package.

Provides the quote pricing calculator and money helpers.

Usage:
    from pricing import calculate_quote_totals, DiscountType

    totals = calculate_quote_totals(items, 10, DiscountType.FIXED, 8, 15)
    print(totals.rounded().total)
"""

from .calculator import (
    DiscountType,
    QuoteTotals,
    calculate_quote_totals,
    format_currency,
    line_item_total,
    round_money,
    to_decimal,
)

__all__ = [
    "DiscountType",
    "QuoteTotals",
    "calculate_quote_totals",
    "format_currency",
    "line_item_total",
    "round_money",
    "to_decimal",
]
