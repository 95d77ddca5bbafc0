"""
Response shaping for the quote API.

Admin responses expose the full quote; public (token) responses expose
only what a customer may see: no internal notes, no tokens, no owner.
"""

from typing import Any, Dict, Optional

from domain import ArtworkVersion, Customer, Quote
from notifications import DispatchResult


def quote_view(quote: Quote) -> Dict[str, Any]:
    return quote.model_dump(mode="json")


def delivery_view(delivery: DispatchResult) -> Dict[str, Any]:
    return delivery.to_dict()


def _response_state(approved_at, declined_at) -> str:
    if approved_at:
        return "approved"
    if declined_at:
        return "declined"
    return "pending"


def public_quote_view(quote: Quote, customer: Optional[Customer] = None) -> Dict[str, Any]:
    """Customer-safe view of a quote behind an approval link."""
    data = quote.model_dump(
        mode="json",
        include={
            "quote_number", "title", "status", "line_items",
            "subtotal", "discount", "tax_rate", "tax", "shipping", "total",
            "notes", "valid_until", "requested_delivery_date", "sent_at",
            "artwork_required",
        },
    )
    for item in data["line_items"]:
        for key in ("product_id", "supplier_id"):
            item.pop(key, None)
    data["customer_name"] = (customer.contact_name if customer else None) or quote.customer_name
    data["customer_company"] = (customer.company_name if customer else None) or quote.customer_company
    data["response"] = _response_state(quote.approved_at, quote.declined_at)
    data["artwork_status"] = quote.artwork_status.value if quote.artwork_required else None
    return data


def public_artwork_view(quote: Quote) -> Dict[str, Any]:
    """Customer-safe view of the artwork behind an artwork link."""
    return {
        "quote_number": quote.quote_number,
        "title": quote.title,
        "artwork_url": quote.artwork_url,
        "artwork_file_name": quote.artwork_file_name,
        "artwork_version": quote.artwork_version,
        "artwork_sent_at": quote.artwork_sent_at.isoformat() if quote.artwork_sent_at else None,
        "artwork_notes": quote.artwork_notes,
        "response": _response_state(quote.artwork_approved_at, quote.artwork_declined_at),
    }


def artwork_version_view(version: ArtworkVersion) -> Dict[str, Any]:
    return version.model_dump(mode="json")
