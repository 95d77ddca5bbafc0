"""
Owner alerts.

Richly formatted operational emails sent straight to a quote's owner when
the customer responds. They bypass notification settings and templates
and cannot be disabled.
"""

import html
from typing import Optional, Tuple

from pricing import format_currency

from .templates import NotificationContext


def _esc(value) -> str:
    return html.escape(str(value)) if value not in (None, "") else "N/A"


def _notes_block(notes) -> str:
    if not notes:
        return ""
    return (
        "<div style=\"background: #f8f9fa; border-left: 4px solid #6c757d; "
        "padding: 12px; margin: 16px 0;\">"
        "<strong>Customer notes:</strong>"
        f"<p style=\"margin: 8px 0 0; white-space: pre-wrap;\">{html.escape(notes)}</p>"
        "</div>"
    )


def _layout(color: str, heading: str, intro: str, rows: str, notes, link: str = "") -> str:
    return (
        "<div style=\"font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;\">"
        f"<div style=\"background: {color}; color: #fff; padding: 20px; border-radius: 6px 6px 0 0;\">"
        f"<h1 style=\"margin: 0; font-size: 22px;\">{heading}</h1>"
        "</div>"
        "<div style=\"border: 1px solid #dee2e6; border-top: none; padding: 20px;\">"
        f"<p>{intro}</p>"
        f"<table style=\"width: 100%; border-collapse: collapse;\">{rows}</table>"
        f"{_notes_block(notes)}"
        f"{link}"
        "</div>"
        "</div>"
    )


def _row(label: str, value) -> str:
    return (
        f"<tr><td style=\"padding: 6px 0; color: #6c757d;\">{label}</td>"
        f"<td style=\"padding: 6px 0; font-weight: bold;\">{_esc(value)}</td></tr>"
    )


def build_quote_response_alert(
    context: NotificationContext,
    approved: bool,
    notes: Optional[str] = None,
) -> Tuple[str, str]:
    """Subject and HTML body for a customer's quote decision."""
    if approved:
        subject = f"✅ Quote {context.quote_number} Approved by Customer"
        heading = "Quote Approved"
        color = "#28a745"
        intro = "Good news! Your customer has approved their quote."
    else:
        subject = f"❌ Quote {context.quote_number} Declined by Customer"
        heading = "Quote Declined"
        color = "#dc3545"
        intro = "Your customer has declined their quote."

    rows = (
        _row("Quote", context.quote_number)
        + _row("Title", context.quote_title)
        + _row("Customer", context.customer_name)
        + _row("Company", context.customer_company)
        + _row("Email", context.customer_email)
        + _row("Total", format_currency(context.quote_total or 0, context.currency_symbol))
    )
    return subject, _layout(color, heading, intro, rows, notes)


def build_artwork_response_alert(
    context: NotificationContext,
    approved: bool,
) -> Tuple[str, str]:
    """Subject and HTML body for a customer's artwork decision."""
    if approved:
        subject = f"✅ Artwork Approved - {context.quote_number}"
        heading = "Artwork Approved"
        color = "#28a745"
        intro = "The customer approved the artwork. The quote is ready for final approval."
    else:
        subject = f"\U0001f3a8 Artwork Needs Changes - {context.quote_number}"
        heading = "Artwork Changes Requested"
        color = "#fd7e14"
        intro = "The customer requested changes to the artwork."

    rows = (
        _row("Quote", context.quote_number)
        + _row("Customer", context.customer_name)
        + _row("Email", context.customer_email)
        + _row("File", context.artwork_file_name)
        + _row("Version", context.artwork_version)
    )
    link = ""
    if context.artwork_url:
        link = f"<p><a href=\"{html.escape(context.artwork_url)}\">View artwork</a></p>"
    return subject, _layout(color, heading, intro, rows, context.artwork_notes, link)
