"""
Notification template engine.

Templates use ``{{tokenName}}`` placeholders drawn from a fixed vocabulary
(``TemplateToken``). Each token maps to a formatter reading a typed
``NotificationContext``; rendering never fails and never leaves a literal
placeholder behind:

- a known token with no context value renders its safe default
  ("N/A", "Valued Customer", ...) or an empty string
- an unknown token renders as an empty string

Usage:
    template = resolve_template(NotificationType.CUSTOMER_QUOTE_SENT, setting)
    subject = render(template.subject, context)
    body = render(template.body, context, escape_html=True)
"""

import html
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, Optional

from pydantic import BaseModel

from pricing import format_currency

from .notification_types import NotificationSetting, NotificationType

TOKEN_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")

NOT_AVAILABLE = "N/A"


class NotificationContext(BaseModel):
    """Values available to templates. Every field is optional."""

    # Traceability (not rendered)
    quote_id: Optional[str] = None
    customer_id: Optional[str] = None
    user_id: Optional[str] = None

    site_name: Optional[str] = None
    currency_symbol: str = "$"

    quote_number: Optional[str] = None
    quote_total: Optional[Decimal] = None
    quote_title: Optional[str] = None
    quote_status: Optional[str] = None
    valid_until: Optional[date] = None
    quote_approval_url: Optional[str] = None
    quote_approve_url: Optional[str] = None
    quote_decline_url: Optional[str] = None
    line_items_summary: Optional[str] = None

    customer_name: Optional[str] = None
    customer_company: Optional[str] = None
    customer_email: Optional[str] = None

    user_name: Optional[str] = None
    user_email: Optional[str] = None
    verification_url: Optional[str] = None

    previous_status: Optional[str] = None
    new_status: Optional[str] = None

    artwork_url: Optional[str] = None
    artwork_file_name: Optional[str] = None
    artwork_version: Optional[int] = None
    artwork_approval_url: Optional[str] = None
    artwork_notes: Optional[str] = None
    artwork_approved: Optional[bool] = None


class TemplateToken(str, Enum):
    """Placeholder names accepted in templates."""
    QUOTE_NUMBER = "quoteNumber"
    QUOTE_TOTAL = "quoteTotal"
    QUOTE_TITLE = "quoteTitle"
    QUOTE_STATUS = "quoteStatus"
    VALID_UNTIL = "validUntil"
    QUOTE_APPROVAL_URL = "quoteApprovalUrl"
    QUOTE_APPROVE_URL = "quoteApproveUrl"
    QUOTE_DECLINE_URL = "quoteDeclineUrl"
    LINE_ITEMS = "lineItems"
    CUSTOMER_NAME = "customerName"
    CUSTOMER_COMPANY = "customerCompany"
    CUSTOMER_EMAIL = "customerEmail"
    USER_NAME = "userName"
    USER_EMAIL = "userEmail"
    VERIFICATION_URL = "verificationUrl"
    PREVIOUS_STATUS = "previousStatus"
    NEW_STATUS = "newStatus"
    ARTWORK_URL = "artworkUrl"
    ARTWORK_FILE_NAME = "artworkFileName"
    ARTWORK_VERSION = "artworkVersion"
    ARTWORK_APPROVAL_URL = "artworkApprovalUrl"
    ARTWORK_NOTES = "artworkNotes"
    ARTWORK_ACTION = "artworkAction"
    SITE_NAME = "siteName"


def format_short_date(value: Optional[date]) -> str:
    """US short date without zero padding, e.g. ``3/7/2026``."""
    if value is None:
        return NOT_AVAILABLE
    if isinstance(value, datetime):
        value = value.date()
    return f"{value.month}/{value.day}/{value.year}"


def _text(value, default: str = "") -> str:
    if value is None or value == "":
        return default
    return str(value)


def _artwork_action(ctx: NotificationContext) -> str:
    if ctx.artwork_approved is None:
        return ""
    return "Approved" if ctx.artwork_approved else "Declined"


TOKEN_FORMATTERS: Dict[TemplateToken, Callable[[NotificationContext], str]] = {
    TemplateToken.QUOTE_NUMBER: lambda c: _text(c.quote_number),
    TemplateToken.QUOTE_TOTAL: lambda c: format_currency(c.quote_total or 0, c.currency_symbol),
    TemplateToken.QUOTE_TITLE: lambda c: _text(c.quote_title, NOT_AVAILABLE),
    TemplateToken.QUOTE_STATUS: lambda c: _text(c.quote_status),
    TemplateToken.VALID_UNTIL: lambda c: format_short_date(c.valid_until),
    TemplateToken.QUOTE_APPROVAL_URL: lambda c: _text(c.quote_approval_url),
    TemplateToken.QUOTE_APPROVE_URL: lambda c: _text(c.quote_approve_url),
    TemplateToken.QUOTE_DECLINE_URL: lambda c: _text(c.quote_decline_url),
    TemplateToken.LINE_ITEMS: lambda c: _text(c.line_items_summary, NOT_AVAILABLE),
    TemplateToken.CUSTOMER_NAME: lambda c: _text(c.customer_name, "Valued Customer"),
    TemplateToken.CUSTOMER_COMPANY: lambda c: _text(c.customer_company, NOT_AVAILABLE),
    TemplateToken.CUSTOMER_EMAIL: lambda c: _text(c.customer_email),
    TemplateToken.USER_NAME: lambda c: _text(c.user_name),
    TemplateToken.USER_EMAIL: lambda c: _text(c.user_email),
    TemplateToken.VERIFICATION_URL: lambda c: _text(c.verification_url),
    TemplateToken.PREVIOUS_STATUS: lambda c: _text(c.previous_status),
    TemplateToken.NEW_STATUS: lambda c: _text(c.new_status),
    TemplateToken.ARTWORK_URL: lambda c: _text(c.artwork_url),
    TemplateToken.ARTWORK_FILE_NAME: lambda c: _text(c.artwork_file_name),
    TemplateToken.ARTWORK_VERSION: lambda c: _text(c.artwork_version, "1"),
    TemplateToken.ARTWORK_APPROVAL_URL: lambda c: _text(c.artwork_approval_url),
    TemplateToken.ARTWORK_NOTES: lambda c: _text(c.artwork_notes, "No notes provided"),
    TemplateToken.ARTWORK_ACTION: _artwork_action,
    TemplateToken.SITE_NAME: lambda c: _text(c.site_name),
}

_TOKENS_BY_NAME = {token.value: token for token in TemplateToken}


def token_value(name: str, context: NotificationContext) -> str:
    """Formatted value for a placeholder name; unknown names are empty."""
    token = _TOKENS_BY_NAME.get(name)
    if token is None:
        return ""
    return TOKEN_FORMATTERS[token](context)


def render(template: str, context: NotificationContext, escape_html: bool = False) -> str:
    """
    Substitute every ``{{token}}`` placeholder in ``template``.

    Args:
        template: Template text
        context: Values to substitute
        escape_html: Escape substituted values (for HTML bodies)
    """
    def substitute(match: "re.Match[str]") -> str:
        value = token_value(match.group(1), context)
        return html.escape(value) if escape_html else value

    return TOKEN_PATTERN.sub(substitute, template or "")


# =============================================================================
# DEFAULT TEMPLATES
# =============================================================================

@dataclass(frozen=True)
class MessageTemplate:
    subject: str
    body: str


def _table(title: str, rows: str, footer: str = "") -> str:
    return (
        "<div style=\"font-family: Arial, sans-serif; max-width: 600px;\">"
        f"<h2>{title}</h2>"
        "<table style=\"border-collapse: collapse; width: 100%;\">"
        f"{rows}"
        "</table>"
        f"{footer}"
        "</div>"
    )


def _row(label: str, token: str) -> str:
    return (
        f"<tr><td style=\"padding: 6px; font-weight: bold;\">{label}</td>"
        f"<td style=\"padding: 6px;\">{{{{{token}}}}}</td></tr>"
    )


DEFAULT_TEMPLATES: Dict[NotificationType, MessageTemplate] = {
    NotificationType.INTERNAL_QUOTE_CREATED: MessageTemplate(
        subject="New Quote Created: {{quoteNumber}}",
        body=_table(
            "New Quote Created",
            _row("Quote Number", "quoteNumber")
            + _row("Title", "quoteTitle")
            + _row("Customer", "customerName")
            + _row("Company", "customerCompany")
            + _row("Total", "quoteTotal")
            + _row("Valid Until", "validUntil")
            + _row("Created By", "userName"),
        ),
    ),
    NotificationType.INTERNAL_QUOTE_STATUS_CHANGE: MessageTemplate(
        subject="Quote Status Changed: {{quoteNumber}} - {{newStatus}}",
        body=_table(
            "Quote Status Changed",
            _row("Quote Number", "quoteNumber")
            + _row("Customer", "customerName")
            + _row("Previous Status", "previousStatus")
            + _row("New Status", "newStatus")
            + _row("Total", "quoteTotal"),
        ),
    ),
    NotificationType.INTERNAL_USER_VERIFICATION: MessageTemplate(
        subject="Verify Your Email - {{siteName}} Admin",
        body=(
            "<div style=\"font-family: Arial, sans-serif; max-width: 600px;\">"
            "<h2>Verify Your Email</h2>"
            "<p>Hello {{userName}},</p>"
            "<p>Please confirm {{userEmail}} by opening the link below.</p>"
            "<p><a href=\"{{verificationUrl}}\">Verify Email</a></p>"
            "</div>"
        ),
    ),
    NotificationType.INTERNAL_ARTWORK_RESPONSE: MessageTemplate(
        subject="{{artworkAction}} - Artwork Response for {{quoteNumber}}",
        body=_table(
            "Artwork {{artworkAction}}",
            _row("Quote Number", "quoteNumber")
            + _row("Customer", "customerName")
            + _row("Company", "customerCompany")
            + _row("File", "artworkFileName")
            + _row("Version", "artworkVersion")
            + _row("Customer Notes", "artworkNotes"),
        ),
    ),
    NotificationType.CUSTOMER_QUOTE_SENT: MessageTemplate(
        subject="Your Quote from {{siteName}} - {{quoteNumber}}",
        body=_table(
            "Your Quote {{quoteNumber}}",
            _row("Title", "quoteTitle")
            + _row("Items", "lineItems")
            + _row("Total", "quoteTotal")
            + _row("Valid Until", "validUntil"),
            footer=(
                "<p>Dear {{customerName}}, thank you for your interest.</p>"
                "<p><a href=\"{{quoteApproveUrl}}\">Approve Quote</a> &nbsp; "
                "<a href=\"{{quoteDeclineUrl}}\">Decline Quote</a></p>"
                "<p><a href=\"{{quoteApprovalUrl}}\">View your quote online</a></p>"
            ),
        ),
    ),
    NotificationType.CUSTOMER_QUOTE_STATUS_CHANGE: MessageTemplate(
        subject="Quote Update - {{quoteNumber}}",
        body=_table(
            "Quote Update",
            _row("Quote Number", "quoteNumber")
            + _row("Status", "newStatus")
            + _row("Total", "quoteTotal"),
            footer="<p>Dear {{customerName}}, your quote status has been updated.</p>",
        ),
    ),
    NotificationType.CUSTOMER_ARTWORK_APPROVAL: MessageTemplate(
        subject="Artwork Ready for Review - {{quoteNumber}}",
        body=_table(
            "Artwork Ready for Review",
            _row("Quote Number", "quoteNumber")
            + _row("File", "artworkFileName")
            + _row("Version", "artworkVersion"),
            footer=(
                "<p>Dear {{customerName}}, your artwork proof is ready.</p>"
                "<p><a href=\"{{artworkApprovalUrl}}\">Review and approve your artwork</a></p>"
                "<p>Once the artwork is approved you can respond to the quote here: "
                "<a href=\"{{quoteApprovalUrl}}\">{{quoteApprovalUrl}}</a></p>"
            ),
        ),
    ),
}


def resolve_template(
    notification_type: NotificationType,
    setting: Optional[NotificationSetting] = None,
) -> MessageTemplate:
    """
    Pick the subject/body template for a notification type.

    Custom overrides on an enabled setting win field by field; anything
    missing falls back to the built-in default, which always exists.
    """
    default = DEFAULT_TEMPLATES[notification_type]
    if setting is None or not setting.enabled:
        return default

    subject = (setting.subject or "").strip() or default.subject
    body = (setting.body_template or "").strip() or default.body
    return MessageTemplate(subject=subject, body=body)
