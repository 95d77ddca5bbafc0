"""
Quote API

REST endpoints for the quote lifecycle.

Routers:
- /api/quotes                 : admin quote management (X-User-* headers)
- /api/artwork/{token}        : public artwork approval link
- /api/quote/{token}          : public quote approval link
- /api/notification-settings  : notification configuration and delivery log
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from domain import Actor, QuoteStatus
from notifications import NotificationChannel, NotificationType
from quotes import (
    ArtworkUpload,
    CustomerResponse,
    QuoteCreate,
    QuoteLifecycleService,
    QuotePlatform,
    QuoteUpdate,
    SendOutcome,
)

from .dependencies import get_actor, get_lifecycle, get_platform, require_admin
from .views import (
    artwork_version_view,
    delivery_view,
    public_artwork_view,
    public_quote_view,
    quote_view,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quotes", tags=["Quotes"])
public_router = APIRouter(prefix="/api", tags=["Customer Approval"])
notification_router = APIRouter(prefix="/api/notification-settings", tags=["Notifications"])


def _send_response(outcome: SendOutcome) -> JSONResponse:
    """200 when delivered, 502 when the email failed after the quote was saved."""
    body = {
        "success": outcome.success,
        "quote": quote_view(outcome.quote),
        "delivery": delivery_view(outcome.delivery),
    }
    if not outcome.success:
        body["message"] = f"Saved, but the email could not be sent: {outcome.delivery.error}"
        return JSONResponse(status_code=502, content=body)
    return JSONResponse(status_code=200, content=body)


# =============================================================================
# ADMIN QUOTE ENDPOINTS
# =============================================================================

@router.get("")
def list_quotes(
    status: Optional[QuoteStatus] = None,
    customer_id: Optional[str] = None,
    owner_id: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(get_actor),
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    quotes = lifecycle.list_quotes(
        status=status,
        customer_id=customer_id,
        owner_id=owner_id,
        search=search,
        limit=limit,
        offset=offset,
    )
    return {"quotes": [quote_view(q) for q in quotes], "count": len(quotes), "limit": limit, "offset": offset}


@router.post("", status_code=201)
def create_quote(
    data: QuoteCreate,
    actor: Actor = Depends(get_actor),
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    return quote_view(lifecycle.create_quote(data, actor))


@router.get("/{quote_id}")
def get_quote(
    quote_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    return quote_view(lifecycle.get_quote(quote_id))


@router.patch("/{quote_id}")
def update_quote(
    quote_id: str,
    data: QuoteUpdate,
    actor: Actor = Depends(get_actor),
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    return quote_view(lifecycle.update_quote(quote_id, data, actor))


@router.delete("/{quote_id}", status_code=204)
def delete_quote(
    quote_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    lifecycle.delete_quote(quote_id, actor)
    return Response(status_code=204)


@router.post("/{quote_id}/send")
def send_quote(
    quote_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    """Send the quote to the customer. Returns 502 if the email failed."""
    return _send_response(lifecycle.send_to_customer(quote_id, actor))


@router.post("/{quote_id}/archive")
def archive_quote(
    quote_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    return quote_view(lifecycle.archive_quote(quote_id, actor))


@router.get("/{quote_id}/audit-logs")
def get_audit_logs(
    quote_id: str,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(get_actor),
    platform: QuotePlatform = Depends(get_platform),
):
    """Audit history, newest first. Available after the quote is deleted."""
    limit = limit or platform.settings.audit_page_size
    entries = platform.lifecycle.get_audit_logs(quote_id, limit=limit, offset=offset)
    return {
        "quote_id": quote_id,
        "entries": [e.to_dict() for e in entries],
        "total": platform.audit.count(quote_id),
        "limit": limit,
        "offset": offset,
    }


@router.get("/{quote_id}/notifications")
def get_quote_notifications(
    quote_id: str,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(get_actor),
    platform: QuotePlatform = Depends(get_platform),
):
    entries = platform.notification_logs.list(quote_id=quote_id, limit=limit, offset=offset)
    return {"quote_id": quote_id, "entries": [e.to_dict() for e in entries]}


# -----------------------------------------------------------------------------
# Artwork
# -----------------------------------------------------------------------------

@router.get("/{quote_id}/artwork")
def get_artwork(
    quote_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    quote = lifecycle.get_quote(quote_id)
    current = quote.current_artwork_version()
    return {
        "artwork_required": quote.artwork_required,
        "current": artwork_version_view(current) if current else None,
        "artwork_token": quote.artwork_token,
    }


@router.post("/{quote_id}/artwork")
def upload_artwork(
    quote_id: str,
    upload: ArtworkUpload,
    actor: Actor = Depends(get_actor),
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    return quote_view(lifecycle.upload_artwork(quote_id, upload, actor))


@router.delete("/{quote_id}/artwork")
def remove_artwork(
    quote_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    return quote_view(lifecycle.remove_artwork(quote_id, actor))


@router.post("/{quote_id}/artwork/send")
def send_artwork(
    quote_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    """Email the artwork for approval. Returns 502 if the email failed."""
    return _send_response(lifecycle.send_artwork(quote_id, actor))


@router.get("/{quote_id}/artwork/versions")
def get_artwork_versions(
    quote_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    return {"versions": [artwork_version_view(v) for v in lifecycle.get_artwork_versions(quote_id)]}


# =============================================================================
# PUBLIC APPROVAL LINKS
# =============================================================================

@public_router.get("/artwork/{token}")
def view_artwork(token: str, lifecycle: QuoteLifecycleService = Depends(get_lifecycle)):
    return public_artwork_view(lifecycle.get_shared_artwork(token))


@public_router.post("/artwork/{token}")
def respond_to_artwork(
    token: str,
    response: CustomerResponse,
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    quote = lifecycle.respond_to_artwork(token, response)
    return {"success": True, "artwork": public_artwork_view(quote)}


@public_router.get("/quote/{token}")
def view_quote(token: str, lifecycle: QuoteLifecycleService = Depends(get_lifecycle)):
    quote = lifecycle.get_quote_by_token(token)
    customer, _ = lifecycle.related_records(quote)
    return public_quote_view(quote, customer)


@public_router.post("/quote/{token}")
def respond_to_quote(
    token: str,
    response: CustomerResponse,
    lifecycle: QuoteLifecycleService = Depends(get_lifecycle),
):
    quote = lifecycle.respond_to_quote(token, response)
    customer, _ = lifecycle.related_records(quote)
    return {"success": True, "quote": public_quote_view(quote, customer)}


# =============================================================================
# NOTIFICATION SETTINGS
# =============================================================================

class NotificationSettingUpdate(BaseModel):
    """Editable fields of a notification setting."""
    enabled: Optional[bool] = None
    channel: Optional[NotificationChannel] = None
    recipient_emails: Optional[List[str]] = None
    subject: Optional[str] = Field(default=None, max_length=500)
    body_template: Optional[str] = None


@notification_router.get("")
def list_notification_settings(
    actor: Actor = Depends(require_admin),
    platform: QuotePlatform = Depends(get_platform),
):
    return {"settings": [s.model_dump(mode="json") for s in platform.notification_settings.list_all()]}


@notification_router.post("/initialize")
def initialize_notification_settings(
    actor: Actor = Depends(require_admin),
    platform: QuotePlatform = Depends(get_platform),
):
    created = platform.notification_settings.initialize_defaults()
    return {"created": [s.type.value for s in created]}


@notification_router.get("/logs")
def list_notification_logs(
    quote_id: Optional[str] = None,
    notification_type: Optional[NotificationType] = Query(default=None, alias="type"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(require_admin),
    platform: QuotePlatform = Depends(get_platform),
):
    entries = platform.notification_logs.list(
        quote_id=quote_id,
        notification_type=notification_type,
        limit=limit,
        offset=offset,
    )
    return {"entries": [e.to_dict() for e in entries], "limit": limit, "offset": offset}


@notification_router.put("/{notification_type}")
def update_notification_setting(
    notification_type: NotificationType,
    update: NotificationSettingUpdate,
    actor: Actor = Depends(require_admin),
    platform: QuotePlatform = Depends(get_platform),
):
    store = platform.notification_settings
    setting = store.get(notification_type)
    if setting is None:
        raise HTTPException(status_code=404, detail=f"No setting for {notification_type.value}")

    changes = update.model_dump(exclude_unset=True)
    setting = store.save(setting.model_copy(update=changes))
    logger.info(
        f"Notification setting {notification_type.value} updated by {actor.id}",
        extra={"fields": sorted(changes)},
    )
    return setting.model_dump(mode="json")
