"""
FastAPI dependencies for the quote API.

Authentication is handled upstream; the authenticated user is forwarded
in ``X-User-*`` headers and turned into an ``Actor`` here.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from domain import Actor, UserRole
from quotes import QuoteLifecycleService, QuotePlatform


def get_platform(request: Request) -> QuotePlatform:
    """The platform wired onto the application by ``create_app``."""
    return request.app.state.platform


def get_lifecycle(platform: QuotePlatform = Depends(get_platform)) -> QuoteLifecycleService:
    return platform.lifecycle


def get_actor(
    x_user_id: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Actor:
    """Internal actor for admin endpoints."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        role = UserRole((x_user_role or UserRole.ADMIN.value).upper())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown role: {x_user_role}")
    return Actor.staff(x_user_id, name=x_user_name, email=x_user_email, role=role)


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.has_role(UserRole.SUPER_ADMIN, UserRole.ADMIN):
        raise HTTPException(status_code=403, detail="Admin access required")
    return actor
