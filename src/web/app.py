"""
FastAPI application for the quote platform.

Usage:
    uvicorn web.app:create_app --factory

    # Tests
    client = TestClient(create_app(build_memory_platform(...)))
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_database_settings, get_settings
from database import create_session_factory
from domain import ConcurrentModificationError
from quotes import QuoteError, QuotePlatform, build_sql_platform

from .quote_api import notification_router, public_router, router

logger = logging.getLogger(__name__)


def create_error_response(
    code: str,
    message: str,
    status_code: int = 400,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Consistent JSON error body for every API error."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "code": code,
            "message": message,
            "details": details or {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(QuoteError)
    async def quote_error_handler(request: Request, exc: QuoteError):
        logger.warning(f"{type(exc).__name__}: {exc.message}")
        details = {}
        for attr in ("current_status", "target_status", "quote_id"):
            value = getattr(exc, attr, None)
            if value is not None:
                details[attr] = value
        return create_error_response(type(exc).__name__, exc.message, exc.status_code, details)

    @app.exception_handler(ConcurrentModificationError)
    async def concurrent_modification_handler(request: Request, exc: ConcurrentModificationError):
        logger.warning(str(exc), extra={"quote_id": exc.quote_id})
        return create_error_response(
            "ConcurrentModificationError", str(exc), 409, {"quote_id": exc.quote_id},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors with user-friendly messages."""
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            errors.append(f"{field}: {error['msg']}")
        return create_error_response(
            "ValidationError",
            "Invalid request data",
            status_code=422,
            details={"errors": errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return create_error_response("HTTPError", str(exc.detail), exc.status_code)


def create_app(platform: Optional[QuotePlatform] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        platform: Pre-wired platform. If None, a database-backed platform is
            built from environment settings.
    """
    settings = get_settings()
    if platform is None:
        platform = build_sql_platform(create_session_factory(get_database_settings()), settings)

    app = FastAPI(title=settings.name, version=settings.version, debug=settings.debug)
    app.state.platform = platform

    register_exception_handlers(app)
    app.include_router(router)
    app.include_router(public_router)
    app.include_router(notification_router)

    @app.get("/health")
    def health():
        return {"status": "ok", "environment": settings.environment}

    return app
