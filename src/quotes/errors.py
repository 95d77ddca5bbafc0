"""
Quote lifecycle errors.

All errors raised by the lifecycle service derive from ``QuoteError`` so
the API layer can map them to HTTP responses in one place.
"""

from typing import Optional


class QuoteError(Exception):
    """Base class for quote lifecycle errors."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class QuoteValidationError(QuoteError):
    """Input or precondition failure; nothing was changed."""


class InvalidTransitionError(QuoteError):
    """Raised when an invalid status transition is attempted."""

    status_code = 409

    def __init__(self, message: str, current_status: Optional[str] = None,
                 target_status: Optional[str] = None):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(message)


class QuoteNotFoundError(QuoteError):
    status_code = 404

    def __init__(self, quote_id: str):
        self.quote_id = quote_id
        super().__init__(f"Quote {quote_id} not found")


class TokenError(QuoteError):
    """Unknown, rotated or revoked approval token."""

    status_code = 404


class PermissionDeniedError(QuoteError):
    status_code = 403
