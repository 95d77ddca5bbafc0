"""
Quote lifecycle.

The state machine that takes a quote from creation through customer
approval, including the artwork-approval sub-workflow.
"""

from .errors import (
    InvalidTransitionError,
    PermissionDeniedError,
    QuoteError,
    QuoteNotFoundError,
    QuoteValidationError,
    TokenError,
)
from .transitions import VALID_TRANSITIONS, can_transition
from .numbering import QuoteNumberGenerator, format_quote_number
from .commands import ArtworkUpload, CustomerResponse, LineItemInput, QuoteCreate, QuoteUpdate
from .service import QuoteLifecycleService, SendOutcome
from .platform import QuotePlatform, assemble_platform, build_memory_platform, build_sql_platform

__all__ = [
    "InvalidTransitionError",
    "PermissionDeniedError",
    "QuoteError",
    "QuoteNotFoundError",
    "QuoteValidationError",
    "TokenError",
    "VALID_TRANSITIONS",
    "can_transition",
    "QuoteNumberGenerator",
    "format_quote_number",
    "ArtworkUpload",
    "CustomerResponse",
    "LineItemInput",
    "QuoteCreate",
    "QuoteUpdate",
    "QuoteLifecycleService",
    "SendOutcome",
    "QuotePlatform",
    "assemble_platform",
    "build_memory_platform",
    "build_sql_platform",
]
