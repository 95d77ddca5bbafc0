"""Customer approval link tokens."""

import hmac
import secrets
from typing import Optional

TOKEN_BYTES = 32


def generate_token() -> str:
    """64 hex characters of cryptographic randomness."""
    return secrets.token_hex(TOKEN_BYTES)


def tokens_match(expected: Optional[str], provided: Optional[str]) -> bool:
    """Constant-time comparison; a missing token never matches."""
    if not expected or not provided:
        return False
    return hmac.compare_digest(expected, provided)
