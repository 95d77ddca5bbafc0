"""
Quote number generation.

Numbers look like ``Q2026-0001``: prefix, year, dash, sequence padded to
four digits. The sequence restarts every year and continues from the
highest number already stored.
"""

import re
import threading
from datetime import date
from typing import Optional

from domain import IQuoteRepository

NUMBER_PATTERN = re.compile(r"^(?P<prefix>\D*)(?P<year>\d{4})-(?P<sequence>\d+)$")


def format_quote_number(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}{year}-{sequence:04d}"


def parse_sequence(quote_number: Optional[str]) -> int:
    """Sequence part of a quote number, or 0 if it does not parse."""
    if not quote_number:
        return 0
    match = NUMBER_PATTERN.match(quote_number)
    return int(match.group("sequence")) if match else 0


class QuoteNumberGenerator:
    """
    Allocates the next quote number for the current year.

    Hold ``lock`` across ``next_number`` and the insert of the new quote so
    two creates in this process never draw the same number; the store's
    unique constraint covers other processes.
    """

    def __init__(self, repository: IQuoteRepository, prefix: str = "Q"):
        self.repository = repository
        self.prefix = prefix
        self.lock = threading.RLock()

    def next_number(self, today: Optional[date] = None) -> str:
        year = (today or date.today()).year
        latest = self.repository.latest_quote_number(f"{self.prefix}{year}-")
        return format_quote_number(self.prefix, year, parse_sequence(latest) + 1)
