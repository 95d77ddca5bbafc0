"""
Repository interfaces for the quote domain.

Implementations live in the ``database`` package: an SQLAlchemy-backed
store and an in-memory store used by tests and local development.

Every write method is atomic for a single quote: the quote row, its line
items and its artwork history are committed together or not at all.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .aggregates import Quote
from .value_objects import Customer, QuoteStatus, StaffUser


class ConcurrentModificationError(Exception):
    """The stored quote changed after it was read; reload and retry."""

    def __init__(self, quote_id: str):
        self.quote_id = quote_id
        super().__init__(f"Quote {quote_id} was modified by another request")


class IQuoteRepository(ABC):
    """Persistence contract for Quote aggregates."""

    @abstractmethod
    def get(self, quote_id: str) -> Optional[Quote]:
        """
        Retrieve a quote by ID.

        Returns:
            A detached copy of the quote, or None if not found
        """

    @abstractmethod
    def get_by_artwork_token(self, token: str) -> Optional[Quote]:
        """Find the quote whose current artwork token matches."""

    @abstractmethod
    def get_by_access_token(self, token: str) -> Optional[Quote]:
        """Find the quote whose approval link token matches."""

    @abstractmethod
    def add(self, quote: Quote) -> None:
        """Insert a new quote. Fails if the id or quote number exists."""

    @abstractmethod
    def save(self, quote: Quote) -> None:
        """
        Replace the stored quote, its line items and artwork history.

        Raises:
            ConcurrentModificationError: if ``quote.version_id`` no longer
                matches the stored row
        """

    @abstractmethod
    def delete(self, quote_id: str) -> bool:
        """
        Permanently remove a quote and its line items.

        Returns:
            True if deleted, False if not found
        """

    @abstractmethod
    def list(
        self,
        status: Optional[QuoteStatus] = None,
        customer_id: Optional[str] = None,
        owner_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Quote]:
        """List quotes, newest first."""

    @abstractmethod
    def latest_quote_number(self, prefix: str) -> Optional[str]:
        """Highest quote number starting with ``prefix``, if any."""


class IDirectory(ABC):
    """Read access to customer and staff records referenced by quotes."""

    @abstractmethod
    def get_customer(self, customer_id: str) -> Optional[Customer]:
        """Look up a stored customer."""

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[StaffUser]:
        """Look up an internal user."""
