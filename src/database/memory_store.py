"""
In-memory quote and directory stores.

Used by tests and local development. Stored quotes are deep-copied on the
way in and out so callers never share state with the store.
"""

import threading
from typing import Dict, List, Optional

from domain import (
    ConcurrentModificationError,
    Customer,
    IDirectory,
    IQuoteRepository,
    Quote,
    QuoteStatus,
    StaffUser,
)


class InMemoryQuoteRepository(IQuoteRepository):
    """Thread-safe dictionary-backed quote store."""

    def __init__(self):
        self._quotes: Dict[str, Quote] = {}
        self._lock = threading.Lock()

    def _find(self, **match) -> Optional[Quote]:
        with self._lock:
            for quote in self._quotes.values():
                if all(getattr(quote, k) == v for k, v in match.items()):
                    return quote.model_copy(deep=True)
        return None

    def get(self, quote_id: str) -> Optional[Quote]:
        with self._lock:
            quote = self._quotes.get(quote_id)
            return quote.model_copy(deep=True) if quote else None

    def get_by_artwork_token(self, token: str) -> Optional[Quote]:
        return self._find(artwork_token=token) if token else None

    def get_by_access_token(self, token: str) -> Optional[Quote]:
        return self._find(access_token=token) if token else None

    def add(self, quote: Quote) -> None:
        with self._lock:
            if quote.id in self._quotes:
                raise ValueError(f"Quote {quote.id} already exists")
            if any(q.quote_number == quote.quote_number for q in self._quotes.values()):
                raise ValueError(f"Quote number {quote.quote_number} already exists")
            quote.version_id = 1
            self._quotes[quote.id] = quote.model_copy(deep=True)

    def save(self, quote: Quote) -> None:
        with self._lock:
            if quote.id not in self._quotes:
                raise KeyError(f"Quote {quote.id} does not exist")
            if self._quotes[quote.id].version_id != quote.version_id:
                raise ConcurrentModificationError(quote.id)
            quote.version_id += 1
            self._quotes[quote.id] = quote.model_copy(deep=True)

    def delete(self, quote_id: str) -> bool:
        with self._lock:
            return self._quotes.pop(quote_id, None) is not None

    def list(
        self,
        status: Optional[QuoteStatus] = None,
        customer_id: Optional[str] = None,
        owner_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Quote]:
        needle = search.strip().lower() if search else None
        with self._lock:
            quotes = [q.model_copy(deep=True) for q in self._quotes.values()]

        def matches(quote: Quote) -> bool:
            if status is not None and quote.status != status:
                return False
            if customer_id and quote.customer_id != customer_id:
                return False
            if owner_id and quote.owner_id != owner_id:
                return False
            if needle:
                haystack = (
                    quote.quote_number, quote.title, quote.customer_name,
                    quote.customer_email, quote.customer_company,
                )
                return any(needle in value.lower() for value in haystack if value)
            return True

        quotes = sorted(
            (q for q in quotes if matches(q)),
            key=lambda q: (q.created_at, q.quote_number),
            reverse=True,
        )
        end = offset + limit if limit is not None else None
        return quotes[offset:end]

    def latest_quote_number(self, prefix: str) -> Optional[str]:
        with self._lock:
            numbers = [q.quote_number for q in self._quotes.values() if q.quote_number.startswith(prefix)]
        if not numbers:
            return None
        return max(numbers, key=lambda n: (len(n), n))

    def __len__(self) -> int:
        with self._lock:
            return len(self._quotes)


class InMemoryDirectory(IDirectory):
    """Customers and users held in memory."""

    def __init__(self):
        self._customers: Dict[str, Customer] = {}
        self._users: Dict[str, StaffUser] = {}

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        return self._customers.get(customer_id)

    def get_user(self, user_id: str) -> Optional[StaffUser]:
        return self._users.get(user_id)

    def add_customer(self, customer: Customer) -> Customer:
        self._customers[customer.id] = customer
        return customer

    def add_user(self, user: StaffUser) -> StaffUser:
        self._users[user.id] = user
        return user
