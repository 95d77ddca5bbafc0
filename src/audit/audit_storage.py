"""
Quote Audit Storage Backends

Storage contract for quote audit entries plus the in-memory backend used
for tests and development. The SQLAlchemy backend lives in
``database.repositories.audit_repository``.

Backends are append-only: there is no update or delete operation.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .audit_models import QuoteAuditEntry


class AuditStorageBackend(ABC):
    """Abstract base class for audit storage backends."""

    @abstractmethod
    def append(self, entry: QuoteAuditEntry) -> None:
        """Append an audit entry."""
        pass

    @abstractmethod
    def list_for_quote(
        self,
        quote_id: str,
        newest_first: bool = True,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[QuoteAuditEntry]:
        """
        Get entries for a quote.

        Entries written within the same clock tick keep insertion order.
        """
        pass

    @abstractmethod
    def count_for_quote(self, quote_id: str) -> int:
        """Number of entries recorded for a quote."""
        pass


class InMemoryAuditStorage(AuditStorageBackend):
    """
    In-memory audit storage for testing and development.

    Thread-safe but not persistent - data lost on restart.
    """

    def __init__(self):
        self._entries: Dict[str, List[QuoteAuditEntry]] = {}
        self._lock = threading.Lock()

    def append(self, entry: QuoteAuditEntry) -> None:
        with self._lock:
            self._entries.setdefault(entry.quote_id, []).append(entry)

    def list_for_quote(
        self,
        quote_id: str,
        newest_first: bool = True,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[QuoteAuditEntry]:
        with self._lock:
            entries = list(self._entries.get(quote_id, []))

        if newest_first:
            entries.reverse()
        end = offset + limit if limit is not None else None
        return entries[offset:end]

    def count_for_quote(self, quote_id: str) -> int:
        with self._lock:
            return len(self._entries.get(quote_id, []))
