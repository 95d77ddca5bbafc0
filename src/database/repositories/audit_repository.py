"""SQLAlchemy audit storage backend.

Append-only persistence for quote audit entries on the quote_audit_logs
table. Entries are never updated or deleted, and are kept after the quote
itself is deleted.
"""

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from audit import AuditStorageBackend, QuoteAuditAction, QuoteAuditEntry
from database.connection import session_scope
from database.models import QuoteAuditLogRecord
from database.repositories.quote_repository import as_utc
from domain import ActorType

logger = logging.getLogger(__name__)


class SqlAuditStorage(AuditStorageBackend):
    """Audit entries stored in the quote database."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def append(self, entry: QuoteAuditEntry) -> None:
        with session_scope(self._session_factory) as session:
            session.add(QuoteAuditLogRecord(
                id=entry.id,
                quote_id=entry.quote_id,
                action=entry.action.value,
                description=entry.description,
                actor_type=entry.actor_type.value,
                actor_id=entry.actor_id,
                actor_name=entry.actor_name,
                actor_email=entry.actor_email,
                previous_value=entry.previous_value,
                new_value=entry.new_value,
                metadata_=entry.metadata,
                created_at=entry.created_at,
            ))

    def list_for_quote(
        self,
        quote_id: str,
        newest_first: bool = True,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[QuoteAuditEntry]:
        order = QuoteAuditLogRecord.sequence.desc() if newest_first else QuoteAuditLogRecord.sequence.asc()
        query = select(QuoteAuditLogRecord).where(QuoteAuditLogRecord.quote_id == quote_id).order_by(order)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        with session_scope(self._session_factory) as session:
            return [self._to_entry(r) for r in session.execute(query).scalars().all()]

    def count_for_quote(self, quote_id: str) -> int:
        query = select(func.count()).select_from(QuoteAuditLogRecord).where(
            QuoteAuditLogRecord.quote_id == quote_id
        )
        with session_scope(self._session_factory) as session:
            return session.execute(query).scalar_one()

    @staticmethod
    def _to_entry(record: QuoteAuditLogRecord) -> QuoteAuditEntry:
        return QuoteAuditEntry(
            id=record.id,
            quote_id=record.quote_id,
            action=QuoteAuditAction(record.action),
            description=record.description,
            actor_type=ActorType(record.actor_type),
            actor_id=record.actor_id,
            actor_name=record.actor_name,
            actor_email=record.actor_email,
            previous_value=record.previous_value,
            new_value=record.new_value,
            metadata=record.metadata_,
            created_at=as_utc(record.created_at),
        )
