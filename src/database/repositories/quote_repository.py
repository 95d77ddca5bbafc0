"""SQLAlchemy Quote Repository Implementation.

Implements IQuoteRepository on the quotes, quote_line_items and
artwork_versions tables. Each call runs in its own transaction, so a quote
and its children are always written together.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from domain import (
    ArtworkVersion,
    ConcurrentModificationError,
    IQuoteRepository,
    LineItem,
    Quote,
    QuoteStatus,
)
from database.connection import session_scope
from database.models import ArtworkVersionRecord, QuoteLineItemRecord, QuoteRecord

logger = logging.getLogger(__name__)

QUOTE_COLUMNS = (
    "quote_number", "title", "status",
    "customer_id", "customer_name", "customer_email", "customer_phone", "customer_company",
    "owner_id", "created_by_id",
    "subtotal", "discount_value", "discount_type", "discount", "tax_rate", "tax", "shipping", "total",
    "notes", "internal_notes", "valid_until", "requested_delivery_date",
    "access_token",
    "artwork_required", "artwork_url", "artwork_file_name", "artwork_version", "artwork_token",
    "artwork_sent_at", "artwork_approved_at", "artwork_declined_at", "artwork_notes",
    "created_at", "last_modified_at", "sent_at", "approved_at", "declined_at",
)

LINE_ITEM_COLUMNS = (
    "id", "item_type", "name", "description", "sku", "quantity",
    "unit_price", "discount", "total", "product_id", "supplier_id",
)

ARTWORK_COLUMNS = (
    "version", "url", "file_name", "status", "sent_at", "approved_at",
    "declined_at", "notes", "archived_at",
)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _column_value(value):
    # Enums are stored by value
    return getattr(value, "value", value)


def _row_value(value):
    return as_utc(value) if isinstance(value, datetime) else value


class QuoteRepository(IQuoteRepository):
    """
    SQLAlchemy implementation of IQuoteRepository.

    Returned quotes are detached domain objects; mutating them has no
    effect until ``save`` is called.
    """

    def __init__(self, session_factory: sessionmaker):
        """
        Initialize repository with a session factory.

        Args:
            session_factory: Factory producing sync sessions.
        """
        self._session_factory = session_factory

    # -------------------------------------------------------------------------
    # Mapping
    # -------------------------------------------------------------------------

    @staticmethod
    def _to_domain(record: QuoteRecord) -> Quote:
        data = {name: _row_value(getattr(record, name)) for name in QUOTE_COLUMNS}
        data["id"] = record.id
        data["version_id"] = record.version_id
        data["line_items"] = [
            LineItem(
                service_options=item.service_options,
                **{name: getattr(item, name) for name in LINE_ITEM_COLUMNS},
            )
            for item in record.line_items
        ]
        data["artwork_history"] = [
            ArtworkVersion(**{name: _row_value(getattr(v, name)) for name in ARTWORK_COLUMNS})
            for v in record.artwork_versions
        ]
        return Quote(**data)

    @staticmethod
    def _apply(record: QuoteRecord, quote: Quote) -> None:
        for name in QUOTE_COLUMNS:
            setattr(record, name, _column_value(getattr(quote, name)))

        existing = {row.id: row for row in record.line_items}
        rows = []
        for position, item in enumerate(quote.line_items):
            row = existing.get(item.id) or QuoteLineItemRecord(id=item.id)
            for name in LINE_ITEM_COLUMNS:
                setattr(row, name, _column_value(getattr(item, name)))
            row.position = position
            row.service_options = (
                item.service_options.model_dump(mode="json") if item.service_options else None
            )
            rows.append(row)
        record.line_items = rows

        # Artwork history is append-only
        for version in quote.artwork_history[len(record.artwork_versions):]:
            record.artwork_versions.append(ArtworkVersionRecord(
                **{name: _column_value(getattr(version, name)) for name in ARTWORK_COLUMNS}
            ))

    def _query(self):
        return select(QuoteRecord).options(
            selectinload(QuoteRecord.line_items),
            selectinload(QuoteRecord.artwork_versions),
        )

    def _get_one(self, *criteria) -> Optional[Quote]:
        with session_scope(self._session_factory) as session:
            record = session.execute(self._query().where(*criteria)).scalar_one_or_none()
            return self._to_domain(record) if record is not None else None

    # -------------------------------------------------------------------------
    # IQuoteRepository
    # -------------------------------------------------------------------------

    def get(self, quote_id: str) -> Optional[Quote]:
        return self._get_one(QuoteRecord.id == quote_id)

    def get_by_artwork_token(self, token: str) -> Optional[Quote]:
        return self._get_one(QuoteRecord.artwork_token == token)

    def get_by_access_token(self, token: str) -> Optional[Quote]:
        return self._get_one(QuoteRecord.access_token == token)

    def add(self, quote: Quote) -> None:
        with session_scope(self._session_factory) as session:
            record = QuoteRecord(id=quote.id, version_id=1)
            self._apply(record, quote)
            session.add(record)
        quote.version_id = 1
        logger.debug(f"Inserted quote {quote.quote_number}", extra={"quote_id": quote.id})

    def save(self, quote: Quote) -> None:
        try:
            with session_scope(self._session_factory) as session:
                record = session.execute(
                    self._query().where(QuoteRecord.id == quote.id)
                ).scalar_one_or_none()
                if record is None:
                    raise KeyError(f"Quote {quote.id} does not exist")
                if record.version_id != quote.version_id:
                    raise ConcurrentModificationError(quote.id)
                self._apply(record, quote)
                record.version_id = quote.version_id + 1
        except StaleDataError as exc:
            # Another transaction updated the row between our read and write
            raise ConcurrentModificationError(quote.id) from exc
        quote.version_id += 1

    def delete(self, quote_id: str) -> bool:
        with session_scope(self._session_factory) as session:
            record = session.execute(
                self._query().where(QuoteRecord.id == quote_id)
            ).scalar_one_or_none()
            if record is None:
                return False
            session.delete(record)
        return True

    def list(
        self,
        status: Optional[QuoteStatus] = None,
        customer_id: Optional[str] = None,
        owner_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Quote]:
        query = self._query()
        if status is not None:
            query = query.where(QuoteRecord.status == _column_value(status))
        if customer_id:
            query = query.where(QuoteRecord.customer_id == customer_id)
        if owner_id:
            query = query.where(QuoteRecord.owner_id == owner_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(or_(
                QuoteRecord.quote_number.ilike(pattern),
                QuoteRecord.title.ilike(pattern),
                QuoteRecord.customer_name.ilike(pattern),
                QuoteRecord.customer_email.ilike(pattern),
                QuoteRecord.customer_company.ilike(pattern),
            ))
        query = query.order_by(QuoteRecord.created_at.desc(), QuoteRecord.quote_number.desc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        with session_scope(self._session_factory) as session:
            return [self._to_domain(r) for r in session.execute(query).scalars().all()]

    def latest_quote_number(self, prefix: str) -> Optional[str]:
        # Longer numbers sort after shorter ones once the sequence passes 9999
        query = (
            select(QuoteRecord.quote_number)
            .where(QuoteRecord.quote_number.like(f"{prefix}%"))
            .order_by(func.length(QuoteRecord.quote_number).desc(), QuoteRecord.quote_number.desc())
            .limit(1)
        )
        with session_scope(self._session_factory) as session:
            return session.execute(query).scalar_one_or_none()
