"""
SQLAlchemy ORM Models for the Quote Database.

Architecture:
- Primary Keys: string UUIDs for all tables (globally unique)
- Secondary Keys: quote_number, access_token and artwork_token are unique
- Monetary values: Numeric(18, 6) so stored inputs round-trip exactly;
  rounding to cents happens in the pricing layer
- Quotes carry a version_id counter for optimistic locking
- Line items and artwork versions belong to their quote and are deleted
  with it; audit and notification logs are not linked by foreign key and
  outlive the quote
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator


# Cross-database compatible JSON type
# Uses JSONB on PostgreSQL, JSON on SQLite/others
class JSONB(TypeDecorator):
    """A portable JSONB type that works with both PostgreSQL and SQLite."""
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PG_JSONB())
        else:
            return dialect.type_descriptor(JSON())


Base = declarative_base()

MONEY = Numeric(18, 6)


# =============================================================================
# DIRECTORY
# =============================================================================

class CustomerRecord(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True)
    contact_name = Column(String(255))
    email = Column(String(320), index=True)
    company_name = Column(String(255))
    phone = Column(String(50))
    created_at = Column(DateTime(timezone=True))


class UserRecord(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    name = Column(String(255))
    email = Column(String(320), unique=True)
    role = Column(String(20), nullable=False, default="ADMIN")
    created_at = Column(DateTime(timezone=True))


# =============================================================================
# QUOTES
# =============================================================================

class QuoteRecord(Base):
    __tablename__ = "quotes"

    id = Column(String(36), primary_key=True)
    quote_number = Column(String(32), nullable=False)
    title = Column(String(255))
    status = Column(String(20), nullable=False, default="PENDING")

    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="SET NULL"))
    customer_name = Column(String(255))
    customer_email = Column(String(320))
    customer_phone = Column(String(50))
    customer_company = Column(String(255))

    owner_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"))
    created_by_id = Column(String(36))

    subtotal = Column(MONEY, nullable=False, default=0)
    discount_value = Column(MONEY, nullable=False, default=0)
    discount_type = Column(String(20), nullable=False, default="FIXED")
    discount = Column(MONEY, nullable=False, default=0)
    tax_rate = Column(MONEY, nullable=False, default=0)
    tax = Column(MONEY, nullable=False, default=0)
    shipping = Column(MONEY, nullable=False, default=0)
    total = Column(MONEY, nullable=False, default=0)

    notes = Column(Text)
    internal_notes = Column(Text)
    valid_until = Column(Date)
    requested_delivery_date = Column(Date)

    access_token = Column(String(128), unique=True)

    artwork_required = Column(Boolean, nullable=False, default=False)
    artwork_url = Column(Text)
    artwork_file_name = Column(String(255))
    artwork_version = Column(Integer, nullable=False, default=0)
    artwork_token = Column(String(128), unique=True)
    artwork_sent_at = Column(DateTime(timezone=True))
    artwork_approved_at = Column(DateTime(timezone=True))
    artwork_declined_at = Column(DateTime(timezone=True))
    artwork_notes = Column(Text)

    created_at = Column(DateTime(timezone=True), nullable=False)
    last_modified_at = Column(DateTime(timezone=True), nullable=False)
    sent_at = Column(DateTime(timezone=True))
    approved_at = Column(DateTime(timezone=True))
    declined_at = Column(DateTime(timezone=True))

    version_id = Column(Integer, nullable=False, default=1)

    line_items = relationship(
        "QuoteLineItemRecord",
        order_by="QuoteLineItemRecord.position",
        cascade="all, delete-orphan",
    )
    artwork_versions = relationship(
        "ArtworkVersionRecord",
        order_by="ArtworkVersionRecord.version",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("quote_number", name="uq_quotes_quote_number"),
        Index("ix_quotes_status", "status"),
        Index("ix_quotes_customer_id", "customer_id"),
        Index("ix_quotes_owner_id", "owner_id"),
        Index("ix_quotes_created_at", "created_at"),
    )

    # Counter is bumped by the repository; the UPDATE is conditional on the old value
    __mapper_args__ = {"version_id_col": version_id, "version_id_generator": False}


class QuoteLineItemRecord(Base):
    __tablename__ = "quote_line_items"

    id = Column(String(36), primary_key=True)
    quote_id = Column(String(36), ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    item_type = Column(String(20), nullable=False, default="PRODUCT")
    name = Column(String(255), nullable=False)
    description = Column(Text)
    sku = Column(String(100))
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(MONEY, nullable=False, default=0)
    discount = Column(MONEY, nullable=False, default=0)
    total = Column(MONEY, nullable=False, default=0)
    product_id = Column(String(36))
    supplier_id = Column(String(36))
    service_options = Column(JSONB)


class ArtworkVersionRecord(Base):
    """A superseded or removed artwork version."""
    __tablename__ = "artwork_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quote_id = Column(String(36), ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    url = Column(Text, nullable=False)
    file_name = Column(String(255), nullable=False, default="")
    status = Column(String(20), nullable=False, default="PENDING")
    sent_at = Column(DateTime(timezone=True))
    approved_at = Column(DateTime(timezone=True))
    declined_at = Column(DateTime(timezone=True))
    notes = Column(Text)
    archived_at = Column(DateTime(timezone=True), nullable=False)


# =============================================================================
# AUDIT
# =============================================================================

class QuoteAuditLogRecord(Base):
    """
    Append-only audit entries.

    ``sequence`` breaks ties between entries written in the same clock tick.
    """
    __tablename__ = "quote_audit_logs"

    sequence = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), nullable=False, unique=True)
    quote_id = Column(String(36), nullable=False)
    action = Column(String(40), nullable=False)
    description = Column(Text, nullable=False)
    actor_type = Column(String(20), nullable=False)
    actor_id = Column(String(36))
    actor_name = Column(String(255))
    actor_email = Column(String(320))
    previous_value = Column(JSONB)
    new_value = Column(JSONB)
    metadata_ = Column("metadata", JSONB)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_quote_audit_logs_quote_created", "quote_id", "created_at"),
    )


# =============================================================================
# NOTIFICATIONS
# =============================================================================

class NotificationSettingRecord(Base):
    __tablename__ = "notification_settings"

    type = Column(String(40), primary_key=True)
    name = Column(String(255), nullable=False, default="")
    description = Column(Text)
    enabled = Column(Boolean, nullable=False, default=False)
    channel = Column(String(10), nullable=False, default="EMAIL")
    recipient_emails = Column(JSONB)
    subject = Column(Text)
    body_template = Column(Text)


class NotificationLogRecord(Base):
    __tablename__ = "notification_logs"

    sequence = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), nullable=False, unique=True)
    type = Column(String(40), nullable=False)
    channel = Column(String(10), nullable=False)
    recipient = Column(String(320), nullable=False)
    subject = Column(Text, nullable=False)
    status = Column(String(20), nullable=False)
    error_message = Column(Text)
    message_id = Column(String(255))
    quote_id = Column(String(36), index=True)
    customer_id = Column(String(36))
    user_id = Column(String(36))
    created_at = Column(DateTime(timezone=True), nullable=False)
    sent_at = Column(DateTime(timezone=True))
