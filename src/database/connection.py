"""
Database Connection Module

Provides synchronous session management for the quote database.

Usage:
    factory = create_session_factory(get_database_settings())
    init_schema(factory)

    with session_scope(factory) as session:
        result = session.execute(query)
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool, QueuePool

from config.database import DatabaseSettings

from .models import Base

logger = logging.getLogger(__name__)


def create_db_engine(settings: DatabaseSettings) -> Engine:
    """
    Create a new SQLAlchemy engine for the given settings.

    Args:
        settings: Database settings.

    Returns:
        Engine: Synchronous SQLAlchemy engine.
    """
    logger.info("Creating database engine", extra={"database_url": settings.url.split("@")[-1]})

    # Pool configuration differs for SQLite vs PostgreSQL
    if settings.is_sqlite:
        _ensure_sqlite_directory(settings.url)
        pool_class = NullPool
        pool_kwargs = {}
    else:
        pool_class = QueuePool
        pool_kwargs = {
            "pool_size": settings.pool_size,
            "max_overflow": settings.max_overflow,
            "pool_timeout": settings.pool_timeout,
            "pool_recycle": settings.pool_recycle,
            "pool_pre_ping": settings.pool_pre_ping,
        }

    return create_engine(
        settings.url,
        echo=settings.echo_sql,
        poolclass=pool_class,
        **pool_kwargs,
    )


def _ensure_sqlite_directory(url: str) -> None:
    path = url.split("///", 1)[-1]
    if path and path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)


def create_session_factory(settings: DatabaseSettings) -> sessionmaker:
    """Build an independent session factory (used by tests and tools)."""
    return sessionmaker(
        bind=create_db_engine(settings),
        expire_on_commit=False,
        autoflush=False,
    )



@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Transactional scope around a series of operations.

    Yields:
        Session: commits on success, rolls back on error.
    """
    session = session_factory()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_schema(session_factory: sessionmaker) -> None:
    """Create every table that does not exist yet."""
    Base.metadata.create_all(session_factory.kw["bind"])
    logger.info("Database schema initialized")
