"""
Database connection management for SynthVerify.

Provides database session management, connection handling, and transaction support.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import JSON, create_engine, event, text
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Session, sessionmaker

from synthverify.config import settings
from synthverify.models.db import Base

logger = logging.getLogger(__name__)


# Replace JSONB with JSON for SQLite compatibility
@event.listens_for(Base.metadata, "before_create")
def _set_json_type(target, connection, **kw):  # pragma: no cover - compat hook
    if connection.dialect.name == "postgresql":
        return
    for table in target.tables.values():
        for column in table.columns:
            if isinstance(column.type, postgresql.JSONB):
                column.type = JSON()


# Create engine instance (singleton pattern)
if settings.is_sqlite:
    engine = create_engine(
        settings.database_url,
        echo=False,
        connect_args={"check_same_thread": False},
        pool_pre_ping=True,
    )
else:
    engine = create_engine(
        settings.database_url,
        echo=False,
        pool_pre_ping=True,  # Verify connections before using
    )

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


@contextmanager
def db_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions with automatic cleanup.

    Yields:
        Session: A SQLAlchemy session

    Example:
        >>> with db_session() as db:
        >>>     repo = ItemRepository(db)
        >>>     repo.get("item-1")
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI to get database sessions with automatic cleanup.

    Yields:
        Session: A SQLAlchemy session
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)


def check_connection() -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        with db_session() as db:
            db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
