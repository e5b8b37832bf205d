"""
Database session management for bookcat.

Provides session factory and initialization utilities.
"""

from typing import Optional
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.engine import Engine

from .models import Base

# Global session factory
_SessionFactory: Optional[sessionmaker] = None
_engine: Optional[Engine] = None


def init_db(database_url: str, echo: bool = False) -> Engine:
    """
    Initialize database and create all tables.

    Args:
        database_url: SQLAlchemy URL (e.g. sqlite:///catalog.db)
        echo: If True, log all SQL statements (debug mode)

    Returns:
        SQLAlchemy engine
    """
    global _engine, _SessionFactory

    _engine = create_engine(database_url, echo=echo)

    if _engine.dialect.name == 'sqlite':
        # Catalog deletes cascade to books through the foreign key
        @event.listens_for(_engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    Base.metadata.create_all(_engine)

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    return _engine


def get_session() -> Session:
    """
    Get a new database session.

    Returns:
        SQLAlchemy session

    Raises:
        RuntimeError: If database not initialized
    """
    if _SessionFactory is None:
        raise RuntimeError(
            "Database not initialized. Call init_db() first."
        )
    return _SessionFactory()


@contextmanager
def session_scope():
    """
    Provide a transactional scope around a series of operations.

    Usage:
        with session_scope() as session:
            session.add(row)
            # Automatically commits or rolls back
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def close_db():
    """Close database connection and cleanup."""
    global _engine, _SessionFactory

    if _engine:
        _engine.dispose()
        _engine = None

    _SessionFactory = None
