"""
Database module for bookcat.

Provides SQLAlchemy models, session management and initialization for the
database storage backend.
"""

from .models import Base, CatalogRow, BookRow
from .session import get_session, init_db, close_db, session_scope

__all__ = [
    'Base',
    'CatalogRow',
    'BookRow',
    'get_session',
    'init_db',
    'close_db',
    'session_scope',
]
