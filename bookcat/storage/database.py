"""
Database storage backend for signed-in users.

Every query is filtered on both the record id and the acting user id, so a
user can never read or change another user's rows even with a guessed id.
Database errors propagate unchanged; there is no retry.
"""

import logging
from contextlib import AbstractContextManager
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from ..db.models import BookRow, CatalogRow
from ..db.session import session_scope
from ..exceptions import NotFoundError
from ..models import Book, Catalog, utcnow
from .base import StorageBackend

logger = logging.getLogger(__name__)


class DatabaseBackend(StorageBackend):
    """SQLAlchemy-backed storage scoped by user id."""

    def __init__(self, scope: Callable[[], AbstractContextManager] = session_scope):
        """
        Args:
            scope: Factory for a transactional session context; defaults to
                the module-level session_scope()
        """
        self.scope = scope

    @property
    def name(self) -> str:
        return "database"

    @staticmethod
    def _require_user(user_id: Optional[str]) -> str:
        if not user_id:
            raise ValueError("The database backend requires a user id")
        return user_id

    @staticmethod
    def _catalog_row(session: Session, user_id: str, catalog_id: str) -> Optional[CatalogRow]:
        return (session.query(CatalogRow)
                .filter_by(id=catalog_id, user_id=user_id)
                .first())

    @staticmethod
    def _book_row(session: Session, user_id: str, book_id: str) -> Optional[BookRow]:
        return (session.query(BookRow)
                .filter_by(id=book_id, user_id=user_id)
                .first())

    # Catalogs

    def list_catalogs(self, user_id: Optional[str]) -> List[Catalog]:
        user_id = self._require_user(user_id)
        with self.scope() as session:
            rows = (session.query(CatalogRow)
                    .filter_by(user_id=user_id)
                    .order_by(CatalogRow.created_at.asc())
                    .all())
            return [row.to_record() for row in rows]

    def get_catalog(self, user_id: Optional[str], catalog_id: str) -> Optional[Catalog]:
        user_id = self._require_user(user_id)
        with self.scope() as session:
            row = self._catalog_row(session, user_id, catalog_id)
            return row.to_record() if row else None

    def insert_catalog(self, catalog: Catalog) -> Catalog:
        self._require_user(catalog.user_id)
        with self.scope() as session:
            row = CatalogRow(
                id=catalog.id,
                user_id=catalog.user_id,
                name=catalog.name,
                description=catalog.description,
                icon=catalog.icon,
                color=catalog.color,
                created_at=catalog.created_at,
                updated_at=catalog.updated_at,
            )
            session.add(row)
            session.flush()
            return row.to_record()

    def update_catalog(self, user_id: Optional[str], catalog_id: str,
                       changes: Dict[str, Any]) -> Catalog:
        user_id = self._require_user(user_id)
        with self.scope() as session:
            row = self._catalog_row(session, user_id, catalog_id)
            if row is None:
                raise NotFoundError("catalog", catalog_id)
            for key, value in changes.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.flush()
            return row.to_record()

    def delete_catalog(self, user_id: Optional[str], catalog_id: str) -> None:
        user_id = self._require_user(user_id)
        with self.scope() as session:
            row = self._catalog_row(session, user_id, catalog_id)
            if row is None:
                raise NotFoundError("catalog", catalog_id)
            (session.query(BookRow)
             .filter_by(catalog_id=catalog_id, user_id=user_id)
             .delete(synchronize_session=False))
            session.delete(row)

    # Books

    def list_books(self, user_id: Optional[str], catalog_id: str) -> List[Book]:
        user_id = self._require_user(user_id)
        with self.scope() as session:
            rows = (session.query(BookRow)
                    .filter_by(user_id=user_id, catalog_id=catalog_id)
                    .order_by(BookRow.created_at.desc())
                    .all())
            return [row.to_record() for row in rows]

    def get_book(self, user_id: Optional[str], book_id: str) -> Optional[Book]:
        user_id = self._require_user(user_id)
        with self.scope() as session:
            row = self._book_row(session, user_id, book_id)
            return row.to_record() if row else None

    def insert_book(self, book: Book) -> Book:
        self._require_user(book.user_id)
        with self.scope() as session:
            row = BookRow(
                id=book.id,
                user_id=book.user_id,
                catalog_id=book.catalog_id,
                title=book.title,
                author=book.author,
                genre=book.genre,
                holiday_category=book.holiday_category,
                cover_image_url=book.cover_image_url,
                isbn=book.isbn,
                publication_year=book.publication_year,
                description=book.description,
                tags=list(book.tags or []),
                is_manually_edited=book.is_manually_edited,
                is_favorite=book.is_favorite,
                is_read=book.is_read,
                created_at=book.created_at,
                updated_at=book.updated_at,
            )
            session.add(row)
            session.flush()
            return row.to_record()

    def update_book(self, user_id: Optional[str], book_id: str,
                    changes: Dict[str, Any]) -> Book:
        user_id = self._require_user(user_id)
        with self.scope() as session:
            row = self._book_row(session, user_id, book_id)
            if row is None:
                raise NotFoundError("book", book_id)
            for key, value in changes.items():
                if key == 'tags':
                    value = list(value or [])
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.flush()
            return row.to_record()

    def delete_book(self, user_id: Optional[str], book_id: str) -> None:
        user_id = self._require_user(user_id)
        with self.scope() as session:
            row = self._book_row(session, user_id, book_id)
            if row is None:
                raise NotFoundError("book", book_id)
            session.delete(row)
