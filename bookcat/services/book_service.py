"""
Service for book CRUD across the database and local backends.

Adding a book can consult a metadata enricher first. Enrichment is best
effort: whatever the caller supplied always wins, and a failing enricher
never stops the book from being added.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..enrichment.base import MetadataEnricher
from ..exceptions import NotFoundError
from ..models import Book, BookFormData, BOOK_FORM_FIELDS, is_valid_year, new_id
from ..storage.base import StorageBackend
from ..storage.local import LocalBackend
from .gateway import GatewayService

logger = logging.getLogger(__name__)

# Fields an enricher may fill in when the caller left them empty
ENRICHABLE_FIELDS = (
    "genre", "holiday_category", "cover_image_url", "isbn",
    "publication_year", "description",
)


class BookService(GatewayService):
    """Add, list, edit and delete books."""

    def __init__(self, local: LocalBackend, database: Optional[StorageBackend] = None,
                 enricher: Optional[MetadataEnricher] = None):
        super().__init__(local, database)
        self.enricher = enricher

    async def get_books(self, user_id: Optional[str], catalog_id: str) -> List[Book]:
        """Books of one catalog, newest first."""
        return self.backend_for(user_id).list_books(user_id, catalog_id)

    async def get_book_by_id(self, user_id: Optional[str], book_id: str) -> Optional[Book]:
        return self.backend_for(user_id).get_book(user_id, book_id)

    async def _enrich(self, data: BookFormData) -> BookFormData:
        if self.enricher is None:
            return data

        try:
            suggested = await self.enricher.enrich(data.title, data.author)
        except Exception as e:
            logger.warning(f"Enrichment failed for '{data.title}': {e}")
            return data

        if not suggested:
            return data

        merged = BookFormData.from_dict(data.to_dict())
        for field_name in ENRICHABLE_FIELDS:
            if getattr(merged, field_name):
                continue
            value = suggested.get(field_name)
            if field_name == "publication_year" and not is_valid_year(value):
                continue
            if value:
                setattr(merged, field_name, value)
        return merged

    async def add_book(self, user_id: Optional[str], catalog_id: str,
                       data: BookFormData, auto_enrich: bool = True) -> Book:
        """
        Add a book to a catalog.

        Args:
            user_id: Acting user, or None in guest mode
            catalog_id: Catalog receiving the book
            data: Caller-supplied fields
            auto_enrich: Look up missing metadata first; skipped when the
                caller already supplied a cover image

        Returns:
            The stored Book

        Raises:
            ValueError: If title/author are missing or the year is invalid
            NotFoundError: If the catalog does not exist for this caller
        """
        data.validate()

        backend = self.backend_for(user_id)
        if backend.get_catalog(user_id, catalog_id) is None:
            raise NotFoundError("catalog", catalog_id)

        if auto_enrich and not data.cover_image_url:
            data = await self._enrich(data)

        book = Book(
            id=new_id(),
            user_id=self.owner(backend, user_id),
            catalog_id=catalog_id,
            title=data.title.strip(),
            author=data.author.strip(),
            genre=data.genre or None,
            holiday_category=data.holiday_category or None,
            cover_image_url=data.cover_image_url or None,
            isbn=data.isbn or None,
            publication_year=data.publication_year or None,
            description=data.description or None,
            tags=list(data.tags or []),
            is_manually_edited=False,
            is_favorite=False,
            is_read=False,
        )
        created = backend.insert_book(book)
        logger.info(f"Added book '{created.title}' to catalog {catalog_id}")
        return created

    async def update_book(self, user_id: Optional[str], book_id: str,
                          updates: Dict[str, Any]) -> Book:
        """
        Edit a book. Any edit marks the book as manually edited.

        Raises:
            ValueError: For unknown fields or invalid values
            NotFoundError: If the book does not exist for this caller
        """
        unknown = set(updates) - set(BOOK_FORM_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update book fields: {', '.join(sorted(unknown))}")

        changes = dict(updates)
        for required in ("title", "author"):
            if required in changes:
                changes[required] = (changes[required] or "").strip()
                if not changes[required]:
                    raise ValueError(f"Book {required} is required")
        year = changes.get("publication_year")
        if year is not None and not is_valid_year(year):
            raise ValueError(f"Invalid publication year: {year}")
        if "tags" in changes:
            changes["tags"] = list(changes["tags"] or [])

        changes["is_manually_edited"] = True
        return self.backend_for(user_id).update_book(user_id, book_id, changes)

    async def delete_book(self, user_id: Optional[str], book_id: str) -> None:
        self.backend_for(user_id).delete_book(user_id, book_id)
        logger.info(f"Deleted book {book_id}")

    async def _toggle(self, user_id: Optional[str], book_id: str, flag: str) -> Book:
        backend = self.backend_for(user_id)
        book = backend.get_book(user_id, book_id)
        if book is None:
            raise NotFoundError("book", book_id)
        return backend.update_book(user_id, book_id, {flag: not getattr(book, flag)})

    async def toggle_favorite(self, user_id: Optional[str], book_id: str) -> Book:
        return await self._toggle(user_id, book_id, "is_favorite")

    async def toggle_read(self, user_id: Optional[str], book_id: str) -> Book:
        return await self._toggle(user_id, book_id, "is_read")

    async def suggest_book(self, existing_books: Sequence[Book]) -> Optional[BookFormData]:
        """Ask the enricher for a book that is not in ``existing_books``."""
        if self.enricher is None:
            return None
        try:
            suggestion = await self.enricher.suggest(existing_books)
        except Exception as e:
            logger.warning(f"Book suggestion failed: {e}")
            return None
        if not suggestion or not suggestion.get("title"):
            return None
        suggestion.setdefault("author", "Unknown Author")
        return BookFormData.from_dict(suggestion)
