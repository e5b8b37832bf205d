"""
Device-local storage backend used in guest mode.

Catalogs and books are each kept as one JSON blob in a key/value store.
Every mutation reads the whole collection, changes it and writes it back,
so two writers sharing a store overwrite each other (last writer wins).
There is no ownership check: a local store belongs to a single guest.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..exceptions import NotFoundError
from ..models import Book, Catalog, utcnow
from .base import StorageBackend

logger = logging.getLogger(__name__)

CATALOGS_KEY = 'guest_catalogs'
BOOKS_KEY = 'guest_books'
ACTIVE_CATALOG_KEY = 'active_catalog_id'


class KeyValueStore(ABC):
    """Whole-value get/set by string key."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass


class MemoryStore(KeyValueStore):
    """Process-local store, mostly for tests and throwaway sessions."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """One file per key inside a directory on this device."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding='utf-8')

    def set(self, key: str, value: str) -> None:
        # Write then rename so a crash never leaves a half-written blob
        path = self._path(key)
        tmp_path = path.parent / f"{path.name}.tmp"
        tmp_path.write_text(value, encoding='utf-8')
        tmp_path.replace(path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class LocalBackend(StorageBackend):
    """Guest-mode backend over a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    @property
    def name(self) -> str:
        return "local"

    # Blob access

    def _load(self, key: str) -> List[Dict[str, Any]]:
        try:
            stored = self.store.get(key)
            if not stored:
                return []
            data = json.loads(stored)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable local data under '{key}': {e}")
            return []
        if not isinstance(data, list):
            logger.warning(f"Ignoring malformed local data under '{key}'")
            return []
        return data

    def _save(self, key: str, items: List[Dict[str, Any]]) -> None:
        self.store.set(key, json.dumps(items, ensure_ascii=False))

    def _records(self, key: str, factory) -> list:
        records = []
        for item in self._load(key):
            try:
                records.append(factory(item))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed local record under '{key}': {e!r}")
        return records

    def _catalogs(self) -> List[Catalog]:
        return self._records(CATALOGS_KEY, Catalog.from_dict)

    def _save_catalogs(self, catalogs: List[Catalog]) -> None:
        self._save(CATALOGS_KEY, [c.to_dict() for c in catalogs])

    def _books(self) -> List[Book]:
        return self._records(BOOKS_KEY, Book.from_dict)

    def _save_books(self, books: List[Book]) -> None:
        self._save(BOOKS_KEY, [b.to_dict() for b in books])

    # Active catalog pointer

    def get_active_catalog_id(self) -> Optional[str]:
        return self.store.get(ACTIVE_CATALOG_KEY) or None

    def set_active_catalog_id(self, catalog_id: str) -> None:
        self.store.set(ACTIVE_CATALOG_KEY, catalog_id)

    # Catalogs

    def list_catalogs(self, user_id: Optional[str]) -> List[Catalog]:
        return self._catalogs()

    def get_catalog(self, user_id: Optional[str], catalog_id: str) -> Optional[Catalog]:
        return next((c for c in self._catalogs() if c.id == catalog_id), None)

    def insert_catalog(self, catalog: Catalog) -> Catalog:
        catalogs = self._catalogs()
        catalog.user_id = None
        catalogs.append(catalog)
        self._save_catalogs(catalogs)

        if len(catalogs) == 1:
            self.set_active_catalog_id(catalog.id)

        return catalog

    def update_catalog(self, user_id: Optional[str], catalog_id: str,
                       changes: Dict[str, Any]) -> Catalog:
        catalogs = self._catalogs()
        for catalog in catalogs:
            if catalog.id == catalog_id:
                for key, value in changes.items():
                    setattr(catalog, key, value)
                catalog.updated_at = utcnow()
                self._save_catalogs(catalogs)
                return catalog
        raise NotFoundError("catalog", catalog_id)

    def delete_catalog(self, user_id: Optional[str], catalog_id: str) -> None:
        catalogs = self._catalogs()
        remaining = [c for c in catalogs if c.id != catalog_id]
        if len(remaining) == len(catalogs):
            raise NotFoundError("catalog", catalog_id)

        self._save_catalogs(remaining)

        books = self._books()
        kept = [b for b in books if b.catalog_id != catalog_id]
        if len(kept) != len(books):
            self._save_books(kept)

        if self.get_active_catalog_id() == catalog_id:
            if remaining:
                self.set_active_catalog_id(remaining[0].id)
            else:
                self.store.remove(ACTIVE_CATALOG_KEY)

    # Books

    def list_books(self, user_id: Optional[str], catalog_id: str) -> List[Book]:
        books = [b for b in self._books() if b.catalog_id == catalog_id]
        # Stored in insertion order
        books.reverse()
        return books

    def get_book(self, user_id: Optional[str], book_id: str) -> Optional[Book]:
        return next((b for b in self._books() if b.id == book_id), None)

    def insert_book(self, book: Book) -> Book:
        books = self._books()
        book.user_id = None
        books.append(book)
        self._save_books(books)
        return book

    def update_book(self, user_id: Optional[str], book_id: str,
                    changes: Dict[str, Any]) -> Book:
        books = self._books()
        for book in books:
            if book.id == book_id:
                for key, value in changes.items():
                    setattr(book, key, value)
                book.updated_at = utcnow()
                self._save_books(books)
                return book
        raise NotFoundError("book", book_id)

    def delete_book(self, user_id: Optional[str], book_id: str) -> None:
        books = self._books()
        remaining = [b for b in books if b.id != book_id]
        if len(remaining) == len(books):
            raise NotFoundError("book", book_id)
        self._save_books(remaining)

    def clear(self) -> None:
        """Remove all guest data from the store."""
        for key in (CATALOGS_KEY, BOOKS_KEY, ACTIVE_CATALOG_KEY):
            self.store.remove(key)
