"""
Abstract storage contract shared by the bookcat backends.

The services depend only on this interface. Each method takes the acting
user identity; backends that have no notion of ownership ignore it.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models import Book, Catalog


class StorageBackend(ABC):
    """CRUD operations for catalogs and books."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short backend name used in log messages."""
        pass

    @abstractmethod
    def list_catalogs(self, user_id: Optional[str]) -> List[Catalog]:
        """Return the user's catalogs, oldest first."""
        pass

    @abstractmethod
    def get_catalog(self, user_id: Optional[str], catalog_id: str) -> Optional[Catalog]:
        pass

    @abstractmethod
    def insert_catalog(self, catalog: Catalog) -> Catalog:
        pass

    @abstractmethod
    def update_catalog(self, user_id: Optional[str], catalog_id: str,
                       changes: Dict[str, Any]) -> Catalog:
        """
        Apply ``changes`` to a catalog and refresh its update timestamp.

        Raises:
            NotFoundError: If the catalog does not exist for this user
        """
        pass

    @abstractmethod
    def delete_catalog(self, user_id: Optional[str], catalog_id: str) -> None:
        """
        Delete a catalog together with its books.

        Raises:
            NotFoundError: If the catalog does not exist for this user
        """
        pass

    @abstractmethod
    def list_books(self, user_id: Optional[str], catalog_id: str) -> List[Book]:
        """Return the books of one catalog, newest first."""
        pass

    @abstractmethod
    def get_book(self, user_id: Optional[str], book_id: str) -> Optional[Book]:
        pass

    @abstractmethod
    def insert_book(self, book: Book) -> Book:
        pass

    @abstractmethod
    def update_book(self, user_id: Optional[str], book_id: str,
                    changes: Dict[str, Any]) -> Book:
        """
        Apply ``changes`` to a book and refresh its update timestamp.

        Raises:
            NotFoundError: If the book does not exist for this user
        """
        pass

    @abstractmethod
    def delete_book(self, user_id: Optional[str], book_id: str) -> None:
        """
        Raises:
            NotFoundError: If the book does not exist for this user
        """
        pass
