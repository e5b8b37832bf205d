"""
Base class for book metadata enrichers.

An enricher looks up bibliographic data for a title/author pair. Results are
best effort: an enricher returns an empty dict rather than raising when the
lookup service is unavailable.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

from ..models import Book


class MetadataEnricher(ABC):
    """Source of suggested book metadata."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def enrich(self, title: str, author: str) -> Dict[str, Any]:
        """
        Look up metadata for a book.

        Returns:
            Dictionary using BookFormData field names (title, author, genre,
            holiday_category, cover_image_url, isbn, publication_year,
            description). Missing keys mean no suggestion.
        """
        pass

    async def suggest(self, existing_books: Sequence[Book]) -> Optional[Dict[str, Any]]:
        """Suggest a book not already in ``existing_books``, if supported."""
        return None
