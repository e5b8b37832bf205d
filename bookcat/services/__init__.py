"""
Services for bookcat business logic.

Provides a unified service layer for all bookcat operations.
"""

from .catalog_service import CatalogService
from .book_service import BookService
from .import_service import ImportService
from .export_service import ExportService
from .filter_service import filter_books, pick_random

__all__ = [
    # Persistence
    'CatalogService',
    'BookService',

    # Interchange
    'ImportService',
    'ExportService',

    # In-memory helpers
    'filter_books',
    'pick_random',
]
