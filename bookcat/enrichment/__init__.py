"""
Metadata enrichment for bookcat.

Enrichers suggest bibliographic data (genre, cover, ISBN, year,
description) for books added to a catalog. Only Google Books is bundled.
"""

from .base import MetadataEnricher
from .google_books import GoogleBooksEnricher, classify_genre, detect_holiday_category

__all__ = [
    'MetadataEnricher',
    'GoogleBooksEnricher',
    'classify_genre',
    'detect_holiday_category',
]
