"""
In-memory filtering and random selection over a list of books.

Both functions are pure: they never touch storage and never mutate their
inputs.
"""

import random
from typing import List, Optional, Sequence

from ..models import Book, FilterOptions


def filter_books(books: Sequence[Book], filters: Optional[FilterOptions] = None) -> List[Book]:
    """
    Narrow ``books`` by every active predicate in ``filters``.

    Passes run in a fixed order: favorites, read, unread, genre, holiday,
    tags, search. Genre and holiday are exact matches, tags keep a book
    sharing at least one tag with the filter, and search is a
    case-insensitive substring match on title, author or description.

    Args:
        books: Books to filter
        filters: Active predicates; None or empty fields impose nothing

    Returns:
        New list with the matching books in their original order
    """
    filtered = list(books)
    if filters is None:
        return filtered

    if filters.favorites:
        filtered = [book for book in filtered if book.is_favorite]

    if filters.read:
        filtered = [book for book in filtered if book.is_read]

    if filters.unread:
        filtered = [book for book in filtered if not book.is_read]

    if filters.genre:
        filtered = [book for book in filtered if book.genre == filters.genre]

    if filters.holiday_category:
        filtered = [book for book in filtered
                    if book.holiday_category == filters.holiday_category]

    if filters.tags:
        wanted = set(filters.tags)
        filtered = [book for book in filtered if wanted.intersection(book.tags or [])]

    if filters.search:
        query = filters.search.lower()
        filtered = [
            book for book in filtered
            if query in book.title.lower()
            or query in book.author.lower()
            or query in (book.description or "").lower()
        ]

    return filtered


def pick_random(books: Sequence[Book], rng: Optional[random.Random] = None) -> Optional[Book]:
    """Pick one book uniformly at random, or None when there are none."""
    if not books:
        return None
    rng = rng or random
    return books[rng.randrange(len(books))]
