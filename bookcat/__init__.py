"""
bookcat - personal book catalogs with CSV/HTML import and export.

Main API:
    from bookcat import Bookshelf, BookFormData, FilterOptions, filter_books
    from bookcat.config import load_config

    shelf = Bookshelf.open(load_config())

    # Guest mode (user_id=None) keeps everything in the local store;
    # a user id routes to the configured database backend.
    catalogs = await shelf.catalogs.get_catalogs(None)
    book = await shelf.books.add_book(
        None, catalogs[0].id,
        BookFormData(title="Dune", author="Frank Herbert"),
    )

    # Import preview, then commit
    result = await shelf.importer.import_from_file("export.csv")
    if result.success:
        await shelf.importer.commit_import(shelf.books, None, catalogs[0].id, result)

    # Filter and export
    books = await shelf.books.get_books(None, catalogs[0].id)
    unread = filter_books(books, FilterOptions(unread=True))
    artifact = shelf.exporter.export_books(unread, "csv", filename="unread")

    shelf.close()
"""

from .library import Bookshelf
from .models import Book, BookFormData, Catalog, FilterOptions, ImportResult
from .services.filter_service import filter_books, pick_random

__version__ = "0.1.0"
__all__ = [
    "Bookshelf",
    "Book",
    "BookFormData",
    "Catalog",
    "FilterOptions",
    "ImportResult",
    "filter_books",
    "pick_random",
]
