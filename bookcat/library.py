"""
Bookshelf: wires bookcat services together from configuration.

Usage:
    shelf = Bookshelf.open(load_config())
    catalogs = await shelf.catalogs.get_catalogs(user_id=None)
    result = await shelf.importer.import_from_file("books.csv")
    await shelf.importer.commit_import(shelf.books, None, catalogs[0].id, result)
    shelf.close()
"""

import logging
from typing import Optional

from .config import BookcatConfig
from .db.session import init_db, close_db
from .enrichment.base import MetadataEnricher
from .enrichment.google_books import GoogleBooksEnricher
from .services.book_service import BookService
from .services.catalog_service import CatalogService
from .services.export_service import ExportService
from .services.import_service import ImportService
from .storage.base import StorageBackend
from .storage.database import DatabaseBackend
from .storage.local import JsonFileStore, LocalBackend

logger = logging.getLogger(__name__)


class Bookshelf:
    """Entry point holding the catalog, book, import and export services."""

    def __init__(self, local: LocalBackend, database: Optional[StorageBackend] = None,
                 enricher: Optional[MetadataEnricher] = None):
        self.local = local
        self.database = database
        self.enricher = enricher
        self.catalogs = CatalogService(local, database)
        self.books = BookService(local, database, enricher=enricher)
        self.importer = ImportService()
        self.exporter = ExportService()
        self._owns_db = False

    @classmethod
    def open(cls, config: Optional[BookcatConfig] = None) -> 'Bookshelf':
        """
        Build a Bookshelf from configuration.

        Args:
            config: Settings to use (defaults to BookcatConfig())

        Returns:
            Bookshelf instance; call close() when done
        """
        config = config or BookcatConfig()

        local_path = config.storage.resolved_local_path()
        local = LocalBackend(JsonFileStore(local_path))

        database = None
        if config.storage.database_url:
            init_db(config.storage.database_url, echo=config.storage.echo_sql)
            database = DatabaseBackend()

        enricher = None
        if config.enrichment.enabled:
            enricher = GoogleBooksEnricher(
                api_key=config.enrichment.api_key,
                base_url=config.enrichment.base_url,
                timeout=config.enrichment.timeout,
                rate_limit=config.enrichment.rate_limit,
            )

        shelf = cls(local, database, enricher)
        shelf._owns_db = database is not None
        logger.info(
            f"Opened bookshelf (local store: {local_path}, "
            f"database: {'configured' if database else 'none'}, "
            f"enrichment: {'on' if enricher else 'off'})"
        )
        return shelf

    def close(self):
        """Release the database connection if this Bookshelf opened it."""
        if self._owns_db:
            close_db()
            self._owns_db = False
        logger.info("Closed bookshelf")
