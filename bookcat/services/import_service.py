"""
Import service for loading catalog files.

Detects whether an uploaded file is CSV or HTML, decodes it into a preview
(ImportResult) and, once the caller accepts the preview, commits the records
one by one through the BookService.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Union

from ..codecs.csv_codec import decode_csv
from ..codecs.html_codec import decode_html
from ..models import ImportFormat, ImportResult, ImportSummary
from .book_service import BookService

logger = logging.getLogger(__name__)

UNSUPPORTED_FORMAT_MESSAGE = (
    "Unsupported file format. Please upload a CSV or HTML file exported from this application."
)

ProgressCallback = Callable[[int, int], None]


class ImportService:
    """Service for importing catalog files."""

    @staticmethod
    def detect_format(content: str, filename: str) -> ImportFormat:
        """
        Work out the format of an import file.

        The filename extension wins; the content is only sniffed when the
        extension says nothing.
        """
        lower_name = (filename or '').lower()

        if lower_name.endswith('.csv'):
            return ImportFormat.CSV

        if lower_name.endswith(('.html', '.htm')):
            return ImportFormat.HTML

        head = content.lstrip().lower()
        if head.startswith('<!doctype html') or head.startswith('<html'):
            return ImportFormat.HTML

        if 'Title,Author' in content or '"Title","Author"' in content:
            return ImportFormat.CSV

        return ImportFormat.UNKNOWN

    def import_content(self, content: Optional[str], filename: str) -> ImportResult:
        """
        Decode already-read file content.

        Never raises; every failure is reported in ``errors``.
        """
        if not content:
            return ImportResult.failure("File is empty")

        file_format = self.detect_format(content, filename)
        logger.debug(f"Detected {file_format.value} format for {filename}")

        try:
            if file_format == ImportFormat.CSV:
                result = decode_csv(content)
            elif file_format == ImportFormat.HTML:
                result = decode_html(content)
            else:
                result = ImportResult.failure(UNSUPPORTED_FORMAT_MESSAGE)
        except Exception as e:
            logger.error(f"Unexpected error importing {filename}: {e}", exc_info=True)
            return ImportResult.failure(f"Failed to read file: {e}")

        logger.info(
            f"Parsed {filename}: {result.valid_records}/{result.total_records} records, "
            f"{len(result.warnings)} warnings, {len(result.errors)} errors"
        )
        return result

    async def import_bytes(self, data: bytes, filename: str) -> ImportResult:
        """Decode uploaded bytes as UTF-8 (BOM tolerated) and import them."""
        content = data.decode('utf-8-sig', errors='replace') if data else ''
        return self.import_content(content, filename)

    async def import_from_file(self, path: Union[str, Path]) -> ImportResult:
        """
        Read a file without blocking the event loop and import it.

        Never raises; read failures are reported in ``errors``.
        """
        path = Path(path)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            logger.error(f"Failed to read import file {path}: {e}")
            return ImportResult.failure(f"Failed to read file: {e}")

        return await self.import_bytes(data, path.name)

    @staticmethod
    async def commit_import(book_service: BookService, user_id: Optional[str],
                            catalog_id: str, result: ImportResult,
                            auto_enrich: bool = True,
                            progress: Optional[ProgressCallback] = None) -> ImportSummary:
        """
        Store the records of an accepted import preview.

        Records are added one at a time in file order. A record that fails
        is logged and counted and the rest still go in, so a failure part way
        through leaves a partially imported catalog.

        Args:
            book_service: Service used to add each record
            user_id: Acting user, or None in guest mode
            catalog_id: Catalog receiving the records
            result: Successful ImportResult from a preview step
            auto_enrich: Passed through to BookService.add_book
            progress: Called with (imported, total) after each stored record

        Returns:
            ImportSummary with attempted/imported/failed counts
        """
        summary = ImportSummary()
        if not result.success:
            return summary

        total = len(result.books)
        for index, book_data in enumerate(result.books, start=1):
            summary.attempted += 1
            try:
                await book_service.add_book(user_id, catalog_id, book_data,
                                            auto_enrich=auto_enrich)
            except Exception as e:
                logger.warning(f"Failed to import record {index} ('{book_data.title}'): {e}")
                summary.failed += 1
                summary.errors.append(f"Record {index} ({book_data.title}): {e}")
                continue

            summary.imported += 1
            if progress:
                progress(summary.imported, total)

        logger.info(f"Imported {summary.imported} of {total} records into catalog {catalog_id}")
        return summary
