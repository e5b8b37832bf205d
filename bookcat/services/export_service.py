"""
Export service for catalog data.

Provides a unified interface for the export choices offered to users:
- CSV: full-fidelity interchange file
- Excel: HTML table that spreadsheet applications open directly
- PDF: the same HTML table in a print view for the browser's print dialog
"""

import re
import logging
from typing import Iterable, Union

from ..codecs.csv_codec import encode_csv
from ..codecs.html_codec import encode_html
from ..models import Book, ExportArtifact, ExportFormat, utcnow

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_NAME = "book-catalog"


def sanitize_filename(name: str) -> str:
    """Replace anything outside [A-Za-z0-9_-] with an underscore."""
    return re.sub(r'[^a-z0-9_-]', '_', name or '', flags=re.IGNORECASE) or DEFAULT_EXPORT_NAME


def export_filename(name: str, extension: str) -> str:
    """Build ``<sanitized-name>-<YYYY-MM-DD>.<extension>`` using today's UTC date."""
    return f"{sanitize_filename(name)}-{utcnow().date().isoformat()}.{extension}"


class ExportService:
    """Service for exporting catalog data in various formats."""

    def export_books(self, books: Iterable[Book],
                     fmt: Union[ExportFormat, str],
                     filename: str = DEFAULT_EXPORT_NAME,
                     title: str = "My Book Catalog") -> ExportArtifact:
        """
        Render books in the requested export format.

        Args:
            books: Books to export, already filtered by the caller
            fmt: 'csv', 'xlsx' or 'pdf'
            filename: Base name for the download
            title: Heading used by the HTML formats

        Returns:
            ExportArtifact ready for download or display

        Raises:
            ValueError: For an unsupported format
        """
        try:
            fmt = ExportFormat(fmt)
        except ValueError:
            raise ValueError("Unsupported export format") from None

        books = list(books)

        if fmt == ExportFormat.CSV:
            artifact = ExportArtifact(
                filename=export_filename(filename, "csv"),
                content=encode_csv(books),
                media_type="text/csv; charset=utf-8",
            )
        elif fmt == ExportFormat.XLSX:
            artifact = ExportArtifact(
                filename=export_filename(filename, "html"),
                content=encode_html(books, title=title),
                media_type="text/html; charset=utf-8",
            )
        else:
            artifact = ExportArtifact(
                filename=export_filename(filename, "html"),
                content=encode_html(books, title=title, auto_print=True),
                media_type="text/html; charset=utf-8",
                inline=True,
            )

        logger.info(f"Exported {len(books)} books as {fmt.value} ({artifact.filename})")
        return artifact
