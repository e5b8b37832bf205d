"""
HTML table format for book catalogs.

The same document serves the spreadsheet export (spreadsheet applications
open HTML tables directly) and the print view used for PDF export. Decoding
reads back a previously exported table.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..models import Book, BookFormData, ImportResult, parse_year

logger = logging.getLogger(__name__)

HTML_COLUMNS = ["Cover", "Title", "Author", "Genre", "Holiday", "Year", "Tags"]
DEFAULT_TITLE = "My Book Catalog"

TAG_SEPARATOR = ","
TAG_JOINER = ", "

_env = Environment(
    loader=FileSystemLoader(Path(__file__).parent / "templates"),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["join_tags"] = lambda tags: TAG_JOINER.join(tags or [])


def encode_html(books: Iterable[Book], title: str = DEFAULT_TITLE,
                auto_print: bool = False) -> str:
    """
    Render books as a standalone HTML document with a single table.

    Args:
        books: Books to export, in output order
        title: Document title and heading
        auto_print: Open the browser print dialog once the page loads

    Returns:
        HTML document text
    """
    template = _env.get_template("catalog.html")
    return template.render(
        title=title,
        columns=HTML_COLUMNS,
        books=list(books),
        auto_print=auto_print,
    )


def _text(cell) -> Optional[str]:
    return cell.get_text().strip() or None


def decode_html(content: str) -> ImportResult:
    """
    Decode an exported HTML table into importable records.

    Rows are read from the table body with a fixed column layout. A row
    with too few cells or without title/author is skipped with a warning.
    """
    try:
        soup = BeautifulSoup(content, "html.parser")
        rows = soup.select("tbody tr")
        if not rows:
            rows = [row for row in soup.select("table tr") if row.find("td")]
    except Exception as e:
        logger.error(f"Failed to parse HTML import: {e}")
        return ImportResult.failure(f"Failed to parse HTML: {e}")

    if not rows:
        return ImportResult.failure("No book data found in HTML file")

    books: List[BookFormData] = []
    warnings: List[str] = []
    for index, row in enumerate(rows, start=1):
        try:
            cells = row.find_all("td")
            if len(cells) < len(HTML_COLUMNS):
                warnings.append(f"Row {index}: Not enough columns - skipped")
                continue

            title = _text(cells[1])
            author = _text(cells[2])
            if not title or not author:
                warnings.append(f"Row {index}: Missing title or author - skipped")
                continue

            cover = cells[0].find("img")
            book = BookFormData(
                title=title,
                author=author,
                genre=_text(cells[3]),
                holiday_category=_text(cells[4]),
                cover_image_url=(cover.get("src") or None) if cover else None,
            )

            year_text = _text(cells[5])
            if year_text:
                year = parse_year(year_text)
                if year is None:
                    warnings.append(f'Row {index}: Invalid year "{year_text}" - skipped')
                else:
                    book.publication_year = year

            tags_text = _text(cells[6])
            if tags_text:
                book.tags = [tag.strip() for tag in tags_text.split(TAG_SEPARATOR) if tag.strip()]

            books.append(book)
        except Exception as e:
            logger.debug(f"HTML row {index} failed: {e}", exc_info=True)
            warnings.append(f"Row {index}: {e}")

    logger.debug(f"Decoded {len(books)} of {len(rows)} HTML rows")
    return ImportResult(
        success=len(books) > 0,
        books=books,
        warnings=warnings,
        total_records=len(rows),
        valid_records=len(books),
    )
