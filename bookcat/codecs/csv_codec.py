"""
CSV interchange format for book catalogs.

Exports always quote every field. Imports are header driven so that
hand-edited or reordered files still load, and row-level problems are
collected as warnings instead of failing the whole file.
"""

import csv
import io
import logging
from typing import Dict, Iterable, List, Optional

from ..models import Book, BookFormData, ImportResult, parse_year

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Title",
    "Author",
    "Genre",
    "Holiday",
    "ISBN",
    "Year",
    "Description",
    "Tags",
    "Cover URL",
]

TAG_SEPARATOR = ";"
TAG_JOINER = "; "


def encode_csv(books: Iterable[Book]) -> str:
    """
    Encode books as CSV text.

    Args:
        books: Books to export, in output order

    Returns:
        Header line plus one fully quoted record per book, newline separated.
        Line breaks inside a field stay inside its quotes.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for book in books:
        writer.writerow([
            book.title,
            book.author,
            book.genre or "",
            book.holiday_category or "",
            book.isbn or "",
            str(book.publication_year) if book.publication_year else "",
            book.description or "",
            TAG_JOINER.join(book.tags or []),
            book.cover_image_url or "",
        ])

    body = buffer.getvalue()
    header = ",".join(CSV_HEADERS)
    if not body:
        return header
    return header + "\n" + body[:-1]


def parse_csv_line(line: str) -> List[str]:
    """
    Split one CSV line into cells.

    A doubled quote inside quotes is a literal quote, and commas inside
    quotes do not split.
    """
    return next(csv.reader([line]), [""])


def _read_records(content: str) -> List[List[str]]:
    records = []
    for row in csv.reader(io.StringIO(content)):
        if not row or (len(row) == 1 and not row[0].strip()):
            continue
        records.append(row)
    return records


def _build_header_map(header: List[str]) -> Dict[str, int]:
    known = {name.lower(): name for name in CSV_HEADERS}
    header_map = {}
    for index, cell in enumerate(header):
        name = known.get(cell.strip().lower())
        if name and name not in header_map:
            header_map[name] = index
    return header_map


def _cell(values: List[str], header_map: Dict[str, int], name: str) -> Optional[str]:
    index = header_map.get(name)
    if index is None or index >= len(values):
        return None
    return values[index].strip() or None


def _parse_row(values: List[str], header_map: Dict[str, int],
               row_number: int, warnings: List[str]) -> Optional[BookFormData]:
    title = _cell(values, header_map, "Title")
    author = _cell(values, header_map, "Author")
    if not title or not author:
        warnings.append(f"Row {row_number}: Skipped - missing title or author")
        return None

    book = BookFormData(
        title=title,
        author=author,
        genre=_cell(values, header_map, "Genre"),
        holiday_category=_cell(values, header_map, "Holiday"),
        isbn=_cell(values, header_map, "ISBN"),
        description=_cell(values, header_map, "Description"),
        cover_image_url=_cell(values, header_map, "Cover URL"),
    )

    year_text = _cell(values, header_map, "Year")
    if year_text:
        year = parse_year(year_text)
        if year is None:
            warnings.append(f'Row {row_number}: Invalid year "{year_text}" - skipped')
        else:
            book.publication_year = year

    tags_text = _cell(values, header_map, "Tags")
    if tags_text:
        book.tags = [tag.strip() for tag in tags_text.split(TAG_SEPARATOR) if tag.strip()]

    return book


def decode_csv(content: str) -> ImportResult:
    """
    Decode CSV text into importable records.

    Structural problems (no data rows, no Title/Author columns) fail the
    whole import. Anything wrong with a single row skips that row or field
    and is reported in ``warnings``.

    Args:
        content: Full CSV text

    Returns:
        ImportResult; ``success`` is true iff at least one row was valid
    """
    if content.startswith("\ufeff"):
        content = content[1:]

    try:
        records = _read_records(content)
    except csv.Error as e:
        logger.debug(f"CSV parse failed: {e}", exc_info=True)
        return ImportResult.failure(f"Failed to parse CSV: {e}")

    if len(records) < 2:
        return ImportResult.failure("CSV file is empty or contains only headers")

    total = len(records) - 1
    header_map = _build_header_map(records[0])
    if "Title" not in header_map or "Author" not in header_map:
        return ImportResult.failure(
            'CSV must contain at least "Title" and "Author" columns',
            total_records=total,
        )

    books = []
    warnings = []
    for index, values in enumerate(records[1:], start=1):
        row_number = index + 1
        try:
            book = _parse_row(values, header_map, row_number, warnings)
        except Exception as e:
            logger.debug(f"CSV row {row_number} failed: {e}", exc_info=True)
            warnings.append(f"Row {row_number}: {e}")
            continue
        if book is not None:
            books.append(book)

    logger.debug(f"Decoded {len(books)} of {total} CSV rows")
    return ImportResult(
        success=len(books) > 0,
        books=books,
        warnings=warnings,
        total_records=total,
        valid_records=len(books),
    )
