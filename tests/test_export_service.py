"""Tests for ExportService and export filenames."""

import pytest

from bookcat.codecs.csv_codec import decode_csv
from bookcat.models import Book, ExportFormat, utcnow
from bookcat.services.export_service import ExportService, sanitize_filename, export_filename


@pytest.fixture
def books():
    return [
        Book(id="1", catalog_id="c", title="Dune", author="Frank Herbert"),
        Book(id="2", catalog_id="c", title="Emma", author="Jane Austen"),
    ]


class TestFilenames:
    """Test download filename rules."""

    @pytest.mark.parametrize("name,expected", [
        ("My Books", "My_Books"),
        ("holiday-reads_2024", "holiday-reads_2024"),
        ("a/b\\c.d", "a_b_c_d"),
        ("", "book-catalog"),
    ])
    def test_sanitize(self, name, expected):
        assert sanitize_filename(name) == expected

    def test_export_filename_has_date_and_extension(self):
        today = utcnow().date().isoformat()
        assert export_filename("My Books", "csv") == f"My_Books-{today}.csv"


class TestExportBooks:
    """Test rendering each export format."""

    def test_csv(self, books):
        artifact = ExportService().export_books(books, "csv", filename="Shelf")

        assert artifact.filename.startswith("Shelf-")
        assert artifact.filename.endswith(".csv")
        assert artifact.media_type.startswith("text/csv")
        assert not artifact.inline
        assert decode_csv(artifact.content).valid_records == 2

    def test_spreadsheet_html(self, books):
        artifact = ExportService().export_books(books, ExportFormat.XLSX, title="Shelf")

        assert artifact.filename.endswith(".html")
        assert artifact.media_type.startswith("text/html")
        assert "<h1>Shelf</h1>" in artifact.content
        assert "window.print()" not in artifact.content
        assert not artifact.inline

    def test_print_view(self, books):
        artifact = ExportService().export_books(books, "pdf")

        assert artifact.filename.startswith("book-catalog-")
        assert "window.print()" in artifact.content
        assert artifact.inline

    def test_empty_list_still_exports(self):
        artifact = ExportService().export_books([], "csv")
        assert artifact.content.count("\n") == 0

    def test_unknown_format(self, books):
        with pytest.raises(ValueError, match="Unsupported export format"):
            ExportService().export_books(books, "docx")
