"""
Tests for ImportService: format detection, file reading and commit.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from bookcat.codecs.csv_codec import encode_csv
from bookcat.codecs.html_codec import encode_html
from bookcat.models import Book, BookFormData, Catalog, ImportFormat, ImportResult
from bookcat.services.book_service import BookService
from bookcat.services.import_service import ImportService, UNSUPPORTED_FORMAT_MESSAGE
from bookcat.storage.local import LocalBackend, MemoryStore


@pytest.fixture
def temp_dir():
    """Create a temporary directory for import files."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def importer():
    return ImportService()


@pytest.fixture
def sample_books():
    return [
        Book(id="1", catalog_id="c", title="Dune", author="Frank Herbert",
             publication_year=1965, tags=["scifi"]),
        Book(id="2", catalog_id="c", title="Emma", author="Jane Austen"),
    ]


class TestDetectFormat:
    """Test format detection priority."""

    @pytest.mark.parametrize("filename,expected", [
        ("books.csv", ImportFormat.CSV),
        ("BOOKS.CSV", ImportFormat.CSV),
        ("books.html", ImportFormat.HTML),
        ("books.htm", ImportFormat.HTML),
    ])
    def test_extension(self, filename, expected):
        assert ImportService.detect_format("whatever", filename) == expected

    def test_extension_beats_content(self):
        assert ImportService.detect_format("<!DOCTYPE html><html>", "books.csv") == ImportFormat.CSV

    def test_html_sniffed_from_content(self):
        assert ImportService.detect_format("  <!doctype html>", "upload") == ImportFormat.HTML
        assert ImportService.detect_format("<html><body>", "upload.txt") == ImportFormat.HTML

    def test_csv_sniffed_from_content(self):
        assert ImportService.detect_format("Title,Author\nA,B", "upload") == ImportFormat.CSV
        assert ImportService.detect_format('"Title","Author"\n', "upload") == ImportFormat.CSV

    def test_unknown(self):
        assert ImportService.detect_format("just text", "notes.txt") == ImportFormat.UNKNOWN


class TestImportContent:
    """Test decoding already-read content."""

    def test_empty_content(self, importer):
        result = importer.import_content("", "books.csv")
        assert not result.success
        assert result.errors == ["File is empty"]

    def test_unsupported_format(self, importer):
        result = importer.import_content("hello", "notes.txt")
        assert not result.success
        assert result.errors == [UNSUPPORTED_FORMAT_MESSAGE]

    def test_csv_dispatch(self, importer, sample_books):
        result = importer.import_content(encode_csv(sample_books), "export.csv")

        assert result.success
        assert [b.title for b in result.books] == ["Dune", "Emma"]

    def test_html_dispatch(self, importer, sample_books):
        result = importer.import_content(encode_html(sample_books), "export.html")

        assert result.success
        assert result.books[0].publication_year == 1965

    @pytest.mark.asyncio
    async def test_bytes_with_bom(self, importer):
        data = "\ufeffTitle,Author\nDune,Frank Herbert".encode("utf-8")

        result = await importer.import_bytes(data, "upload.csv")

        assert result.success
        assert result.books[0].title == "Dune"

    @pytest.mark.asyncio
    async def test_empty_bytes(self, importer):
        result = await importer.import_bytes(b"", "upload.csv")
        assert result.errors == ["File is empty"]


class TestImportFromFile:
    """Test reading import files from disk."""

    @pytest.mark.asyncio
    async def test_reads_csv_file(self, importer, temp_dir, sample_books):
        path = temp_dir / "export.csv"
        path.write_text(encode_csv(sample_books), encoding="utf-8")

        result = await importer.import_from_file(path)

        assert result.success
        assert result.total_records == 2

    @pytest.mark.asyncio
    async def test_missing_file_is_reported(self, importer, temp_dir):
        result = await importer.import_from_file(temp_dir / "missing.csv")

        assert not result.success
        assert result.errors[0].startswith("Failed to read file:")


class TestCommitImport:
    """Test storing accepted previews."""

    @pytest.fixture
    def local(self):
        backend = LocalBackend(MemoryStore())
        backend.insert_catalog(Catalog(id="c1", name="Shelf"))
        return backend

    @pytest.mark.asyncio
    async def test_commit_adds_all_records_in_order(self, local):
        service = BookService(local)
        result = ImportResult(success=True, books=[
            BookFormData(title="One", author="A"),
            BookFormData(title="Two", author="B"),
        ], total_records=2, valid_records=2)
        progress = []

        summary = await ImportService.commit_import(
            service, None, "c1", result, progress=lambda done, total: progress.append((done, total)),
        )

        assert summary.attempted == 2
        assert summary.imported == 2
        assert summary.failed == 0
        assert progress == [(1, 2), (2, 2)]
        assert [b.title for b in local.list_books(None, "c1")] == ["Two", "One"]

    @pytest.mark.asyncio
    async def test_failed_record_does_not_stop_the_rest(self, local):
        service = BookService(local)
        result = ImportResult(success=True, books=[
            BookFormData(title="One", author="A"),
            BookFormData(title="Bad", author="B", publication_year=-1),
            BookFormData(title="Three", author="C"),
        ])

        summary = await ImportService.commit_import(service, None, "c1", result)

        assert summary.attempted == 3
        assert summary.imported == 2
        assert summary.failed == 1
        assert "Bad" in summary.errors[0]
        assert {b.title for b in local.list_books(None, "c1")} == {"One", "Three"}

    @pytest.mark.asyncio
    async def test_failed_preview_commits_nothing(self, local):
        summary = await ImportService.commit_import(
            BookService(local), None, "c1", ImportResult.failure("File is empty"),
        )

        assert summary.attempted == 0
        assert local.list_books(None, "c1") == []
