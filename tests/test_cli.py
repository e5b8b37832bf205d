"""
Tests for the bookcat command line interface.

Each test runs against its own config file and guest store directory, with
online enrichment turned off.
"""

import json
import shutil
import tempfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from bookcat.cli import app
from bookcat.codecs.csv_codec import encode_csv
from bookcat.models import Book
from bookcat.storage.local import JsonFileStore, LocalBackend

runner = CliRunner()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for config, store and files."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def config_file(temp_dir, monkeypatch):
    monkeypatch.delenv("BOOKCAT_LOCAL_PATH", raising=False)
    monkeypatch.delenv("BOOKCAT_DATABASE_URL", raising=False)
    monkeypatch.delenv("BOOKCAT_USER", raising=False)

    path = temp_dir / "config.json"
    path.write_text(json.dumps({
        "storage": {"local_path": str(temp_dir / "store")},
        "enrichment": {"enabled": False},
    }))
    return path


@pytest.fixture
def invoke(config_file):
    def _invoke(*args, **kwargs):
        return runner.invoke(app, ["--config", str(config_file), *args], **kwargs)
    return _invoke


@pytest.fixture
def store(temp_dir):
    """Guest store the CLI writes to."""
    return LocalBackend(JsonFileStore(temp_dir / "store"))


class TestCatalogCommands:
    """Test catalog management commands."""

    def test_catalogs_creates_default(self, invoke, store):
        result = invoke("catalogs")

        assert result.exit_code == 0
        assert [c.name for c in store.list_catalogs(None)] == ["My Book Catalog"]

    def test_create_catalog(self, invoke, store):
        result = invoke("create-catalog", "Holiday", "--icon", "Star", "--color", "red")

        assert result.exit_code == 0
        assert "Created catalog 'Holiday'" in result.stdout
        catalog = store.list_catalogs(None)[0]
        assert catalog.icon == "Star"

    def test_create_catalog_invalid_icon(self, invoke, store):
        result = invoke("create-catalog", "Holiday", "--icon", "Rocket")

        assert result.exit_code == 1
        assert "Invalid input" in result.stdout
        assert store.list_catalogs(None) == []

    def test_delete_catalog_guards_last(self, invoke, store):
        invoke("create-catalog", "Only")

        result = invoke("delete-catalog", "Only", "--yes")

        assert result.exit_code == 1
        assert [c.name for c in store.list_catalogs(None)] == ["Only"]

    def test_delete_catalog(self, invoke, store):
        invoke("create-catalog", "Keep")
        invoke("create-catalog", "Drop")

        result = invoke("delete-catalog", "drop", "--yes")

        assert result.exit_code == 0
        assert [c.name for c in store.list_catalogs(None)] == ["Keep"]


class TestBookCommands:
    """Test adding, listing and marking books."""

    def test_add_goes_to_active_catalog(self, invoke, store):
        invoke("create-catalog", "First")
        invoke("create-catalog", "Second", "--activate")

        result = invoke("add", "Dune", "Frank Herbert", "--year", "1965", "-t", "scifi")

        assert result.exit_code == 0
        second = [c for c in store.list_catalogs(None) if c.name == "Second"][0]
        books = store.list_books(None, second.id)
        assert [b.title for b in books] == ["Dune"]
        assert books[0].publication_year == 1965
        assert books[0].tags == ["scifi"]

    def test_add_invalid_year(self, invoke, store):
        result = invoke("add", "Dune", "Frank Herbert", "--year", "soon")

        assert result.exit_code == 1
        assert "Invalid input" in result.stdout

    def test_add_to_unknown_catalog(self, invoke):
        result = invoke("add", "Dune", "Herbert", "--catalog", "Nope")

        assert result.exit_code == 1
        assert "Catalog not found" in result.stdout

    def test_list_and_filters(self, invoke):
        invoke("add", "Dune", "Frank Herbert")
        invoke("add", "Emma", "Jane Austen")

        result = invoke("list", "--search", "austen")

        assert result.exit_code == 0
        assert "Emma" in result.stdout
        assert "Dune" not in result.stdout

    def test_list_empty(self, invoke):
        result = invoke("list")

        assert result.exit_code == 0
        assert "No books found" in result.stdout

    def test_mark_and_random(self, invoke, store):
        invoke("add", "Dune", "Frank Herbert")
        catalog = store.list_catalogs(None)[0]
        book = store.list_books(None, catalog.id)[0]

        assert invoke("random", "--favorites").exit_code == 1

        result = invoke("mark", book.id, "--favorite")
        assert result.exit_code == 0
        assert store.get_book(None, book.id).is_favorite

        result = invoke("random", "--favorites")
        assert result.exit_code == 0
        assert "Dune" in result.stdout


class TestImportExport:
    """Test import and export commands."""

    @pytest.fixture
    def csv_file(self, temp_dir):
        path = temp_dir / "books.csv"
        path.write_text(encode_csv([
            Book(id="1", catalog_id="x", title="Dune", author="Frank Herbert"),
            Book(id="2", catalog_id="x", title="Emma", author="Jane Austen"),
        ]))
        return path

    def test_dry_run_imports_nothing(self, invoke, store, csv_file):
        result = invoke("import", str(csv_file), "--dry-run")

        assert result.exit_code == 0
        assert "Dry run" in result.stdout
        catalogs = store.list_catalogs(None)
        assert all(store.list_books(None, c.id) == [] for c in catalogs)

    def test_import(self, invoke, store, csv_file):
        result = invoke("import", str(csv_file), "--yes", "--no-enrich")

        assert result.exit_code == 0
        assert "Imported 2 of 2 books" in result.stdout
        catalog = store.list_catalogs(None)[0]
        assert {b.title for b in store.list_books(None, catalog.id)} == {"Dune", "Emma"}

    def test_import_bad_file(self, invoke, temp_dir):
        path = temp_dir / "notes.txt"
        path.write_text("hello")

        result = invoke("import", str(path))

        assert result.exit_code == 1
        assert "Unsupported file format" in result.stdout

    def test_import_missing_file(self, invoke, temp_dir):
        result = invoke("import", str(temp_dir / "missing.csv"))

        assert result.exit_code == 1
        assert "File not found" in result.stdout

    def test_export_to_directory(self, invoke, temp_dir):
        invoke("add", "Dune", "Frank Herbert")
        out_dir = temp_dir / "out"
        out_dir.mkdir()

        result = invoke("export", "--format", "csv", "--output", str(out_dir))

        assert result.exit_code == 0
        files = list(out_dir.glob("My_Book_Catalog-*.csv"))
        assert len(files) == 1
        assert '"Dune","Frank Herbert"' in files[0].read_text()

    def test_export_unknown_format(self, invoke, temp_dir):
        result = invoke("export", "--format", "docx", "--output", str(temp_dir / "x"))

        assert result.exit_code == 1
        assert "Unsupported export format" in result.stdout


class TestConfigCommand:
    """Test viewing and editing configuration."""

    def test_show(self, invoke):
        result = invoke("config")

        assert result.exit_code == 0
        assert "Enabled:  False" in result.stdout

    def test_update(self, invoke, config_file):
        result = invoke("config", "--server-port", "9000", "--database-url", "sqlite:///x.db")

        assert result.exit_code == 0
        saved = json.loads(config_file.read_text())
        assert saved["server"]["port"] == 9000
        assert saved["storage"]["database_url"] == "sqlite:///x.db"
        assert saved["enrichment"]["enabled"] is False
