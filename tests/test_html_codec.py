"""
Tests for the HTML table codec used by the spreadsheet and print exports.
"""

from bookcat.codecs.html_codec import encode_html, decode_html
from bookcat.models import Book


def make_book(**overrides):
    values = dict(id="b1", catalog_id="c1", title="Dune", author="Frank Herbert")
    values.update(overrides)
    return Book(**values)


class TestEncodeHtml:
    """Test HTML export."""

    def test_document_structure(self):
        html = encode_html([make_book(), make_book(id="b2", title="Emma", author="Jane Austen")],
                           title="Classics")

        assert html.lstrip().startswith("<!DOCTYPE html>")
        assert "<h1>Classics</h1>" in html
        assert "Total Books: 2" in html
        assert "<thead>" in html and "<tbody>" in html
        for column in ["Cover", "Title", "Author", "Genre", "Holiday", "Year", "Tags"]:
            assert f"<th>{column}</th>" in html

    def test_default_title(self):
        assert "<h1>My Book Catalog</h1>" in encode_html([])

    def test_cover_image_only_when_url_present(self):
        with_cover = encode_html([make_book(cover_image_url="https://example.com/c.jpg")])
        without_cover = encode_html([make_book()])

        assert 'src="https://example.com/c.jpg"' in with_cover
        assert "<img" not in without_cover

    def test_content_is_escaped(self):
        html = encode_html([make_book(title="<script>alert(1)</script>", author="A & B")])

        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html
        assert "A &amp; B" in html

    def test_print_script_only_for_print_view(self):
        assert "window.print()" not in encode_html([make_book()])
        assert "window.print()" in encode_html([make_book()], auto_print=True)


class TestDecodeHtml:
    """Test HTML import."""

    def test_roundtrip_recovers_table_fields(self):
        book = make_book(
            genre="Fiction",
            holiday_category="Christmas",
            publication_year=1965,
            tags=["classic", "scifi"],
            cover_image_url="https://example.com/dune.jpg",
        )

        result = decode_html(encode_html([book]))

        assert result.success
        assert result.total_records == 1
        record = result.books[0]
        assert record.title == "Dune"
        assert record.author == "Frank Herbert"
        assert record.genre == "Fiction"
        assert record.holiday_category == "Christmas"
        assert record.publication_year == 1965
        assert record.tags == ["classic", "scifi"]
        assert record.cover_image_url == "https://example.com/dune.jpg"

    def test_escaped_content_roundtrips(self):
        book = make_book(title="Pride & <Prejudice>", author='Jane "J" Austen')

        result = decode_html(encode_html([book]))

        assert result.books[0].title == "Pride & <Prejudice>"
        assert result.books[0].author == 'Jane "J" Austen'

    def test_no_rows_fails(self):
        result = decode_html("<html><body><p>nothing</p></body></html>")

        assert not result.success
        assert result.errors == ["No book data found in HTML file"]

    def test_short_and_incomplete_rows_are_skipped(self):
        html = """
        <table><tbody>
          <tr><td></td><td>Dune</td></tr>
          <tr><td></td><td></td><td>Nobody</td><td></td><td></td><td></td><td></td></tr>
          <tr><td></td><td>Emma</td><td>Jane Austen</td><td></td><td></td><td>1815</td><td></td></tr>
        </tbody></table>
        """

        result = decode_html(html)

        assert result.success
        assert result.total_records == 3
        assert result.valid_records == 1
        assert result.books[0].title == "Emma"
        assert result.books[0].publication_year == 1815
        assert result.warnings == [
            "Row 1: Not enough columns - skipped",
            "Row 2: Missing title or author - skipped",
        ]

    def test_invalid_year_is_dropped_with_warning(self):
        html = (
            "<table><tbody><tr><td></td><td>A</td><td>B</td><td></td><td></td>"
            "<td>soon</td><td>x, y</td></tr></tbody></table>"
        )

        result = decode_html(html)

        assert result.books[0].publication_year is None
        assert result.books[0].tags == ["x", "y"]
        assert result.warnings == ['Row 1: Invalid year "soon" - skipped']

    def test_table_without_tbody(self):
        html = (
            "<table><tr><th>Cover</th><th>Title</th><th>Author</th></tr>"
            "<tr><td></td><td>Emma</td><td>Jane Austen</td><td>Fiction</td><td></td>"
            "<td>1815</td><td>classic</td></tr></table>"
        )

        result = decode_html(html)

        assert result.success
        assert result.total_records == 1
        assert result.books[0].title == "Emma"
        assert result.books[0].tags == ["classic"]
