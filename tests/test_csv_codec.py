"""
Tests for the CSV codec.

Tests cover:
- Export layout: header line, quoting, tag joining
- Quote-aware line tokenizer
- Header-driven import with row-level warnings
- Structural import failures
"""

import pytest

from bookcat.codecs.csv_codec import (
    CSV_HEADERS, encode_csv, decode_csv, parse_csv_line,
)
from bookcat.models import Book, max_publication_year


def make_book(**overrides):
    values = dict(id="b1", catalog_id="c1", title="Dune", author="Frank Herbert")
    values.update(overrides)
    return Book(**values)


class TestEncodeCsv:
    """Test CSV export."""

    def test_header_only_for_no_books(self):
        assert encode_csv([]) == "Title,Author,Genre,Holiday,ISBN,Year,Description,Tags,Cover URL"

    def test_row_fields_are_quoted_in_column_order(self):
        book = make_book(
            genre="Fiction",
            holiday_category="Summer",
            isbn="9780441013593",
            publication_year=1965,
            description="Desert planet",
            tags=["classic", "scifi"],
            cover_image_url="https://example.com/dune.jpg",
        )

        lines = encode_csv([book]).split("\n")

        assert len(lines) == 2
        assert lines[1] == (
            '"Dune","Frank Herbert","Fiction","Summer","9780441013593","1965",'
            '"Desert planet","classic; scifi","https://example.com/dune.jpg"'
        )

    def test_missing_optionals_are_empty_cells(self):
        lines = encode_csv([make_book()]).split("\n")
        assert lines[1] == '"Dune","Frank Herbert","","","","","","",""'

    def test_embedded_quotes_are_doubled(self):
        book = make_book(title='The "Best" Book', description="a, b")
        line = encode_csv([book]).split("\n")[1]
        assert line.startswith('"The ""Best"" Book"')
        assert '"a, b"' in line


class TestParseCsvLine:
    """Test the quote-aware tokenizer."""

    def test_plain_commas_split(self):
        assert parse_csv_line("a,b,c") == ["a", "b", "c"]

    def test_commas_inside_quotes_do_not_split(self):
        assert parse_csv_line('"a, b",c') == ["a, b", "c"]

    def test_doubled_quote_is_literal(self):
        assert parse_csv_line('"say ""hi""",x') == ['say "hi"', "x"]

    def test_trailing_empty_cell(self):
        assert parse_csv_line("a,") == ["a", ""]


class TestDecodeCsv:
    """Test CSV import."""

    def test_roundtrip_preserves_fields(self):
        book = make_book(
            genre="Fiction",
            holiday_category="Summer",
            isbn="9780441013593",
            publication_year=1965,
            description='He said "spice", then left',
            tags=["classic", "scifi"],
            cover_image_url="https://example.com/dune.jpg",
        )

        result = decode_csv(encode_csv([book]))

        assert result.success
        assert result.total_records == 1
        assert result.valid_records == 1
        record = result.books[0]
        assert record.title == "Dune"
        assert record.author == "Frank Herbert"
        assert record.genre == "Fiction"
        assert record.holiday_category == "Summer"
        assert record.isbn == "9780441013593"
        assert record.publication_year == 1965
        assert record.description == 'He said "spice", then left'
        assert record.tags == ["classic", "scifi"]
        assert record.cover_image_url == "https://example.com/dune.jpg"

    def test_line_breaks_inside_fields_survive(self):
        book = make_book(description="Line one.\nLine two.", tags=["scifi"],
                         cover_image_url="https://example.com/dune.jpg")

        result = decode_csv(encode_csv([book, make_book(title="Emma")]))

        assert result.total_records == 2
        assert result.valid_records == 2
        assert result.warnings == []
        record = result.books[0]
        assert record.description == "Line one.\nLine two."
        assert record.tags == ["scifi"]
        assert record.cover_image_url == "https://example.com/dune.jpg"
        assert result.books[1].title == "Emma"

    def test_row_numbers_count_records_not_lines(self):
        content = 'Title,Author,Description\nDune,Herbert,"two\nlines"\nOrphan,,x'

        result = decode_csv(content)

        assert result.total_records == 2
        assert result.warnings == ["Row 3: Skipped - missing title or author"]

    def test_empty_file_fails(self):
        result = decode_csv("")
        assert not result.success
        assert result.errors == ["CSV file is empty or contains only headers"]

    def test_header_only_fails(self):
        result = decode_csv(",".join(CSV_HEADERS) + "\n\n")
        assert not result.success
        assert result.errors == ["CSV file is empty or contains only headers"]

    def test_missing_required_columns_fails(self):
        result = decode_csv("Name,Writer\nDune,Herbert\nEmma,Austen")

        assert not result.success
        assert result.errors == ['CSV must contain at least "Title" and "Author" columns']
        assert result.total_records == 2
        assert result.books == []

    def test_reordered_and_lowercase_headers(self):
        content = "author,Year,title\nFrank Herbert,1965,Dune"

        result = decode_csv(content)

        assert result.success
        assert result.books[0].title == "Dune"
        assert result.books[0].author == "Frank Herbert"
        assert result.books[0].publication_year == 1965
        assert result.books[0].genre is None

    def test_row_missing_author_is_skipped_with_warning(self):
        content = "Title,Author\nDune,Frank Herbert\nOrphan,\nEmma,Jane Austen"

        result = decode_csv(content)

        assert result.success
        assert result.total_records == 3
        assert result.valid_records == 2
        assert [b.title for b in result.books] == ["Dune", "Emma"]
        assert result.warnings == ["Row 3: Skipped - missing title or author"]

    def test_invalid_year_keeps_row_without_year(self):
        future = max_publication_year() + 1
        content = (
            "Title,Author,Year\n"
            "A,X,abc\n"
            f"B,Y,{future}\n"
            "C,Z,2001abc\n"
            "D,W,1999"
        )

        result = decode_csv(content)

        assert result.valid_records == 4
        assert [b.publication_year for b in result.books] == [None, None, None, 1999]
        assert result.warnings == [
            'Row 2: Invalid year "abc" - skipped',
            f'Row 3: Invalid year "{future}" - skipped',
            'Row 4: Invalid year "2001abc" - skipped',
        ]

    def test_tags_split_trimmed_and_empties_dropped(self):
        content = 'Title,Author,Tags\nDune,Herbert," a ;; b ;"'
        result = decode_csv(content)
        assert result.books[0].tags == ["a", "b"]

    def test_no_valid_rows_is_not_success(self):
        result = decode_csv("Title,Author\n,Nobody\nNothing,")

        assert not result.success
        assert result.errors == []
        assert result.total_records == 2
        assert result.valid_records == 0
        assert len(result.warnings) == 2

    def test_bom_and_crlf_are_tolerated(self):
        content = "\ufeffTitle,Author\r\nDune,Frank Herbert\r\n"

        result = decode_csv(content)

        assert result.success
        assert result.books[0].author == "Frank Herbert"

    @pytest.mark.parametrize("year", ["1", "2020"])
    def test_boundary_years_accepted(self, year):
        result = decode_csv(f"Title,Author,Year\nA,B,{year}")
        assert result.books[0].publication_year == int(year)
        assert result.warnings == []


class TestImportScenarios:
    """End-to-end CSV import scenarios."""

    def test_title_with_quote_and_comma_survives(self):
        title = 'Say "Yes", Then Go'
        result = decode_csv(encode_csv([make_book(title=title)]))
        assert result.books[0].title == title

    def test_one_bad_row_among_five_good(self):
        rows = [f"Book {i},Author {i}" for i in range(5)] + ["Lonely Title,"]
        result = decode_csv("Title,Author\n" + "\n".join(rows))

        assert result.success
        assert result.valid_records == 5
        assert len(result.warnings) == 1

    @pytest.mark.parametrize("year", ["0", "-12"])
    def test_non_positive_years_dropped(self, year):
        result = decode_csv(f"Title,Author,Genre,Year\nDune,Herbert,Fiction,{year}")

        assert result.books[0].publication_year is None
        assert result.books[0].genre == "Fiction"
        assert len(result.warnings) == 1

    def test_three_row_mixed_file(self):
        content = (
            "Title,Author,Year\n"
            "Dune,Frank Herbert,1965\n"
            ",Jane Austen,1815\n"
            "Emma,Jane Austen,abc"
        )

        result = decode_csv(content)

        assert result.total_records == 3
        assert result.valid_records == 2
        assert [b.title for b in result.books] == ["Dune", "Emma"]
        assert result.books[1].publication_year is None
        assert len(result.warnings) == 2
