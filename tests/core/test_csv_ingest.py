"""
Tests for CSV ingestion.

Tests cover:
- Header/row parsing, trimming and numeric coercion
- Lenient dialect: blank lines, trailing comma, short rows, quoted commas
- Rejected input: empty files, bad headers, wrong extension, oversize uploads
"""

import pytest

from nl_data_analyst.core.csv_ingest import coerce_value, decode_csv_bytes, load_csv_bytes, parse_csv
from nl_data_analyst.core.errors import IngestionError


class TestCoerceValue:
    """Numeric coercion of single fields."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("42", 42),
            ("-7", -7),
            ("3.5", 3.5),
            (".5", 0.5),
            ("1e3", 1000.0),
            ("Paris", "Paris"),
            ("12abc", "12abc"),
            ("", ""),
        ],
    )
    def test_coerce_value_maps_numeric_strings(self, raw, expected):
        """Test that numeric strings become numbers and other text stays text."""
        # Act
        result = coerce_value(raw)

        # Assert
        assert result == expected
        assert type(result) is type(expected)


class TestParseCsv:
    """Parsing CSV text into rows and schema."""

    def test_parse_csv_row_count_matches_non_empty_data_lines(self, sample_csv_text):
        """Test that row count equals the non-empty data lines."""
        # Act
        dataset = parse_csv(sample_csv_text)

        # Assert
        assert dataset.schema.row_count == 3
        assert len(dataset.rows) == 3
        assert len(dataset.schema.fields) == 4
        assert dataset.headers == ("name", "age", "city", "score")

    def test_parse_csv_coerces_numbers_and_keeps_strings(self, sample_csv_text):
        """Test that numeric cells are coerced and text cells kept."""
        # Act
        dataset = parse_csv(sample_csv_text)

        # Assert
        assert dataset.rows[0] == {"name": "Alice", "age": 30, "city": "Paris", "score": 88.5}
        assert dataset.rows[1]["score"] == ""

    def test_parse_csv_ignores_blank_lines_and_crlf(self):
        """Test that blank lines and CRLF endings are ignored."""
        # Arrange
        text = "a,b\r\n\r\n1,2\r\n   \r\n3,4\r\n"

        # Act
        dataset = parse_csv(text)

        # Assert
        assert [row["a"] for row in dataset.rows] == [1, 3]

    def test_parse_csv_trims_fields_and_headers(self):
        """Test that headers and fields are trimmed."""
        # Act
        dataset = parse_csv(" name , age \n  Alice ,  30 \n")

        # Assert
        assert dataset.headers == ("name", "age")
        assert dataset.rows[0] == {"name": "Alice", "age": 30}

    def test_parse_csv_handles_quoted_commas_and_escaped_quotes(self):
        """Test that quoted commas and doubled quotes are honoured."""
        # Arrange
        text = 'name,quote\n"Smith, John","He said ""hi"""\n'

        # Act
        dataset = parse_csv(text)

        # Assert
        assert dataset.rows[0] == {"name": "Smith, John", "quote": 'He said "hi"'}

    def test_parse_csv_pads_short_rows_with_none(self):
        """Test that short rows are padded with None."""
        # Act
        dataset = parse_csv("a,b,c\n1\n")

        # Assert
        assert dataset.rows[0] == {"a": 1, "b": None, "c": None}

    def test_parse_csv_tolerates_trailing_comma(self):
        """Test that one trailing empty field is dropped, not skipped."""
        # Act
        dataset = parse_csv("a,b\n1,2,\n")

        # Assert
        assert dataset.rows[0] == {"a": 1, "b": 2}
        assert dataset.skipped_rows == 0

    def test_parse_csv_skips_rows_with_extra_fields(self):
        """Test that rows with extra fields are skipped and counted."""
        # Act
        dataset = parse_csv("a,b\n1,2\n1,2,3,4\n5,6\n")

        # Assert
        assert [row["a"] for row in dataset.rows] == [1, 5]
        assert dataset.skipped_rows == 1

    def test_parse_csv_header_only_gives_empty_dataset(self):
        """Test that a header-only file gives an empty dataset."""
        # Act
        dataset = parse_csv("a,b\n")

        # Assert
        assert dataset.rows == ()
        assert dataset.schema.row_count == 0
        assert [f.inferred_type for f in dataset.schema.fields] == ["unknown", "unknown"]

    @pytest.mark.parametrize("text", ["", "\n\n", "   \n"])
    def test_parse_csv_empty_text_raises(self, text):
        """Test that empty input raises IngestionError."""
        # Act & Assert
        with pytest.raises(IngestionError, match="File is empty"):
            parse_csv(text)

    def test_parse_csv_duplicate_header_raises(self):
        """Test that duplicate column names are rejected."""
        # Act & Assert
        with pytest.raises(IngestionError, match="Duplicate column name"):
            parse_csv("a,a\n1,2\n")

    def test_parse_csv_empty_header_name_raises(self):
        """Test that an empty column name is rejected."""
        # Act & Assert
        with pytest.raises(IngestionError, match="empty column name"):
            parse_csv("a,,c\n1,2,3\n")

    def test_parse_csv_preview_respects_preview_rows(self):
        """Test that the preview holds preview_rows rows."""
        # Act
        dataset = parse_csv("a\n1\n2\n3\n4\n", preview_rows=2)

        # Assert
        assert dataset.schema.preview == ({"a": 1}, {"a": 2})


class TestLoadCsvBytes:
    """Validation of uploaded files."""

    def test_load_csv_bytes_parses_utf8_with_bom(self):
        """Test that UTF-8 with a BOM is decoded cleanly."""
        # Arrange
        data = "\ufeffname,age\nZoë,30\n".encode()

        # Act
        dataset = load_csv_bytes(data, "people.csv")

        # Assert
        assert dataset.headers == ("name", "age")
        assert dataset.rows[0]["name"] == "Zoë"

    def test_load_csv_bytes_rejects_non_csv_extension(self):
        """Test that non-CSV file names are rejected."""
        # Act & Assert
        with pytest.raises(IngestionError, match="valid CSV"):
            load_csv_bytes(b"a,b\n1,2\n", "data.xlsx")

    def test_load_csv_bytes_accepts_uppercase_extension(self):
        """Test that the extension check ignores case."""
        # Act
        dataset = load_csv_bytes(b"a,b\n1,2\n", "DATA.CSV")

        # Assert
        assert dataset.schema.row_count == 1

    def test_load_csv_bytes_rejects_oversize_file(self):
        """Test that files above the size limit are rejected."""
        # Arrange
        data = b"a\n" + b"1\n" * (600 * 1024)

        # Act & Assert
        with pytest.raises(IngestionError, match="too large"):
            load_csv_bytes(data, "big.csv", max_size_mb=1)

    def test_load_csv_bytes_empty_file_raises(self):
        """Test that an empty upload raises IngestionError."""
        # Act & Assert
        with pytest.raises(IngestionError, match="File is empty"):
            load_csv_bytes(b"", "empty.csv")

    def test_decode_csv_bytes_falls_back_to_latin1(self):
        """Test that non-UTF-8 bytes decode as Latin-1."""
        # Arrange
        data = "name\nJosé\n".encode("latin-1")

        # Act
        text = decode_csv_bytes(data)

        # Assert
        assert "José" in text
