"""
CSV ingestion for uploaded datasets.

Turns raw CSV text into ordered rows plus a SchemaSummary. The dialect is the
lenient one users produce by hand or by spreadsheet export:
- comma delimited, double-quote quoting, "" as an escaped quote
- blank lines ignored, fields trimmed
- a trailing comma (one extra empty field) is tolerated
- short rows are padded with None
- numeric-looking values become int/float
"""

import csv
import re
from dataclasses import dataclass
from pathlib import Path

import structlog

from nl_data_analyst.core.errors import IngestionError
from nl_data_analyst.core.schema import DEFAULT_PREVIEW_ROWS, Row, Scalar, SchemaSummary, infer_schema

logger = structlog.get_logger()

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")
_ENCODINGS = ("utf-8-sig", "latin-1")


@dataclass(frozen=True)
class ParsedDataset:
    """Rows and schema produced by ingestion."""

    headers: tuple[str, ...]
    rows: tuple[Row, ...]
    schema: SchemaSummary
    skipped_rows: int = 0


def coerce_value(raw: str) -> Scalar:
    """
    Coerce a trimmed CSV field to int/float when it looks numeric.

    Examples:
        >>> coerce_value("42")
        42
        >>> coerce_value("-1.5e3")
        -1500.0
        >>> coerce_value("N/A")
        'N/A'
    """
    if _INT_RE.match(raw):
        return int(raw)
    if _FLOAT_RE.match(raw):
        return float(raw)
    return raw


def _split_line(line: str) -> list[str]:
    # Each physical line is tokenised on its own; quoted newlines are not supported
    fields = next(csv.reader([line], skipinitialspace=True), [])
    return [field.strip() for field in fields]


def _validate_headers(headers: list[str]) -> None:
    if any(h == "" for h in headers):
        raise IngestionError("The header row contains an empty column name.")
    seen: set[str] = set()
    for header in headers:
        if header in seen:
            raise IngestionError(f"Duplicate column name in header: '{header}'.")
        seen.add(header)


def parse_csv(text: str, preview_rows: int = DEFAULT_PREVIEW_ROWS) -> ParsedDataset:
    """
    Parse CSV text into rows and an inferred schema.

    Args:
        text: Decoded CSV content
        preview_rows: Number of rows kept in the schema preview

    Returns:
        ParsedDataset with rows in file order

    Raises:
        IngestionError: If the file has no content or an invalid header row
    """
    lines = [line for line in re.split(r"\r\n|\n", text) if line.strip() != ""]
    if not lines:
        raise IngestionError("File is empty")

    headers = _split_line(lines[0])
    _validate_headers(headers)
    width = len(headers)

    rows: list[Row] = []
    skipped = 0
    for line_number, line in enumerate(lines[1:], start=2):
        fields = _split_line(line)
        if len(fields) == width + 1 and fields[width] == "":
            fields = fields[:width]
        elif len(fields) > width:
            skipped += 1
            logger.warning("csv_row_skipped", line=line_number, fields=len(fields), expected=width)
            continue

        row: Row = {}
        for index, header in enumerate(headers):
            row[header] = coerce_value(fields[index]) if index < len(fields) else None
        rows.append(row)

    schema = infer_schema(rows, headers, preview_rows=preview_rows)
    logger.info(
        "csv_parsed",
        rows=schema.row_count,
        columns=width,
        skipped_rows=skipped,
    )
    return ParsedDataset(headers=tuple(headers), rows=tuple(rows), schema=schema, skipped_rows=skipped)


def decode_csv_bytes(data: bytes) -> str:
    """Decode uploaded bytes, trying UTF-8 (with BOM) first."""
    for encoding in _ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise IngestionError("Could not decode the file. Please upload a UTF-8 encoded CSV.")


def load_csv_bytes(
    data: bytes,
    filename: str,
    max_size_mb: int = 100,
    preview_rows: int = DEFAULT_PREVIEW_ROWS,
) -> ParsedDataset:
    """
    Validate and parse an uploaded CSV file.

    Args:
        data: Raw file content
        filename: Original file name (extension is checked)
        max_size_mb: Upload size limit
        preview_rows: Number of rows kept in the schema preview

    Returns:
        ParsedDataset

    Raises:
        IngestionError: On wrong extension, oversize, undecodable or empty content
    """
    if Path(filename).suffix.lower() != ".csv":
        raise IngestionError("Please upload a valid CSV file.")

    size_mb = len(data) / (1024 * 1024)
    if size_mb > max_size_mb:
        raise IngestionError(f"File is too large ({size_mb:.1f} MB). The limit is {max_size_mb} MB.")

    logger.info("csv_upload_received", filename=filename, size_bytes=len(data))
    return parse_csv(decode_csv_bytes(data), preview_rows=preview_rows)
