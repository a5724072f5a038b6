"""
Schema inference for uploaded datasets.

Derives a read-only, column-level snapshot (inferred type, sample value, row count,
preview) from parsed rows. The snapshot is what the reasoning service sees; the
rows themselves never leave the session.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

Scalar = int | float | str | bool | None
Row = dict[str, Scalar]

UNKNOWN_TYPE = "unknown"
DEFAULT_PREVIEW_ROWS = 3


@dataclass(frozen=True)
class SchemaField:
    """One column of the inferred schema."""

    name: str
    inferred_type: str
    sample: Scalar = None


@dataclass(frozen=True)
class SchemaSummary:
    """
    Immutable schema snapshot computed once at ingestion.

    Attributes:
        fields: Columns in original header order
        row_count: Number of data rows
        preview: First few rows for display
    """

    fields: tuple[SchemaField, ...]
    row_count: int
    preview: tuple[Row, ...] = ()

    @property
    def column_names(self) -> list[str]:
        return [f.name for f in self.fields]


def scalar_kind(value: Any) -> str:
    """Map a runtime scalar to its schema type name."""
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    if isinstance(value, str):
        return "string"
    return UNKNOWN_TYPE


def _is_present(value: Any) -> bool:
    return value is not None and value != ""


def infer_schema(
    rows: Sequence[Row],
    headers: Sequence[str],
    preview_rows: int = DEFAULT_PREVIEW_ROWS,
) -> SchemaSummary:
    """
    Infer a column-level schema from parsed rows.

    For each header the first row with a non-null, non-empty value decides the
    inferred type and the sample. Columns with no such row are "unknown" with a
    None sample. Output is deterministic for a given row order.

    Args:
        rows: Parsed data rows
        headers: Ordered column names
        preview_rows: How many leading rows to keep as preview

    Returns:
        SchemaSummary in header order
    """
    fields = []
    for header in headers:
        sample = next((row.get(header) for row in rows if _is_present(row.get(header))), None)
        fields.append(
            SchemaField(
                name=header,
                inferred_type=scalar_kind(sample) if sample is not None else UNKNOWN_TYPE,
                sample=sample,
            )
        )

    return SchemaSummary(
        fields=tuple(fields),
        row_count=len(rows),
        preview=tuple(dict(row) for row in rows[:preview_rows]),
    )


def describe_schema(schema: SchemaSummary) -> str:
    """Render the schema as the plain-text description sent to the reasoning service."""
    lines = [
        "Dataset Schema:",
        f"Row Count: {schema.row_count}",
        "Columns:",
    ]
    for field in schema.fields:
        sample = "" if field.sample is None else field.sample
        lines.append(f'- {field.name} ({field.inferred_type}): Sample value "{sample}"')
    return "\n".join(lines)
