"""
Result shape classification.

Turns whatever the generated code returned into a presentation payload: a chart,
a table, both, or neither. Dispatch happens over the parsed-value model with a
fixed precedence:

1. null                    -> nothing
2. chart-shaped object     -> chart + the same rows as a table (or a warning)
3. non-empty array         -> table
4. composite object        -> first array of objects, else a flat single-row table
5. anything else           -> nothing
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from nl_data_analyst.core.parsed_value import (
    ArrayValue,
    NullValue,
    ObjectValue,
    ParsedValue,
    ScalarValue,
    to_parsed_value,
    to_python,
)

logger = structlog.get_logger()

SUPPORTED_CHART_TYPES = ("bar", "line", "pie", "scatter")
DEFAULT_CHART_TYPE = "bar"

CHART_DATA_MISSING_WARNING = "A chart was requested, but the analysis returned no data to plot."


@dataclass(frozen=True)
class ChartPayload:
    """
    Normalised chart description.

    Attributes:
        chart_type: One of SUPPORTED_CHART_TYPES
        x_key: Column used for the category / x axis
        data_keys: Columns plotted as series
        title: Optional chart title
        data: Rows to plot
    """

    chart_type: str
    x_key: str | None
    data_keys: tuple[str, ...]
    title: str | None
    data: list[Any]


@dataclass(frozen=True)
class ClassifiedResult:
    """Presentation payload for one turn. Either part may be present, both, or neither."""

    chart: ChartPayload | None = None
    table_rows: list[Any] | None = None
    chart_warning: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.chart is None and self.table_rows is None


def classify(raw: Any) -> ClassifiedResult:
    """
    Classify a raw execution result.

    Total and deterministic: every input maps to exactly one ClassifiedResult.

    Examples:
        >>> classify(None).is_empty
        True
        >>> classify([{"x": 1}]).table_rows
        [{'x': 1}]
        >>> classify({"top": [{"x": 1}], "total": 5}).table_rows
        [{'x': 1}]
    """
    return classify_value(to_parsed_value(raw))


def classify_value(value: ParsedValue) -> ClassifiedResult:
    """Classify an already-converted parsed value."""
    if isinstance(value, NullValue):
        return ClassifiedResult()

    if isinstance(value, ObjectValue) and _chart_type_of(value) is not None:
        return _classify_chart(value)

    if isinstance(value, ArrayValue) and not value.is_empty:
        return ClassifiedResult(table_rows=to_python(value))

    if isinstance(value, ObjectValue):
        return _classify_composite(value)

    return ClassifiedResult()


def _truthy(value: ParsedValue | None) -> bool:
    if value is None or isinstance(value, NullValue):
        return False
    if isinstance(value, ScalarValue):
        return bool(value.value)
    # Arrays and objects are truthy regardless of size
    return True


def _chart_type_of(obj: ObjectValue) -> ParsedValue | None:
    for key in ("chartType", "type"):
        candidate = obj.get(key)
        if _truthy(candidate):
            return candidate
    return None


def _string_or_none(value: ParsedValue | None) -> str | None:
    if isinstance(value, ScalarValue) and not isinstance(value.value, bool):
        return str(value.value)
    return None


def _normalise_chart_type(value: ParsedValue | None) -> str:
    name = (_string_or_none(value) or "").strip().lower()
    return name if name in SUPPORTED_CHART_TYPES else DEFAULT_CHART_TYPE


def _data_keys(obj: ObjectValue, rows: list[Any], x_key: str | None) -> tuple[str, ...]:
    declared = obj.get("dataKeys")
    if isinstance(declared, ArrayValue):
        keys = tuple(key for key in (_string_or_none(item) for item in declared.items) if key)
        if keys:
            return keys
    if isinstance(declared, ScalarValue) and isinstance(declared.value, str) and declared.value:
        return (declared.value,)

    first_row = rows[0] if rows else None
    if isinstance(first_row, dict):
        return tuple(key for key in first_row if key != x_key)
    return ()


def _classify_chart(obj: ObjectValue) -> ClassifiedResult:
    chart_type = _normalise_chart_type(_chart_type_of(obj))
    data = obj.get("data")

    if not isinstance(data, ArrayValue) or data.is_empty:
        logger.warning(
            "chart_data_missing",
            chart_type=chart_type,
            data_kind=type(data).__name__ if data is not None else None,
        )
        return ClassifiedResult(chart_warning=CHART_DATA_MISSING_WARNING)

    rows = to_python(data)
    x_key = _string_or_none(obj.get("xKey"))
    chart = ChartPayload(
        chart_type=chart_type,
        x_key=x_key,
        data_keys=_data_keys(obj, rows, x_key),
        title=_string_or_none(obj.get("title")),
        data=rows,
    )
    return ClassifiedResult(chart=chart, table_rows=list(rows))


def _classify_composite(obj: ObjectValue) -> ClassifiedResult:
    for _, entry in obj.entries:
        if isinstance(entry, ArrayValue) and not entry.is_empty and isinstance(entry.items[0], ObjectValue):
            return ClassifiedResult(table_rows=to_python(entry))

    is_flat = all(isinstance(entry, ScalarValue | NullValue) for _, entry in obj.entries)
    if is_flat and obj.entries:
        return ClassifiedResult(table_rows=[to_python(obj)])

    logger.info(
        "result_shape_ambiguous",
        keys=[key for key, _ in obj.entries][:20],
    )
    return ClassifiedResult()
