"""
Neutral recursive value model for whatever generated code returns.

The classifier dispatches on these variants instead of probing arbitrary Python
objects, so classification stays total for any return value.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

__all__ = [
    "NullValue",
    "ScalarValue",
    "ArrayValue",
    "ObjectValue",
    "ParsedValue",
    "to_parsed_value",
    "to_python",
]

MAX_DEPTH = 32


@dataclass(frozen=True)
class NullValue:
    pass


@dataclass(frozen=True)
class ScalarValue:
    value: int | float | str | bool


@dataclass(frozen=True)
class ArrayValue:
    items: tuple[ParsedValue, ...]

    @property
    def is_empty(self) -> bool:
        return not self.items


@dataclass(frozen=True)
class ObjectValue:
    """Key/value entries in insertion order."""

    entries: tuple[tuple[str, ParsedValue], ...]

    def get(self, key: str) -> ParsedValue | None:
        for entry_key, value in self.entries:
            if entry_key == key:
                return value
        return None


ParsedValue = NullValue | ScalarValue | ArrayValue | ObjectValue


def to_parsed_value(raw: Any) -> ParsedValue:
    """
    Convert a raw Python value into the parsed-value model.

    Mappings become objects (keys stringified), lists/tuples/sets become arrays,
    None becomes null and bool/int/float/str become scalars. Anything else
    (including generators, which are never iterated) is rendered with str().
    Nesting beyond MAX_DEPTH or a reference cycle is cut off as a string scalar.
    """
    return _convert(raw, depth=0, seen=frozenset())


def _convert(raw: Any, depth: int, seen: frozenset[int]) -> ParsedValue:
    if raw is None:
        return NullValue()
    if isinstance(raw, bool | int | float | str):
        return ScalarValue(raw)

    if isinstance(raw, Mapping | list | tuple | set | frozenset):
        if depth >= MAX_DEPTH or id(raw) in seen:
            return ScalarValue(f"<{type(raw).__name__}>")
        seen = seen | {id(raw)}
        if isinstance(raw, Mapping):
            return ObjectValue(
                tuple((str(key), _convert(value, depth + 1, seen)) for key, value in raw.items())
            )
        return ArrayValue(tuple(_convert(item, depth + 1, seen) for item in raw))

    try:
        return ScalarValue(str(raw))
    except Exception:
        return ScalarValue(f"<{type(raw).__name__}>")


def to_python(value: ParsedValue) -> Any:
    """Convert a parsed value back into plain dicts, lists and scalars."""
    if isinstance(value, NullValue):
        return None
    if isinstance(value, ScalarValue):
        return value.value
    if isinstance(value, ArrayValue):
        return [to_python(item) for item in value.items]
    return {key: to_python(item) for key, item in value.entries}
