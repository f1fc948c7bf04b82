"""
Rendering of value trees.

Two formats:

* ``pformat``: tagged JSON in the style of the toml-test suite, used by the
  conformance fixtures and the ``dump`` command. Every scalar becomes
  ``{"type": ..., "value": ...}`` so integers, floats and the datetime
  variants stay distinguishable.
* ``dumps``: TOML text that parses back to an equal tree. Each root key is
  written on its own line; nested tables are written inline so that key
  order survives the round trip.
"""

import datetime
import json
import math
import re
from typing import Any

from blackdwarf.toml.values import (
    ArrayValue,
    BooleanValue,
    FloatValue,
    IntegerValue,
    OffsetDateTimeValue,
    StringValue,
    TableValue,
    Value,
    DATETIME_TYPES,
)

BARE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")

STRING_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
}


def scalar_text(value: Value) -> str:
    """Canonical text of a scalar value (no quoting)."""
    if isinstance(value, StringValue):
        return value.value
    if isinstance(value, BooleanValue):
        return "true" if value.value else "false"
    if isinstance(value, IntegerValue):
        return str(value.value)
    if isinstance(value, FloatValue):
        return _float_text(value.value)
    if isinstance(value, OffsetDateTimeValue):
        text = value.value.isoformat()
        if value.value.utcoffset() == datetime.timedelta(0):
            text = text[: -len("+00:00")] + "Z"
        return text
    if isinstance(value, DATETIME_TYPES):
        return value.value.isoformat()
    raise TypeError(f"not a scalar value: {type(value).__name__}")


def _float_text(number: float) -> str:
    if math.isnan(number):
        return "nan"
    if math.isinf(number):
        return "inf" if number > 0 else "-inf"
    return repr(number)


def to_tagged(value: Value) -> Any:
    """Convert a value tree to tagged JSON-compatible objects."""
    if isinstance(value, TableValue):
        return {name: to_tagged(child) for name, child in value.items()}
    if isinstance(value, ArrayValue):
        return [to_tagged(item) for item in value]
    return {"type": value.type_name, "value": scalar_text(value)}


def pformat(value: Value) -> str:
    """
    Pretty-print a value tree as tagged JSON.

    Example:
        >>> print(pformat(parse("n = 1").value))
        {
          "n": {
            "type": "integer",
            "value": "1"
          }
        }
    """
    return json.dumps(to_tagged(value), indent=2, ensure_ascii=False)


# ============================================================================
# TOML output
# ============================================================================


def format_string(text: str) -> str:
    """Quote text as a TOML basic string."""
    parts = []
    for char in text:
        if char in STRING_ESCAPES:
            parts.append(STRING_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            parts.append(f"\\u{ord(char):04X}")
        else:
            parts.append(char)
    return '"' + "".join(parts) + '"'


def format_key(name: str) -> str:
    if BARE_KEY.match(name):
        return name
    return format_string(name)


def format_value(value: Value) -> str:
    """Render a value as an inline TOML expression."""
    if isinstance(value, StringValue):
        return format_string(value.value)
    if isinstance(value, TableValue):
        if not len(value):
            return "{}"
        entries = ", ".join(
            f"{format_key(name)} = {format_value(child)}" for name, child in value.items()
        )
        return "{ " + entries + " }"
    if isinstance(value, ArrayValue):
        return "[" + ", ".join(format_value(item) for item in value) + "]"
    return scalar_text(value)


def dumps(table: TableValue) -> str:
    """
    Serialize a root table to TOML text.

    Args:
        table: Root table

    Returns:
        Document text, one line per root key
    """
    return "".join(
        f"{format_key(name)} = {format_value(value)}\n" for name, value in table.items()
    )
