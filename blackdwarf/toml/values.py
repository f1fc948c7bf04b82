"""
TOML value tree.

One frozen dataclass per value shape. Every value carries the Span where
its literal (or, for tables created by headers, its header key) begins;
spans never take part in equality, so trees parsed from differently
formatted documents compare equal when they hold the same data.

Consumers dispatch on the concrete class or on ``type_name``, which uses
the tags of the toml-test suite.
"""

import datetime
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from blackdwarf.core.span import START, Span


@dataclass(frozen=True)
class Key:
    """A table key. Quoted and bare spellings of the same name are equal."""

    name: str
    span: Span = field(default=START, compare=False, repr=False)
    quoted: bool = field(default=False, compare=False)

    def __str__(self) -> str:
        return self.name


class Value:
    """Base class of all value variants."""

    type_name = "value"
    span: Span

    def to_python(self) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class StringValue(Value):
    value: str
    span: Span = field(default=START, compare=False, repr=False)

    type_name = "string"

    def to_python(self) -> str:
        return self.value


@dataclass(frozen=True)
class IntegerValue(Value):
    value: int
    span: Span = field(default=START, compare=False, repr=False)

    type_name = "integer"

    def to_python(self) -> int:
        return self.value


@dataclass(frozen=True, eq=False)
class FloatValue(Value):
    value: float
    span: Span = field(default=START, compare=False, repr=False)

    type_name = "float"

    def __eq__(self, other) -> bool:
        if not isinstance(other, FloatValue):
            return NotImplemented
        if math.isnan(self.value) and math.isnan(other.value):
            return True
        return self.value == other.value

    def __hash__(self) -> int:
        return hash(("float", "nan" if math.isnan(self.value) else self.value))

    def to_python(self) -> float:
        return self.value


@dataclass(frozen=True)
class BooleanValue(Value):
    value: bool
    span: Span = field(default=START, compare=False, repr=False)

    type_name = "bool"

    def to_python(self) -> bool:
        return self.value


@dataclass(frozen=True, eq=False)
class OffsetDateTimeValue(Value):
    """
    Date and time with a UTC offset (timezone-aware datetime).

    Two values are equal only when both the instant and the offset match,
    so 07:32Z and 08:32+01:00 differ as they do when printed.
    """

    value: datetime.datetime
    span: Span = field(default=START, compare=False, repr=False)

    type_name = "datetime"

    def __eq__(self, other) -> bool:
        if not isinstance(other, OffsetDateTimeValue):
            return NotImplemented
        return (self.value, self.value.utcoffset()) == (
            other.value,
            other.value.utcoffset(),
        )

    def __hash__(self) -> int:
        return hash(("datetime", self.value, self.value.utcoffset()))

    def to_python(self) -> datetime.datetime:
        return self.value


@dataclass(frozen=True)
class LocalDateTimeValue(Value):
    """Date and time without an offset (naive datetime)."""

    value: datetime.datetime
    span: Span = field(default=START, compare=False, repr=False)

    type_name = "datetime-local"

    def to_python(self) -> datetime.datetime:
        return self.value


@dataclass(frozen=True)
class LocalDateValue(Value):
    value: datetime.date
    span: Span = field(default=START, compare=False, repr=False)

    type_name = "date-local"

    def to_python(self) -> datetime.date:
        return self.value


@dataclass(frozen=True)
class LocalTimeValue(Value):
    value: datetime.time
    span: Span = field(default=START, compare=False, repr=False)

    type_name = "time-local"

    def to_python(self) -> datetime.time:
        return self.value


@dataclass(frozen=True)
class ArrayValue(Value):
    items: Tuple[Value, ...] = ()
    span: Span = field(default=START, compare=False, repr=False)

    type_name = "array"

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Value]:
        return iter(self.items)

    def __getitem__(self, index: int) -> Value:
        return self.items[index]

    def to_python(self) -> List[Any]:
        return [item.to_python() for item in self.items]


@dataclass(frozen=True)
class TableValue(Value):
    """
    Ordered mapping from key to value.

    Keys are unique. Iteration, ``keys()`` and ``items()`` follow insertion
    order in the source document.

    Example:
        >>> table = parse("name = 'x'").value
        >>> table["name"].value
        'x'
    """

    entries: Tuple[Tuple[Key, Value], ...] = ()
    span: Span = field(default=START, compare=False, repr=False)

    type_name = "table"

    def __post_init__(self):
        index = {key.name: position for position, (key, _) in enumerate(self.entries)}
        if len(index) != len(self.entries):
            raise ValueError("duplicate keys in table")
        object.__setattr__(self, "_index", index)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, name: str) -> bool:
        return name in self._index

    def __iter__(self) -> Iterator[str]:
        return (key.name for key, _ in self.entries)

    def __getitem__(self, name: str) -> Value:
        return self.entries[self._index[name]][1]

    def get(self, name: str, default: Optional[Value] = None) -> Optional[Value]:
        position = self._index.get(name)
        if position is None:
            return default
        return self.entries[position][1]

    def key(self, name: str) -> Key:
        """The Key object (with its span) stored for name."""
        return self.entries[self._index[name]][0]

    def keys(self) -> List[str]:
        return [key.name for key, _ in self.entries]

    def values(self) -> List[Value]:
        return [value for _, value in self.entries]

    def items(self) -> List[Tuple[str, Value]]:
        return [(key.name, value) for key, value in self.entries]

    def to_python(self) -> Dict[str, Any]:
        return {key.name: value.to_python() for key, value in self.entries}


DatetimeValue = Union[
    OffsetDateTimeValue, LocalDateTimeValue, LocalDateValue, LocalTimeValue
]

DATETIME_TYPES = (
    OffsetDateTimeValue,
    LocalDateTimeValue,
    LocalDateValue,
    LocalTimeValue,
)
