"""
Recursive-descent TOML parser.

Consumes the lexer's tokens with one token of lookahead and builds the
value tree. While parsing, tables live in small mutable builder nodes that
remember how they were created (header, dotted key, implicitly as a
header's parent); the finished tree is frozen into TableValue/ArrayValue
objects before it leaves the parser.

Errors abort the current top-level statement only: the parser records the
error, skips to the end of the line (past the closing bracket first when
the error sits inside a multi-line array or inline table) and carries on,
so one run reports every
independent problem in a document.
"""

import datetime
import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from blackdwarf.core.diagnostics import Diagnostic, diagnostics_from_errors
from blackdwarf.core.exceptions import (
    BlackDwarfError,
    DuplicateTableError,
    LexError,
    ParseError,
)
from blackdwarf.core.span import Span, byte_length
from blackdwarf.toml.lexer import Lexer
from blackdwarf.toml.tokens import LexMode, Token, TokenKind
from blackdwarf.toml.values import (
    ArrayValue,
    BooleanValue,
    FloatValue,
    IntegerValue,
    Key,
    LocalDateTimeValue,
    LocalDateValue,
    LocalTimeValue,
    OffsetDateTimeValue,
    StringValue,
    TableValue,
    Value,
)

logger = logging.getLogger(__name__)

MAX_DEPTH = 64
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

DECIMAL_INTEGER = re.compile(r"^[+-]?(?:0|[1-9](?:_?[0-9])*)$")
PREFIXED_INTEGERS = (
    (re.compile(r"^0x[0-9A-Fa-f](?:_?[0-9A-Fa-f])*$"), 16),
    (re.compile(r"^0o[0-7](?:_?[0-7])*$"), 8),
    (re.compile(r"^0b[01](?:_?[01])*$"), 2),
)
FLOAT = re.compile(
    r"^(?P<mantissa>[+-]?(?:0|[1-9](?:_?[0-9])*)?(?:\.(?:[0-9](?:_?[0-9])*)?)?)"
    r"(?:[eE][+-]?[0-9](?:_?[0-9])*)?$"
)
DATETIME = re.compile(
    r"^(?:(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2}))?"
    r"(?:(?P<separator>[Tt ])?"
    r"(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})?)?$"
)


# ============================================================================
# Builder Nodes
# ============================================================================


class _Table:
    """Mutable table used while parsing."""

    def __init__(self, span: Span, header_defined: bool = False):
        self.span = span
        self.entries: Dict[str, Tuple[Key, "_Node"]] = {}
        self.header_defined = header_defined
        # Set when the table was created (or claimed) by dotted keys, with
        # the id of the section that may keep extending it.
        self.dotted = False
        self.section = -1

    def put(self, key: Key, node: "_Node") -> None:
        self.entries[key.name] = (key, node)

    def get(self, name: str) -> Optional["_Node"]:
        entry = self.entries.get(name)
        return entry[1] if entry else None


class _ArrayOfTables:
    """Array created by [[header]] lines; tables are appended to it."""

    def __init__(self, span: Span):
        self.span = span
        self.tables: List[_Table] = []


_Node = Union[_Table, _ArrayOfTables, Value]


def _children(node: _Node) -> List[_Node]:
    if isinstance(node, _Table):
        return [child for _, child in node.entries.values()]
    if isinstance(node, _ArrayOfTables):
        return list(node.tables)
    return []


def _freeze(node: _Node) -> Value:
    """Convert builder nodes into frozen values, innermost first, without recursion."""
    frozen: Dict[int, Value] = {}

    def done(child: _Node) -> Value:
        if isinstance(child, (_Table, _ArrayOfTables)):
            return frozen[id(child)]
        return child

    stack = [(node, False)]
    while stack:
        current, expanded = stack.pop()
        if not isinstance(current, (_Table, _ArrayOfTables)):
            continue
        if not expanded:
            stack.append((current, True))
            stack.extend((child, False) for child in _children(current))
            continue
        if isinstance(current, _Table):
            frozen[id(current)] = TableValue(
                tuple((key, done(child)) for key, child in current.entries.values()),
                current.span,
            )
        else:
            frozen[id(current)] = ArrayValue(
                tuple(done(table) for table in current.tables), current.span
            )
    return done(node)


def _path(keys: List[Key]) -> str:
    return ".".join(key.name for key in keys)


def _describe(node: _Node) -> str:
    if isinstance(node, _Table):
        return "table"
    if isinstance(node, _ArrayOfTables):
        return "array of tables"
    if isinstance(node, TableValue):
        return "inline table"
    if isinstance(node, ArrayValue):
        return "static array"
    return node.type_name


def _with_article(node: _Node) -> str:
    """_describe with an indefinite article, e.g. 'an inline table'."""
    noun = _describe(node)
    article = "an" if noun[0] in "aeiou" else "a"
    return f"{article} {noun}"


# ============================================================================
# Result
# ============================================================================


@dataclass(frozen=True)
class ParseResult:
    """
    Outcome of parsing one document.

    Attributes:
        value: Root table, or None when any error was recorded
        errors: LexError/ParseError objects in document order
    """

    value: Optional[TableValue]
    errors: Tuple[BlackDwarfError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    def diagnostics(self) -> List[Diagnostic]:
        return diagnostics_from_errors(self.errors)


# ============================================================================
# Parser
# ============================================================================


class Parser:
    """
    Parses one TOML document.

    Args:
        text: Document text
        strict: When False, inline tables may span lines and end with a
            trailing comma
    """

    def __init__(self, text: str, strict: bool = True):
        self.text = text
        self.strict = strict
        self.lexer = Lexer(text)
        self.root = _Table(Span(0, 1, 1, byte_length(text)))
        self.errors: List[BlackDwarfError] = []
        self._section = 0
        self._sections = 0
        # Arrays and inline tables entered but not yet closed
        self._unclosed = 0

    def parse(self) -> ParseResult:
        current = self.root
        # Tables between the root and current
        depth = 0

        while True:
            try:
                token = self.lexer.peek(LexMode.KEY)
                if token.kind is TokenKind.EOF:
                    break
                if token.kind is TokenKind.NEWLINE:
                    self.lexer.next(LexMode.KEY)
                    continue

                if token.kind is TokenKind.LEFT_BRACKET:
                    current = _Table(token.span)
                    depth = 0
                    self._section = self._new_section()
                    table, table_depth = self._parse_header()
                    self._expect_line_end("table header")
                    current, depth = table, table_depth
                else:
                    self._parse_key_value(current, self._section, depth)
                    self._expect_line_end("key/value pair")
            except (LexError, ParseError) as e:
                logger.debug(f"Recovering from error at {e.span}: {e.message}")
                self.errors.append(e)
                self.lexer.skip_nested(self._unclosed)
                self._unclosed = 0

        logger.debug(
            f"Parsed document: {len(self.root.entries)} top-level keys, "
            f"{len(self.errors)} errors"
        )
        if self.errors:
            return ParseResult(None, tuple(self.errors))
        return ParseResult(_freeze(self.root), ())

    def _new_section(self) -> int:
        self._sections += 1
        return self._sections

    # ------------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------------

    def _expect(self, kind: TokenKind, what: str, mode: LexMode = LexMode.KEY) -> Token:
        token = self.lexer.peek(mode)
        if token.kind is not kind:
            raise ParseError(token.span, f"expected {what}, got {token.describe()}")
        return self.lexer.next(mode)

    def _expect_line_end(self, after: str) -> None:
        token = self.lexer.peek(LexMode.KEY)
        if token.kind is TokenKind.NEWLINE:
            self.lexer.next(LexMode.KEY)
        elif token.kind is not TokenKind.EOF:
            raise ParseError(
                token.span, f"expected newline after {after}, got {token.describe()}"
            )

    def _skip_newlines(self, mode: LexMode) -> None:
        while self.lexer.peek(mode).kind is TokenKind.NEWLINE:
            self.lexer.next(mode)

    # ------------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------------

    def _parse_key(self) -> Key:
        token = self.lexer.peek(LexMode.KEY)
        if token.kind is TokenKind.BARE_KEY:
            self.lexer.next(LexMode.KEY)
            return Key(token.text, token.span, quoted=False)
        if token.kind is TokenKind.STRING:
            if token.quoting.multiline:
                raise ParseError(token.span, "multiline strings cannot be used as keys")
            self.lexer.next(LexMode.KEY)
            return Key(token.value, token.span, quoted=True)
        raise ParseError(token.span, f"expected a key, got {token.describe()}")

    def _parse_key_path(self, depth: int = 0) -> List[Key]:
        """
        Parse a possibly dotted key.

        Args:
            depth: Number of tables already enclosing the key

        Raises:
            ParseError: If the key would nest tables deeper than MAX_DEPTH
        """
        keys: List[Key] = []
        while True:
            key = self._parse_key()
            keys.append(key)
            if depth + len(keys) > MAX_DEPTH:
                raise ParseError(
                    key.span,
                    f"recursion limit exceeded: tables nested deeper than {MAX_DEPTH} levels",
                )
            if self.lexer.peek(LexMode.KEY).kind is not TokenKind.DOT:
                return keys
            self.lexer.next(LexMode.KEY)

    # ------------------------------------------------------------------------
    # Table headers
    # ------------------------------------------------------------------------

    def _parse_header(self) -> Tuple[_Table, int]:
        opening = self.lexer.next(LexMode.KEY)
        array = False
        token = self.lexer.peek(LexMode.KEY)
        if (
            token.kind is TokenKind.LEFT_BRACKET
            and token.span.start_offset == opening.span.end_offset
        ):
            self.lexer.next(LexMode.KEY)
            array = True

        keys = self._parse_key_path()
        closing = self._expect(TokenKind.RIGHT_BRACKET, "']' to close table header")
        if array:
            second = self._expect(
                TokenKind.RIGHT_BRACKET, "']]' to close array of tables header"
            )
            if second.span.start_offset != closing.span.end_offset:
                raise ParseError(second.span, "expected ']]' without space between brackets")
            closing = second

        span = opening.span.to(closing.span)
        if array:
            return self._open_array_table(keys, span), len(keys)
        return self._open_table(keys, span), len(keys)

    def _walk_header(self, keys: List[Key]) -> _Table:
        """Descend through the parents named by a header, creating them."""
        node = self.root
        for position, key in enumerate(keys):
            child = node.get(key.name)
            if child is None:
                child = _Table(key.span)
                node.put(key, child)
                node = child
            elif isinstance(child, _Table):
                node = child
            elif isinstance(child, _ArrayOfTables):
                node = child.tables[-1]
            else:
                raise ParseError(
                    key.span,
                    f"cannot extend '{_path(keys[: position + 1])}': "
                    f"it is {_with_article(child)}, not a table",
                )
        return node

    def _open_table(self, keys: List[Key], span: Span) -> _Table:
        parent = self._walk_header(keys[:-1])
        last = keys[-1]
        existing = parent.get(last.name)

        if existing is None:
            table = _Table(last.span, header_defined=True)
            parent.put(last, table)
            return table
        if isinstance(existing, _Table):
            if existing.header_defined or existing.dotted:
                raise DuplicateTableError(span, _path(keys))
            existing.header_defined = True
            return existing
        if isinstance(existing, _ArrayOfTables):
            raise ParseError(
                span,
                f"'{_path(keys)}' is an array of tables and cannot be defined as a table",
            )
        raise ParseError(
            span,
            f"cannot define table '{_path(keys)}': "
            f"key already holds {_with_article(existing)}",
        )

    def _open_array_table(self, keys: List[Key], span: Span) -> _Table:
        parent = self._walk_header(keys[:-1])
        last = keys[-1]
        existing = parent.get(last.name)
        table = _Table(last.span, header_defined=True)

        if existing is None:
            array = _ArrayOfTables(last.span)
            parent.put(last, array)
        elif isinstance(existing, _ArrayOfTables):
            array = existing
        else:
            raise ParseError(
                span,
                f"cannot append to '{_path(keys)}': key holds "
                f"{_with_article(existing)}, not an array of tables",
            )
        array.tables.append(table)
        return table

    # ------------------------------------------------------------------------
    # Key/value pairs
    # ------------------------------------------------------------------------

    def _parse_key_value(self, table: _Table, section: int, depth: int) -> None:
        keys = self._parse_key_path(depth)
        self._expect(TokenKind.EQUALS, f"'=' after key '{_path(keys)}'")
        value = self._parse_value(depth + len(keys) - 1)

        target = self._walk_dotted(table, keys, section)
        last = keys[-1]
        if last.name in target.entries:
            raise ParseError(last.span, f"duplicate key '{_path(keys)}'")
        target.put(last, value)

    def _walk_dotted(self, table: _Table, keys: List[Key], section: int) -> _Table:
        """Descend through the tables named by a dotted key's prefix."""
        node = table
        for position, key in enumerate(keys[:-1]):
            child = node.get(key.name)
            if child is None:
                child = _Table(key.span)
                child.dotted = True
                child.section = section
                node.put(key, child)
            elif isinstance(child, _Table):
                reopening = child.dotted and child.section != section
                if child.header_defined or reopening:
                    raise ParseError(
                        key.span,
                        f"cannot add to table '{_path(keys[: position + 1])}' "
                        f"with dotted keys: it is already defined",
                    )
                child.dotted = True
                child.section = section
            else:
                raise ParseError(
                    key.span,
                    f"cannot extend '{_path(keys[: position + 1])}': "
                    f"it is {_with_article(child)}, not a table",
                )
            node = child
        return node

    # ------------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------------

    def _parse_value(self, depth: int) -> Value:
        token = self.lexer.peek(LexMode.VALUE)
        if depth > MAX_DEPTH:
            raise ParseError(token.span, "recursion limit exceeded")

        kind = token.kind
        if kind is TokenKind.LEFT_BRACKET:
            return self._parse_array(depth + 1)
        if kind is TokenKind.LEFT_BRACE:
            return self._parse_inline_table(depth + 1)
        if kind not in (
            TokenKind.STRING,
            TokenKind.INTEGER,
            TokenKind.FLOAT,
            TokenKind.BOOLEAN,
            TokenKind.DATETIME,
        ):
            raise ParseError(token.span, f"expected a value, got {token.describe()}")

        self.lexer.next(LexMode.VALUE)
        if kind is TokenKind.STRING:
            return StringValue(token.value, token.span)
        if kind is TokenKind.INTEGER:
            return IntegerValue(parse_integer(token), token.span)
        if kind is TokenKind.FLOAT:
            return FloatValue(parse_float(token), token.span)
        if kind is TokenKind.BOOLEAN:
            return BooleanValue(token.text == "true", token.span)
        return parse_datetime(token)

    def _parse_array(self, depth: int) -> ArrayValue:
        opening = self.lexer.next(LexMode.VALUE)
        self._unclosed += 1
        items: List[Value] = []

        while True:
            self._skip_newlines(LexMode.VALUE)
            if self.lexer.peek(LexMode.VALUE).kind is TokenKind.RIGHT_BRACKET:
                closing = self.lexer.next(LexMode.VALUE)
                break

            items.append(self._parse_value(depth))

            self._skip_newlines(LexMode.VALUE)
            token = self.lexer.peek(LexMode.VALUE)
            if token.kind is TokenKind.COMMA:
                self.lexer.next(LexMode.VALUE)
                continue
            if token.kind is TokenKind.RIGHT_BRACKET:
                closing = self.lexer.next(LexMode.VALUE)
                break
            raise ParseError(
                token.span, f"expected ',' or ']' in array, got {token.describe()}"
            )

        self._unclosed -= 1
        return ArrayValue(tuple(items), opening.span.to(closing.span))

    def _parse_inline_table(self, depth: int) -> TableValue:
        opening = self.lexer.next(LexMode.KEY)
        table = _Table(opening.span)
        self._unclosed += 1
        section = self._new_section()

        if not self.strict:
            self._skip_newlines(LexMode.KEY)
        token = self.lexer.peek(LexMode.KEY)
        if token.kind is TokenKind.RIGHT_BRACE:
            closing = self.lexer.next(LexMode.KEY)
            self._unclosed -= 1
            return TableValue(_freeze(table).entries, opening.span.to(closing.span))

        while True:
            self._check_inline_newline()
            self._parse_key_value(table, section, depth)
            self._check_inline_newline()

            token = self.lexer.peek(LexMode.KEY)
            if token.kind is TokenKind.RIGHT_BRACE:
                closing = self.lexer.next(LexMode.KEY)
                break
            if token.kind is not TokenKind.COMMA:
                raise ParseError(
                    token.span,
                    f"expected ',' or '}}' in inline table, got {token.describe()}",
                )
            self.lexer.next(LexMode.KEY)

            self._check_inline_newline()
            token = self.lexer.peek(LexMode.KEY)
            if token.kind is TokenKind.RIGHT_BRACE:
                if self.strict:
                    raise ParseError(token.span, "trailing comma in inline table")
                closing = self.lexer.next(LexMode.KEY)
                break

        self._unclosed -= 1
        return TableValue(_freeze(table).entries, opening.span.to(closing.span))

    def _check_inline_newline(self) -> None:
        if not self.strict:
            self._skip_newlines(LexMode.KEY)
            return
        token = self.lexer.peek(LexMode.KEY)
        if token.kind is TokenKind.NEWLINE:
            raise ParseError(token.span, "newlines are not allowed in inline tables")


# ============================================================================
# Scalar conversion
# ============================================================================


def parse_integer(token: Token) -> int:
    """
    Convert an INTEGER token to an int.

    Accepts decimal, 0x, 0o and 0b forms with underscores between digits.

    Raises:
        ParseError: On malformed literals or values outside signed 64 bits
    """
    text = token.text
    for pattern, base in PREFIXED_INTEGERS:
        if pattern.match(text):
            value = int(text[2:].replace("_", ""), base)
            break
    else:
        if not DECIMAL_INTEGER.match(text):
            raise ParseError(token.span, f"invalid integer '{text}'")
        value = int(text.replace("_", ""))

    if not INT64_MIN <= value <= INT64_MAX:
        raise ParseError(token.span, f"integer '{text}' does not fit in 64 bits")
    return value


def parse_float(token: Token) -> float:
    """
    Convert a FLOAT token to a float.

    A missing digit on either side of the decimal point is accepted.

    Raises:
        ParseError: On malformed literals or finite literals that overflow
    """
    text = token.text
    unsigned = text[1:] if text[:1] in "+-" else text
    if unsigned in ("inf", "nan"):
        return float(text)

    match = FLOAT.match(text)
    if not match or not any(c.isdigit() for c in match.group("mantissa")):
        raise ParseError(token.span, f"invalid float '{text}'")
    value = float(text.replace("_", ""))
    if math.isinf(value):
        raise ParseError(token.span, f"float '{text}' is out of range")
    return value


def parse_datetime(token: Token) -> Value:
    """
    Convert a DATETIME token to one of the four datetime variants.

    Raises:
        ParseError: On malformed literals or impossible dates/times
    """
    text = token.text
    span = token.span
    match = DATETIME.match(text)
    has_date = bool(match and match.group("year"))
    has_time = bool(match and match.group("hour"))
    if (
        not match
        or not (has_date or has_time)
        or (has_date and has_time and not match.group("separator"))
        or (not has_date and (match.group("separator") or match.group("offset")))
    ):
        raise ParseError(span, f"invalid datetime '{text}'")

    try:
        date = None
        if has_date:
            date = datetime.date(
                int(match.group("year")), int(match.group("month")), int(match.group("day"))
            )
        if not has_time:
            return LocalDateValue(date, span)

        fraction = match.group("fraction") or ""
        time = datetime.time(
            int(match.group("hour")),
            int(match.group("minute")),
            int(match.group("second")),
            int(fraction[:6].ljust(6, "0")),
        )
        if date is None:
            return LocalTimeValue(time, span)

        offset = match.group("offset")
        if not offset:
            return LocalDateTimeValue(datetime.datetime.combine(date, time), span)

        if offset in ("Z", "z"):
            tzinfo = datetime.timezone.utc
        else:
            hours, minutes = int(offset[1:3]), int(offset[4:6])
            if hours > 23 or minutes > 59:
                raise ValueError(f"offset {offset} out of range")
            delta = datetime.timedelta(hours=hours, minutes=minutes)
            tzinfo = datetime.timezone(-delta if offset[0] == "-" else delta)
        return OffsetDateTimeValue(
            datetime.datetime.combine(date, time, tzinfo=tzinfo), span
        )
    except ValueError as e:
        raise ParseError(span, f"invalid datetime '{text}': {e}") from e


def parse(text: str, strict: bool = True) -> ParseResult:
    """
    Parse a TOML document.

    Args:
        text: Document text
        strict: Reject multi-line inline tables and trailing commas in them

    Returns:
        ParseResult with the root table or the collected errors

    Example:
        >>> result = parse("[[fruit]]\\nname = 'x'")
        >>> result.value["fruit"][0]["name"].value
        'x'
    """
    return Parser(text, strict=strict).parse()
