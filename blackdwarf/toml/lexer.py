"""
TOML lexer.

Turns document text into positioned tokens, one at a time. The parser
tells the lexer whether it expects a key or a value (see LexMode): the same
characters lex differently in the two positions, e.g. ``1979-05-27`` is a
bare key on the left of ``=`` and a datetime on the right. A buffered
lookahead token that was scanned in the other mode is scanned again from
its start; the lexer never rewinds further than that one token.

The lexer is permissive about the exact shape of numbers and datetimes and
leaves their validation to the parser. It raises LexError for characters
that cannot start a token, unterminated strings, malformed escapes and
control characters inside strings.
"""

import logging
import re
from typing import Iterator, List, Optional

from blackdwarf.core.exceptions import LexError
from blackdwarf.core.span import SourceCursor, span_at_offset
from blackdwarf.toml.tokens import LexMode, Quoting, Token, TokenKind

logger = logging.getLogger(__name__)


PUNCTUATION = {
    "[": TokenKind.LEFT_BRACKET,
    "]": TokenKind.RIGHT_BRACKET,
    "{": TokenKind.LEFT_BRACE,
    "}": TokenKind.RIGHT_BRACE,
    "=": TokenKind.EQUALS,
    ",": TokenKind.COMMA,
}

ESCAPES = {
    "b": "\b",
    "t": "\t",
    "n": "\n",
    "f": "\f",
    "r": "\r",
    "e": "\x1b",
    '"': '"',
    "\\": "\\",
}

BARE_KEY_CHARS = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-"
)
NUMBER_CHARS = BARE_KEY_CHARS | frozenset("+.:")
DIGITS = frozenset("0123456789")
WHITESPACE = frozenset(" \t")

KEYWORDS = {
    "true": TokenKind.BOOLEAN,
    "false": TokenKind.BOOLEAN,
    "inf": TokenKind.FLOAT,
    "nan": TokenKind.FLOAT,
}

DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
TIME_PREFIX = re.compile(r"^\d{2}:\d{2}")
FULL_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
BASE_PREFIX = re.compile(r"^[+-]?0[xob]")


def decode_source(data: bytes) -> str:
    """
    Decode a UTF-8 document.

    Args:
        data: Raw file contents

    Returns:
        Decoded text (a leading byte order mark is dropped)

    Raises:
        LexError: If the bytes are not valid UTF-8
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        valid = data[: e.start].decode("utf-8")
        raise LexError(
            span_at_offset(valid, len(valid), 1), "invalid UTF-8 byte sequence"
        ) from e
    if text.startswith("\ufeff"):
        text = text[1:]
    return text


def _is_control(char: str) -> bool:
    code = ord(char)
    return (code < 0x20 and char != "\t") or code == 0x7F


class Lexer:
    """
    Produces tokens lazily from a document.

    Example:
        >>> lexer = Lexer("a = 1")
        >>> lexer.next(LexMode.KEY).kind
        <TokenKind.BARE_KEY: 'bare key'>
    """

    def __init__(self, text: str, keep_comments: bool = False):
        self.text = text
        self.keep_comments = keep_comments
        self.cursor = SourceCursor(text)
        self._peeked: Optional[Token] = None
        self._before_peek = self.cursor.mark()

    def peek(self, mode: LexMode = LexMode.KEY) -> Token:
        """Return the next token without consuming it."""
        if self._peeked is not None:
            if self._peeked.mode == mode:
                return self._peeked
            self.cursor.reset(self._before_peek)
            self._peeked = None

        self._before_peek = self.cursor.mark()
        self._peeked = self._scan(mode)
        return self._peeked

    def next(self, mode: LexMode = LexMode.KEY) -> Token:
        """Consume and return the next token."""
        token = self.peek(mode)
        self._peeked = None
        return token

    def skip_line(self) -> None:
        """
        Drop everything up to and including the next newline.

        Used by the parser to resynchronise after an error. A buffered
        lookahead token is discarded and rescanning starts where it began.
        """
        if self._peeked is not None:
            self.cursor.reset(self._before_peek)
            self._peeked = None
        while not self.cursor.at_end:
            if self.cursor.advance() == "\n":
                break

    def skip_nested(self, depth: int) -> None:
        """
        Drop tokens until depth open brackets or braces have closed, then
        the rest of that line.

        Lets the parser resume after the whole array or inline table an
        error occurred in, however many lines it spans. Malformed tokens on
        the way are stepped over.
        """
        if self._peeked is not None:
            self.cursor.reset(self._before_peek)
            self._peeked = None
        while depth > 0 and not self.cursor.at_end:
            offset = self.cursor.offset
            try:
                token = self.next(LexMode.VALUE)
            except LexError:
                if self.cursor.offset == offset:
                    self.cursor.advance()
                continue
            if token.kind in (TokenKind.LEFT_BRACKET, TokenKind.LEFT_BRACE):
                depth += 1
            elif token.kind in (TokenKind.RIGHT_BRACKET, TokenKind.RIGHT_BRACE):
                depth -= 1
        self.skip_line()

    # ------------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------------

    def _scan(self, mode: LexMode) -> Token:
        cursor = self.cursor
        while True:
            while cursor.peek() in WHITESPACE:
                cursor.advance()
            if cursor.peek() != "#":
                break
            comment = self._scan_comment(mode)
            if self.keep_comments:
                return comment

        start = cursor.mark()
        if cursor.at_end:
            return Token(TokenKind.EOF, "", cursor.point(), mode)

        char = cursor.peek()
        if char == "\n":
            cursor.advance()
            return self._token(TokenKind.NEWLINE, start, mode)
        if char == "\r":
            cursor.advance()
            if cursor.peek() != "\n":
                raise LexError(
                    cursor.span_from(start), "carriage return must be followed by newline"
                )
            cursor.advance()
            return self._token(TokenKind.NEWLINE, start, mode)

        if char in PUNCTUATION:
            cursor.advance()
            return self._token(PUNCTUATION[char], start, mode)

        if char in ('"', "'"):
            return self._scan_string(start, mode)

        if mode is LexMode.VALUE:
            if char in "+-" or char in DIGITS or (
                char == "." and cursor.peek(1) in DIGITS
            ):
                return self._scan_number_or_datetime(start, mode)

        if char == ".":
            cursor.advance()
            return self._token(TokenKind.DOT, start, mode)

        if char in BARE_KEY_CHARS:
            while cursor.peek() in BARE_KEY_CHARS:
                cursor.advance()
            token = self._token(TokenKind.BARE_KEY, start, mode)
            if mode is LexMode.VALUE and token.text in KEYWORDS:
                return self._token(KEYWORDS[token.text], start, mode)
            return token

        cursor.advance()
        raise LexError(cursor.span_from(start), f"unexpected character {char!r}")

    def _token(self, kind: TokenKind, start, mode: LexMode, **extra) -> Token:
        span = self.cursor.span_from(start)
        text = self.text[start[0] : self.cursor.offset]
        return Token(kind, text, span, mode, **extra)

    def _scan_comment(self, mode: LexMode) -> Token:
        cursor = self.cursor
        start = cursor.mark()
        while not cursor.at_end and cursor.peek() not in "\r\n":
            char = cursor.peek()
            if _is_control(char):
                bad = cursor.mark()
                cursor.advance()
                raise LexError(
                    cursor.span_from(bad), f"control character {char!r} in comment"
                )
            cursor.advance()
        return self._token(TokenKind.COMMENT, start, mode)

    def _scan_number_or_datetime(self, start, mode: LexMode) -> Token:
        cursor = self.cursor
        while cursor.peek() in NUMBER_CHARS:
            cursor.advance()
        text = self.text[start[0] : cursor.offset]

        # "1979-05-27 07:32:00": a date followed by a space and a time
        if FULL_DATE.match(text) and cursor.peek() == " ":
            rest = self.text[cursor.offset + 1 : cursor.offset + 6]
            if TIME_PREFIX.match(rest):
                cursor.advance()
                while cursor.peek() in NUMBER_CHARS:
                    cursor.advance()
                text = self.text[start[0] : cursor.offset]

        lowered = text.lower()
        if DATE_PREFIX.match(text) or TIME_PREFIX.match(text):
            kind = TokenKind.DATETIME
        elif BASE_PREFIX.match(lowered):
            kind = TokenKind.INTEGER
        elif lowered.lstrip("+-") in ("inf", "nan"):
            kind = TokenKind.FLOAT
        elif "." in text or "e" in lowered:
            kind = TokenKind.FLOAT
        else:
            kind = TokenKind.INTEGER
        return self._token(kind, start, mode)

    # ------------------------------------------------------------------------
    # Strings
    # ------------------------------------------------------------------------

    def _scan_string(self, start, mode: LexMode) -> Token:
        cursor = self.cursor
        quote = cursor.peek()
        if cursor.startswith(quote * 3):
            quoting = (
                Quoting.MULTILINE_BASIC if quote == '"' else Quoting.MULTILINE_LITERAL
            )
            for _ in range(3):
                cursor.advance()
            value = self._scan_multiline_body(start, quoting)
        else:
            quoting = Quoting.BASIC if quote == '"' else Quoting.LITERAL
            cursor.advance()
            value = self._scan_single_line_body(start, quoting)
        return self._token(TokenKind.STRING, start, mode, value=value, quoting=quoting)

    def _scan_single_line_body(self, start, quoting: Quoting) -> str:
        cursor = self.cursor
        parts: List[str] = []
        while True:
            if cursor.at_end or cursor.peek() in "\r\n":
                raise LexError(cursor.span_from(start), "unterminated string")
            char = cursor.peek()
            if char == quoting.value:
                cursor.advance()
                return "".join(parts)
            if char == "\\" and quoting is Quoting.BASIC:
                parts.append(self._scan_escape())
                continue
            if _is_control(char):
                self._control_error(char)
            parts.append(cursor.advance())

    def _scan_multiline_body(self, start, quoting: Quoting) -> str:
        cursor = self.cursor
        delimiter = quoting.value
        quote = delimiter[0]

        # A newline right after the opening delimiter is trimmed
        if cursor.startswith("\r\n"):
            cursor.advance()
            cursor.advance()
        elif cursor.startswith("\n"):
            cursor.advance()

        parts: List[str] = []
        while True:
            if cursor.at_end:
                raise LexError(cursor.span_from(start), "unterminated multiline string")
            char = cursor.peek()

            if char == quote and cursor.startswith(delimiter):
                run = 0
                while cursor.peek(run) == quote:
                    run += 1
                if run > 5:
                    for _ in range(run):
                        cursor.advance()
                    raise LexError(
                        cursor.span_from(start), "too many quotes closing multiline string"
                    )
                for _ in range(run):
                    cursor.advance()
                parts.append(quote * (run - 3))
                return "".join(parts)

            if char == "\\" and quoting is Quoting.MULTILINE_BASIC:
                if self._at_line_ending_backslash():
                    cursor.advance()
                    while not cursor.at_end and cursor.peek() in " \t\r\n":
                        if cursor.peek() == "\r" and cursor.peek(1) != "\n":
                            self._control_error("\r")
                        cursor.advance()
                    continue
                parts.append(self._scan_escape())
                continue

            if char == "\r":
                if cursor.peek(1) != "\n":
                    self._control_error(char)
                cursor.advance()
                continue
            if char == "\n":
                parts.append(cursor.advance())
                continue
            if _is_control(char):
                self._control_error(char)
            parts.append(cursor.advance())

    def _at_line_ending_backslash(self) -> bool:
        index = 1
        while self.cursor.peek(index) in WHITESPACE:
            index += 1
        return self.cursor.peek(index) in ("\n", "\r")

    def _scan_escape(self) -> str:
        cursor = self.cursor
        start = cursor.mark()
        cursor.advance()
        if cursor.at_end:
            raise LexError(cursor.span_from(start), "unterminated escape sequence")
        code = cursor.advance()
        if code in ESCAPES:
            return ESCAPES[code]
        if code in ("u", "U"):
            width = 4 if code == "u" else 8
            digits = self.text[cursor.offset : cursor.offset + width]
            if len(digits) != width or not all(
                c in "0123456789abcdefABCDEF" for c in digits
            ):
                raise LexError(
                    cursor.span_from(start),
                    f"escape \\{code} needs {width} hexadecimal digits",
                )
            for _ in range(width):
                cursor.advance()
            value = int(digits, 16)
            if value > 0x10FFFF or 0xD800 <= value <= 0xDFFF:
                raise LexError(
                    cursor.span_from(start),
                    f"escape \\{code}{digits} is not a Unicode scalar value",
                )
            return chr(value)
        raise LexError(cursor.span_from(start), f"invalid escape sequence '\\{code}'")

    def _control_error(self, char: str) -> None:
        start = self.cursor.mark()
        self.cursor.advance()
        raise LexError(
            self.cursor.span_from(start), f"control character {char!r} in string"
        )


def tokenize(text: str, keep_comments: bool = False) -> Iterator[Token]:
    """
    Yield all tokens of a document.

    Switches between key and value mode the way the parser would: values
    follow ``=`` and fill arrays, keys start lines and inline table entries.
    Intended for inspection and debugging; the parser drives the Lexer
    directly.

    Args:
        text: Document text
        keep_comments: Also yield COMMENT tokens

    Yields:
        Tokens up to and including EOF

    Raises:
        LexError: On the first invalid token
    """
    lexer = Lexer(text, keep_comments=keep_comments)
    # Each entry is "array" or "table" for an open inline construct
    nesting: List[str] = []
    mode = LexMode.KEY
    count = 0

    while True:
        token = lexer.next(mode)
        count += 1
        yield token
        kind = token.kind
        if kind is TokenKind.EOF:
            break

        if kind is TokenKind.EQUALS:
            mode = LexMode.VALUE
        elif kind is TokenKind.LEFT_BRACKET and mode is LexMode.VALUE:
            nesting.append("array")
        elif kind is TokenKind.LEFT_BRACE:
            nesting.append("table")
            mode = LexMode.KEY
        elif kind in (TokenKind.RIGHT_BRACKET, TokenKind.RIGHT_BRACE) and nesting:
            nesting.pop()
            mode = LexMode.VALUE if nesting and nesting[-1] == "array" else LexMode.KEY
        elif kind in (TokenKind.COMMA, TokenKind.NEWLINE):
            if nesting:
                mode = LexMode.VALUE if nesting[-1] == "array" else LexMode.KEY
            else:
                mode = LexMode.KEY

    logger.debug(f"Tokenized {count} tokens")
