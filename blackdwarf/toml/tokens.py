"""Token kinds and the Token record produced by the lexer."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from blackdwarf.core.span import Span


class TokenKind(Enum):
    """Kinds of lexical units."""

    BARE_KEY = "bare key"
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATETIME = "datetime"

    LEFT_BRACKET = "'['"
    RIGHT_BRACKET = "']'"
    LEFT_BRACE = "'{'"
    RIGHT_BRACE = "'}'"
    EQUALS = "'='"
    DOT = "'.'"
    COMMA = "','"

    COMMENT = "comment"
    NEWLINE = "newline"
    EOF = "end of input"


class LexMode(Enum):
    """What the parser expects next; decides how runs of characters lex."""

    KEY = "key"
    VALUE = "value"


class Quoting(Enum):
    BASIC = '"'
    LITERAL = "'"
    MULTILINE_BASIC = '"""'
    MULTILINE_LITERAL = "'''"

    @property
    def multiline(self) -> bool:
        return len(self.value) == 3


@dataclass(frozen=True)
class Token:
    """
    One lexical unit.

    Attributes:
        kind: Token kind
        text: Raw source slice, quotes and escapes included
        span: Where the token starts and ends
        mode: Lexer mode the token was scanned in
        value: Decoded contents for STRING tokens
        quoting: Quote style for STRING tokens
    """

    kind: TokenKind
    text: str
    span: Span
    mode: LexMode = LexMode.KEY
    value: Optional[str] = None
    quoting: Optional[Quoting] = None

    def describe(self) -> str:
        """Human-readable token description for error messages."""
        if self.kind in (TokenKind.NEWLINE, TokenKind.EOF):
            return self.kind.value
        return f"'{self.text}'"
