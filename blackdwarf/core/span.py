"""
Source positions for tokens, values and diagnostics.

Every token produced by the lexer and every value produced by the parser
carries a Span recorded at creation time. Offsets count UTF-8 bytes of the
document; lines and columns (in code points) are 1-based.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Span:
    """Half-open range [start_offset, end_offset) with the start line/column."""

    start_offset: int
    line: int
    column: int
    end_offset: int

    @property
    def length(self) -> int:
        return self.end_offset - self.start_offset

    def to(self, other: "Span") -> "Span":
        """Span covering self up to the end of other."""
        return Span(self.start_offset, self.line, self.column, other.end_offset)

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


START = Span(0, 1, 1, 0)


class SourceCursor:
    """
    Tracks offset, line and column while walking over source text.

    ``offset`` indexes the decoded text and is what the lexer slices with;
    ``byte_offset`` counts UTF-8 bytes and is what spans record. Columns
    count code points. Marks are plain tuples so they can be stored cheaply
    for every token start.
    """

    def __init__(self, text: str):
        self.text = text
        self.offset = 0
        self.byte_offset = 0
        self.line = 1
        self.column = 1

    @property
    def at_end(self) -> bool:
        return self.offset >= len(self.text)

    def peek(self, ahead: int = 0) -> str:
        """Character at offset + ahead, or "" past the end."""
        index = self.offset + ahead
        if index < len(self.text):
            return self.text[index]
        return ""

    def startswith(self, prefix: str) -> bool:
        return self.text.startswith(prefix, self.offset)

    def advance(self) -> str:
        """Consume one character and update line/column."""
        char = self.text[self.offset]
        self.offset += 1
        self.byte_offset += 1 if char < "\x80" else len(char.encode("utf-8"))
        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return char

    def mark(self):
        return (self.offset, self.byte_offset, self.line, self.column)

    def reset(self, mark) -> None:
        self.offset, self.byte_offset, self.line, self.column = mark

    def span_from(self, mark) -> Span:
        """Span from a previous mark up to the current position."""
        _, byte_offset, line, column = mark
        return Span(byte_offset, line, column, self.byte_offset)

    def point(self) -> Span:
        """Zero-width span at the current position."""
        return Span(self.byte_offset, self.line, self.column, self.byte_offset)


def byte_length(text: str) -> int:
    """Length of text encoded as UTF-8."""
    return len(text.encode("utf-8"))


def span_at_offset(text: str, offset: int, length: int = 0) -> Span:
    """
    Compute a Span for a character offset into text.

    Used where no cursor is available, e.g. for decode errors reported
    before lexing starts. ``length`` is in bytes.
    """
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset) + 1
    line_start = text.rfind("\n", 0, offset) + 1
    start = byte_length(text[:offset])
    return Span(start, line, offset - line_start + 1, start + length)
