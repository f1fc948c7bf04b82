"""Diagnostic records and their text rendering.

Errors travel through the pipeline as exception objects; this module turns
them into flat, position-bearing records for display.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from blackdwarf.core.exceptions import BlackDwarfError
from blackdwarf.core.span import Span, byte_length


@dataclass(frozen=True)
class Diagnostic:
    """A single reportable problem."""

    level: str  # 'error', 'warning'
    kind: str  # e.g. 'parse error', 'schema error'
    message: str
    span: Optional[Span] = None

    @property
    def line(self) -> int:
        return self.span.line if self.span else 0

    @property
    def column(self) -> int:
        return self.span.column if self.span else 0

    def as_tuple(self) -> Tuple[int, int, str]:
        """(line, column, message), 1-based; 0 when there is no position."""
        return (self.line, self.column, self.message)

    def format(self, path: Optional[str] = None) -> str:
        location = []
        if path:
            location.append(str(path))
        if self.span:
            location.append(f"{self.span.line}:{self.span.column}")
        prefix = ":".join(location)
        if prefix:
            return f"{prefix}: {self.level}: {self.message}"
        return f"{self.level}: {self.message}"


def diagnostic_from_error(error: BlackDwarfError, level: str = "error") -> Diagnostic:
    """Convert an error into a Diagnostic."""
    kind = getattr(error, "kind", "error")
    return Diagnostic(level=level, kind=kind, message=error.message, span=error.span)


def diagnostics_from_errors(errors: Iterable[BlackDwarfError]) -> List[Diagnostic]:
    return [diagnostic_from_error(error) for error in errors]


def source_excerpt(source: str, span: Span) -> List[str]:
    """
    Render the source line of a span with a caret under its start.

    Args:
        source: Full document text
        span: Position to point at

    Returns:
        Two lines (source line, caret line), or an empty list if the span
        falls outside the document
    """
    lines = source.splitlines()
    if not 1 <= span.line <= len(lines):
        return []
    text = lines[span.line - 1].replace("\t", " ")
    # span.length counts bytes, the caret counts characters
    width = 0
    remaining = span.length
    for char in text[span.column - 1 :]:
        remaining -= byte_length(char)
        if remaining < 0:
            break
        width += 1
    width = max(1, width)
    caret = " " * (span.column - 1) + "^" * width
    return [f"    {text}", f"    {caret}"]


def format_diagnostics(
    diagnostics: List[Diagnostic],
    path: Optional[str] = None,
    source: Optional[str] = None,
) -> str:
    """
    Format diagnostics for display.

    Errors are listed before warnings, each in document order. When the
    source text is given, every positioned diagnostic is followed by the
    offending line and a caret.

    Args:
        diagnostics: Diagnostics to format
        path: Optional file name prefix
        source: Optional document text for excerpts

    Returns:
        Formatted string for display
    """
    if not diagnostics:
        return "No problems found"

    def order(diagnostic: Diagnostic):
        return (diagnostic.line, diagnostic.column)

    errors = sorted((d for d in diagnostics if d.level == "error"), key=order)
    warnings = sorted((d for d in diagnostics if d.level != "error"), key=order)

    lines = []
    for diagnostic in errors + warnings:
        lines.append(diagnostic.format(path))
        if source is not None and diagnostic.span is not None:
            lines.extend(source_excerpt(source, diagnostic.span))

    noun = "error" if len(errors) == 1 else "errors"
    summary = f"{len(errors)} {noun}"
    if warnings:
        summary += f", {len(warnings)} warning{'s' if len(warnings) != 1 else ''}"
    lines.append(summary)

    return "\n".join(lines)
