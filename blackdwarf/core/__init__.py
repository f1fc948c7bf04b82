"""
Core functionality for blackdwarf.

Source spans, the exception hierarchy and diagnostics shared by every
pipeline stage.
"""

from .span import Span, SourceCursor, byte_length, span_at_offset

from .exceptions import (
    BlackDwarfError,
    SourceError,
    LexError,
    ParseError,
    DuplicateTableError,
    SchemaError,
    UnknownDependencyError,
    CycleError,
    ProjectError,
    ProjectNotFoundError,
    ProjectLoadError,
    CompilerProfileError,
    CompilerProfileNotFoundError,
    CompilerProfileInvalidError,
    UnknownSubstitutionError,
)

from .diagnostics import (
    Diagnostic,
    diagnostic_from_error,
    diagnostics_from_errors,
    format_diagnostics,
)

__all__ = [
    # Spans
    "Span",
    "SourceCursor",
    "byte_length",
    "span_at_offset",
    # Exceptions
    "BlackDwarfError",
    "SourceError",
    "LexError",
    "ParseError",
    "DuplicateTableError",
    "SchemaError",
    "UnknownDependencyError",
    "CycleError",
    "ProjectError",
    "ProjectNotFoundError",
    "ProjectLoadError",
    "CompilerProfileError",
    "CompilerProfileNotFoundError",
    "CompilerProfileInvalidError",
    "UnknownSubstitutionError",
    # Diagnostics
    "Diagnostic",
    "diagnostic_from_error",
    "diagnostics_from_errors",
    "format_diagnostics",
]
