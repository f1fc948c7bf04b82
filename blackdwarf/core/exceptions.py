"""
Centralized exception hierarchy for blackdwarf.

Pipeline stages (lexing, parsing, mapping, resolving) return these errors
as data in their result objects; the loader and the CLI raise them.
"""

from typing import List, Optional, Sequence

from blackdwarf.core.span import Span


# ============================================================================
# Base Exceptions
# ============================================================================


class BlackDwarfError(Exception):
    """Base exception for all blackdwarf errors."""

    span: Optional[Span] = None

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SourceError(BlackDwarfError):
    """Error pointing at a location in a source document."""

    kind = "error"

    def __init__(self, span: Span, message: str):
        self.span = span
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.span.line}:{self.span.column}: {self.message}"


# ============================================================================
# TOML Exceptions
# ============================================================================


class LexError(SourceError):
    """Invalid character, unterminated string or malformed escape."""

    kind = "lex error"

    def __init__(self, span: Span, reason: str):
        self.reason = reason
        super().__init__(span, reason)


class ParseError(SourceError):
    """Structural error in a TOML document."""

    kind = "parse error"


class DuplicateTableError(ParseError):
    """A table header defines a table that is already defined."""

    def __init__(self, span: Span, name: str):
        self.name = name
        super().__init__(span, f"table '{name}' is already defined")


# ============================================================================
# Build Config Exceptions
# ============================================================================


class SchemaError(SourceError):
    """The value tree does not match the build-config schema."""

    kind = "schema error"


class UnknownDependencyError(SourceError):
    """A target depends on a target that is not defined."""

    kind = "unknown dependency"

    def __init__(self, target: str, missing_name: str, span: Span):
        self.target = target
        self.missing_name = missing_name
        super().__init__(
            span, f"target '{target}' depends on unknown target '{missing_name}'"
        )


class CycleError(BlackDwarfError):
    """Targets depend on each other in a cycle."""

    kind = "dependency cycle"

    def __init__(self, cycle: Sequence[str], span: Optional[Span] = None):
        self.cycle = list(cycle)
        self.span = span
        path = " -> ".join(self.cycle + self.cycle[:1])
        super().__init__(f"dependency cycle: {path}")


# ============================================================================
# Project Exceptions
# ============================================================================


class ProjectError(BlackDwarfError):
    """Base exception for project file errors."""


class ProjectNotFoundError(ProjectError):
    """No project file in the given directory or any parent."""


class ProjectLoadError(ProjectError):
    """The project file could not be parsed, mapped or resolved."""

    def __init__(
        self, path, errors: List[BlackDwarfError], source: Optional[str] = None
    ):
        self.path = path
        self.errors = list(errors)
        self.source = source
        noun = "error" if len(self.errors) == 1 else "errors"
        super().__init__(f"{len(self.errors)} {noun} in {path}")


# ============================================================================
# Compiler Profile Exceptions
# ============================================================================


class CompilerProfileError(BlackDwarfError):
    """Base exception for compiler profile errors."""


class CompilerProfileNotFoundError(CompilerProfileError):
    """Raised when a compiler profile file is not found."""


class CompilerProfileInvalidError(CompilerProfileError):
    """Raised when a compiler profile is malformed."""


class UnknownSubstitutionError(CompilerProfileError):
    """A compile format word starts with % but is not a known substitution."""

    def __init__(self, word: str):
        self.word = word
        super().__init__(f"Unknown substitution in compile format: {word}")
