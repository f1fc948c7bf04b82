"""
Shared utilities for CLI commands.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

from blackdwarf.core.diagnostics import diagnostics_from_errors, format_diagnostics
from blackdwarf.core.exceptions import ProjectLoadError, ProjectNotFoundError
from blackdwarf.project import Project, load_project, resolve_project_path
from blackdwarf.toml.lexer import decode_source

logger = logging.getLogger(__name__)

STDIN_NAME = "<stdin>"


# ============================================================================
# Input
# ============================================================================


def read_document(file_arg: str) -> Tuple[str, str]:
    """
    Read a document named on the command line.

    Args:
        file_arg: File path, or '-' for standard input

    Returns:
        Tuple of (display name, decoded text)

    Raises:
        ProjectNotFoundError: If the file cannot be read
        LexError: If the bytes are not valid UTF-8
    """
    if file_arg == "-":
        return STDIN_NAME, decode_source(sys.stdin.buffer.read())

    path = Path(file_arg)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ProjectNotFoundError(f"Cannot read {path}: {e}")
    return str(path), decode_source(data)


def load_project_from_args(args) -> Project:
    """Locate and load the project selected by --project."""
    path = resolve_project_path(getattr(args, "project", None))
    logger.debug(f"Using project file {path}")
    return load_project(path)


# ============================================================================
# Output
# ============================================================================


def print_error(message: str, details: Optional[str] = None):
    """Print an error message to stderr."""
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


def print_diagnostics(errors, path: Optional[str] = None, source: Optional[str] = None):
    """Print errors as diagnostics with source excerpts to stderr."""
    diagnostics = diagnostics_from_errors(errors)
    print(format_diagnostics(diagnostics, path=path, source=source), file=sys.stderr)


def report_load_error(error: ProjectLoadError):
    print_diagnostics(error.errors, path=str(error.path), source=error.source)
