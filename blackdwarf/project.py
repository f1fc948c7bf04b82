"""Project file discovery and loading.

A project is a ``blackdwarf.toml`` file. Loading chains the pipeline
stages (decode, parse, map, resolve) and stops at the first stage that
reports errors, raising ProjectLoadError with every error of that stage.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from blackdwarf.config.schema import Config, map_config
from blackdwarf.core.exceptions import LexError, ProjectLoadError, ProjectNotFoundError
from blackdwarf.graph.resolver import BuildPlan, resolve
from blackdwarf.toml.lexer import decode_source
from blackdwarf.toml.parser import parse

logger = logging.getLogger(__name__)

PROJECT_FILENAME = "blackdwarf.toml"


@dataclass(frozen=True)
class Project:
    """A loaded and resolved project file."""

    path: Path
    source: str
    plan: BuildPlan

    @property
    def root(self) -> Path:
        """Directory that target paths are relative to."""
        return self.path.parent

    @property
    def config(self) -> Config:
        return self.plan.config


def find_project_file(start: Optional[Path] = None) -> Optional[Path]:
    """
    Search start and its parents for a project file.

    Args:
        start: Directory to start from (defaults to current directory)

    Returns:
        Path to the project file, or None if there is none
    """
    directory = (start or Path.cwd()).resolve()
    for candidate in [directory, *directory.parents]:
        path = candidate / PROJECT_FILENAME
        if path.is_file():
            logger.debug(f"Found project file: {path}")
            return path
    return None


def resolve_project_path(path: Optional[Union[str, Path]] = None) -> Path:
    """
    Turn a --project argument into a project file path.

    A directory is searched upwards; a file is used as is.

    Raises:
        ProjectNotFoundError: If no project file can be found
    """
    if path is not None:
        path = Path(path)
        if path.is_file():
            return path
        if not path.is_dir():
            raise ProjectNotFoundError(f"Project file not found: {path}")

    found = find_project_file(path)
    if found is None:
        where = path if path is not None else Path.cwd()
        raise ProjectNotFoundError(
            f"No {PROJECT_FILENAME} in {where} or any parent directory"
        )
    return found


def read_source(path: Path) -> str:
    """
    Read a document as UTF-8 text.

    Raises:
        ProjectNotFoundError: If the file cannot be read
        ProjectLoadError: If the file is not valid UTF-8
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise ProjectNotFoundError(f"Cannot read {path}: {e}")
    try:
        return decode_source(data)
    except LexError as e:
        raise ProjectLoadError(path, [e])


def load_project(path: Union[str, Path]) -> Project:
    """
    Load a project file and resolve its build plan.

    Args:
        path: Path to a blackdwarf.toml file

    Returns:
        Project with its source text and build plan

    Raises:
        ProjectNotFoundError: If the file cannot be read
        ProjectLoadError: If parsing, mapping or resolution fails

    Example:
        >>> project = load_project("blackdwarf.toml")
        >>> project.plan.order
        ('tomato', 'pomodoro')
    """
    path = Path(path)
    source = read_source(path)

    parsed = parse(source)
    if not parsed.ok:
        raise ProjectLoadError(path, parsed.errors, source)

    mapped = map_config(parsed.value)
    if not mapped.ok:
        raise ProjectLoadError(path, mapped.errors, source)

    resolution = resolve(mapped.config)
    if not resolution.ok:
        raise ProjectLoadError(path, resolution.errors, source)

    logger.debug(f"Loaded {path}: {len(mapped.config)} targets")
    return Project(path=path, source=source, plan=resolution.plan)
