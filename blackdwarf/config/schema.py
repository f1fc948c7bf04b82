"""Build-config schema and the mapper from TOML values onto it.

Every top-level key of a ``blackdwarf.toml`` document names a target:

    [pomodoro]
    sources = ["eg/pomodoro.c"]
    dependencies = ["tomato"]

    [tomato]
    sources = ["eg/tomato/san_marzano.c"]
    include_dirs = ["eg/tomato"]

Unknown target keys are reported rather than ignored so that typos in a
config surface immediately.
"""

import difflib
import json
import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Dict, Iterator, List, Optional, Tuple

from blackdwarf.core.diagnostics import Diagnostic, diagnostics_from_errors
from blackdwarf.core.exceptions import BlackDwarfError, SchemaError
from blackdwarf.core.span import START, Span
from blackdwarf.toml.values import ArrayValue, Key, StringValue, TableValue, Value

logger = logging.getLogger(__name__)

TARGET_KEYS = ("sources", "dependencies", "include_dirs")


@dataclass(frozen=True)
class Dependency:
    """A named dependency, with the span of its declaration."""

    name: str
    span: Span = field(default=START, compare=False, repr=False)


@dataclass(frozen=True)
class Target:
    """A named build unit."""

    name: str
    sources: Tuple[PurePosixPath, ...] = ()
    dependencies: Tuple[Dependency, ...] = ()
    include_dirs: Tuple[PurePosixPath, ...] = ()
    span: Span = field(default=START, compare=False, repr=False)

    @property
    def dependency_names(self) -> Tuple[str, ...]:
        return tuple(dependency.name for dependency in self.dependencies)


@dataclass(frozen=True)
class Config:
    """Targets in document order, addressable by name."""

    targets: Tuple[Target, ...] = ()

    def __post_init__(self):
        index = {target.name: target for target in self.targets}
        if len(index) != len(self.targets):
            raise ValueError("duplicate target names")
        object.__setattr__(self, "_index", index)

    def __len__(self) -> int:
        return len(self.targets)

    def __iter__(self) -> Iterator[Target]:
        return iter(self.targets)

    def __contains__(self, name: str) -> bool:
        return name in self._index

    def __getitem__(self, name: str) -> Target:
        return self._index[name]

    def get(self, name: str) -> Optional[Target]:
        return self._index.get(name)

    def names(self) -> List[str]:
        return [target.name for target in self.targets]

    def to_dict(self) -> Dict[str, Dict[str, List[str]]]:
        return {
            target.name: {
                "sources": [path.as_posix() for path in target.sources],
                "dependencies": list(target.dependency_names),
                "include_dirs": [path.as_posix() for path in target.include_dirs],
            }
            for target in self.targets
        }

    def pformat(self) -> str:
        """JSON rendering used by build-config fixtures."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


@dataclass(frozen=True)
class MappingResult:
    """
    Outcome of mapping a value tree onto the schema.

    Attributes:
        config: Mapped config, or None when any error was recorded
        errors: SchemaError objects, at most one per target
    """

    config: Optional[Config]
    errors: Tuple[BlackDwarfError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    def diagnostics(self) -> List[Diagnostic]:
        return diagnostics_from_errors(self.errors)


def map_config(table: TableValue) -> MappingResult:
    """
    Map a parsed document onto the build-config schema.

    Args:
        table: Root table of a parsed document

    Returns:
        MappingResult with the Config or one SchemaError per broken target
    """
    targets: List[Target] = []
    errors: List[BlackDwarfError] = []

    for key, value in table.entries:
        try:
            targets.append(_map_target(key, value))
        except SchemaError as e:
            errors.append(e)

    logger.debug(f"Mapped {len(targets)} targets, {len(errors)} schema errors")
    if errors:
        return MappingResult(None, tuple(errors))
    return MappingResult(Config(tuple(targets)), ())


def _map_target(key: Key, value: Value) -> Target:
    name = key.name
    if not name:
        raise SchemaError(key.span, "target name cannot be empty")
    if not isinstance(value, TableValue):
        raise SchemaError(
            value.span, f"target '{name}' must be a table, got {value.type_name}"
        )

    for entry, _ in value.entries:
        if entry.name not in TARGET_KEYS:
            message = f"unknown key '{entry.name}' in target '{name}'"
            suggestions = difflib.get_close_matches(entry.name, TARGET_KEYS, n=1)
            if suggestions:
                message += f" (did you mean '{suggestions[0]}'?)"
            raise SchemaError(entry.span, message)

    sources = _string_list(value, "sources", name)
    for source in sources:
        if not source.value:
            raise SchemaError(source.span, f"empty source path in target '{name}'")

    dependencies: List[Dependency] = []
    seen = set()
    for entry in _string_list(value, "dependencies", name):
        if entry.value in seen:
            raise SchemaError(
                entry.span, f"target '{name}' lists dependency '{entry.value}' twice"
            )
        seen.add(entry.value)
        dependencies.append(Dependency(entry.value, entry.span))

    include_dirs = _string_list(value, "include_dirs", name)

    if not sources:
        logger.warning(f"Target '{name}' has no sources")

    return Target(
        name=name,
        sources=tuple(PurePosixPath(source.value) for source in sources),
        dependencies=tuple(dependencies),
        include_dirs=tuple(PurePosixPath(path.value) for path in include_dirs),
        span=key.span,
    )


def _string_list(table: TableValue, field_name: str, target: str) -> List[StringValue]:
    """Fetch an optional array-of-strings field."""
    value = table.get(field_name)
    if value is None:
        return []
    if not isinstance(value, ArrayValue):
        raise SchemaError(
            value.span,
            f"'{field_name}' of target '{target}' must be an array of strings, "
            f"got {value.type_name}",
        )
    for item in value:
        if not isinstance(item, StringValue):
            raise SchemaError(
                item.span,
                f"'{field_name}' of target '{target}' must contain only strings, "
                f"got {item.type_name}",
            )
    return list(value)
