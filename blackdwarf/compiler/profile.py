"""
Compiler profiles.

A profile is a YAML file describing how to spell a compile command for one
compiler family:

    command: gcc
    compile_format: [
      "%command", "%verbose_flag", "%debug_flag", "%compile_only_flag",
      "%includes", "%source", "%output_option", "%output"]
    verbose_flag: -v
    debug_flag: -g
    compile_only_flag: -c
    include_path_option: -I
    output_option: -o
    output_format: "%source_basename.o"

Profiles may ``extends`` another profile and override some of its fields.
Every setting can also be overridden through the environment, either for
one source file or globally (see ``env_var_names``).
"""

import logging
import os
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml

from blackdwarf.core.exceptions import (
    CompilerProfileError,
    CompilerProfileInvalidError,
    CompilerProfileNotFoundError,
)

logger = logging.getLogger(__name__)

BUILTIN_PROFILES_DIR = Path(__file__).parent.parent / "data" / "compilers"

DEFAULT_PROFILE = "cc"

ENV_PREFIX = "BLACKDWARF_COMPILER"

# Separator of INCLUDE_PATHS overrides
INCLUDE_PATH_SEPARATOR = ","


@dataclass(frozen=True)
class CompilerProfile:
    """
    Settings of one compiler, after ``extends`` has been resolved.

    Example:
        >>> profile = CompilerProfileLoader().load("gcc")
        >>> profile.setting("command", source="eg/pomodoro.c")
        'gcc'
    """

    name: str
    command: str
    compile_format: Tuple[str, ...]
    verbose_flag: str
    debug_flag: str
    compile_only_flag: str
    include_path_option: str
    output_option: str
    output_format: str

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "CompilerProfile":
        """
        Build a profile from merged YAML data.

        Raises:
            CompilerProfileInvalidError: On unknown, missing or mistyped fields
        """
        allowed = setting_names()
        unknown = sorted(key for key in data if key not in allowed)
        if unknown:
            raise CompilerProfileInvalidError(
                f"Compiler profile '{name}' has unknown fields: {', '.join(unknown)}"
            )
        missing = [key for key in allowed if key not in data]
        if missing:
            raise CompilerProfileInvalidError(
                f"Compiler profile '{name}' is missing required fields: "
                f"{', '.join(missing)}"
            )

        compile_format = data["compile_format"]
        if not isinstance(compile_format, list) or not all(
            isinstance(word, str) for word in compile_format
        ):
            raise CompilerProfileInvalidError(
                f"Compiler profile '{name}': compile_format must be a list of strings"
            )

        values: Dict[str, Any] = {"compile_format": tuple(compile_format)}
        for key in allowed:
            if key == "compile_format":
                continue
            value = data[key]
            # YAML reads an empty value as null
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise CompilerProfileInvalidError(
                    f"Compiler profile '{name}': {key} must be a string, "
                    f"got {type(value).__name__}"
                )
            values[key] = value

        return cls(name=name, **values)

    def setting(
        self,
        key: str,
        source: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> Union[str, List[str]]:
        """
        Effective value of a setting for a source file.

        The per-source environment variable wins over the global one, which
        wins over the profile value. ``compile_format`` is returned as a
        list; overrides of it are split on spaces.

        Args:
            key: Setting name, e.g. "debug_flag"
            source: Project-relative source path
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Setting value
        """
        if key not in setting_names():
            raise KeyError(key)
        environ = os.environ if environ is None else environ

        for variable in env_var_names(key, source):
            if variable in environ:
                value = environ[variable]
                logger.debug(f"{variable} overrides {key} of profile '{self.name}'")
                if key == "compile_format":
                    return [word for word in value.split(" ") if word]
                return value

        value = getattr(self, key)
        if key == "compile_format":
            return list(value)
        return value

    def include_paths(
        self,
        paths: List[str],
        source: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> List[str]:
        """Include paths for a source, honouring INCLUDE_PATHS overrides."""
        environ = os.environ if environ is None else environ
        for variable in env_var_names("include_paths", source):
            if variable in environ:
                logger.debug(f"{variable} overrides include paths")
                return [p for p in environ[variable].split(INCLUDE_PATH_SEPARATOR) if p]
        return list(paths)


def setting_names() -> Tuple[str, ...]:
    """Names of all profile settings, in declaration order."""
    return tuple(f.name for f in fields(CompilerProfile) if f.name != "name")


def mangle_source(source: str) -> str:
    """
    Turn a source path into an environment variable fragment.

    Example:
        >>> mangle_source("eg/tomato/san_marzano.c")
        'EG_TOMATO_SAN_MARZANO_C'
    """
    return re.sub(r"[^A-Za-z0-9]", "_", source).upper()


def env_var_names(key: str, source: Optional[str] = None) -> List[str]:
    """Environment variables that override a setting, most specific first."""
    names = []
    if source:
        names.append(f"{ENV_PREFIX}_{mangle_source(source)}_{key.upper()}")
    names.append(f"{ENV_PREFIX}_{key.upper()}")
    return names


class CompilerProfileLoader:
    """
    Load compiler profiles from YAML files.

    Directories are searched in order; the built-in profile directory is
    always searched last, so user profiles shadow built-in ones.

    Example:
        >>> loader = CompilerProfileLoader([Path("profiles")])
        >>> loader.load("clang").command
        'clang'
    """

    def __init__(self, search_dirs: Optional[List[Union[str, Path]]] = None):
        self.search_dirs = [Path(d) for d in (search_dirs or [])]
        if BUILTIN_PROFILES_DIR not in self.search_dirs:
            self.search_dirs.append(BUILTIN_PROFILES_DIR)
        self._yaml_cache: Dict[str, Dict[str, Any]] = {}
        self._profile_cache: Dict[str, CompilerProfile] = {}

    def load(self, name: str) -> CompilerProfile:
        """
        Load a profile by name.

        Raises:
            CompilerProfileNotFoundError: If no directory has the profile
            CompilerProfileInvalidError: If the YAML is malformed
            CompilerProfileError: If extends is circular
        """
        if name in self._profile_cache:
            return self._profile_cache[name]

        data = self._load_yaml_file(name)
        if "extends" in data:
            data = self._resolve_extends(data, [name])

        profile = CompilerProfile.from_dict(name, data)
        logger.debug(f"Loaded compiler profile '{name}'")
        self._profile_cache[name] = profile
        return profile

    def list_available(self) -> List[str]:
        """Names of all profiles found in the search directories."""
        names = set()
        for directory in self.search_dirs:
            if directory.is_dir():
                names.update(f.stem for f in directory.glob("*.yaml"))
        return sorted(names)

    def find(self, name: str) -> Optional[Path]:
        for directory in self.search_dirs:
            candidate = directory / f"{name}.yaml"
            if candidate.is_file():
                return candidate
        return None

    def _load_yaml_file(self, name: str) -> Dict[str, Any]:
        if name in self._yaml_cache:
            return dict(self._yaml_cache[name])

        path = self.find(name)
        if path is None:
            raise CompilerProfileNotFoundError(
                f"Compiler profile not found: {name}\n"
                f"Available profiles: {', '.join(self.list_available())}"
            )

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise CompilerProfileInvalidError(f"Invalid YAML syntax in {path}: {e}") from e
        except OSError as e:
            raise CompilerProfileError(f"Failed to load {path}: {e}") from e

        if data is None:
            raise CompilerProfileInvalidError(f"Empty profile file: {path}")
        if not isinstance(data, dict):
            raise CompilerProfileInvalidError(
                f"Profile must be a mapping, got {type(data).__name__}: {path}"
            )

        self._yaml_cache[name] = dict(data)
        return data

    def _resolve_extends(self, data: Dict[str, Any], chain: List[str]) -> Dict[str, Any]:
        """Merge data over the profile it extends, recursively."""
        if "extends" not in data:
            return data

        base_name = str(data["extends"])
        if base_name.endswith(".yaml"):
            base_name = base_name[: -len(".yaml")]

        if base_name in chain:
            raise CompilerProfileError(
                f"Circular extends detected: {' -> '.join(chain)} -> {base_name}"
            )

        base = self._load_yaml_file(base_name)
        base = self._resolve_extends(base, chain + [base_name])

        merged = dict(base)
        merged.update((key, value) for key, value in data.items() if key != "extends")
        return merged
