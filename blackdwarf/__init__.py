"""
blackdwarf - TOML-configured build planner for C projects.

The pipeline is parse -> map_config -> resolve; load_project chains all
three for a ``blackdwarf.toml`` file.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("blackdwarf")
except PackageNotFoundError:
    __version__ = "0.1.0"

from blackdwarf.config.schema import Config, Dependency, Target, map_config
from blackdwarf.graph.resolver import BuildPlan, resolve
from blackdwarf.project import Project, find_project_file, load_project
from blackdwarf.toml.parser import parse

__all__ = [
    "__version__",
    "parse",
    "map_config",
    "resolve",
    "load_project",
    "find_project_file",
    "Config",
    "Dependency",
    "Target",
    "BuildPlan",
    "Project",
]
