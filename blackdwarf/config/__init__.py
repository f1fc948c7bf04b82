"""Build-config schema."""

from .schema import (
    TARGET_KEYS,
    Config,
    Dependency,
    MappingResult,
    Target,
    map_config,
)

__all__ = [
    "TARGET_KEYS",
    "Config",
    "Dependency",
    "MappingResult",
    "Target",
    "map_config",
]
