"""Target dependency graph and build order."""

from .resolver import (
    BuildPlan,
    DependencyGraph,
    Resolution,
    build_graph,
    resolve,
    topological_order,
)

__all__ = [
    "BuildPlan",
    "DependencyGraph",
    "Resolution",
    "build_graph",
    "resolve",
    "topological_order",
]
