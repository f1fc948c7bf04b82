"""
Dependency resolution.

Builds the target graph from a Config, verifies every dependency names a
defined target, and computes a build order in which each target follows
all of its dependencies. Traversal is deterministic: roots are visited in
document order and edges in declaration order.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from blackdwarf.config.schema import Config, Target
from blackdwarf.core.diagnostics import Diagnostic, diagnostics_from_errors
from blackdwarf.core.exceptions import (
    BlackDwarfError,
    CycleError,
    UnknownDependencyError,
)
from blackdwarf.core.span import Span

logger = logging.getLogger(__name__)

# Traversal colors
UNVISITED = 0
IN_PROGRESS = 1
DONE = 2


@dataclass(frozen=True)
class DependencyGraph:
    """
    Directed graph over target names; an edge A -> B means A depends on B.

    Attributes:
        nodes: Target names in document order
        edges: Dependencies of each node, in declaration order
        edge_spans: Span of the dependency entry behind each edge
    """

    nodes: Tuple[str, ...]
    edges: Mapping[str, Tuple[str, ...]]
    edge_spans: Mapping[Tuple[str, str], Span] = field(
        default_factory=dict, compare=False, repr=False
    )

    def __contains__(self, name: str) -> bool:
        return name in self.edges

    def dependencies_of(self, name: str) -> Tuple[str, ...]:
        return self.edges[name]

    def dependents_of(self, name: str) -> Tuple[str, ...]:
        """Targets that depend directly on name, in document order."""
        return tuple(node for node in self.nodes if name in self.edges[node])

    def transitive_dependencies(self, name: str) -> List[str]:
        """
        All targets name depends on, directly or not, dependencies first.

        Assumes the reachable part of the graph is acyclic.
        """
        seen = {name}
        result: List[str] = []
        stack = [(name, iter(self.edges[name]))]
        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                if node != name:
                    result.append(node)
                continue
            if child not in seen:
                seen.add(child)
                stack.append((child, iter(self.edges[child])))
        return result


@dataclass(frozen=True)
class BuildPlan:
    """A config together with its graph and a valid build order."""

    config: Config
    graph: DependencyGraph
    order: Tuple[str, ...]

    def targets(self) -> List[Target]:
        """Targets in build order."""
        return [self.config[name] for name in self.order]


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving a config: a plan, or the errors that prevent one."""

    plan: Optional[BuildPlan]
    errors: Tuple[BlackDwarfError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    def diagnostics(self) -> List[Diagnostic]:
        return diagnostics_from_errors(self.errors)


def build_graph(config: Config) -> Tuple[DependencyGraph, List[UnknownDependencyError]]:
    """
    Build the dependency graph of a config.

    Edges to undefined targets are dropped from the graph and reported.

    Returns:
        Tuple of (graph, unknown dependency errors in document order)
    """
    edges: Dict[str, Tuple[str, ...]] = {}
    spans: Dict[Tuple[str, str], Span] = {}
    errors: List[UnknownDependencyError] = []

    for target in config:
        known = []
        for dependency in target.dependencies:
            if dependency.name not in config:
                errors.append(
                    UnknownDependencyError(target.name, dependency.name, dependency.span)
                )
                continue
            known.append(dependency.name)
            spans[(target.name, dependency.name)] = dependency.span
        edges[target.name] = tuple(known)

    graph = DependencyGraph(
        nodes=tuple(config.names()),
        edges=MappingProxyType(edges),
        edge_spans=MappingProxyType(spans),
    )
    return graph, errors


def topological_order(graph: DependencyGraph) -> List[str]:
    """
    Order nodes so that every node follows all of its dependencies.

    Iterative depth-first search with three colors; a node is emitted once
    all of its dependencies have been emitted.

    Raises:
        CycleError: If a cycle is reachable; the cycle lists its nodes in
            discovery order starting from the first node entered
    """
    state = {node: UNVISITED for node in graph.nodes}
    order: List[str] = []

    for root in graph.nodes:
        if state[root] != UNVISITED:
            continue
        state[root] = IN_PROGRESS
        path = [root]
        stack = [(root, iter(graph.edges[root]))]

        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                path.pop()
                state[node] = DONE
                order.append(node)
                continue
            if state[child] == IN_PROGRESS:
                cycle = path[path.index(child):]
                raise CycleError(cycle, graph.edge_spans.get((node, child)))
            if state[child] == UNVISITED:
                state[child] = IN_PROGRESS
                path.append(child)
                stack.append((child, iter(graph.edges[child])))

    return order


def resolve(config: Config) -> Resolution:
    """
    Resolve a config into a build plan.

    Unknown dependencies are all reported, in document order. Cycle
    detection only runs when every dependency is known, and stops at the
    first cycle found.

    Args:
        config: Mapped build config

    Returns:
        Resolution holding either a BuildPlan or the errors

    Example:
        >>> resolution = resolve(config)
        >>> if resolution.ok:
        ...     print(resolution.plan.order)
    """
    graph, unknown = build_graph(config)
    if unknown:
        logger.debug(f"{len(unknown)} unknown dependencies")
        return Resolution(None, tuple(unknown))

    try:
        order = topological_order(graph)
    except CycleError as e:
        logger.debug(f"Cycle found: {e.cycle}")
        return Resolution(None, (e,))

    logger.debug(f"Build order: {', '.join(order)}")
    return Resolution(BuildPlan(config, graph, tuple(order)), ())
