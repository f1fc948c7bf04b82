"""Unit tests for dependency resolution."""

import pytest

from blackdwarf.config import Config, Dependency, Target
from blackdwarf.core.exceptions import CycleError, UnknownDependencyError
from blackdwarf.core.span import Span
from blackdwarf.graph import build_graph, resolve, topological_order


def make_config(*entries) -> Config:
    """Build a Config from (name, [dependency names]) pairs."""
    return Config(
        tuple(
            Target(name=name, dependencies=tuple(Dependency(dep) for dep in deps))
            for name, deps in entries
        )
    )


class TestBuildOrder:
    """Test topological ordering."""

    @pytest.mark.unit
    def test_dependencies_come_first(self):
        config = make_config(("pomodoro", ["tomato"]), ("tomato", []))

        resolution = resolve(config)

        assert resolution.ok
        assert resolution.plan.order == ("tomato", "pomodoro")

    @pytest.mark.unit
    def test_independent_targets_keep_document_order(self):
        config = make_config(("c", []), ("a", []), ("b", []))

        assert resolve(config).plan.order == ("c", "a", "b")

    @pytest.mark.unit
    def test_diamond(self):
        config = make_config(
            ("app", ["left", "right"]),
            ("left", ["base"]),
            ("right", ["base"]),
            ("base", []),
        )

        order = resolve(config).plan.order

        assert order == ("base", "left", "right", "app")

    @pytest.mark.unit
    def test_every_target_follows_its_dependencies(self):
        config = make_config(
            ("a", ["d", "b"]),
            ("b", ["c"]),
            ("c", []),
            ("d", ["c", "e"]),
            ("e", []),
            ("f", ["a"]),
        )

        order = resolve(config).plan.order

        position = {name: index for index, name in enumerate(order)}
        assert sorted(order) == ["a", "b", "c", "d", "e", "f"]
        for target in config:
            for dependency in target.dependency_names:
                assert position[dependency] < position[target.name]

    @pytest.mark.unit
    def test_deep_chain_does_not_recurse(self):
        """Test a chain far deeper than the interpreter recursion limit."""
        depth = 5000
        config = make_config(
            *[(f"t{i}", [f"t{i + 1}"]) for i in range(depth)], (f"t{depth}", [])
        )

        order = resolve(config).plan.order

        assert order[0] == f"t{depth}"
        assert order[-1] == "t0"

    @pytest.mark.unit
    def test_empty_config(self):
        resolution = resolve(Config())

        assert resolution.ok
        assert resolution.plan.order == ()

    @pytest.mark.unit
    def test_plan_targets_in_build_order(self):
        config = make_config(("pomodoro", ["tomato"]), ("tomato", []))

        plan = resolve(config).plan

        assert [target.name for target in plan.targets()] == ["tomato", "pomodoro"]


class TestErrors:
    """Test unknown dependencies and cycles."""

    @pytest.mark.unit
    def test_unknown_dependency(self):
        span = Span(20, 2, 17, 23)
        config = Config((Target("A", dependencies=(Dependency("Z", span),)),))

        resolution = resolve(config)

        assert resolution.plan is None
        error = resolution.errors[0]
        assert isinstance(error, UnknownDependencyError)
        assert (error.target, error.missing_name) == ("A", "Z")
        assert error.span == span

    @pytest.mark.unit
    def test_all_unknown_dependencies_in_document_order(self):
        config = make_config(("a", ["x", "b"]), ("b", ["y"]), ("c", ["z"]))

        errors = resolve(config).errors

        assert [(e.target, e.missing_name) for e in errors] == [
            ("a", "x"),
            ("b", "y"),
            ("c", "z"),
        ]

    @pytest.mark.unit
    def test_two_node_cycle(self):
        config = make_config(("A", ["B"]), ("B", ["A"]))

        resolution = resolve(config)

        assert resolution.plan is None
        assert len(resolution.errors) == 1
        error = resolution.errors[0]
        assert isinstance(error, CycleError)
        assert error.cycle == ["A", "B"]
        assert error.message == "dependency cycle: A -> B -> A"

    @pytest.mark.unit
    def test_self_dependency(self):
        config = make_config(("A", ["A"]))

        error = resolve(config).errors[0]

        assert error.cycle == ["A"]

    @pytest.mark.unit
    def test_cycle_reported_from_where_it_is_entered(self):
        config = make_config(("root", ["x"]), ("x", ["y"]), ("y", ["z"]), ("z", ["x"]))

        error = resolve(config).errors[0]

        assert error.cycle == ["x", "y", "z"]

    @pytest.mark.unit
    def test_cycle_span_is_closing_edge(self):
        closing = Span(40, 4, 17, 43)
        config = Config(
            (
                Target("A", dependencies=(Dependency("B", Span(15, 2, 17, 18)),)),
                Target("B", dependencies=(Dependency("A", closing),)),
            )
        )

        error = resolve(config).errors[0]

        assert error.span == closing

    @pytest.mark.unit
    def test_unknown_dependency_skips_cycle_detection(self):
        config = make_config(("A", ["B", "Z"]), ("B", ["A"]))

        errors = resolve(config).errors

        assert len(errors) == 1
        assert isinstance(errors[0], UnknownDependencyError)


class TestDependencyGraph:
    """Test graph queries."""

    @pytest.fixture
    def graph(self):
        config = make_config(
            ("app", ["net", "log"]),
            ("net", ["log", "os"]),
            ("log", ["os"]),
            ("os", []),
        )
        graph, errors = build_graph(config)
        assert errors == []
        return graph

    @pytest.mark.unit
    def test_nodes_and_edges(self, graph):
        assert graph.nodes == ("app", "net", "log", "os")
        assert graph.dependencies_of("net") == ("log", "os")
        assert "os" in graph

    @pytest.mark.unit
    def test_dependents_of(self, graph):
        assert graph.dependents_of("os") == ("net", "log")
        assert graph.dependents_of("app") == ()

    @pytest.mark.unit
    def test_transitive_dependencies_dependencies_first(self, graph):
        assert graph.transitive_dependencies("app") == ["os", "log", "net"]
        assert graph.transitive_dependencies("os") == []

    @pytest.mark.unit
    def test_topological_order_directly(self, graph):
        assert topological_order(graph) == ["os", "log", "net", "app"]
