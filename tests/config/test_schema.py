"""Unit tests for mapping TOML documents onto the build-config schema."""

import logging
from pathlib import PurePosixPath

import pytest

from blackdwarf.config import Config, Dependency, Target, map_config
from blackdwarf.core.exceptions import SchemaError
from blackdwarf.toml import parse, pformat
from tests.fixtures.documents import (
    CONFIG_MARKER,
    TREE_MARKER,
    embedded_block,
    fixture_files,
)

CONFIG_FIXTURES = fixture_files("config", "fixtures")


def map_text(text):
    parsed = parse(text)
    assert parsed.ok, parsed.errors
    return map_config(parsed.value)


@pytest.mark.unit
@pytest.mark.parametrize("path", CONFIG_FIXTURES, ids=lambda p: p.stem)
def test_config_fixture(path):
    """Test both the value tree and the mapped config of a fixture."""
    # Arrange
    text = path.read_text(encoding="utf-8")

    # Act
    parsed = parse(text)
    mapped = map_config(parsed.value)

    # Assert
    assert pformat(parsed.value) == embedded_block(text, TREE_MARKER)
    assert mapped.ok
    assert mapped.config.pformat() == embedded_block(text, CONFIG_MARKER)


class TestMapping:
    """Test successful mapping."""

    @pytest.mark.unit
    def test_targets_in_document_order(self):
        result = map_text('[b]\nsources = ["b.c"]\n[a]\nsources = ["a.c"]\n')

        assert result.config.names() == ["b", "a"]

    @pytest.mark.unit
    def test_target_fields(self):
        result = map_text(
            '[app]\nsources = ["src/main.c", "src/util.c"]\n'
            'dependencies = ["lib"]\ninclude_dirs = ["include"]\n'
            '[lib]\nsources = ["lib.c"]\n'
        )

        app = result.config["app"]
        assert app == Target(
            name="app",
            sources=(PurePosixPath("src/main.c"), PurePosixPath("src/util.c")),
            dependencies=(Dependency("lib"),),
            include_dirs=(PurePosixPath("include"),),
        )
        assert app.dependency_names == ("lib",)

    @pytest.mark.unit
    def test_missing_fields_default_to_empty(self):
        result = map_text("[bare]\n")

        target = result.config["bare"]
        assert target.sources == ()
        assert target.dependencies == ()
        assert target.include_dirs == ()

    @pytest.mark.unit
    def test_target_without_sources_logs_warning(self, caplog):
        caplog.set_level(logging.WARNING)

        map_text("[bare]\n")

        assert "Target 'bare' has no sources" in caplog.text

    @pytest.mark.unit
    def test_dependency_spans_point_at_entries(self):
        result = map_text('[a]\ndependencies = ["b"]\n[b]\n')

        span = result.config["a"].dependencies[0].span
        assert (span.line, span.column) == (2, 17)

    @pytest.mark.unit
    def test_target_span_is_header_key(self):
        result = map_text('\n[  pomodoro  ]\nsources = []\n')

        span = result.config["pomodoro"].span
        assert (span.line, span.column) == (2, 4)

    @pytest.mark.unit
    def test_empty_document_is_empty_config(self):
        result = map_text("")

        assert result.ok
        assert len(result.config) == 0

    @pytest.mark.unit
    def test_config_lookup(self):
        config = map_text('[a]\nsources = ["a.c"]\n').config

        assert "a" in config
        assert "z" not in config
        assert config.get("z") is None
        assert [target.name for target in config] == ["a"]

    @pytest.mark.unit
    def test_config_rejects_duplicate_names(self):
        with pytest.raises(ValueError):
            Config((Target("a"), Target("a")))


class TestSchemaErrors:
    """Test schema violations."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "text,fragment",
        [
            ("a = 1\n", "target 'a' must be a table, got integer"),
            ('[a]\nsources = "a.c"\n', "must be an array of strings, got string"),
            ("[a]\nsources = [1]\n", "must contain only strings, got integer"),
            ('[a]\ndependencies = [["b"]]\n', "must contain only strings, got array"),
            ('[a]\nsources = [""]\n', "empty source path"),
            ('[a]\ndependencies = ["b", "b"]\n[b]\n', "lists dependency 'b' twice"),
            ('[a]\nsorces = ["a.c"]\n', "did you mean 'sources'?"),
            ('[a]\ncolour = "red"\n', "unknown key 'colour' in target 'a'"),
            ('[""]\nsources = []\n', "target name cannot be empty"),
        ],
    )
    def test_error_messages(self, text, fragment):
        result = map_text(text)

        assert result.config is None
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], SchemaError)
        assert fragment in result.errors[0].message

    @pytest.mark.unit
    def test_one_error_per_target_across_targets(self):
        """Test mapping continues after a broken target."""
        result = map_text(
            '[a]\nsources = 1\ndependencies = 2\n'
            '[ok]\nsources = ["ok.c"]\n'
            '[c]\ninclude_dirs = [true]\n'
        )

        assert result.config is None
        assert [error.span.line for error in result.errors] == [2, 7]

    @pytest.mark.unit
    def test_error_span_points_at_offending_value(self):
        result = map_text('[a]\nsources = ["ok.c", 42]\n')

        span = result.errors[0].span
        assert (span.line, span.column) == (2, 20)

    @pytest.mark.unit
    def test_diagnostics(self):
        result = map_text("a = true\n")

        diagnostic = result.diagnostics()[0]
        assert diagnostic.kind == "schema error"
        assert diagnostic.as_tuple() == (1, 5, "target 'a' must be a table, got bool")
