"""
Pytest configuration and shared fixtures for blackdwarf tests.
"""

import os

import pytest

# Import test fixtures to make them available to all tests
# ruff: noqa: F401
from tests.fixtures.projects import (
    make_project,
    pomodoro_project,
    cyclic_project,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line(
        "markers", "integration: marks tests that exercise the whole pipeline"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def clean_compiler_env(monkeypatch):
    """Remove compiler overrides inherited from the calling environment."""
    for name in list(os.environ):
        if name.startswith("BLACKDWARF_COMPILER"):
            monkeypatch.delenv(name, raising=False)
    return monkeypatch
