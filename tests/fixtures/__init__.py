"""Test fixtures for blackdwarf tests.

- projects: project directories with a blackdwarf.toml and C sources

Import fixtures in your tests using:
    from tests.fixtures.projects import pomodoro_project
"""

__all__ = [
    "projects",
]
