"""
Check command implementation.

Loads the project file and reports every problem found by the first
failing stage.
"""

import logging

from blackdwarf.cli.utils import load_project_from_args, report_load_error
from blackdwarf.core.exceptions import ProjectLoadError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the check command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 if the project is valid, 1 otherwise)
    """
    try:
        project = load_project_from_args(args)
    except ProjectLoadError as e:
        report_load_error(e)
        return 1

    count = len(project.config)
    print(f"{project.path}: {count} target{'s' if count != 1 else ''}, no problems found")
    return 0
