"""
Plan command implementation.

Renders the compile command of every source file, in build order, using a
compiler profile.
"""

import json
import logging

from blackdwarf.cli.utils import load_project_from_args, report_load_error
from blackdwarf.compiler.commands import render_compile_commands
from blackdwarf.compiler.profile import CompilerProfileLoader
from blackdwarf.core.exceptions import ProjectLoadError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the plan command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    try:
        project = load_project_from_args(args)
    except ProjectLoadError as e:
        report_load_error(e)
        return 1

    loader = CompilerProfileLoader(args.profiles_dir or [])
    profile = loader.load(args.compiler)
    logger.debug(f"Using compiler profile '{profile.name}'")

    commands = render_compile_commands(
        project.plan,
        profile,
        project.root,
        debug=args.debug,
        verbose=args.compiler_verbose,
    )

    if args.json:
        print(json.dumps([command.to_dict() for command in commands], indent=2))
    else:
        for command in commands:
            print(command.shell_line())
    return 0
