"""
Order command implementation.

Prints the build order of the project's targets.
"""

import json
import logging

from blackdwarf.cli.utils import load_project_from_args, report_load_error
from blackdwarf.core.exceptions import ProjectLoadError

logger = logging.getLogger(__name__)


def run(args) -> int:
    try:
        project = load_project_from_args(args)
    except ProjectLoadError as e:
        report_load_error(e)
        return 1

    order = list(project.plan.order)
    if args.json:
        print(json.dumps(order))
    else:
        for name in order:
            print(name)
    return 0
