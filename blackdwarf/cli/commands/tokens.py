"""
Tokens command implementation.

Prints the token stream of a TOML document.
"""

import logging

from blackdwarf.cli.commands.dump import print_tokens
from blackdwarf.cli.utils import print_diagnostics, read_document
from blackdwarf.core.exceptions import LexError

logger = logging.getLogger(__name__)


def run(args) -> int:
    try:
        _, text = read_document(args.file)
    except LexError as e:
        print_diagnostics([e], path=args.file)
        return 1

    return 0 if print_tokens(text, keep_comments=args.comments) else 1
