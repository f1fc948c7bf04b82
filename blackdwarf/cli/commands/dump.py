"""
Dump command implementation.

Parses any TOML document and prints its value tree.
"""

import logging
import sys

from blackdwarf.cli.utils import print_diagnostics, read_document
from blackdwarf.core.exceptions import LexError
from blackdwarf.toml.lexer import tokenize
from blackdwarf.toml.parser import parse
from blackdwarf.toml.printer import dumps, pformat

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the dump command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 if the document parsed, 1 otherwise)
    """
    try:
        name, text = read_document(args.file)
    except LexError as e:
        print_diagnostics([e], path=args.file)
        return 1

    result = parse(text)
    if not result.ok:
        print_diagnostics(result.errors, path=name, source=text)
        if args.show_tokens_if_parse_failed:
            print_tokens(text, keep_comments=True, file=sys.stderr)
        return 1

    if args.toml:
        print(dumps(result.value), end="")
    else:
        print(pformat(result.value))
    return 0


def print_tokens(text: str, keep_comments: bool = False, file=None) -> bool:
    """
    Print one token per line as ``line:column KIND text``.

    Returns:
        False if tokenizing stopped at a lex error
    """
    try:
        for token in tokenize(text, keep_comments=keep_comments):
            print(f"{token.span} {token.kind.name} {token.text!r}", file=file)
    except LexError as e:
        print(f"{e.span} lex error: {e.message}", file=file)
        return False
    return True
