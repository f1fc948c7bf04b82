"""
blackdwarf CLI argument parser.

This module implements the command-line interface for blackdwarf using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from blackdwarf import __version__
from blackdwarf.compiler.profile import DEFAULT_PROFILE

logger = logging.getLogger(__name__)


class CLI:
    """blackdwarf command-line interface."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="blackdwarf",
            description="blackdwarf - TOML-configured build planner for C projects",
            epilog='Use "blackdwarf COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"blackdwarf {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--project",
            type=Path,
            metavar="PATH",
            help="Project file or directory (default: search upwards for blackdwarf.toml)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_check_command(subparsers)
        self._add_order_command(subparsers)
        self._add_plan_command(subparsers)
        self._add_dump_command(subparsers)
        self._add_tokens_command(subparsers)

        return parser

    def _add_check_command(self, subparsers):
        """Add 'check' subcommand."""
        subparsers.add_parser(
            "check",
            help="Validate the project file",
            description="Parse, map and resolve the project file and report every problem",
        )

    def _add_order_command(self, subparsers):
        """Add 'order' subcommand."""
        parser = subparsers.add_parser(
            "order",
            help="Print the build order",
            description="Print targets so that each follows all of its dependencies",
        )
        parser.add_argument(
            "--json", action="store_true", help="Print the order as a JSON list"
        )

    def _add_plan_command(self, subparsers):
        """Add 'plan' subcommand."""
        parser = subparsers.add_parser(
            "plan",
            help="Print compile commands",
            description="Render the compile command of every source in build order",
        )
        parser.add_argument(
            "--compiler",
            default=DEFAULT_PROFILE,
            metavar="NAME",
            help=f"Compiler profile to use (default: {DEFAULT_PROFILE})",
        )
        parser.add_argument(
            "--profiles-dir",
            type=Path,
            action="append",
            metavar="DIR",
            help="Extra directory of compiler profiles, searched before the built-in ones "
            "(can be used multiple times)",
        )
        parser.add_argument(
            "--debug", action="store_true", help="Add the compiler debug flag"
        )
        parser.add_argument(
            "--compiler-verbose",
            action="store_true",
            help="Add the compiler verbose flag",
        )
        parser.add_argument(
            "--json", action="store_true", help="Print commands as JSON"
        )

    def _add_dump_command(self, subparsers):
        """Add 'dump' subcommand."""
        parser = subparsers.add_parser(
            "dump",
            help="Parse a TOML document and print its value tree",
            description="Parse any TOML document and print it as tagged JSON",
        )
        parser.add_argument("file", metavar="FILE", help="Document to parse ('-' for stdin)")
        parser.add_argument(
            "--toml", action="store_true", help="Print the document re-serialized as TOML"
        )
        parser.add_argument(
            "--show-tokens-if-parse-failed",
            action="store_true",
            help="Print the token stream when parsing fails",
        )

    def _add_tokens_command(self, subparsers):
        """Add 'tokens' subcommand."""
        parser = subparsers.add_parser(
            "tokens",
            help="Print the token stream of a TOML document",
            description="Tokenize a TOML document and print one token per line",
        )
        parser.add_argument("file", metavar="FILE", help="Document to tokenize ('-' for stdin)")
        parser.add_argument(
            "--comments", action="store_true", help="Include comment tokens"
        )

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """Configure logging based on verbose/quiet flags."""
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(level=level, format=format_str, force=True)

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to the command module's run() function.

        Returns:
            Exit code from command handler
        """
        command_map = {
            "check": "blackdwarf.cli.commands.check",
            "order": "blackdwarf.cli.commands.order",
            "plan": "blackdwarf.cli.commands.plan",
            "dump": "blackdwarf.cli.commands.dump",
            "tokens": "blackdwarf.cli.commands.tokens",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
