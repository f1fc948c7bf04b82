"""
Entry point for running the blackdwarf CLI as a module.

Usage: python -m blackdwarf [command] [options]
"""

from blackdwarf.cli.parser import main

if __name__ == "__main__":
    main()
