"""Command implementations, one module per subcommand."""
