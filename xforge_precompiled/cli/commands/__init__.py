"""Subcommand implementations registered by ``cli.app``."""
