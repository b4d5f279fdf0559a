"""xforge-precompiled CLI — Typer-based command-line interface.

Provides the ``xforge-precompiled`` command with subcommands for validating
published releases, generating signing keys, printing build ids and running
a full resolution.

All output uses Rich for formatted terminal display.
"""
