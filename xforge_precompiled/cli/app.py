"""Main Typer application — imports and registers all CLI commands.

Entry point: ``xforge-precompiled`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console

from xforge_precompiled.cli.commands.build_id import build_id_cmd
from xforge_precompiled.cli.commands.keygen import keygen_cmd
from xforge_precompiled.cli.commands.resolve import resolve_cmd
from xforge_precompiled.cli.commands.validate_precompiled import validate_precompiled_cmd
from xforge_precompiled.cli.settings import load_settings
from xforge_precompiled.core.reporting import configure_logging

err_console = Console(stderr=True)

app = typer.Typer(
    name="xforge-precompiled",
    help="Secure resolution of signed precompiled Rust libraries.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    settings = load_settings(err_console)
    level = settings.effective_log_level
    if verbose:
        level = logging.DEBUG
    configure_logging(level)


# Register subcommands
app.command(
    name="validate-precompiled",
    help="Verify that a signed artifact is published for a target.",
)(validate_precompiled_cmd)
app.command(name="keygen", help="Generate an Ed25519 release signing key-pair.")(keygen_cmd)
app.command(name="build-id", help="Print the build id for a crate.")(build_id_cmd)
app.command(name="resolve", help="Resolve a precompiled library or report fallback.")(resolve_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
