"""``xforge-precompiled build-id`` — print the build id for a crate."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from xforge_precompiled.core.errors import BuildInputError
from xforge_precompiled.core.hasher import collect_build_inputs, compute_build_id

err_console = Console(stderr=True)


def build_id_cmd(
    crate_dir: Path = typer.Option(
        None,
        "--crate-dir",
        help="Crate directory (default: current directory).",
    ),
    show_inputs: bool = typer.Option(
        False,
        "--show-inputs",
        help="Also list the inputs that feed the hash.",
    ),
) -> None:
    """Print the content-derived build id used as the release tag."""
    crate_dir = (crate_dir or Path.cwd()).resolve()
    try:
        build_id = compute_build_id(crate_dir)
        inputs = collect_build_inputs(crate_dir) if show_inputs else []
    except BuildInputError as exc:
        err_console.print(f"[bold red]Build input error:[/bold red] {exc}")
        raise typer.Exit(code=2)

    typer.echo(build_id)
    for item in inputs:
        state = "absent" if item.value is None else f"{len(item.value)} chars"
        err_console.print(f"  [cyan]{item.name}[/cyan]: {state}")
