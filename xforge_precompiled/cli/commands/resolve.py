"""``xforge-precompiled resolve`` — run the fallback policy for a crate.

This is what a build hook does: resolve a precompiled library if one is
published and verifiable, otherwise decide whether a local build is
possible.  Exit code 0 for a downloaded library or a permitted fallback,
1 for a fatal outcome, 2 for configuration errors.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from xforge_precompiled.cli.settings import load_settings
from xforge_precompiled.core.cache_store import require_plain_name
from xforge_precompiled.core.errors import ConfigInvalidError
from xforge_precompiled.core.resolver import build_policy
from xforge_precompiled.core.targets import detect_host_target_triple
from xforge_precompiled.models.resolution import Downloaded, Fatal

console = Console()
err_console = Console(stderr=True)


def resolve_cmd(
    crate_dir: Path = typer.Option(
        None,
        "--crate-dir",
        help="Crate directory (default: current directory).",
    ),
    target: str = typer.Option(
        None,
        "--target",
        help="Rust target triple (default: host).",
    ),
    app_dir: Path = typer.Option(
        None,
        "--app-dir",
        help="Consuming application directory holding pyproject.toml overrides.",
    ),
) -> None:
    """Resolve a precompiled library or report the local-build fallback."""
    crate_dir = (crate_dir or Path.cwd()).resolve()
    target = target or detect_host_target_triple()
    settings = load_settings(err_console)

    try:
        require_plain_name(target, "Target triple")
        policy = build_policy(crate_dir, settings=settings, app_dir=app_dir)
    except ConfigInvalidError as exc:
        err_console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=2)

    outcome = policy.resolve(crate_dir, target)

    if isinstance(outcome, Downloaded):
        console.print(
            Panel(
                f"[bold]Library:[/bold]  {outcome.library_path}\n"
                f"[bold]Build id:[/bold] {outcome.build_id}\n"
                f"[bold]Artifact:[/bold] {outcome.artifact_name}",
                title=f"[bold green]Downloaded[/bold green] {target}",
                border_style="green",
            )
        )
        return

    if isinstance(outcome, Fatal):
        console.print(
            Panel(
                f"[bold]Stage:[/bold]  {outcome.stage}\n"
                f"[bold]Code:[/bold]   {outcome.error_code}\n"
                f"[bold]Reason:[/bold] {outcome.reason}",
                title="[bold red]Fatal[/bold red]",
                border_style="red",
            )
        )
        raise typer.Exit(code=1)

    console.print(
        Panel(
            f"[bold]Reason:[/bold] {outcome.reason}",
            title="[bold yellow]Needs local build[/bold yellow]",
            border_style="yellow",
        )
    )
