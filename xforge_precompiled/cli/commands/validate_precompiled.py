"""``xforge-precompiled validate-precompiled`` — strict end-to-end check.

Runs manifest -> match -> artifact -> extraction against the live release
without any policy softening, so CI can prove a release covers a target.

Exit codes: 0 success, 1 verification/resolution failure, 2 argument or
configuration error.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from xforge_precompiled.cli.settings import load_settings
from xforge_precompiled.core.archive_extractor import ArchiveExtractor
from xforge_precompiled.core.artifact_client import ArtifactClient
from xforge_precompiled.core.cache_store import CacheStore, require_plain_name
from xforge_precompiled.core.errors import (
    BuildInputError,
    ConfigInvalidError,
    PrecompiledError,
)
from xforge_precompiled.core.hasher import compute_build_id
from xforge_precompiled.core.manifest_client import ManifestClient
from xforge_precompiled.core.options_loader import load_precompiled_config
from xforge_precompiled.core.platform_matcher import select_artifact
from xforge_precompiled.core.reporting import Reporter
from xforge_precompiled.core.resolver import build_transport
from xforge_precompiled.core.targets import detect_host_target_triple, library_extension_for

console = Console()
err_console = Console(stderr=True)

EXIT_FAILURE = 1
EXIT_USAGE = 2


def validate_precompiled_cmd(
    crate_dir: Path = typer.Option(
        None,
        "--crate-dir",
        help="Crate directory (default: current directory).",
    ),
    build_id: str = typer.Option(
        None,
        "--build-id",
        help="Build id override (default: computed from the crate).",
    ),
    target: str = typer.Option(
        None,
        "--target",
        help="Rust target triple (default: host).",
    ),
) -> None:
    """Validate that a signed precompiled artifact exists for a target."""
    crate_dir = (crate_dir or Path.cwd()).resolve()
    settings = load_settings(err_console)

    try:
        config = load_precompiled_config(crate_dir)
        if config is None:
            err_console.print(
                "[bold red]xforge.yaml is missing precompiled_binaries config.[/bold red]"
            )
            raise typer.Exit(code=EXIT_USAGE)
        if build_id is None:
            build_id = compute_build_id(crate_dir)
        target = target or detect_host_target_triple()
        require_plain_name(build_id, "Build id")
        require_plain_name(target, "Target triple")
    except (ConfigInvalidError, BuildInputError) as exc:
        err_console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=EXIT_USAGE)

    reporter = Reporter()
    cache = CacheStore(settings.cache_root(crate_dir), build_transport(settings), reporter)

    try:
        manifest = ManifestClient(config, cache, reporter).fetch_verified_manifest(build_id)
        selection = select_artifact(manifest, target)
        archive = ArtifactClient(config, cache, reporter).fetch_verified_artifact(
            build_id, selection.artifact_name
        )
        library = ArchiveExtractor(cache, reporter).extract_library(
            archive,
            library_extension_for(target),
            build_id=build_id,
            target_triple=target,
        )
    except PrecompiledError as exc:
        err_console.print(f"[bold red]Validation failed ({exc.stage}):[/bold red] {exc}")
        raise typer.Exit(code=EXIT_FAILURE)

    console.print(
        Panel(
            "\n".join([
                "[bold green]Validated precompiled artifact[/bold green]",
                "",
                f"[bold]Crate dir:[/bold] {crate_dir}",
                f"[bold]Build id:[/bold]  {build_id}",
                f"[bold]Target:[/bold]    {target}",
                f"[bold]Platform:[/bold]  {selection.platform.name}",
                f"[bold]Artifact:[/bold]  {selection.artifact_name}",
                f"[bold]Library:[/bold]   {library}",
            ]),
            title="[bold]validate-precompiled[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
