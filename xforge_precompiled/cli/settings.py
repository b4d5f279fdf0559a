"""Environment settings for CLI commands.

``RuntimeSettings`` validates ``XFORGE_*`` variables on construction; a bad
value is reported as a configuration error with exit code 2 instead of a
traceback.
"""

from __future__ import annotations

import typer
from pydantic import ValidationError
from rich.console import Console

from xforge_precompiled.config import RuntimeSettings

EXIT_CONFIG_ERROR = 2


def _describe(exc: ValidationError) -> str:
    env_prefix = RuntimeSettings.model_config.get("env_prefix", "")
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"])
        problems.append(f"{env_prefix}{field.upper()}: {error['msg']}")
    return "; ".join(problems)


def load_settings(err_console: Console) -> RuntimeSettings:
    """Build ``RuntimeSettings`` or exit 2 with a readable message."""
    try:
        return RuntimeSettings()
    except ValidationError as exc:
        err_console.print(f"[bold red]Configuration error:[/bold red] {_describe(exc)}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)
