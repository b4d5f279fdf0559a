"""Load precompiled-binaries options from disk.

- Crate options: ``<crate_dir>/xforge.yaml``, section ``precompiled_binaries``.
- App overrides: ``<app_dir>/pyproject.toml``, table ``[tool.xforge]``.

A missing file or section means "no config" (``None``) and routes the caller
to a local build.  A present but malformed section is a ``ConfigInvalidError``
and is never silently defaulted.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

import yaml
from pydantic import ValidationError

from xforge_precompiled.core.errors import ConfigInvalidError
from xforge_precompiled.models.options import AppPrecompiledOverrides, PrecompiledBinariesConfig

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "xforge.yaml"
CONFIG_SECTION = "precompiled_binaries"
APP_CONFIG_FILE_NAME = "pyproject.toml"


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"{CONFIG_SECTION}.{location}: {error['msg']}")
    return "; ".join(problems)


def parse_precompiled_config(section: object) -> PrecompiledBinariesConfig:
    """Validate a raw ``precompiled_binaries`` mapping."""
    if not isinstance(section, dict):
        raise ConfigInvalidError(f"{CONFIG_SECTION} must be a map")
    try:
        return PrecompiledBinariesConfig.model_validate(section)
    except ValidationError as exc:
        raise ConfigInvalidError(_format_validation_error(exc)) from exc


def load_precompiled_config(crate_dir: Path) -> PrecompiledBinariesConfig | None:
    """Read ``xforge.yaml`` from *crate_dir*.  ``None`` when not configured."""
    path = Path(crate_dir) / CONFIG_FILE_NAME
    if not path.is_file():
        logger.debug("No %s in %s", CONFIG_FILE_NAME, crate_dir)
        return None

    try:
        root = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigInvalidError(f"{CONFIG_FILE_NAME} is not valid YAML: {exc}") from exc

    if root is None:
        return None
    if not isinstance(root, dict):
        raise ConfigInvalidError(f"{CONFIG_FILE_NAME} must be a map")
    section = root.get(CONFIG_SECTION)
    if section is None:
        return None
    return parse_precompiled_config(section)


def load_app_overrides(app_dir: Path) -> AppPrecompiledOverrides | None:
    """Read ``[tool.xforge]`` from the consuming app's ``pyproject.toml``."""
    path = Path(app_dir) / APP_CONFIG_FILE_NAME
    if not path.is_file():
        return None
    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigInvalidError(f"{APP_CONFIG_FILE_NAME} is not valid TOML: {exc}") from exc
    return AppPrecompiledOverrides.parse(document.get("tool", {}).get("xforge"))
