"""Precompiled-binaries configuration models.

Loaded from the ``precompiled_binaries`` section of a crate's ``xforge.yaml``
(see ``core.options_loader``) and optionally overridden by the consuming
application's ``pyproject.toml`` ``[tool.xforge]`` table.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictStr, field_validator

from xforge_precompiled.core.errors import ConfigInvalidError

DEFAULT_RELEASE_HOST = "github.com"

_MODE_ALIASES: dict[str, str] = {
    "auto": "auto",
    "always": "always",
    "download": "always",
    "never": "never",
    "build": "never",
    "off": "never",
    "disabled": "never",
}

_MODE_HELP = (
    "must be one of: auto, always, never "
    "(aliases: download->always, build|off|disabled->never)"
)


class PrecompiledBinaryMode(str, Enum):
    """How aggressively to prefer precompiled binaries over a local build."""

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


def parse_mode(raw: str) -> PrecompiledBinaryMode | None:
    """Parse a mode string, honouring aliases.  Returns ``None`` if unknown."""
    canonical = _MODE_ALIASES.get(raw.strip().lower())
    return PrecompiledBinaryMode(canonical) if canonical else None


def normalize_owner_repo(raw: str) -> str | None:
    """Normalize ``owner/repo``, ``github.com/owner/repo`` or a full URL.

    Returns ``None`` unless exactly two non-empty segments remain.
    """
    value = raw.strip()
    value = re.sub(r"^https?://", "", value)
    value = re.sub(rf"^{re.escape(DEFAULT_RELEASE_HOST)}/", "", value)
    value = re.sub(r"/+$", "", value)
    parts = value.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return f"{parts[0]}/{parts[1]}"


class PrecompiledBinariesConfig(BaseModel):
    """Validated ``precompiled_binaries`` settings for one crate.

    Invariants: ``repository`` is always ``owner/repo`` and ``public_key``
    is always exactly 32 raw bytes.  Anything else fails validation.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    repository: StrictStr
    public_key: bytes
    url_prefix: StrictStr | None = None
    mode: PrecompiledBinaryMode = PrecompiledBinaryMode.AUTO

    @field_validator("repository")
    @classmethod
    def _normalize_repository(cls, value: str) -> str:
        normalized = normalize_owner_repo(value)
        if normalized is None:
            raise ValueError(
                "repository must be in owner/repo format (or github.com/owner/repo)"
            )
        return normalized

    @field_validator("public_key", mode="before")
    @classmethod
    def _decode_public_key(cls, value: Any) -> bytes:
        if isinstance(value, (bytes, bytearray)):
            raw = bytes(value)
        elif isinstance(value, str):
            try:
                raw = bytes.fromhex(value.strip())
            except ValueError:
                raise ValueError("public_key must be a hex string") from None
        else:
            raise ValueError("public_key must be a hex string")
        if len(raw) != 32:
            raise ValueError(f"public_key must be 32 bytes, got {len(raw)}")
        return raw

    @field_validator("mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> PrecompiledBinaryMode:
        if isinstance(value, PrecompiledBinaryMode):
            return value
        if value is False:
            # YAML 1.1 loaders read a bare `off` as false.
            return PrecompiledBinaryMode.NEVER
        if not isinstance(value, str):
            raise ValueError("mode must be a string")
        parsed = parse_mode(value)
        if parsed is None:
            raise ValueError(f"mode {_MODE_HELP}")
        return parsed

    @property
    def public_key_hex(self) -> str:
        return self.public_key.hex()

    def file_url(self, build_id: str, file_name: str) -> str:
        """Download URL for *file_name* in the release tagged *build_id*."""
        if self.url_prefix:
            return f"{self.url_prefix}{build_id}/{file_name}"
        return (
            f"https://{DEFAULT_RELEASE_HOST}/{self.repository}"
            f"/releases/download/{build_id}/{file_name}"
        )

    def with_mode(self, mode: PrecompiledBinaryMode | None) -> PrecompiledBinariesConfig:
        """Return a copy with *mode* applied (``None`` keeps the current mode)."""
        if mode is None or mode == self.mode:
            return self
        return self.model_copy(update={"mode": mode})


class AppPrecompiledOverrides(BaseModel):
    """Application-level overrides for the crate's precompiled config.

    Parsed from the ``precompiled_binaries`` key of the app's
    ``[tool.xforge]`` table.  ``false`` disables precompiled binaries
    entirely; a table may set ``mode`` and ``logging.level``.
    """

    model_config = ConfigDict(frozen=True)

    mode: PrecompiledBinaryMode | None = None
    log_level: int | None = None

    @classmethod
    def parse(cls, raw: Any) -> AppPrecompiledOverrides | None:
        """Parse the app table.  Returns ``None`` when nothing is overridden."""
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise ConfigInvalidError("app-level config must be a table")

        node = raw.get("precompiled_binaries")
        if node is None:
            return None
        if isinstance(node, bool):
            return None if node else cls(mode=PrecompiledBinaryMode.NEVER)
        if not isinstance(node, dict):
            raise ConfigInvalidError("precompiled_binaries must be a table or boolean")

        mode: PrecompiledBinaryMode | None = None
        mode_node = node.get("mode")
        if mode_node is not None:
            if not isinstance(mode_node, str):
                raise ConfigInvalidError("precompiled_binaries.mode must be a string")
            mode = parse_mode(mode_node)
            if mode is None:
                raise ConfigInvalidError(f"precompiled_binaries.mode {_MODE_HELP}")

        log_level: int | None = None
        logging_node = node.get("logging")
        if logging_node is not None:
            if not isinstance(logging_node, dict):
                raise ConfigInvalidError("precompiled_binaries.logging must be a table")
            level_node = logging_node.get("level")
            if level_node is not None:
                log_level = _parse_log_level(level_node)

        if mode is None and log_level is None:
            return None
        return cls(mode=mode, log_level=log_level)


def _parse_log_level(raw: Any) -> int:
    if not isinstance(raw, str):
        raise ConfigInvalidError("precompiled_binaries.logging.level must be a string")
    levels = logging.getLevelNamesMapping()
    name = raw.strip().upper()
    if name not in levels:
        raise ConfigInvalidError(
            "precompiled_binaries.logging.level must be one of: "
            + ", ".join(sorted(levels, key=levels.__getitem__))
        )
    return levels[name]
