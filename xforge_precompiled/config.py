"""Runtime settings — env-driven, per-machine.

Centralized settings using pydantic-settings.  Reads from a .env file and
XFORGE_* environment variables.  These tune *how* resolution runs (cache
location, timeouts, verbosity); *what* to resolve comes from the crate's
``xforge.yaml``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from xforge_precompiled.models.options import PrecompiledBinaryMode, parse_mode


class RuntimeSettings(BaseSettings):
    """Runtime settings with environment variable overrides.

    Examples
    --------
    Force CI to fail on a broken release instead of building locally::

        export XFORGE_MODE=always

    Share one cache between checkouts::

        export XFORGE_CACHE_DIR=/var/cache/xforge
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="XFORGE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Cache root; defaults to <crate_dir>/.xforge/precompiled
    cache_dir: Path | None = None

    # Beats both the crate config and app overrides when set
    mode: PrecompiledBinaryMode | None = None

    # Logging
    log_level: str = "INFO"
    verbose: bool = False

    # Network
    http_timeout: float = 30.0
    max_retries: int = 3
    backoff_base: float = 0.5
    backoff_max: float = 8.0

    @field_validator("mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> Any:
        if isinstance(value, str):
            if not value.strip():
                return None
            parsed = parse_mode(value)
            if parsed is None:
                raise ValueError(f"unknown mode: {value!r}")
            return parsed
        return value

    def cache_root(self, crate_dir: Path) -> Path:
        """Cache root for *crate_dir*, honouring ``cache_dir``."""
        if self.cache_dir is not None:
            return self.cache_dir
        return Path(crate_dir) / ".xforge" / "precompiled"

    @property
    def effective_log_level(self) -> int:
        if self.verbose:
            return logging.DEBUG
        return logging.getLevelNamesMapping().get(self.log_level.upper(), logging.INFO)
