"""Wiring: build a ``FallbackPolicy`` from disk config and runtime settings.

Mode precedence (highest first): ``XFORGE_MODE`` environment setting, the
app's ``[tool.xforge]`` override, the crate's ``xforge.yaml``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from xforge_precompiled.bridge.transport import HttpTransport
from xforge_precompiled.config import RuntimeSettings
from xforge_precompiled.core.cache_store import CacheStore
from xforge_precompiled.core.fallback_policy import FallbackPolicy
from xforge_precompiled.core.options_loader import load_app_overrides, load_precompiled_config
from xforge_precompiled.core.reporting import Reporter
from xforge_precompiled.core.targets import detect_host_target_triple
from xforge_precompiled.models.resolution import Resolution


def build_transport(settings: RuntimeSettings, session: Any | None = None) -> HttpTransport:
    return HttpTransport(
        session,
        timeout=settings.http_timeout,
        max_retries=settings.max_retries,
        backoff_base=settings.backoff_base,
        backoff_max=settings.backoff_max,
    )


def build_policy(
    crate_dir: Path,
    *,
    settings: RuntimeSettings | None = None,
    app_dir: Path | None = None,
    reporter: Reporter | None = None,
    session: Any | None = None,
    **policy_kwargs: Any,
) -> FallbackPolicy:
    """Load config for *crate_dir* and assemble the resolution components.

    Raises ``ConfigInvalidError`` for malformed config files.
    """
    crate_dir = Path(crate_dir)
    settings = settings or RuntimeSettings()
    reporter = reporter or Reporter()

    config = load_precompiled_config(crate_dir)
    overrides = load_app_overrides(app_dir) if app_dir is not None else None
    if overrides is not None:
        reporter = reporter.with_level(overrides.log_level)
        if config is not None:
            config = config.with_mode(overrides.mode)
    if config is not None:
        config = config.with_mode(settings.mode)

    cache = CacheStore(settings.cache_root(crate_dir), build_transport(settings, session), reporter)
    return FallbackPolicy(config, cache, reporter=reporter, **policy_kwargs)


def resolve_precompiled(
    crate_dir: Path,
    target_triple: str | None = None,
    *,
    settings: RuntimeSettings | None = None,
    app_dir: Path | None = None,
    reporter: Reporter | None = None,
) -> Resolution:
    """One-call resolution for build hooks.

    Configuration errors propagate as ``ConfigInvalidError``; everything
    else is reported through the returned ``Resolution``.
    """
    policy = build_policy(crate_dir, settings=settings, app_dir=app_dir, reporter=reporter)
    return policy.resolve(crate_dir, target_triple or detect_host_target_triple())
