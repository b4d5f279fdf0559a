"""Fallback policy — the resolution state machine.

Drives one resolution from RESOLVING to exactly one terminal state:

1. No config             -> NEEDS_FALLBACK("no config"), no network access.
2. mode == never         -> NEEDS_FALLBACK("mode=never"), no network access.
3. build id -> manifest -> match -> artifact -> extract.
4. Any stage failure:
   - mode == always      -> FATAL (CI must see a broken release)
   - toolchain detected  -> NEEDS_FALLBACK(reason)
   - otherwise           -> FATAL(reason; toolchain unavailable)
   Configuration errors are FATAL regardless of mode.
5. All stages succeed    -> DOWNLOADED(extracted library).

This module is the only place that turns typed errors into outcomes; every
component below it raises.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from xforge_precompiled.core.archive_extractor import ArchiveExtractor
from xforge_precompiled.core.artifact_client import ArtifactClient
from xforge_precompiled.core.cache_store import CacheStore, require_plain_name
from xforge_precompiled.core.errors import (
    PrecompiledError,
    ResolutionFatalError,
    ToolchainUnavailableError,
)
from xforge_precompiled.core.hasher import compute_build_id
from xforge_precompiled.core.manifest_client import ManifestClient
from xforge_precompiled.core.platform_matcher import select_artifact
from xforge_precompiled.core.reporting import Reporter
from xforge_precompiled.core.targets import library_extension_for, rustup_exists
from xforge_precompiled.models.options import PrecompiledBinariesConfig, PrecompiledBinaryMode
from xforge_precompiled.models.resolution import (
    VALID_TRANSITIONS,
    Downloaded,
    Fatal,
    NeedsFallback,
    Resolution,
    ResolutionState,
)


class InvalidTransitionError(RuntimeError):
    """Raised when an outcome is not reachable from RESOLVING."""


class FallbackPolicy:
    """Resolves a precompiled library or decides on a local build.

    Parameters
    ----------
    config:
        Validated config, or ``None`` when the crate has none.
    cache:
        Cache store shared by the manifest/artifact clients and extractor.
    toolchain_probe:
        Returns whether a local build toolchain is installed.  Only called
        after a stage failure.
    reporter:
        Reporting handle passed to every component.
    link_mode:
        ``"dynamic"`` or ``"static"``; selects the library extension.
    """

    def __init__(
        self,
        config: PrecompiledBinariesConfig | None,
        cache: CacheStore,
        *,
        toolchain_probe: Callable[[], bool] = rustup_exists,
        reporter: Reporter | None = None,
        link_mode: str = "dynamic",
    ) -> None:
        self._config = config
        self._cache = cache
        self._toolchain_probe = toolchain_probe
        self._reporter = reporter or Reporter()
        self._link_mode = link_mode
        self._extractor = ArchiveExtractor(cache, self._reporter)
        if config is not None:
            self._manifests = ManifestClient(config, cache, self._reporter)
            self._artifacts = ArtifactClient(config, cache, self._reporter)

    @property
    def config(self) -> PrecompiledBinariesConfig | None:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(
        self,
        crate_dir: Path,
        target_triple: str,
        *,
        build_id: str | None = None,
    ) -> Resolution:
        """Run one resolution and return its terminal outcome."""
        config = self._config
        if config is None:
            self._reporter.info(
                "No precompiled_binaries config; falling back to local build.", stage="policy"
            )
            return self._finish(NeedsFallback(reason="no config"))

        if config.mode == PrecompiledBinaryMode.NEVER:
            self._reporter.info(
                "Precompiled binaries disabled by config (mode=never); "
                "falling back to local build.",
                stage="policy",
            )
            return self._finish(NeedsFallback(reason="mode=never"))

        self._reporter.info(f"Resolving precompiled binary for {target_triple}", stage="policy")
        self._reporter.debug(f"Precompiled mode: {config.mode.value}", stage="policy")

        stage = "build_id"
        try:
            if build_id is None:
                build_id = compute_build_id(Path(crate_dir))
            require_plain_name(build_id, "Build id")
            require_plain_name(target_triple, "Target triple")
            self._reporter.debug(f"Build id: {build_id}", stage="build_id")

            stage = "manifest"
            manifest = self._manifests.fetch_verified_manifest(build_id)

            stage = "match"
            selection = select_artifact(manifest, target_triple)

            stage = "artifact"
            archive = self._artifacts.fetch_verified_artifact(build_id, selection.artifact_name)

            stage = "extract"
            library = self._extractor.extract_library(
                archive,
                library_extension_for(target_triple, self._link_mode),
                build_id=build_id,
                target_triple=target_triple,
            )
        except PrecompiledError as exc:
            return self._finish(self._on_stage_failure(stage, exc, config.mode))

        self._reporter.info(f"Using precompiled binary for {target_triple}", stage="policy")
        return self._finish(
            Downloaded(
                library_path=library,
                build_id=build_id,
                target_triple=target_triple,
                artifact_name=selection.artifact_name,
            )
        )

    def resolve_or_raise(
        self,
        crate_dir: Path,
        target_triple: str,
        *,
        build_id: str | None = None,
    ) -> Downloaded | NeedsFallback:
        """Like ``resolve`` but raises ``ResolutionFatalError`` on FATAL."""
        outcome = self.resolve(crate_dir, target_triple, build_id=build_id)
        if isinstance(outcome, Fatal):
            raise ResolutionFatalError(
                outcome.reason, stage=outcome.stage, error_code=outcome.error_code
            )
        return outcome

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _on_stage_failure(
        self, stage: str, exc: PrecompiledError, mode: PrecompiledBinaryMode
    ) -> Resolution:
        reason = f"{stage} stage failed ({exc.code}): {exc}"
        self._reporter.error(reason, stage=stage)

        if not exc.fallback_eligible:
            return Fatal(stage=stage, reason=reason, error_code=exc.code)

        if mode == PrecompiledBinaryMode.ALWAYS:
            return Fatal(
                stage=stage,
                reason=f"Precompiled binaries are required (mode=always). {reason}",
                error_code=exc.code,
            )

        if self._toolchain_probe():
            self._reporter.info("Falling back to local build.", stage="policy")
            return NeedsFallback(reason=reason)

        return Fatal(
            stage=stage,
            reason=f"{reason}; toolchain unavailable",
            error_code=ToolchainUnavailableError.code,
        )

    def _finish(self, outcome: Resolution) -> Resolution:
        if outcome.state not in VALID_TRANSITIONS[ResolutionState.RESOLVING]:
            raise InvalidTransitionError(
                f"Cannot transition from {ResolutionState.RESOLVING.value} "
                f"to {outcome.state.value}"
            )
        self._reporter.debug(
            f"{ResolutionState.RESOLVING.value}->{outcome.state.value}", stage="policy"
        )
        return outcome
