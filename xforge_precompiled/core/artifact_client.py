"""Artifact client — fetch and verify one release archive."""

from __future__ import annotations

from pathlib import Path

from xforge_precompiled.core.cache_store import CacheStore, is_plain_name
from xforge_precompiled.core.errors import ArtifactSignatureInvalidError, ManifestParseError
from xforge_precompiled.core.reporting import Reporter
from xforge_precompiled.core.verified_download import fetch_verified
from xforge_precompiled.models.options import PrecompiledBinariesConfig


def _check_file_name(artifact_name: str) -> None:
    # Names come from a signed manifest but still become cache paths.
    if not is_plain_name(artifact_name):
        raise ManifestParseError(f"Artifact name is not a plain file name: {artifact_name!r}")


class ArtifactClient:
    """Fetches signed artifacts listed in a verified manifest."""

    def __init__(
        self,
        config: PrecompiledBinariesConfig,
        cache: CacheStore,
        reporter: Reporter | None = None,
    ) -> None:
        self._config = config
        self._cache = cache
        self._reporter = reporter or Reporter()

    def fetch_verified_artifact(self, build_id: str, artifact_name: str) -> Path:
        """Return the cached path of the verified archive *artifact_name*."""
        _check_file_name(artifact_name)
        local_path = self._cache.artifact_dir(build_id) / artifact_name
        data = fetch_verified(
            self._cache,
            self._config,
            build_id=build_id,
            file_name=artifact_name,
            local_path=local_path,
            error_cls=ArtifactSignatureInvalidError,
            reporter=self._reporter,
        )
        self._reporter.info(
            f"Verified artifact {artifact_name} ({len(data)} bytes)", stage="artifact"
        )
        return local_path
