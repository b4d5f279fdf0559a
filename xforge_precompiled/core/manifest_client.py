"""Manifest client — fetch, verify, then parse the release manifest."""

from __future__ import annotations

import json

from pydantic import ValidationError

from xforge_precompiled.core.cache_store import CacheStore
from xforge_precompiled.core.errors import ManifestParseError, ManifestSignatureInvalidError
from xforge_precompiled.core.reporting import Reporter
from xforge_precompiled.core.verified_download import fetch_verified
from xforge_precompiled.models.manifest import Manifest
from xforge_precompiled.models.options import PrecompiledBinariesConfig

MANIFEST_FILE_NAME = "xforge-manifest.json"


def parse_manifest(data: bytes, *, expected_build_id: str | None = None) -> Manifest:
    """Parse verified manifest bytes.

    Raises
    ------
    ManifestParseError
        If the bytes are not UTF-8 JSON, the shape is malformed, or
        ``build.id`` names a different build.
    """
    try:
        raw = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ManifestParseError(f"Manifest is not valid JSON: {exc}") from exc

    try:
        manifest = Manifest.model_validate(raw)
    except ValidationError as exc:
        raise ManifestParseError(f"Manifest has an invalid shape: {exc}") from exc

    if (
        expected_build_id is not None
        and manifest.build_id is not None
        and manifest.build_id != expected_build_id
    ):
        raise ManifestParseError(
            f"Manifest is for build {manifest.build_id}, expected {expected_build_id}"
        )
    return manifest


class ManifestClient:
    """Fetches the signed manifest for a build id.

    Parameters
    ----------
    config:
        Validated precompiled-binaries config (URL prefix and public key).
    cache:
        Cache store used for get-or-fetch and eviction.
    reporter:
        Reporting handle.
    """

    def __init__(
        self,
        config: PrecompiledBinariesConfig,
        cache: CacheStore,
        reporter: Reporter | None = None,
    ) -> None:
        self._config = config
        self._cache = cache
        self._reporter = reporter or Reporter()

    def fetch_verified_manifest(self, build_id: str) -> Manifest:
        """Return the verified, parsed manifest for *build_id*.

        JSON is only parsed after the signature verifies; unverified bytes
        never reach the parser.
        """
        local_path = self._cache.manifest_dir(build_id) / MANIFEST_FILE_NAME
        data = fetch_verified(
            self._cache,
            self._config,
            build_id=build_id,
            file_name=MANIFEST_FILE_NAME,
            local_path=local_path,
            error_cls=ManifestSignatureInvalidError,
            reporter=self._reporter,
        )
        manifest = parse_manifest(data, expected_build_id=build_id)
        self._reporter.info(
            f"Manifest for {build_id} lists {len(manifest.platforms)} platform(s)",
            stage="manifest",
        )
        return manifest
