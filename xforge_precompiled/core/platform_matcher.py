"""Select the manifest platform entry and artifact for a target triple."""

from __future__ import annotations

from xforge_precompiled.core.errors import ArtifactNotFoundError, PlatformNotFoundError
from xforge_precompiled.models.manifest import ArtifactSelection, Manifest


def select_artifact(manifest: Manifest, target_triple: str) -> ArtifactSelection:
    """First entry (in manifest order) whose name or triples match wins.

    The artifact served is the entry's first artifact; manifest order is
    authoritative.  A matched entry with no artifacts is a failure, never an
    empty success.
    """
    for platform in manifest.platforms:
        if platform.matches(target_triple):
            break
    else:
        raise PlatformNotFoundError(
            f'No platform match for target "{target_triple}" in manifest'
        )

    if not platform.artifacts:
        raise ArtifactNotFoundError(f'Manifest platform "{platform.name}" has no artifacts')

    return ArtifactSelection(platform=platform, artifact_name=platform.artifacts[0])
