"""xforge-precompiled data models — all Pydantic v2, all frozen (immutable)."""

from xforge_precompiled.models.build_inputs import HASH_VERSION, BuildInput
from xforge_precompiled.models.manifest import ArtifactSelection, Manifest, PlatformEntry
from xforge_precompiled.models.options import (
    AppPrecompiledOverrides,
    PrecompiledBinariesConfig,
    PrecompiledBinaryMode,
)
from xforge_precompiled.models.resolution import (
    VALID_TRANSITIONS,
    Downloaded,
    Fatal,
    NeedsFallback,
    Resolution,
    ResolutionState,
)

__all__ = [
    # build identity
    "HASH_VERSION",
    "BuildInput",
    # manifest
    "PlatformEntry",
    "Manifest",
    "ArtifactSelection",
    # options
    "PrecompiledBinaryMode",
    "PrecompiledBinariesConfig",
    "AppPrecompiledOverrides",
    # resolution
    "ResolutionState",
    "VALID_TRANSITIONS",
    "Downloaded",
    "NeedsFallback",
    "Fatal",
    "Resolution",
]
