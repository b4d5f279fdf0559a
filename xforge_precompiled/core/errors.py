"""Typed failures raised by the resolution components.

Every component raises one of these; only ``FallbackPolicy`` converts them
into a ``Resolution`` outcome.  Each error carries:

- ``stage``: which step of the resolution produced it, for operator messages.
- ``code``: a stable identifier recorded on ``Fatal`` outcomes.
- ``fallback_eligible``: whether the policy may degrade to a local build.
  Configuration errors are never eligible — a misconfigured crate must be
  fixed, not silently rebuilt.
"""

from __future__ import annotations

from typing import ClassVar


class PrecompiledError(RuntimeError):
    """Base class for every precompiled-resolution failure."""

    stage: ClassVar[str] = "resolve"
    code: ClassVar[str] = "precompiled_error"
    fallback_eligible: ClassVar[bool] = True


# ---------------------------------------------------------------------------
# Configuration and inputs, always fatal
# ---------------------------------------------------------------------------


class ConfigInvalidError(PrecompiledError):
    """Raised when ``precompiled_binaries`` config is present but malformed."""

    stage = "config"
    code = "config_invalid"
    fallback_eligible = False


class UnsupportedArchiveError(ConfigInvalidError):
    """Raised when an artifact name has no recognized archive suffix."""

    stage = "extract"
    code = "unsupported_archive"


class BuildInputError(PrecompiledError):
    """Base for build-identity inputs that cannot be hashed."""

    stage = "build_id"
    code = "build_input_error"
    fallback_eligible = False


class BuildInputMissingError(BuildInputError):
    """Raised when a required build-identity input cannot be found."""

    code = "build_input_missing"


class BuildInputInvalidError(BuildInputError):
    """Raised when a build-identity input exists but is unreadable or not UTF-8."""

    code = "build_input_invalid"


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------


class NetworkError(PrecompiledError):
    """Raised when a download fails after all retries are exhausted."""

    stage = "download"
    code = "network_error"

    def __init__(self, message: str, *, url: str = "", status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class RemoteNotFoundError(NetworkError):
    """Raised when the release host answers 404 for a file."""

    code = "not_found"


# ---------------------------------------------------------------------------
# Verification and structure
# ---------------------------------------------------------------------------


class SignatureInvalidError(PrecompiledError):
    """Raised when a detached Ed25519 signature does not verify."""

    code = "signature_invalid"


class ManifestSignatureInvalidError(SignatureInvalidError):
    stage = "manifest"
    code = "manifest_signature_invalid"


class ArtifactSignatureInvalidError(SignatureInvalidError):
    stage = "artifact"
    code = "artifact_signature_invalid"


class ManifestParseError(PrecompiledError):
    """Raised when a verified manifest has a malformed shape."""

    stage = "manifest"
    code = "manifest_invalid"


class PlatformNotFoundError(PrecompiledError):
    stage = "match"
    code = "platform_not_found"


class ArtifactNotFoundError(PrecompiledError):
    stage = "match"
    code = "artifact_not_found"


class LibraryNotFoundInArchiveError(PrecompiledError):
    stage = "extract"
    code = "library_not_found_in_archive"


# ---------------------------------------------------------------------------
# Local cache
# ---------------------------------------------------------------------------


class CacheIOError(PrecompiledError):
    """Raised when the cache directory cannot be read or written."""

    stage = "cache"
    code = "cache_io_error"


# ---------------------------------------------------------------------------
# Policy outcomes
# ---------------------------------------------------------------------------


class ToolchainUnavailableError(PrecompiledError):
    """Raised when fallback was chosen but no local toolchain exists."""

    stage = "fallback"
    code = "toolchain_unavailable"
    fallback_eligible = False


class ResolutionFatalError(PrecompiledError):
    """Raised by ``FallbackPolicy.resolve_or_raise`` for ``Fatal`` outcomes."""

    code = "resolution_fatal"
    fallback_eligible = False

    def __init__(self, message: str, *, stage: str, error_code: str) -> None:
        super().__init__(message)
        self.failed_stage = stage
        self.error_code = error_code
