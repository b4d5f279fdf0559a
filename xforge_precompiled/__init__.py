"""xforge-precompiled: signed precompiled-library resolution for xforge crates.

Given a crate checkout, decides whether a signed prebuilt library exists for
the target triple, downloads and verifies it, and otherwise tells the caller
to build locally:
  - Deterministic build identity (b1) shared with every other consumer
  - Ed25519 detached signatures via PyNaCl, fail-closed
  - Build-id keyed download cache with atomic writes and eviction on tamper
  - Policy modes auto / always / never with toolchain-aware fallback
"""

__version__ = "0.1.0"
__description__ = "Secure precompiled-artifact resolution for xforge native libraries"

from xforge_precompiled.core.fallback_policy import FallbackPolicy
from xforge_precompiled.core.hasher import compute_build_id
from xforge_precompiled.core.resolver import resolve_precompiled
from xforge_precompiled.cli.app import app as cli

__all__ = ["FallbackPolicy", "compute_build_id", "resolve_precompiled", "cli", "__version__"]
