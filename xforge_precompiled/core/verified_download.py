"""Fetch a release file and its detached signature, verify, or evict both.

Shared by the manifest and artifact clients so both follow the same
discipline:

1. Get-or-fetch the payload and ``<payload>.sig`` through the cache.
2. Verify the payload bytes against the signature with the configured key.
3. On failure delete *both* cached files — including ones that were already
   cached before this run — then raise.  A later run must re-download
   rather than succeed against stale, unrevalidated bytes.
"""

from __future__ import annotations

from pathlib import Path

from xforge_precompiled.bridge.crypto_bridge import key_fingerprint, verify_signature
from xforge_precompiled.core.cache_store import CacheStore
from xforge_precompiled.core.errors import SignatureInvalidError
from xforge_precompiled.core.reporting import Reporter
from xforge_precompiled.models.options import PrecompiledBinariesConfig

SIGNATURE_SUFFIX = ".sig"


def signature_path(path: Path) -> Path:
    return path.with_name(path.name + SIGNATURE_SUFFIX)


def fetch_verified(
    cache: CacheStore,
    config: PrecompiledBinariesConfig,
    *,
    build_id: str,
    file_name: str,
    local_path: Path,
    error_cls: type[SignatureInvalidError],
    reporter: Reporter,
) -> bytes:
    """Return the verified bytes of *file_name* from release *build_id*."""
    sig_path = signature_path(local_path)
    url = config.file_url(build_id, file_name)
    sig_url = config.file_url(build_id, file_name + SIGNATURE_SUFFIX)

    payload = cache.get_or_fetch(local_path, url)
    signature = cache.get_or_fetch(sig_path, sig_url)

    if not verify_signature(payload, signature, config.public_key):
        cache.evict(local_path, sig_path)
        raise error_cls(
            f"Signature verification failed for {file_name} in release {build_id} "
            f"(key {key_fingerprint(config.public_key)})"
        )

    reporter.debug(f"Verified signature of {file_name}", stage=error_cls.stage)
    return payload
