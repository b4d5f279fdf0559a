"""Build-id keyed download cache with atomic writes.

Storage layout::

    {root}/manifests/{build_id}/xforge-manifest.json(.sig)
    {root}/artifacts/{build_id}/{artifact}(.sig)
    {root}/extracted/{build_id}/{target_triple}/{library}

A cached file is trusted until a verification step evicts it; eviction is
always the caller's responsibility.  Writes go to a temp file in the target
directory followed by ``os.replace`` so concurrent readers only ever see a
complete file or no file.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Protocol

from xforge_precompiled.core.errors import CacheIOError, ConfigInvalidError
from xforge_precompiled.core.reporting import Reporter


class Fetcher(Protocol):
    def fetch(self, url: str) -> bytes: ...


def is_plain_name(name: str) -> bool:
    """True when *name* is a single path segment that stays in its directory."""
    return bool(name) and name not in (".", "..") and "/" not in name and "\\" not in name


def require_plain_name(value: str, what: str) -> str:
    """Return *value*, or raise ``ConfigInvalidError`` if it could escape the cache."""
    if not is_plain_name(value):
        raise ConfigInvalidError(f"{what} is not a plain path segment: {value!r}")
    return value


def write_atomic(path: Path, data: bytes) -> None:
    """Write *data* to *path* via temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class CacheStore:
    """Local cache for release files of one or more build ids.

    Parameters
    ----------
    root:
        Cache root directory (created lazily on first write).
    fetcher:
        Transport used on cache misses.
    reporter:
        Reporting handle.
    """

    def __init__(self, root: Path, fetcher: Fetcher, reporter: Reporter | None = None) -> None:
        self._root = Path(root)
        self._fetcher = fetcher
        self._reporter = reporter or Reporter()

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def manifest_dir(self, build_id: str) -> Path:
        return self._root / "manifests" / require_plain_name(build_id, "Build id")

    def artifact_dir(self, build_id: str) -> Path:
        return self._root / "artifacts" / require_plain_name(build_id, "Build id")

    def extracted_dir(self, build_id: str, target_triple: str) -> Path:
        return (
            self._root
            / "extracted"
            / require_plain_name(build_id, "Build id")
            / require_plain_name(target_triple, "Target triple")
        )

    # ------------------------------------------------------------------
    # Get-or-fetch
    # ------------------------------------------------------------------

    def get_or_fetch(self, local_path: Path, url: str) -> bytes:
        """Return cached bytes for *local_path*, downloading *url* on a miss."""
        local_path = Path(local_path)
        if local_path.is_file():
            self._reporter.debug(f"Cache hit: {local_path}", stage="cache")
            try:
                return local_path.read_bytes()
            except OSError as exc:
                raise CacheIOError(f"Cannot read cached file {local_path}: {exc}") from exc

        self._reporter.debug(f"Cache miss, downloading {url}", stage="cache")
        data = self._fetcher.fetch(url)
        try:
            write_atomic(local_path, data)
        except OSError as exc:
            raise CacheIOError(f"Cannot write cache file {local_path}: {exc}") from exc
        return data

    def evict(self, *paths: Path) -> None:
        """Remove cached files; already-missing files are ignored."""
        for path in paths:
            path = Path(path)
            if path.exists():
                self._reporter.warning(f"Evicting {path}", stage="cache")
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                raise CacheIOError(f"Cannot evict cached file {path}: {exc}") from exc
