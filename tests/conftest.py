"""Shared test fixtures for xforge-precompiled."""

from __future__ import annotations

import io
import json
import tarfile
import zipfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from xforge_precompiled.bridge.crypto_bridge import generate_keypair, sign_data
from xforge_precompiled.bridge.transport import HttpTransport
from xforge_precompiled.core.cache_store import CacheStore
from xforge_precompiled.core.hasher import compute_build_id
from xforge_precompiled.core.manifest_client import MANIFEST_FILE_NAME

URL_PREFIX = "https://releases.test/widget/"
LINUX_TRIPLE = "x86_64-unknown-linux-gnu"
LIBRARY_BYTES = b"\x7fELF fake shared object"


# ---------------------------------------------------------------------------
# Fake HTTP session
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status_code: int, content: bytes = b"") -> None:
        self.status_code = status_code
        self.content = content


class FakeSession:
    """``requests.Session`` stand-in serving an in-memory URL map.

    A route value is either ``bytes`` (200), a ``(status, bytes)`` tuple,
    an exception instance to raise, or a list of those consumed in order.
    Unknown URLs answer 404.  Every ``get`` is recorded in ``calls``.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.calls: list[str] = []

    def get(self, url: str, timeout: float | None = None) -> FakeResponse:
        self.calls.append(url)
        route = self.routes.get(url)
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if route is None:
            return FakeResponse(404)
        if isinstance(route, BaseException):
            raise route
        if isinstance(route, tuple):
            return FakeResponse(*route)
        return FakeResponse(200, route)

    def calls_for(self, suffix: str) -> int:
        return sum(1 for url in self.calls if url.endswith(suffix))

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Archive builders
# ---------------------------------------------------------------------------


def make_tar_gz(entries: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, data in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def make_zip(entries: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def keypair() -> tuple[str, str]:
    """Provide a fresh ``(private_key_hex, public_key_hex)`` signing pair."""
    return generate_keypair()


@pytest.fixture
def session() -> FakeSession:
    """Provide an empty fake HTTP session."""
    return FakeSession()


@pytest.fixture
def transport(session: FakeSession) -> HttpTransport:
    """Provide a transport over the fake session that never sleeps."""
    return HttpTransport(session, max_retries=2, sleep=lambda _delay: None)


@pytest.fixture
def cache(tmp_path: Path, transport: HttpTransport) -> CacheStore:
    """Provide a cache store rooted in a temp directory."""
    return CacheStore(tmp_path / "cache", transport)


@pytest.fixture
def make_crate(tmp_path: Path, keypair: tuple[str, str]) -> Callable[..., Path]:
    """Factory fixture: write a crate with Cargo files and xforge.yaml."""

    def _factory(
        name: str = "crate",
        *,
        mode: str | None = "auto",
        config: bool = True,
        public_key: str | None = None,
        extra_yaml: str = "",
    ) -> Path:
        crate_dir = tmp_path / name
        crate_dir.mkdir(parents=True, exist_ok=True)
        (crate_dir / "Cargo.toml").write_text(
            '[package]\nname = "widget"\nversion = "0.1.0"\n', encoding="utf-8"
        )
        (crate_dir / "Cargo.lock").write_text(
            "version = 3\n\n[[package]]\nname = \"widget\"\n", encoding="utf-8"
        )
        if config:
            lines = [
                "precompiled_binaries:",
                "  repository: acme/widget",
                f"  public_key: '{public_key or keypair[1]}'",
                f"  url_prefix: {URL_PREFIX}",
            ]
            if mode is not None:
                lines.append(f"  mode: {mode}")
            (crate_dir / "xforge.yaml").write_text(
                "\n".join(lines) + "\n" + extra_yaml, encoding="utf-8"
            )
        return crate_dir

    return _factory


class Release:
    """A signed release published into a ``FakeSession``."""

    def __init__(self, session: FakeSession, private_key: str, build_id: str) -> None:
        self.session = session
        self.private_key = private_key
        self.build_id = build_id

    def url(self, file_name: str) -> str:
        return f"{URL_PREFIX}{self.build_id}/{file_name}"

    def publish(self, file_name: str, data: bytes, *, signature: bytes | None = None) -> None:
        self.session.routes[self.url(file_name)] = data
        self.session.routes[self.url(file_name + ".sig")] = (
            signature if signature is not None else sign_data(data, self.private_key)
        )

    def publish_manifest(self, platforms: Any, *, build_id: str | None = None) -> bytes:
        document = {"build": {"id": build_id or self.build_id}, "platforms": platforms}
        data = json.dumps(document).encode("utf-8")
        self.publish(MANIFEST_FILE_NAME, data)
        return data


@pytest.fixture
def make_release(session: FakeSession, keypair: tuple[str, str]) -> Callable[..., Release]:
    """Factory fixture: a signed release for a crate's computed build id."""

    def _factory(crate_dir: Path, *, private_key: str | None = None) -> Release:
        return Release(session, private_key or keypair[0], compute_build_id(crate_dir))

    return _factory


@pytest.fixture
def published_crate(
    make_crate: Callable[..., Path], make_release: Callable[..., Release]
) -> tuple[Path, Release]:
    """A crate whose release covers linux-x64 with one tar.gz artifact."""
    crate_dir = make_crate()
    release = make_release(crate_dir)
    release.publish_manifest([
        {
            "name": "linux-x64",
            "triples": [LINUX_TRIPLE],
            "artifacts": ["widget-linux-x64.tar.gz"],
        },
    ])
    release.publish(
        "widget-linux-x64.tar.gz",
        make_tar_gz({"widget/lib/libwidget.so": LIBRARY_BYTES, "widget/README": b"docs"}),
    )
    return crate_dir, release

