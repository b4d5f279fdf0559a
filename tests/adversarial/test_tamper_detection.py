"""Adversarial tests — tampered releases and poisoned caches.

These tests verify that verification failures:
1. Never let unverified bytes reach the parser or extractor
2. Delete both the payload and its signature from the cache
3. Force a fresh download on the next run
"""

from __future__ import annotations

import pytest

from conftest import LINUX_TRIPLE
from xforge_precompiled.bridge.crypto_bridge import generate_keypair, sign_data
from xforge_precompiled.core.artifact_client import ArtifactClient
from xforge_precompiled.core.cache_store import write_atomic
from xforge_precompiled.core.errors import (
    ArtifactSignatureInvalidError,
    ManifestParseError,
    ManifestSignatureInvalidError,
)
from xforge_precompiled.core.fallback_policy import FallbackPolicy
from xforge_precompiled.core.manifest_client import MANIFEST_FILE_NAME, ManifestClient
from xforge_precompiled.core.options_loader import load_precompiled_config
from xforge_precompiled.models.resolution import Downloaded, Fatal


def _flip_bit(data: bytes, index: int = 0) -> bytes:
    return data[:index] + bytes([data[index] ^ 0x01]) + data[index + 1:]


class TestManifestTampering:
    """A manifest that does not verify is never parsed and never kept."""

    def test_bit_flip_in_transit(self, published_crate, cache):
        crate, release = published_crate
        url = release.url(MANIFEST_FILE_NAME)
        release.session.routes[url] = _flip_bit(release.session.routes[url], 5)
        client = ManifestClient(load_precompiled_config(crate), cache)

        with pytest.raises(ManifestSignatureInvalidError):
            client.fetch_verified_manifest(release.build_id)

        manifest_dir = cache.manifest_dir(release.build_id)
        assert not (manifest_dir / MANIFEST_FILE_NAME).exists()
        assert not (manifest_dir / (MANIFEST_FILE_NAME + ".sig")).exists()

    def test_poisoned_cache_evicted_then_redownloaded(self, published_crate, cache):
        crate, release = published_crate
        client = ManifestClient(load_precompiled_config(crate), cache)
        client.fetch_verified_manifest(release.build_id)

        cached = cache.manifest_dir(release.build_id) / MANIFEST_FILE_NAME
        write_atomic(cached, _flip_bit(cached.read_bytes(), 3))

        with pytest.raises(ManifestSignatureInvalidError):
            client.fetch_verified_manifest(release.build_id)
        assert not cached.exists()

        calls_before = len(release.session.calls)
        manifest = client.fetch_verified_manifest(release.build_id)
        assert manifest.platforms[0].name == "linux-x64"
        assert len(release.session.calls) == calls_before + 2

    def test_signed_by_other_key(self, published_crate, cache):
        crate, release = published_crate
        other_private, _other_public = generate_keypair()
        data = release.session.routes[release.url(MANIFEST_FILE_NAME)]
        release.publish(MANIFEST_FILE_NAME, data, signature=sign_data(data, other_private))

        with pytest.raises(ManifestSignatureInvalidError):
            ManifestClient(load_precompiled_config(crate), cache).fetch_verified_manifest(
                release.build_id
            )

    def test_truncated_signature(self, published_crate, cache):
        crate, release = published_crate
        sig_url = release.url(MANIFEST_FILE_NAME + ".sig")
        release.session.routes[sig_url] = release.session.routes[sig_url][:32]

        with pytest.raises(ManifestSignatureInvalidError):
            ManifestClient(load_precompiled_config(crate), cache).fetch_verified_manifest(
                release.build_id
            )

    def test_replayed_manifest_from_other_build(self, published_crate, cache):
        """A validly signed manifest for another build id is rejected."""
        crate, release = published_crate
        release.publish_manifest(
            [{"name": LINUX_TRIPLE, "artifacts": ["old.tar.gz"]}], build_id="b1-older"
        )

        with pytest.raises(ManifestParseError, match="b1-older"):
            ManifestClient(load_precompiled_config(crate), cache).fetch_verified_manifest(
                release.build_id
            )


class TestArtifactTampering:
    """An artifact that does not verify is deleted with its signature."""

    def test_bit_flip_evicts_both(self, published_crate, cache):
        crate, release = published_crate
        name = "widget-linux-x64.tar.gz"
        release.session.routes[release.url(name)] = _flip_bit(
            release.session.routes[release.url(name)], 20
        )
        client = ArtifactClient(load_precompiled_config(crate), cache)

        with pytest.raises(ArtifactSignatureInvalidError):
            client.fetch_verified_artifact(release.build_id, name)

        artifact_dir = cache.artifact_dir(release.build_id)
        assert not (artifact_dir / name).exists()
        assert not (artifact_dir / (name + ".sig")).exists()

    @pytest.mark.parametrize("name", ["../escape.tar.gz", "a/b.tar.gz", "..", ""])
    def test_artifact_name_must_be_plain(self, published_crate, cache, name):
        crate, release = published_crate
        client = ArtifactClient(load_precompiled_config(crate), cache)
        with pytest.raises(ManifestParseError):
            client.fetch_verified_artifact(release.build_id, name)
        assert release.session.calls == []

    def test_policy_never_extracts_tampered_artifact(self, published_crate, cache):
        crate, release = published_crate
        name = "widget-linux-x64.tar.gz"
        release.session.routes[release.url(name)] = _flip_bit(
            release.session.routes[release.url(name)], 20
        )
        policy = FallbackPolicy(
            load_precompiled_config(crate), cache, toolchain_probe=lambda: False
        )

        outcome = policy.resolve(crate, LINUX_TRIPLE)

        assert isinstance(outcome, Fatal)
        assert outcome.stage == "artifact"
        assert not cache.extracted_dir(release.build_id, LINUX_TRIPLE).exists()

    def test_policy_recovers_after_republish(self, published_crate, cache):
        crate, release = published_crate
        name = "widget-linux-x64.tar.gz"
        good = release.session.routes[release.url(name)]
        release.session.routes[release.url(name)] = _flip_bit(good, 20)
        policy = FallbackPolicy(load_precompiled_config(crate), cache, toolchain_probe=lambda: True)

        assert not isinstance(policy.resolve(crate, LINUX_TRIPLE), Downloaded)

        release.session.routes[release.url(name)] = good
        assert isinstance(policy.resolve(crate, LINUX_TRIPLE), Downloaded)
