"""Canonical hashing for the build identity.

The build id is the release tag every consumer downloads from, so the
canonical serialization must be byte-identical across implementations:

- keys sorted, compact separators (",", ":")
- non-ASCII characters emitted raw (ensure_ascii=False), UTF-8 encoded
- absent inputs serialized as ``null``, never omitted
- input files decoded from their exact bytes (no newline translation)
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

from xforge_precompiled.core.errors import BuildInputInvalidError, BuildInputMissingError
from xforge_precompiled.models.build_inputs import (
    CARGO_LOCK,
    CARGO_TOML,
    HASH_VERSION,
    INTERFACE_DEFINITION,
    PROJECT_CONFIG,
    TARGET_TRIPLE,
    BuildInput,
)

DESCRIPTOR_FILE = "Cargo.toml"
LOCK_FILE = "Cargo.lock"
CONFIG_FILE = "xforge.yaml"


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def _read_text(path: Path) -> str:
    try:
        return path.read_bytes().decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BuildInputInvalidError(
            f"Build input is not valid UTF-8: {path.name} ({path})"
        ) from exc
    except OSError as exc:
        raise BuildInputInvalidError(
            f"Cannot read build input {path.name} ({path}): {exc}"
        ) from exc


def _read_required(crate_dir: Path, file_name: str) -> str:
    path = crate_dir / file_name
    if not path.is_file():
        raise BuildInputMissingError(f"Missing required file: {file_name} ({path})")
    return _read_text(path)


def _read_optional(path: Path | None) -> str | None:
    if path is None or not path.is_file():
        return None
    return _read_text(path)


def find_lock_file(crate_dir: Path) -> Path:
    """Walk from *crate_dir* up to the filesystem root looking for Cargo.lock.

    Workspace members share the workspace root's lock file, so the nearest
    ancestor wins.
    """
    current = Path(crate_dir).absolute()
    for directory in (current, *current.parents):
        candidate = directory / LOCK_FILE
        if candidate.is_file():
            return candidate
    raise BuildInputMissingError(
        f"Missing required file: {LOCK_FILE} (searched {current} and its ancestors)"
    )


def collect_build_inputs(
    crate_dir: Path, *, interface_definition: Path | None = None
) -> list[BuildInput]:
    """Read every build-identity input, sorted by name."""
    crate_dir = Path(crate_dir)
    inputs = [
        BuildInput(name=CARGO_TOML, value=_read_required(crate_dir, DESCRIPTOR_FILE)),
        BuildInput(name=CARGO_LOCK, value=_read_text(find_lock_file(crate_dir))),
        BuildInput(name=TARGET_TRIPLE, value=None),
        BuildInput(name=INTERFACE_DEFINITION, value=_read_optional(interface_definition)),
        BuildInput(name=PROJECT_CONFIG, value=_read_optional(crate_dir / CONFIG_FILE)),
    ]
    return sorted(inputs, key=lambda item: item.name)


def canonical_inputs_json(inputs: list[BuildInput]) -> bytes:
    """The exact bytes hashed into the build id."""
    payload = {
        "inputs": [item.canonical() for item in sorted(inputs, key=lambda i: i.name)],
        "version": HASH_VERSION,
    }
    return canonical_json_bytes(payload)


def compute_build_id(
    crate_dir: Path, *, interface_definition: Path | None = None
) -> str:
    """Deterministic ``"<hash_version>-<sha256>"`` identity of a crate.

    Identical bytes of the present inputs and an identical absence pattern
    of the optional inputs always produce the same id.
    """
    inputs = collect_build_inputs(crate_dir, interface_definition=interface_definition)
    return f"{HASH_VERSION}-{sha256_hex(canonical_inputs_json(inputs))}"
