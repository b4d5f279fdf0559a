"""Build-identity input models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

HASH_VERSION = "b1"

# Field names are part of the hashed payload; renaming any of them changes
# every build id.
CARGO_TOML = "cargo.toml"
CARGO_LOCK = "cargo.lock"
TARGET_TRIPLE = "rust.target_triple"
INTERFACE_DEFINITION = "uniffi.udl"
PROJECT_CONFIG = "xforge.yaml"


class BuildInput(BaseModel):
    """One named input of the build identity.  ``value=None`` records absence."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str | None = None
    affects_abi: bool = True

    def canonical(self) -> dict[str, object]:
        return {"affects_abi": self.affects_abi, "name": self.name, "value": self.value}
