"""Release manifest models.

Producers have emitted platforms in three shapes over time::

    "platforms": [ {entry}, ... ]
    "platforms": { "default": "...", "targets": [ {entry}, ... ] }
    "platforms": { "<key>": {entry}, ... }

All three are normalized here, at the parse boundary, into one ordered
``Manifest.platforms`` list.  Nothing downstream branches on shape.
"""

from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)


def _string_list(value: Any, field: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{field} must be a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"{field} must be a list of strings")
        item = item.strip()
        if item:
            items.append(item)
    return items


class PlatformEntry(BaseModel):
    """One named group of target triples sharing an artifact list.

    ``artifacts`` keeps manifest order; the first entry is the one served.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    triples: list[str] = Field(default_factory=list)
    artifacts: list[str] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _require_name(cls, value: Any) -> str:
        # Matched against target triples exactly as written.
        if not isinstance(value, str) or not value:
            raise ValueError("platform name must be a non-empty string")
        return value

    @field_validator("triples", "artifacts", mode="before")
    @classmethod
    def _strings_or_empty(cls, value: Any, info: ValidationInfo) -> list[str]:
        return _string_list(value, info.field_name)

    def matches(self, target_triple: str) -> bool:
        return self.name == target_triple or target_triple in self.triples


class Manifest(BaseModel):
    """A verified release manifest, normalized to an ordered platform list."""

    model_config = ConfigDict(frozen=True)

    build_id: str | None = None
    platforms: list[PlatformEntry]

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, raw: Any) -> dict[str, Any]:
        if not isinstance(raw, dict):
            raise ValueError("manifest must be a JSON object")

        build_id: str | None = None
        build = raw.get("build")
        if build is not None:
            if not isinstance(build, dict):
                raise ValueError("manifest build must be an object")
            build_id = build.get("id")
            if build_id is not None and not isinstance(build_id, str):
                raise ValueError("manifest build.id must be a string")

        return {"build_id": build_id, "platforms": _platform_entries(raw.get("platforms"))}


def _platform_entries(node: Any) -> list[Any]:
    if isinstance(node, list):
        return node
    if not isinstance(node, dict):
        raise ValueError("manifest platforms must be a list or an object")
    if "targets" in node:
        targets = node["targets"]
        if not isinstance(targets, list):
            raise ValueError("manifest platforms.targets must be a list")
        return targets
    entries: list[Any] = []
    for key, entry in node.items():
        if not isinstance(entry, dict):
            raise ValueError("manifest platform entry must be an object")
        # Keyed entries may omit ``name``; the key names them.
        entries.append(entry if "name" in entry else {"name": key, **entry})
    return entries


class ArtifactSelection(BaseModel):
    """The platform entry matched for a target and the artifact to fetch."""

    model_config = ConfigDict(frozen=True)

    platform: PlatformEntry
    artifact_name: str
