"""Resolution outcome models — a small deterministic state machine.

A resolution starts in RESOLVING and ends in exactly one terminal state.
Outcomes are per-invocation and never persisted.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ResolutionState(str, Enum):
    RESOLVING = "resolving"
    DOWNLOADED = "downloaded"
    NEEDS_FALLBACK = "needs_fallback"
    FATAL = "fatal"


# Terminal states have no outgoing transitions.
VALID_TRANSITIONS: dict[ResolutionState, set[ResolutionState]] = {
    ResolutionState.RESOLVING: {
        ResolutionState.DOWNLOADED,
        ResolutionState.NEEDS_FALLBACK,
        ResolutionState.FATAL,
    },
    ResolutionState.DOWNLOADED: set(),
    ResolutionState.NEEDS_FALLBACK: set(),
    ResolutionState.FATAL: set(),
}


class Downloaded(BaseModel):
    """A verified precompiled library was extracted and is ready to use."""

    model_config = ConfigDict(frozen=True)

    state: Literal[ResolutionState.DOWNLOADED] = ResolutionState.DOWNLOADED
    library_path: Path
    build_id: str
    target_triple: str
    artifact_name: str


class NeedsFallback(BaseModel):
    """The caller should build locally; ``reason`` says why."""

    model_config = ConfigDict(frozen=True)

    state: Literal[ResolutionState.NEEDS_FALLBACK] = ResolutionState.NEEDS_FALLBACK
    reason: str


class Fatal(BaseModel):
    """Neither a verified binary nor a local build is acceptable."""

    model_config = ConfigDict(frozen=True)

    state: Literal[ResolutionState.FATAL] = ResolutionState.FATAL
    stage: str
    reason: str
    error_code: str


Resolution = Annotated[
    Union[Downloaded, NeedsFallback, Fatal],
    Field(discriminator="state"),
]
