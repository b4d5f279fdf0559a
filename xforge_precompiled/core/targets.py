"""Target-triple and local-toolchain probes."""

from __future__ import annotations

import os
import platform
import shutil
from pathlib import Path

_ARCH_ALIASES: dict[str, str] = {
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
}

_OS_TRIPLES: dict[str, str] = {
    "darwin": "{arch}-apple-darwin",
    "linux": "{arch}-unknown-linux-gnu",
    "windows": "{arch}-pc-windows-msvc",
    "android": "{arch}-linux-android",
    "ios": "{arch}-apple-ios",
}

DEFAULT_TARGET_TRIPLE = "x86_64-unknown-linux-gnu"


def detect_host_target_triple(system: str | None = None, machine: str | None = None) -> str:
    """Map the running OS/CPU to a Rust target triple.

    Unknown architectures map to ``x86_64``; unknown systems to
    ``x86_64-unknown-linux-gnu``.
    """
    system = (system if system is not None else platform.system()).lower()
    machine = (machine if machine is not None else platform.machine()).lower()
    arch = _ARCH_ALIASES.get(machine, "x86_64")
    template = _OS_TRIPLES.get(system)
    if template is None:
        return DEFAULT_TARGET_TRIPLE
    return template.format(arch=arch)


def library_extension_for(target_triple: str, link_mode: str = "dynamic") -> str:
    """File extension of the native library built for *target_triple*."""
    is_windows = "windows" in target_triple
    if link_mode == "static":
        return ".lib" if is_windows else ".a"
    if link_mode != "dynamic":
        raise ValueError(f"link_mode must be 'dynamic' or 'static', got {link_mode!r}")
    if is_windows:
        return ".dll"
    if "apple" in target_triple:
        return ".dylib"
    return ".so"


def rustup_exists() -> bool:
    """Whether a Rust toolchain manager is installed for a local fallback build."""
    executable = "rustup.exe" if os.name == "nt" else "rustup"
    cargo_bin = Path.home() / ".cargo" / "bin" / executable
    if cargo_bin.is_file():
        return True
    return shutil.which(executable) is not None
