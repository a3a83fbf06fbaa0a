"""
L3 Detection — Host platform identification.

Normalizes ``sys.platform`` / ``platform.machine()`` into the
identifiers used by the registry (``darwin|linux|win32``,
``x64|arm64``).
"""

from __future__ import annotations

import platform as _platform
import sys
from dataclasses import dataclass

# uname -m / Windows PROCESSOR_ARCHITECTURE → registry arch name
_ARCH_MAP: dict[str, str] = {
    "x86_64": "x64",
    "amd64": "x64",
    "AMD64": "x64",        # Windows
    "aarch64": "arm64",
    "arm64": "arm64",      # macOS reports arm64
    "ARM64": "arm64",
}

_PLATFORM_MAP: dict[str, str] = {
    "darwin": "darwin",
    "linux": "linux",
    "win32": "win32",
    "cygwin": "win32",
}


@dataclass(frozen=True)
class PlatformInfo:
    """Normalized host identifiers."""

    platform: str
    arch: str

    @property
    def exe_suffix(self) -> str:
        return ".exe" if self.platform == "win32" else ""

    @property
    def key(self) -> str:
        return f"{self.platform}-{self.arch}"


def get_platform_info() -> PlatformInfo:
    """Detect the current host.

    Unknown values pass through unchanged so that validation can
    report them verbatim.
    """
    plat = sys.platform
    if plat.startswith("linux"):
        plat = "linux"
    machine = _platform.machine()
    return PlatformInfo(
        platform=_PLATFORM_MAP.get(plat, plat),
        arch=_ARCH_MAP.get(machine, machine.lower()),
    )
