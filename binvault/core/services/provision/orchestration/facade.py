"""
L5 Orchestration — Entry points for the server lifecycle layer.

Binds a :class:`BinaryManager` to the current host so callers only
pass an engine and a version.
"""

from __future__ import annotations

from pathlib import Path

from binvault.core.models.binary import ProgressCallback
from binvault.core.models.settings import Settings
from binvault.core.services.provision.detection.platform_info import get_platform_info
from binvault.core.services.provision.orchestration.binary_manager import BinaryManager


def ensure_binaries(
    engine: str,
    version: str,
    on_progress: ProgressCallback | None = None,
    settings: Settings | None = None,
) -> Path:
    """Install (or reuse) ``engine`` ``version`` for this host; return its path."""
    info = get_platform_info()
    return BinaryManager(engine, settings=settings).ensure_installed(
        version, info.platform, info.arch, on_progress,
    )


def is_binary_installed(engine: str, version: str, settings: Settings | None = None) -> bool:
    info = get_platform_info()
    return BinaryManager(engine, settings=settings).is_installed(version, info.platform, info.arch)


def get_binary_executable(
    engine: str,
    version: str,
    platform: str,
    arch: str,
    tool: str,
    settings: Settings | None = None,
) -> Path:
    return BinaryManager(engine, settings=settings).get_binary_executable(version, platform, arch, tool)
