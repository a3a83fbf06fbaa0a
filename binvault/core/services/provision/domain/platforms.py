"""
L1 Domain — Engine lookup and platform validation.

Pure input→output.
"""

from __future__ import annotations

from binvault.core.models.engine import EngineSpec
from binvault.core.services.provision.data.engines import ENGINES
from binvault.core.services.provision.errors import UnknownEngine, UnsupportedPlatform


def get_engine(name: str) -> EngineSpec:
    """Return the registered engine descriptor or raise ``UnknownEngine``."""
    try:
        return ENGINES[name]
    except KeyError:
        raise UnknownEngine(name, sorted(ENGINES)) from None


def platform_key(platform: str, arch: str) -> str:
    return f"{platform}-{arch}"


def validate_platform(engine: EngineSpec, platform: str, arch: str) -> str:
    """Check (platform, arch) against the engine's supported set.

    Returns:
        The ``platform-arch`` key.

    Raises:
        UnsupportedPlatform: naming the attempted key and every
            supported key.
    """
    key = platform_key(platform, arch)
    if key not in engine.supported_platforms:
        raise UnsupportedPlatform(engine.name, key, list(engine.supported_platforms))
    return key


def executable_name(binary: str, platform: str) -> str:
    """Native file name of ``binary`` (``.exe`` suffix on Windows)."""
    if platform == "win32" and not binary.endswith(".exe"):
        return f"{binary}.exe"
    return binary
