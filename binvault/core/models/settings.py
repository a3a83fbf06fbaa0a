"""
Settings model — runtime configuration for binvault.

Loaded from an optional ``config.yml`` by
:func:`binvault.core.config.loader.load_settings`. Every field has a
default, so an empty or missing file yields a working configuration.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field

PRIMARY_REGISTRY_BASE = "https://registry.layerbase.host"
MIRROR_REGISTRY_BASE = "https://github.com/robertjbass/hostdb/releases/download"


def default_home() -> Path:
    """``$BINVAULT_HOME`` if set, else ``~/.binvault``."""
    env = os.environ.get("BINVAULT_HOME")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".binvault"


class RegistrySettings(BaseModel):
    """Where binaries and the release manifest come from."""

    primary_base: str = PRIMARY_REGISTRY_BASE
    mirror_base: str = MIRROR_REGISTRY_BASE
    primary_manifest_url: str = f"{PRIMARY_REGISTRY_BASE}/releases.json"
    mirror_manifest_url: str = (
        "https://raw.githubusercontent.com/robertjbass/hostdb/main/releases.json"
    )
    manifest_ttl_seconds: float = Field(300.0, gt=0)
    manifest_timeout_seconds: float = Field(5.0, gt=0)
    download_timeout_seconds: float = Field(300.0, gt=0)


class Settings(BaseModel):
    """Top-level configuration."""

    home: Path = Field(default_factory=default_home)
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    verify_timeout_seconds: int = Field(30, gt=0)
    probe_timeout_seconds: int = Field(10, gt=0)

    @property
    def bin_root(self) -> Path:
        """Directory holding one canonical install directory per tuple."""
        return self.home / "bin"
