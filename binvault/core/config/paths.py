"""
Install paths — the one place canonical install directories are computed.

Callers never build ``{engine}-{version}-{platform}-{arch}`` by hand;
they ask :class:`BinaryPaths`.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from binvault.core.models.binary import InstalledBinary
from binvault.core.models.settings import Settings

logger = logging.getLogger(__name__)

# Prefix for in-flight staging directories; never a valid install name.
STAGING_PREFIX = ".staging-"


class BinaryPaths:
    """Path-resolution provider rooted at the binary directory."""

    def __init__(self, bin_root: Path) -> None:
        self.bin = bin_root

    @classmethod
    def from_settings(cls, settings: Settings) -> BinaryPaths:
        return cls(settings.bin_root)

    def binary_path(self, engine: str, version: str, platform: str, arch: str) -> Path:
        """Canonical install directory for one tuple."""
        return self.bin / InstalledBinary(
            engine=engine, version=version, platform=platform, arch=arch,
        ).dir_name

    def staging_dir(self, binary: InstalledBinary) -> Path:
        """Create a fresh, uniquely named staging directory under ``bin``.

        Staging on the same filesystem as the canonical path lets the
        final publish be a single ``rename``.
        """
        self.bin.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=f"{STAGING_PREFIX}{binary.dir_name}-", dir=self.bin))

    def list_installed(self, engine: str | None = None) -> list[InstalledBinary]:
        """Parse install directories under ``bin``.

        Names are parsed from the end (arch, then platform) and the
        engine is matched against the registry, longest name first,
        so engine names and versions containing dashes survive.
        """
        if not self.bin.is_dir():
            return []

        from binvault.core.services.provision.data.engines import ENGINES

        names = sorted(ENGINES, key=len, reverse=True)
        found: list[InstalledBinary] = []
        for entry in sorted(self.bin.iterdir()):
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            parsed = _parse_dir_name(entry.name, names)
            if parsed is None:
                logger.debug("Ignoring unrecognised directory %s", entry)
                continue
            if engine is None or parsed.engine == engine:
                found.append(parsed)
        return found

    def find_installed(self, engine: str, platform: str, arch: str) -> list[InstalledBinary]:
        """Installs of ``engine`` for this platform, newest first."""
        from binvault.core.services.provision.domain.versions import version_tuple

        matches = [
            b for b in self.list_installed(engine)
            if b.platform == platform and b.arch == arch
        ]
        return sorted(matches, key=lambda b: version_tuple(b.version), reverse=True)


def _parse_dir_name(name: str, engines: list[str]) -> InstalledBinary | None:
    parts = name.rsplit("-", 2)
    if len(parts) != 3:
        return None
    rest, platform, arch = parts
    for engine in engines:
        if rest.startswith(f"{engine}-"):
            version = rest[len(engine) + 1:]
            if version:
                return InstalledBinary(
                    engine=engine, version=version, platform=platform, arch=arch,
                )
    return None
