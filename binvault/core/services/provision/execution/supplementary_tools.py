"""
L4 Execution — Supplementary client tools from distribution packages.

Some registry bundles ship server binaries only. The missing client
tools are taken from the distribution's own package: the newest
matching ``.deb`` in the package pool index is downloaded, its data
payload unpacked, and only the missing executables copied into
``bin/``. Existing files are never overwritten.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
from pathlib import Path

from binvault.core.models.binary import ProgressCallback, ProgressStage
from binvault.core.models.engine import SupplementarySource
from binvault.core.services.provision.domain.versions import major_of
from binvault.core.services.provision.errors import ArchiveFormatError, NotFound
from binvault.core.services.provision.execution.deb_package import (
    extract_deb_payload,
    extract_payload,
)
from binvault.core.services.provision.execution.registry_client import RegistryClient

logger = logging.getLogger(__name__)

# Tools the client package turned out not to ship, one per line. Cached
# installs do not fetch the package again for these.
UNAVAILABLE_MARKER = ".client-tools-unavailable"

# "postgresql-client-16_16.4-1.pgdg120+1_amd64.deb" → upstream "16.4", revision "1"
_DEB_VERSION = re.compile(r"_(\d+(?:\.\d+)*)-(\d+)")


def deb_version_key(filename: str) -> tuple[int, ...]:
    """Numeric sort key: upstream components, then the Debian revision."""
    m = _DEB_VERSION.search(filename)
    if not m:
        return ()
    upstream = tuple(int(p) for p in m.group(1).split("."))
    return upstream + (int(m.group(2)),)


def select_package(html: str, pattern: str) -> str | None:
    """Pick the newest package filename matched by ``pattern`` in ``html``.

    Debug-symbol (``dbgsym``) and snapshot/pre-release (``~``)
    builds are ignored. Ordering is numeric, not lexical.
    """
    candidates = [
        name for name in re.findall(pattern, html)
        if "dbgsym" not in name and "~" not in name
    ]
    if not candidates:
        return None
    return max(candidates, key=deb_version_key)


class SupplementaryToolInstaller:
    """Fills gaps in an install's ``bin/`` from a distribution package."""

    def __init__(self, client: RegistryClient, source: SupplementarySource) -> None:
        self.client = client
        self.source = source

    def applies_to(self, platform: str) -> bool:
        return platform in self.source.platforms

    def missing_tools(self, install_dir: Path) -> list[str]:
        """Expected tools absent from ``bin/``, minus those known to be unavailable."""
        bin_dir = install_dir / "bin"
        unavailable = _read_unavailable(install_dir)
        return [
            t for t in self.source.tools
            if t not in unavailable and not (bin_dir / t).exists()
        ]

    def package_url(self, major: str, deb_arch: str) -> str:
        """Resolve the newest client package URL for ``major``.

        Raises:
            NotFound: the index lists no matching package.
            ArchiveFormatError: the index is not an HTML listing.
        """
        index_url = self.source.index_url.format(major=major)
        html = self.client.fetch_text(index_url)
        if "<html" not in html.lower() and "<!doctype" not in html.lower():
            raise ArchiveFormatError(f"Unexpected response from {index_url}: not an HTML index")

        pattern = self.source.package_pattern.format(major=re.escape(major), arch=re.escape(deb_arch))
        chosen = select_package(html, pattern)
        if chosen is None:
            raise NotFound(
                f"No client package for major {major} ({deb_arch}) at {index_url}",
                url=index_url,
            )
        logger.debug("Selected client package %s", chosen)
        return f"{index_url}{chosen}"

    def install(
        self,
        install_dir: Path,
        version: str,
        arch: str,
        on_progress: ProgressCallback | None = None,
    ) -> list[str]:
        """Copy missing client tools into ``install_dir/bin``.

        Args:
            install_dir: Install (or staging) directory to complete.
            version: Full engine version; its major picks the package.
            arch: Registry arch (``x64``/``arm64``).
            on_progress: Optional progress callback.

        Returns:
            Names of the tools added.
        """
        missing = self.missing_tools(install_dir)
        if not missing:
            return []

        deb_arch = self.source.arch_map.get(arch)
        if deb_arch is None:
            raise NotFound(f"No client package architecture for {arch}")

        major = major_of(version)
        if on_progress:
            on_progress(ProgressStage.DOWNLOADING, f"Downloading client tools ({', '.join(missing)})...")

        work = Path(tempfile.mkdtemp(prefix=".supplement-", dir=install_dir.parent))
        try:
            deb = work / "client.deb"
            self.client.download_to_file(self.package_url(major, deb_arch), deb)

            if on_progress:
                on_progress(ProgressStage.EXTRACTING, "Extracting client tools...")
            payload = extract_deb_payload(deb, work)
            bin_subdir = self.source.payload_bin_dir.format(major=major)
            tree = work / "payload"
            extract_payload(payload, tree, prefix=bin_subdir)

            src_bin = tree / bin_subdir
            if not src_bin.is_dir():
                raise ArchiveFormatError(f"Client package has no {bin_subdir} directory")

            added = []
            for tool in missing:
                if _copy_tool(src_bin / tool, install_dir / "bin" / tool):
                    added.append(tool)
        finally:
            shutil.rmtree(work, ignore_errors=True)

        still_missing = [t for t in missing if not (install_dir / "bin" / t).exists()]
        if still_missing:
            logger.warning("Client package did not provide: %s", ", ".join(still_missing))
            _record_unavailable(install_dir, still_missing)
        logger.info("Added client tools: %s", ", ".join(added) or "none")
        return added


def _copy_tool(src: Path, dest: Path) -> bool:
    """Copy one executable next to ``dest`` then rename it into place."""
    if not src.is_file() or dest.exists():
        return False
    dest.parent.mkdir(parents=True, exist_ok=True)
    tmp = dest.with_name(f".{dest.name}.tmp")
    shutil.copyfile(src, tmp)
    tmp.chmod(0o755)
    os.replace(tmp, dest)
    return True


def _read_unavailable(install_dir: Path) -> set[str]:
    marker = install_dir / UNAVAILABLE_MARKER
    if not marker.is_file():
        return set()
    return {line.strip() for line in marker.read_text().splitlines() if line.strip()}


def _record_unavailable(install_dir: Path, tools: list[str]) -> None:
    known = _read_unavailable(install_dir) | set(tools)
    (install_dir / UNAVAILABLE_MARKER).write_text("".join(f"{t}\n" for t in sorted(known)))
