"""
L5 Orchestration — Binary pipeline per (engine, version, platform, arch).

    check cache → download → extract → supplement → patch → verify → publish

Everything before *publish* happens in a private staging directory
under the binary root. Publishing is one ``rename`` of the finished,
verified tree onto the canonical path, so the canonical directory is
either absent or complete. The staging directory is removed on every
exit path.

Two processes racing on the same tuple both build privately; the
loser's rename fails, it sees a complete install and returns it.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Any, Callable

from binvault.core.config.paths import BinaryPaths
from binvault.core.models.binary import (
    InstalledBinary,
    PipelineRun,
    PipelineState,
    ProgressCallback,
    ProgressStage,
)
from binvault.core.models.engine import EngineSpec
from binvault.core.models.settings import Settings
from binvault.core.services.provision.domain.platforms import (
    executable_name,
    get_engine,
    validate_platform,
)
from binvault.core.services.provision.domain.versions import normalize_version, versions_match
from binvault.core.services.provision.errors import NotFound, ProvisionError, VersionMismatch
from binvault.core.services.provision.execution.archive_extractor import ArchiveExtractor
from binvault.core.services.provision.execution.fs_ops import mark_bin_executable
from binvault.core.services.provision.execution.library_patcher import LibraryPatcher
from binvault.core.services.provision.execution.registry_client import RegistryClient, fmt_size
from binvault.core.services.provision.execution.subprocess_runner import run_subprocess
from binvault.core.services.provision.execution.supplementary_tools import (
    SupplementaryToolInstaller,
)

logger = logging.getLogger(__name__)

Runner = Callable[..., dict[str, Any]]


def _no_progress(stage: ProgressStage, message: str) -> None:
    logger.debug("[%s] %s", stage, message)


def _byte_progress(progress: ProgressCallback, step: int = 10) -> Callable[[int, int], None]:
    """Report ``(downloaded, total)`` byte counts as a DOWNLOADING event every ``step``%."""
    last = -step

    def on_bytes(downloaded: int, total: int) -> None:
        nonlocal last
        if total <= 0:
            return
        pct = min(downloaded * 100 // total, 100)
        if pct >= last + step:
            last = pct - pct % step
            progress(
                ProgressStage.DOWNLOADING,
                f"Downloaded {pct}% ({fmt_size(downloaded)} / {fmt_size(total)})",
            )

    return on_bytes


class BinaryManager:
    """Installs, verifies and locates binaries for one engine.

    Args:
        engine: Engine name or descriptor.
        settings: Runtime settings (defaults when omitted).
        paths: Path provider; derived from ``settings`` when omitted.
        client: Registry client; built from ``settings`` when omitted.
        runner: ``run_subprocess``-compatible command runner, used for
            version checks and library patching.
    """

    def __init__(
        self,
        engine: EngineSpec | str,
        *,
        settings: Settings | None = None,
        paths: BinaryPaths | None = None,
        client: RegistryClient | None = None,
        runner: Runner | None = None,
    ) -> None:
        self.engine = get_engine(engine) if isinstance(engine, str) else engine
        self.settings = settings or Settings()
        self.paths = paths or BinaryPaths.from_settings(self.settings)
        self.client = client or RegistryClient(self.settings.registry)
        self._run = runner or run_subprocess
        self.last_run: PipelineRun | None = None

    # ── Paths ───────────────────────────────────────────────────

    def full_version(self, version: str) -> str:
        return normalize_version(self.engine, version)

    def install_path(self, version: str, platform: str, arch: str) -> Path:
        """Canonical directory for the resolved version of ``version``."""
        return self.paths.binary_path(self.engine.name, self.full_version(version), platform, arch)

    def get_binary_executable(self, version: str, platform: str, arch: str, tool: str) -> Path:
        """Path of ``tool`` inside the install (it may not exist yet)."""
        return self.install_path(version, platform, arch) / "bin" / executable_name(tool, platform)

    def _primary(self, install_dir: Path, platform: str) -> Path:
        return install_dir / "bin" / executable_name(self.engine.primary_binary, platform)

    def is_installed(self, version: str, platform: str, arch: str) -> bool:
        """True iff the primary executable exists at the canonical path."""
        return self._primary(self.install_path(version, platform, arch), platform).exists()

    def download_url(self, version: str, platform: str, arch: str) -> str:
        key = validate_platform(self.engine, platform, arch)
        return self.client.download_url(self.engine, self.full_version(version), key)

    def list_installed(self) -> list[InstalledBinary]:
        return self.paths.list_installed(self.engine.name)

    # ── Pipeline ────────────────────────────────────────────────

    def ensure_installed(
        self,
        version: str,
        platform: str,
        arch: str,
        on_progress: ProgressCallback | None = None,
    ) -> Path:
        """Return the install path, running the pipeline if needed.

        A cached install makes no network request, except on platforms
        with supplementary client tools where missing tools are
        backfilled into the existing install.
        """
        progress = on_progress or _no_progress
        validate_platform(self.engine, platform, arch)

        if not self.is_installed(version, platform, arch):
            return self.download(version, platform, arch, progress)

        path = self.install_path(version, platform, arch)
        progress(ProgressStage.CACHED, f"Using cached {self.engine.display_name} binaries")
        installer = self._supplementary(platform)
        if installer and installer.missing_tools(path):
            installer.install(path, self.full_version(version), arch, progress)
        return path

    def download(
        self,
        version: str,
        platform: str,
        arch: str,
        on_progress: ProgressCallback | None = None,
    ) -> Path:
        """Fetch, unpack, repair, verify and publish one install.

        Raises:
            UnsupportedPlatform, NetworkError, NotFound,
            ArchiveFormatError, VersionMismatch: the pipeline aborts,
                the staging directory is removed and the canonical
                path is left untouched.
        """
        progress = on_progress or _no_progress
        key = validate_platform(self.engine, platform, arch)
        full = self.full_version(version)
        binary = InstalledBinary(engine=self.engine.name, version=full, platform=platform, arch=arch)
        canonical = self.paths.binary_path(self.engine.name, full, platform, arch)
        url = self.client.download_url(self.engine, full, key)

        run = PipelineRun(binary)
        self.last_run = run
        staging = self.paths.staging_dir(binary)
        install = staging / "install"
        try:
            run.advance(PipelineState.DOWNLOADING)
            progress(ProgressStage.DOWNLOADING, f"Downloading {self.engine.display_name} {full}...")
            archive = staging / url.rsplit("/", 1)[-1]
            self.client.download_to_file(url, archive, on_bytes=_byte_progress(progress))

            run.advance(PipelineState.EXTRACTING)
            progress(ProgressStage.EXTRACTING, "Extracting binaries...")
            ArchiveExtractor(self.engine.name, work_dir=staging).extract(
                archive, install, self.engine.strategy_for(platform),
            )
            archive.unlink()

            installer = self._supplementary(platform)
            if installer:
                run.supplemented = installer.install(install, full, arch, progress)

            if platform != "win32":
                mark_bin_executable(install)

            if platform == "darwin" and self.engine.library_path_pattern:
                run.advance(PipelineState.PATCHING)
                progress(ProgressStage.CONFIGURING, "Fixing library paths for macOS...")
                patcher = LibraryPatcher(
                    self.engine.library_path_pattern,
                    runner=lambda cmd: self._run(cmd, timeout=60),
                )
                run.patch_results = patcher.patch_dir(install / "bin")

            run.advance(PipelineState.VERIFYING)
            progress(ProgressStage.VERIFYING, "Verifying binaries...")
            self._verify_dir(install, version, platform)

            final = self._publish(install, canonical, platform)
            run.install_path = final
            run.advance(PipelineState.INSTALLED)
            progress(ProgressStage.COMPLETE, f"{self.engine.display_name} {full} installed")
            return final
        except Exception as e:
            run.fail(e)
            logger.debug("Pipeline for %s failed in %s", binary.dir_name, run.history[-2][0])
            raise
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    def _supplementary(self, platform: str) -> SupplementaryToolInstaller | None:
        if self.engine.supplementary is None:
            return None
        installer = SupplementaryToolInstaller(self.client, self.engine.supplementary)
        return installer if installer.applies_to(platform) else None

    def _publish(self, install: Path, canonical: Path, platform: str) -> Path:
        """Move the finished tree onto the canonical path in one rename."""
        try:
            os.rename(install, canonical)
            return canonical
        except OSError as e:
            if self._primary(canonical, platform).exists():
                logger.info("%s was installed concurrently; keeping it", canonical)
                return canonical
            if not canonical.exists():
                raise ProvisionError(f"Cannot publish install to {canonical}: {e}") from e

        # A directory without the primary binary is debris from elsewhere
        logger.warning("Replacing incomplete directory %s", canonical)
        shutil.rmtree(canonical)
        try:
            os.rename(install, canonical)
        except OSError as e:
            if self._primary(canonical, platform).exists():
                return canonical
            raise ProvisionError(f"Cannot publish install to {canonical}: {e}") from e
        return canonical

    # ── Verification ────────────────────────────────────────────

    def verify(self, version: str, platform: str, arch: str) -> bool:
        """Check the installed primary binary reports an acceptable version.

        Raises:
            NotFound: nothing is installed for this tuple.
            VersionMismatch: the reported version is not acceptable.
        """
        return self._verify_dir(self.install_path(version, platform, arch), version, platform)

    def parse_reported_version(self, output: str) -> str | None:
        for pattern in self.engine.version_patterns:
            m = re.search(pattern, output)
            if m:
                return m.group(1)
        return None

    def _verify_dir(self, install_dir: Path, version: str, platform: str) -> bool:
        primary = self._primary(install_dir, platform)
        if not primary.exists():
            raise NotFound(f"{self.engine.display_name} binary not found at {primary}")

        r = self._run(
            [str(primary), "--version"],
            timeout=self.settings.verify_timeout_seconds,
            cwd=install_dir,
        )
        output = (r.get("stdout") or "") + (r.get("stderr") or "")
        if not r.get("ok"):
            detail = (r.get("stderr") or "").strip()
            raise VersionMismatch(
                self.full_version(version),
                f"<{r.get('error', 'failed to run')}{': ' + detail if detail else ''}>",
                binary=primary.name,
            )

        reported = self.parse_reported_version(output)
        if reported is None:
            raise VersionMismatch(
                self.full_version(version), f"<unparseable: {output.strip()[:200]}>",
                binary=primary.name,
            )
        if not versions_match(self.engine, version, reported):
            raise VersionMismatch(version, reported, binary=primary.name)

        logger.debug("%s reports %s (requested %s)", primary.name, reported, version)
        return True

    # ── Removal ─────────────────────────────────────────────────

    def delete(self, version: str, platform: str, arch: str) -> bool:
        """Remove an install. Returns False when there was nothing to remove."""
        path = self.install_path(version, platform, arch)
        if not path.exists():
            return False
        shutil.rmtree(path)
        logger.info("Deleted %s", path)
        return True
