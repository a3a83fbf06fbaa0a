"""
L4 Execution — Archive extraction by packaging strategy.

Every strategy extracts into a scratch directory first and then moves
the result into the target. The target is itself a staging directory;
nothing here ever writes to a canonical install path.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import tempfile
import zipfile
from pathlib import Path

from binvault.core.models.engine import (
    FlatArchive,
    NestedArchive,
    PackagingStrategy,
    WindowsInstallTree,
)
from binvault.core.services.provision.errors import ArchiveFormatError
from binvault.core.services.provision.execution.fs_ops import move_entry

logger = logging.getLogger(__name__)

_ZIP_SUFFIXES = (".zip", ".jar")

# Root-level files that are never executables even without an extension
_NON_BINARY_NAMES = frozenset({
    "license", "licence", "readme", "notice", "changelog", "contributing",
    "authors", "copying", "version", "makefile", "dockerfile", "manifest",
    "install", "news", "thanks", "todo", "history",
})
_METADATA_SUFFIXES = (".json", ".conf", ".yaml", ".yml", ".xml", ".txt", ".md")


# ── Raw archive formats ─────────────────────────────────────────


def unpack(archive: Path, dest: Path) -> None:
    """Extract a zip/jar or any tarball into ``dest``.

    Tar members are filtered with the ``data`` filter (no absolute
    paths, no escaping links, no device files).

    Raises:
        ArchiveFormatError: unreadable archive or unsafe member.
    """
    dest.mkdir(parents=True, exist_ok=True)
    try:
        if archive.name.lower().endswith(_ZIP_SUFFIXES) or zipfile.is_zipfile(archive):
            _unpack_zip(archive, dest)
        else:
            with tarfile.open(archive, "r:*") as tf:
                tf.extractall(dest, filter="data")
    except (tarfile.TarError, zipfile.BadZipFile) as e:
        raise ArchiveFormatError(f"Cannot extract {archive.name}: {e}") from e


def _unpack_zip(archive: Path, dest: Path) -> None:
    root = dest.resolve()
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            target = (dest / info.filename).resolve()
            if not target.is_relative_to(root):
                raise ArchiveFormatError(f"Unsafe path in {archive.name}: {info.filename}")
        zf.extractall(dest)
        # zipfile drops permission bits; restore the executable ones
        for info in zf.infolist():
            mode = (info.external_attr >> 16) & 0o777
            if mode & 0o111 and not info.is_dir():
                (dest / info.filename).chmod(mode)


# ── Strategies ──────────────────────────────────────────────────


class ArchiveExtractor:
    """Dispatches an archive to the handler for its packaging strategy.

    Args:
        engine_name: Used to recognise a wrapping top-level directory.
        work_dir: Where scratch directories are created. Defaults to
            the target's parent so moves stay on one filesystem.
    """

    def __init__(self, engine_name: str, work_dir: Path | None = None) -> None:
        self.engine_name = engine_name
        self.work_dir = work_dir

    def extract(self, archive: Path, target: Path, strategy: PackagingStrategy) -> None:
        """Populate ``target`` from ``archive`` per ``strategy``."""
        target.mkdir(parents=True, exist_ok=True)
        scratch = Path(tempfile.mkdtemp(prefix=".extract-", dir=self.work_dir or target.parent))
        try:
            if isinstance(strategy, WindowsInstallTree):
                self._extract_install_tree(archive, target, scratch, strategy)
            elif isinstance(strategy, NestedArchive):
                self._extract_nested(archive, target, scratch, strategy)
            elif isinstance(strategy, FlatArchive):
                self._extract_flat(archive, target, scratch, strategy)
            else:
                raise ArchiveFormatError(f"Unknown packaging strategy: {strategy!r}")
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

    # ── Flat / wrapped ─────────────────────────────────────────

    def _extract_flat(
        self, archive: Path, target: Path, scratch: Path, strategy: FlatArchive,
    ) -> None:
        unpack(archive, scratch)
        source = self._find_wrapper(scratch, strategy) or scratch
        entries = list(source.iterdir())
        if not entries:
            raise ArchiveFormatError(f"{archive.name} is empty")

        if (source / "bin").is_dir():
            for entry in entries:
                move_entry(entry, target / entry.name)
            return

        # No bin/: executables ship at the root
        bin_dir = target / "bin"
        bin_dir.mkdir(exist_ok=True)
        for entry in entries:
            dest = bin_dir if _looks_executable(entry) else target
            move_entry(entry, dest / entry.name)

    def _find_wrapper(self, scratch: Path, strategy: FlatArchive) -> Path | None:
        names = strategy.wrapper_prefixes or (self.engine_name,)
        for entry in sorted(scratch.iterdir()):
            if not entry.is_dir() or entry.name == "bin":
                continue
            if any(entry.name == n or entry.name.startswith(f"{n}-") for n in names):
                logger.debug("Hoisting wrapper directory %s", entry.name)
                return entry
        return None

    # ── Windows install tree ───────────────────────────────────

    def _extract_install_tree(
        self, archive: Path, target: Path, scratch: Path, strategy: WindowsInstallTree,
    ) -> None:
        unpack(archive, scratch)
        root = next(
            (
                e for e in sorted(scratch.iterdir())
                if e.is_dir() and (
                    e.name in strategy.root_names
                    or any(e.name.startswith(p) for p in strategy.root_prefixes)
                )
            ),
            None,
        )
        if root is None:
            expected = ", ".join(strategy.root_names + tuple(f"{p}*" for p in strategy.root_prefixes))
            raise ArchiveFormatError(
                f"Unexpected archive structure in {archive.name}: no {expected} directory"
            )
        for entry in root.iterdir():
            move_entry(entry, target / entry.name)

    # ── Legacy nested ──────────────────────────────────────────

    def _extract_nested(
        self, archive: Path, target: Path, scratch: Path, strategy: NestedArchive,
    ) -> None:
        outer = scratch / "outer"
        unpack(archive, outer)
        inner = find_inner_archive(outer, strategy.inner_suffixes)
        if inner is None:
            raise ArchiveFormatError(
                f"No inner archive ({', '.join(strategy.inner_suffixes)}) in {archive.name}"
            )
        logger.debug("Extracting inner archive %s", inner.name)
        # Inner members are already rooted at bin/, lib/, share/
        unpack(inner, target)


def find_inner_archive(root: Path, suffixes: tuple[str, ...]) -> Path | None:
    """Walk ``root`` for the first file ending in one of ``suffixes``.

    Entries that cannot be inspected are logged and skipped.
    """
    def _skip(err: OSError) -> None:
        logger.debug("Skipping unreadable entry %s: %s", err.filename, err)

    for dirpath, _dirs, files in os.walk(root, onerror=_skip):
        for name in sorted(files):
            if name.lower().endswith(suffixes):
                candidate = Path(dirpath) / name
                try:
                    if candidate.is_file():
                        return candidate
                except OSError as e:
                    _skip(e)
    return None


def _looks_executable(entry: Path) -> bool:
    name = entry.name
    if name.lower().endswith((".exe", ".dll")):
        return True
    if not entry.is_file() or name.startswith("."):
        return False
    if name.lower().endswith(_METADATA_SUFFIXES) or name.lower() in _NON_BINARY_NAMES:
        return False
    return "." not in name
