"""
L4 Execution — macOS dynamic-library path repair.

Registry builds for macOS are linked on a CI runner, so their load
commands reference the runner's absolute install prefix. Each such
reference is rewritten to ``@loader_path/../lib/<name>``.

Best effort: a binary that cannot be inspected or rewritten is
recorded and skipped, never fatal.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable

from binvault.core.models.binary import PatchResult, PatchStatus
from binvault.core.services.provision.execution.subprocess_runner import run_subprocess

logger = logging.getLogger(__name__)

# otool -L lists one dependency per line, tab-indented
_OTOOL_LINE = re.compile(r"^\t(\S+)")

Runner = Callable[[list[str]], dict[str, Any]]


class LibraryPatcher:
    """Rewrites foreign build-host library paths in ``bin/`` executables.

    Args:
        foreign_pattern: Regex matching the build host's library dir.
        runner: Command runner returning the ``run_subprocess`` dict.
    """

    def __init__(self, foreign_pattern: str, runner: Runner | None = None) -> None:
        self.pattern = re.compile(foreign_pattern)
        self._run = runner or (lambda cmd: run_subprocess(cmd, timeout=60))

    def patch_dir(self, bin_dir: Path) -> list[PatchResult]:
        """Patch every file in ``bin_dir``; one result per file."""
        if not bin_dir.is_dir():
            return []
        results = [self.patch_binary(p) for p in sorted(bin_dir.iterdir())]
        patched = sum(1 for r in results if r.status == PatchStatus.PATCHED)
        failed = [r for r in results if r.status == PatchStatus.FAILED]
        logger.info("Library patch: %d patched, %d failed, %d skipped",
                    patched, len(failed), len(results) - patched - len(failed))
        for r in failed:
            logger.warning("Could not patch %s: %s", r.binary, r.reason)
        return results

    def linked_libraries(self, binary: Path) -> list[str] | None:
        """Dependencies listed by ``otool -L``, or None if it failed."""
        r = self._run(["otool", "-L", str(binary)])
        if not r.get("ok"):
            return None
        libs = []
        for line in r.get("stdout", "").splitlines():
            m = _OTOOL_LINE.match(line)
            if m:
                libs.append(m.group(1))
        return libs

    def patch_binary(self, binary: Path) -> PatchResult:
        name = binary.name
        if binary.is_symlink() or not binary.is_file():
            return PatchResult(name, PatchStatus.SKIPPED, reason="not a regular file")

        libs = self.linked_libraries(binary)
        if libs is None:
            # Scripts and non-Mach-O files land here
            return PatchResult(name, PatchStatus.SKIPPED, reason="otool could not read file")

        foreign = [lib for lib in libs if self.pattern.search(lib)]
        if not foreign:
            return PatchResult(name, PatchStatus.SKIPPED, reason="no foreign library paths")

        changed: list[str] = []
        errors: list[str] = []
        for old in foreign:
            new = f"@loader_path/../lib/{old.rsplit('/', 1)[-1]}"
            r = self._run(["install_name_tool", "-change", old, new, str(binary)])
            if r.get("ok"):
                changed.append(old)
            else:
                errors.append(f"{old}: {r.get('stderr') or r.get('error', 'unknown error')}")

        if errors:
            return PatchResult(name, PatchStatus.FAILED, changed=changed, reason="; ".join(errors))
        return PatchResult(name, PatchStatus.PATCHED, changed=changed)
