"""
L3 Detection — Tool lookup and version probes.

Read-only: finds executables (registered installs first, then
``PATH``) and parses their ``--version`` output.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from pathlib import Path

from binvault.core.config.paths import BinaryPaths
from binvault.core.services.provision.detection.platform_info import (
    PlatformInfo,
    get_platform_info,
)

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"(\d+\.\d+(?:\.\d+)*)")


def find_registered(binary: str, paths: BinaryPaths, info: PlatformInfo) -> Path | None:
    """Look for ``binary`` inside installs made by the binary pipeline.

    Newest install of each engine wins.
    """
    name = f"{binary}{info.exe_suffix}"
    engines = {b.engine for b in paths.list_installed()}
    for engine in sorted(engines):
        for installed in paths.find_installed(engine, info.platform, info.arch):
            candidate = paths.bin / installed.dir_name / "bin" / name
            if candidate.is_file():
                return candidate
    return None


def find_tool(
    binary: str,
    paths: BinaryPaths | None = None,
    info: PlatformInfo | None = None,
) -> Path | None:
    """Locate ``binary``: registered installs first, then ``PATH``.

    Returns:
        Path to the executable, or None if not found anywhere.
    """
    info = info or get_platform_info()
    if paths is not None:
        found = find_registered(binary, paths, info)
        if found:
            logger.debug("%s found in registered install %s", binary, found)
            return found
    which = shutil.which(binary)
    return Path(which) if which else None


def get_tool_version(path: Path, timeout: int = 10) -> str | None:
    """Run ``<path> --version`` and extract the first dotted version.

    Returns:
        Version string or None if the probe failed or printed none.
    """
    try:
        r = subprocess.run(
            [str(path), "--version"],
            capture_output=True, text=True, timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Version probe failed for %s: %s", path, e)
        return None
    m = _VERSION_RE.search((r.stdout or "") + (r.stderr or ""))
    return m.group(1) if m else None
