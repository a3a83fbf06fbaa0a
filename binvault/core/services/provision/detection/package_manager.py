"""
L3 Detection — OS package manager detection.

Probes each known manager's check command for the host platform
concurrently; the first success in preference order wins.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from concurrent.futures import ThreadPoolExecutor

from binvault.core.models.dependency import DetectedPackageManager, PackageManagerConfig
from binvault.core.services.provision.data.os_dependencies import package_managers_for

logger = logging.getLogger(__name__)


def _check(pm: PackageManagerConfig, timeout: int) -> bool:
    try:
        r = subprocess.run(
            shlex.split(pm.check_command),
            capture_output=True, timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired):
        return False
    return r.returncode == 0


def detect_package_manager(platform: str, timeout: int = 10) -> DetectedPackageManager | None:
    """Find a usable package manager for ``platform``.

    Args:
        platform: ``darwin``, ``linux`` or ``win32``.
        timeout: Seconds allowed for each check command.

    Returns:
        The first available manager in preference order, or None.
    """
    candidates = package_managers_for(platform)
    if not candidates:
        return None

    with ThreadPoolExecutor(max_workers=len(candidates)) as pool:
        available = list(pool.map(lambda pm: _check(pm, timeout), candidates))

    for pm, ok in zip(candidates, available):
        if ok:
            logger.debug("Detected package manager: %s", pm.id)
            return DetectedPackageManager(id=pm.id, name=pm.name, config=pm)

    logger.info("No package manager found for %s", platform)
    return None
