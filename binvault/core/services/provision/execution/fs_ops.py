"""
L4 Execution — Filesystem moves and permission fixes.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import stat
from pathlib import Path

logger = logging.getLogger(__name__)

# rename() errors that mean "not on one filesystem", not "cannot move"
_CROSS_DEVICE = (errno.EXDEV, errno.EPERM)


def move_entry(src: Path, dest: Path) -> None:
    """Move a file or directory, rename first, copy as fallback.

    The copy path removes ``src`` only after the copy completed.

    Raises:
        OSError: on any failure other than a cross-device rename.
    """
    try:
        os.rename(src, dest)
        return
    except OSError as e:
        if e.errno not in _CROSS_DEVICE:
            raise
        logger.debug("rename %s → %s failed (%s), copying", src, dest, e)

    if src.is_dir() and not src.is_symlink():
        shutil.copytree(src, dest, symlinks=True)
        shutil.rmtree(src)
    else:
        shutil.copy2(src, dest, follow_symlinks=False)
        src.unlink()


def make_executable(path: Path) -> None:
    """Add the execute bit for user, group and other."""
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def mark_bin_executable(install_dir: Path) -> int:
    """Make every regular file in ``install_dir/bin`` executable.

    Returns:
        Number of files touched.
    """
    bin_dir = install_dir / "bin"
    if not bin_dir.is_dir():
        return 0
    count = 0
    for entry in bin_dir.iterdir():
        if entry.is_file() and not entry.is_symlink():
            make_executable(entry)
            count += 1
    return count
