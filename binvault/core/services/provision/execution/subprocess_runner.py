"""
L4 Execution — Subprocess runner.

The single place where commands are executed for provisioning.
``run_subprocess`` captures output and never raises for a failed
command; ``run_interactive`` hands the terminal to the child so
password prompts stay visible.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import sys
import time
from pathlib import Path
from typing import Any

from binvault.core.services.provision.errors import PrivilegeRequired

logger = logging.getLogger(__name__)

# A ``sudo`` at the start of any command in a shell line
_SUDO = re.compile(r"(^|&&\s*|\|\|?\s*|;\s*)sudo\s+")


def run_subprocess(
    cmd: list[str],
    *,
    timeout: float = 120,
    cwd: Path | str | None = None,
    env_overrides: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Run a command and capture its output.

    Args:
        cmd: Command list for ``subprocess.run()``.
        timeout: Seconds before the command is killed.
        cwd: Working directory for the command.
        env_overrides: Extra environment variables.

    Returns:
        ``{"ok": True, "stdout": "...", "stderr": "...", "elapsed_ms": N}``
        on success, ``{"ok": False, "error": "...", ...}`` on failure.
    """
    env = None
    if env_overrides:
        env = os.environ.copy()
        env.update(env_overrides)

    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
            env=env,
        )
    except subprocess.TimeoutExpired:
        return {"ok": False, "error": f"Command timed out ({timeout}s)"}
    except OSError as e:
        logger.debug("Cannot execute %s: %s", cmd, e)
        return {"ok": False, "error": str(e)}

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout[-4000:] if result.stdout else ""
    stderr = result.stderr[-4000:] if result.stderr else ""

    if result.returncode == 0:
        return {"ok": True, "stdout": stdout, "stderr": stderr, "elapsed_ms": elapsed_ms}

    return {
        "ok": False,
        "error": f"Command failed (exit {result.returncode})",
        "returncode": result.returncode,
        "stdout": stdout,
        "stderr": stderr,
        "elapsed_ms": elapsed_ms,
    }


def is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


def has_tty() -> bool:
    return sys.stdin is not None and sys.stdin.isatty()


def prepare_shell_command(command: str) -> str:
    """Adjust a shell line for the current user.

    Root does not need ``sudo``, so every ``sudo`` in a chained line
    (``sudo apt update && sudo apt install ...``) is dropped. For
    anyone else a ``sudo`` prompt without a terminal would hang, so
    that case fails fast instead.

    Raises:
        PrivilegeRequired: ``sudo`` is needed and stdin is not a TTY.
            Carries the original command for manual execution.
    """
    if is_root():
        return _SUDO.sub(r"\1", command)
    if _SUDO.search(command) and not has_tty():
        raise PrivilegeRequired(command)
    return command


def run_interactive(command: str) -> dict[str, Any]:
    """Run a shell line with inherited stdin/stdout/stderr.

    Returns:
        ``{"ok": True, "command": ...}`` or
        ``{"ok": False, "error": "...", "command": ...}``.

    Raises:
        PrivilegeRequired: see :func:`prepare_shell_command`.
    """
    to_run = prepare_shell_command(command)
    logger.info("Running: %s", to_run)
    try:
        rc = subprocess.call(to_run, shell=True)
    except OSError as e:
        return {"ok": False, "error": str(e), "command": to_run}
    if rc != 0:
        return {
            "ok": False,
            "error": f"Command failed with exit code {rc}: {to_run}",
            "command": to_run,
        }
    return {"ok": True, "command": to_run}
