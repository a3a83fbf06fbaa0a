"""
Logging configuration — handlers for the ``binvault`` package logger.

binvault runs as a CLI and is also imported by the server lifecycle
layer through the provisioning facade. Handlers therefore go on the
``binvault`` logger and never on root: a host program keeps its own
logging setup, and other libraries' records never reach binvault's
console.

Levels are resolved by main.py in precedence order:
    CLI flag  >  BINVAULT_LOG_LEVEL env var  >  WARNING (default)

Optional rotating file output via BINVAULT_LOG_FILE /
BINVAULT_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys

PACKAGE_LOGGER = "binvault"

# Stripped from logger names on the console
_NAME_PREFIXES = ("binvault.core.services.", "binvault.core.", "binvault.")

_DEBUG_FORMAT = "%(asctime)s %(levelname).1s %(short_name)s:%(lineno)d %(message)s"
_INFO_FORMAT = "%(asctime)s %(short_name)s: %(message)s"
_CONSOLE_DATEFMT = "%H:%M:%S"

_FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"
_FILE_MAX_BYTES = 1 << 20
_FILE_BACKUPS = 3


class ShortNameFormatter(logging.Formatter):
    """Formatter that exposes ``%(short_name)s``, the package-relative logger name."""

    def format(self, record: logging.LogRecord) -> str:
        record.short_name = short_name(record.name)
        return super().format(record)


def short_name(name: str) -> str:
    """``binvault.core.services.provision.x`` → ``provision.x``."""
    for prefix in _NAME_PREFIXES:
        if name.startswith(prefix):
            return name[len(prefix):]
    return name


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> logging.Logger:
    """Attach console (and optional file) handlers to the package logger.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Console level name. WARNING and above print the bare
            message, INFO adds time and module, DEBUG adds the line.
        log_file: Optional log file, rotated at 1 MiB with three backups.
        log_file_level: Level for the file; defaults to ``level``.

    Returns:
        The configured ``binvault`` logger.
    """
    console_level = _parse_level(level)
    pkg = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(pkg.handlers):
        pkg.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))
    pkg.addHandler(console)

    lowest = console_level
    if log_file:
        file_level = _parse_level(log_file_level or level)
        fh = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=_FILE_MAX_BYTES, backupCount=_FILE_BACKUPS, encoding="utf-8",
        )
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        pkg.addHandler(fh)
        lowest = min(lowest, file_level)

    pkg.setLevel(lowest)
    pkg.propagate = False
    return pkg


def _console_formatter(level: int) -> logging.Formatter:
    if level <= logging.DEBUG:
        return ShortNameFormatter(_DEBUG_FORMAT, datefmt=_CONSOLE_DATEFMT)
    if level <= logging.INFO:
        return ShortNameFormatter(_INFO_FORMAT, datefmt=_CONSOLE_DATEFMT)
    return logging.Formatter("%(message)s")


def _parse_level(level: str | None) -> int:
    """Level name → number; unknown or empty names mean WARNING."""
    return logging.getLevelNamesMapping().get((level or "").upper(), logging.WARNING)
