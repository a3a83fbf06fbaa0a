"""
Configuration loader — reads config.yml into the Settings model.

Lookup order: explicit path → ``BINVAULT_CONFIG`` env var →
``<home>/config.yml``. Every field has a default, so a missing
default file is not an error.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from binvault.core.models.settings import Settings, default_home

logger = logging.getLogger(__name__)

# Default config filename, relative to the binvault home
CONFIG_FILE = "config.yml"


class ConfigError(Exception):
    """Raised when configuration is invalid or an explicit file is missing."""


def find_config_file() -> tuple[Path, bool]:
    """Locate the config file.

    Returns:
        ``(path, explicit)`` where ``explicit`` is True when the path
        came from ``BINVAULT_CONFIG`` and must therefore exist.
    """
    env = os.environ.get("BINVAULT_CONFIG")
    if env:
        return Path(env).expanduser(), True
    return default_home() / CONFIG_FILE, False


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate configuration.

    Args:
        path: Explicit path to a YAML file. If None, uses
            :func:`find_config_file`.

    Returns:
        Validated Settings model.

    Raises:
        ConfigError: If an explicit file is missing, or any file is
            unreadable, not YAML, not a mapping, or fails validation.
    """
    explicit = path is not None
    if path is None:
        path, explicit = find_config_file()

    if not path.is_file():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        logger.debug("No config at %s, using defaults", path)
        return Settings()

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return Settings()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded config from %s (home=%s)", path, settings.home)
    return settings
