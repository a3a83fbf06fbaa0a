"""
Shared test fixtures and configuration.
"""

import logging
from pathlib import Path

import pytest

from binvault.core.config.paths import BinaryPaths
from binvault.core.models.settings import Settings


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated binvault home; also exported as BINVAULT_HOME."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("BINVAULT_HOME", str(home))
    monkeypatch.delenv("BINVAULT_CONFIG", raising=False)
    return home


@pytest.fixture
def settings(home: Path) -> Settings:
    return Settings(home=home)


@pytest.fixture
def paths(settings: Settings) -> BinaryPaths:
    return BinaryPaths.from_settings(settings)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo ``setup_logging`` on the package logger after a test."""
    yield
    pkg = logging.getLogger("binvault")
    for h in list(pkg.handlers):
        pkg.removeHandler(h)
        h.close()
    pkg.setLevel(logging.NOTSET)
    pkg.propagate = True
