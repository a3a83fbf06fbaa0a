"""
Binary models — installed tuples and per-run pipeline state.

``InstalledBinary`` is the identity of an on-disk install. The
pipeline types are ephemeral: created at the start of one
``ensure_installed`` call and discarded when it returns.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class InstalledBinary(BaseModel):
    """One (engine, version, platform, arch) tuple."""

    model_config = ConfigDict(frozen=True)

    engine: str
    version: str
    platform: str
    arch: str

    @property
    def platform_key(self) -> str:
        return f"{self.platform}-{self.arch}"

    @property
    def dir_name(self) -> str:
        """Canonical directory name: ``{engine}-{version}-{platform}-{arch}``."""
        return f"{self.engine}-{self.version}-{self.platform}-{self.arch}"


class ProgressStage(StrEnum):
    """Stages reported through the progress callback."""

    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    CONFIGURING = "configuring"
    VERIFYING = "verifying"
    CACHED = "cached"
    COMPLETE = "complete"


ProgressCallback = Callable[[ProgressStage, str], None]


class PipelineState(StrEnum):
    """Pipeline run states, in order of progression."""

    PENDING = "pending"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    PATCHING = "patching"
    VERIFYING = "verifying"
    INSTALLED = "installed"
    FAILED = "failed"


_TERMINAL = (PipelineState.INSTALLED, PipelineState.FAILED)


class PatchStatus(StrEnum):
    """Outcome of patching one binary."""

    PATCHED = "patched"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class PatchResult:
    """Per-binary outcome of the library patch pass.

    Args:
        binary: File name inside ``bin/``.
        status: patched, skipped (nothing to rewrite) or failed.
        changed: Library paths rewritten.
        reason: Why the binary was skipped or failed.
    """

    binary: str
    status: PatchStatus
    changed: list[str] = field(default_factory=list)
    reason: str = ""


@dataclass
class PipelineRun:
    """State of one pipeline invocation.

    Tracks the ordered state history so a failed run can say how far
    it got. Never persisted.
    """

    binary: InstalledBinary
    state: PipelineState = PipelineState.PENDING
    history: list[tuple[PipelineState, float]] = field(default_factory=list)
    patch_results: list[PatchResult] = field(default_factory=list)
    supplemented: list[str] = field(default_factory=list)
    install_path: Path | None = None
    error: str = ""

    def __post_init__(self) -> None:
        self.history.append((self.state, time.monotonic()))

    def advance(self, new_state: PipelineState) -> None:
        """Move to ``new_state``. Terminal states are final."""
        if self.state in _TERMINAL:
            raise RuntimeError(
                f"Pipeline for {self.binary.dir_name} already {self.state}"
            )
        logger.debug(
            "Pipeline %s: %s → %s", self.binary.dir_name, self.state, new_state,
        )
        self.state = new_state
        self.history.append((new_state, time.monotonic()))

    def fail(self, error: BaseException) -> None:
        """Record a failure; a no-op when already terminal."""
        if self.state in _TERMINAL:
            return
        self.error = str(error)
        self.advance(PipelineState.FAILED)

    @property
    def states(self) -> list[PipelineState]:
        return [s for s, _ in self.history]
