"""
Provisioning error taxonomy.

Every failure the pipeline raises on purpose derives from
``ProvisionError`` so callers (the CLI, the lifecycle layer) can
catch one base class and print ``str(exc)`` as actionable guidance.
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for all binary provisioning failures."""


class UnknownEngine(ProvisionError):
    """The engine name is not registered."""

    def __init__(self, engine: str, known: list[str]) -> None:
        self.engine = engine
        self.known = known
        super().__init__(
            f"Unknown engine '{engine}'. Known engines: {', '.join(known)}"
        )


class NetworkError(ProvisionError):
    """A fetch failed after every allowed source was attempted.

    Attributes:
        kind: ``"timeout"`` when a source did not answer in time
            (never retried), ``"other"`` for every other failure.
        sources: URLs attempted, in order, each paired with its error.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str = "other",
        sources: list[tuple[str, str]] | None = None,
    ) -> None:
        self.kind = kind
        self.sources = sources or []
        if self.sources:
            detail = "; ".join(f"{url}: {err}" for url, err in self.sources)
            message = f"{message} (tried {detail})"
        super().__init__(message)


class UnsupportedPlatform(ProvisionError):
    """No artifact is published for the requested platform/arch."""

    def __init__(self, engine: str, attempted: str, supported: list[str]) -> None:
        self.engine = engine
        self.attempted = attempted
        self.supported = supported
        super().__init__(
            f"Unsupported platform '{attempted}' for {engine}. "
            f"Supported platforms: {', '.join(supported)}"
        )


class NotFound(ProvisionError):
    """A specific version/platform artifact does not exist."""

    def __init__(self, message: str, *, url: str = "") -> None:
        self.url = url
        super().__init__(message)


class ArchiveFormatError(ProvisionError):
    """The archive does not have the layout its packaging promises."""


class VersionMismatch(ProvisionError):
    """The installed binary reports a version we did not ask for."""

    def __init__(self, expected: str, reported: str, *, binary: str = "") -> None:
        self.expected = expected
        self.reported = reported
        self.binary = binary
        where = f" ({binary})" if binary else ""
        super().__init__(
            f"Version mismatch{where}: expected {expected}, got {reported}"
        )


class PackageManagerUnavailable(ProvisionError):
    """No usable OS package manager; manual steps are the only way forward."""

    def __init__(self, message: str, instructions: list[str]) -> None:
        self.instructions = instructions
        super().__init__(message)


class PrivilegeRequired(ProvisionError):
    """An elevated command needs an interactive terminal that is absent.

    ``command`` is the exact shell line to run by hand.
    """

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(
            "This command requires sudo and no interactive terminal is "
            f"available. Run it manually:\n  {command}"
        )
