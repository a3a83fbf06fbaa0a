"""
Dependency models — OS-level prerequisites and their installers.

These are static, engine-authored tables (see
``binvault.core.services.provision.data.os_dependencies``) plus the
result types produced when probing and installing them.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class PackageDefinition(BaseModel):
    """How one package manager provides a dependency."""

    model_config = ConfigDict(frozen=True)

    package: str
    pre_install: list[str] = Field(default_factory=list)
    post_install: list[str] = Field(default_factory=list)


class Dependency(BaseModel):
    """A binary the user's system must provide.

    ``packages`` is keyed by package manager id (brew, apt, ...).
    ``manual_install`` holds extra shell lines per platform (darwin,
    linux, win32) that work without any package manager definition,
    such as ``pip install pgcli``. ``download_pages`` points at vendor
    installers per platform.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    binary: str
    description: str = ""
    packages: dict[str, PackageDefinition] = Field(default_factory=dict)
    manual_install: dict[str, list[str]] = Field(default_factory=dict)
    download_pages: dict[str, str] = Field(default_factory=dict)


class EngineDependencies(BaseModel):
    """The dependency set an engine needs on the host."""

    model_config = ConfigDict(frozen=True)

    engine: str
    display_name: str
    dependencies: list[Dependency]


class PackageManagerConfig(BaseModel):
    """A known OS package manager."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    check_command: str
    platforms: list[str]
    install_template: str

    def install_command(self, package: str) -> str:
        return self.install_template.replace("{package}", package)


class DetectedPackageManager(BaseModel):
    """A package manager whose check command succeeded."""

    id: str
    name: str
    config: PackageManagerConfig


class DependencyStatus(BaseModel):
    """Result of probing one dependency."""

    dependency: Dependency
    installed: bool
    path: str | None = None
    version: str | None = None


class InstallStatus(StrEnum):
    """Outcome of one dependency install."""

    INSTALLED = "installed"
    COMMAND_FAILED = "command_failed"
    NOT_FOUND_AFTER_INSTALL = "not_found_after_install"
    PRIVILEGE_REQUIRED = "privilege_required"
    NO_PACKAGE = "no_package"


class InstallResult(BaseModel):
    """Result of installing one dependency.

    ``manual_command`` is always populated on failure: the exact line
    a user can paste to finish the job by hand.
    """

    dependency: Dependency
    status: InstallStatus
    error: str = ""
    manual_command: str = ""

    @property
    def success(self) -> bool:
        return self.status == InstallStatus.INSTALLED
