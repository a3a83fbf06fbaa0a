"""
L5 Orchestration — OS-level dependency probing and installation.

Same shape as the binary pipeline (probe, install, re-probe) but
driven by the host's package manager instead of the registry.
Failures always carry a command the user can run by hand.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from binvault.core.config.paths import BinaryPaths
from binvault.core.models.dependency import (
    Dependency,
    DependencyStatus,
    DetectedPackageManager,
    InstallResult,
    InstallStatus,
    PackageDefinition,
    PackageManagerConfig,
)
from binvault.core.services.provision.data.os_dependencies import (
    BREW_BOOTSTRAP,
    OPTIONAL_TOOLS,
    get_engine_dependencies,
    package_managers_for,
)
from binvault.core.services.provision.detection.package_manager import detect_package_manager
from binvault.core.services.provision.detection.platform_info import (
    PlatformInfo,
    get_platform_info,
)
from binvault.core.services.provision.detection.tool_probe import find_tool, get_tool_version
from binvault.core.services.provision.errors import PackageManagerUnavailable, PrivilegeRequired
from binvault.core.services.provision.execution.subprocess_runner import run_interactive

logger = logging.getLogger(__name__)


class DependencyManager:
    """Checks and installs host prerequisites for an engine.

    Args:
        paths: Registered binary installs, searched before ``PATH``.
        platform_info: Host identifiers (detected when omitted).
        probe_timeout: Seconds allowed per version/check probe.
    """

    def __init__(
        self,
        paths: BinaryPaths | None = None,
        platform_info: PlatformInfo | None = None,
        probe_timeout: int = 10,
    ) -> None:
        self.paths = paths
        self.info = platform_info or get_platform_info()
        self.probe_timeout = probe_timeout

    # ── Detection ───────────────────────────────────────────────

    def detect_package_manager(self) -> DetectedPackageManager | None:
        return detect_package_manager(self.info.platform, timeout=self.probe_timeout)

    def check_dependency(self, dependency: Dependency) -> DependencyStatus:
        path = find_tool(dependency.binary, self.paths, self.info)
        if path is None:
            return DependencyStatus(dependency=dependency, installed=False)
        return DependencyStatus(
            dependency=dependency,
            installed=True,
            path=str(path),
            version=get_tool_version(path, timeout=self.probe_timeout),
        )

    def check_all(self, dependencies: list[Dependency]) -> list[DependencyStatus]:
        """Probe ``dependencies`` concurrently; results keep input order."""
        if not dependencies:
            return []
        with ThreadPoolExecutor(max_workers=min(8, len(dependencies))) as pool:
            return list(pool.map(self.check_dependency, dependencies))

    def check_engine_dependencies(self, engine: str) -> list[DependencyStatus]:
        deps = get_engine_dependencies(engine)
        return self.check_all(deps.dependencies) if deps else []

    def get_missing_dependencies(self, engine: str) -> list[Dependency]:
        return [s.dependency for s in self.check_engine_dependencies(engine) if not s.installed]

    def check_optional_tools(self) -> list[DependencyStatus]:
        """Probe the enhanced CLIs (pgcli, mycli, litecli, usql)."""
        return self.check_all(OPTIONAL_TOOLS)

    # ── Installation ────────────────────────────────────────────

    def manual_commands(self, dependency: Dependency) -> list[str]:
        """Shell lines that install ``dependency`` on this platform.

        One line per package manager of the platform that packages it,
        in preference order, then any package-manager-free extras
        (``pip install ...``). Each line can be pasted as is.
        """
        lines: list[str] = []
        for config in package_managers_for(self.info.platform):
            pkg = dependency.packages.get(config.id)
            if pkg is not None:
                lines.append(" && ".join(_commands_for(pkg, config)))
        lines.extend(dependency.manual_install.get(self.info.platform, []))
        return lines

    def manual_instructions(self, dependency: Dependency) -> list[str]:
        """Manual commands plus the vendor download page, for display."""
        lines = self.manual_commands(dependency)
        page = dependency.download_pages.get(self.info.platform)
        if page:
            lines.append(f"Or download from: {page}")
        return lines

    def fallback_command(self, dependency: Dependency, pm: DetectedPackageManager) -> str:
        """First manual command that does not go through ``pm``."""
        commands = self.manual_commands(dependency)
        for command in commands:
            if command.removeprefix("sudo ").split(" ", 1)[0] != pm.id:
                return command
        return commands[0] if commands else ""

    def _no_package_manager(self, dependencies: list[Dependency]) -> PackageManagerUnavailable:
        instructions = [line for dep in dependencies for line in self.manual_instructions(dep)]
        if self.info.platform == "darwin":
            instructions.insert(0, f"Install Homebrew: {BREW_BOOTSTRAP}")
        return PackageManagerUnavailable(
            f"No supported package manager found on {self.info.platform}",
            list(dict.fromkeys(instructions)),
        )

    def build_install_commands(
        self, dependency: Dependency, pm: DetectedPackageManager,
    ) -> list[str]:
        """Pre-install, install, post-install, in that order.

        Raises:
            PackageManagerUnavailable: ``pm`` has no package for it.
        """
        pkg = dependency.packages.get(pm.id)
        if pkg is None:
            raise PackageManagerUnavailable(
                f"No package definition for {dependency.name} with {pm.name}",
                self.manual_instructions(dependency),
            )
        return _commands_for(pkg, pm.config)

    def install_dependency(
        self, dependency: Dependency, pm: DetectedPackageManager | None = None,
    ) -> InstallResult:
        """Install one dependency and confirm its binary is now found.

        Args:
            dependency: What to install.
            pm: Package manager to use; detected when omitted.

        Raises:
            PackageManagerUnavailable: no package manager on this host.
        """
        pm = pm or self.detect_package_manager()
        if pm is None:
            raise self._no_package_manager([dependency])

        if dependency.packages.get(pm.id) is None:
            return self._no_package(dependency, pm)
        commands = self.build_install_commands(dependency, pm)
        manual = " && ".join(commands)

        for command in commands:
            try:
                r = run_interactive(command)
            except PrivilegeRequired as e:
                return InstallResult(
                    dependency=dependency, status=InstallStatus.PRIVILEGE_REQUIRED,
                    error=str(e), manual_command=manual,
                )
            if not r["ok"]:
                return InstallResult(
                    dependency=dependency, status=InstallStatus.COMMAND_FAILED,
                    error=r["error"], manual_command=manual,
                )

        if not self.check_dependency(dependency).installed:
            return InstallResult(
                dependency=dependency,
                status=InstallStatus.NOT_FOUND_AFTER_INSTALL,
                error="Installation completed but binary not found in PATH",
                manual_command=manual,
            )
        logger.info("Installed %s via %s", dependency.name, pm.name)
        return InstallResult(dependency=dependency, status=InstallStatus.INSTALLED)

    def install_engine_dependencies(
        self, engine: str, pm: DetectedPackageManager | None = None,
    ) -> list[InstallResult]:
        """Install whatever ``engine`` is missing, once per package.

        Dependencies sharing a package (psql, pg_dump, ...) trigger one
        install; its result is reported for each of them.
        """
        missing = self.get_missing_dependencies(engine)
        if not missing:
            return []

        pm = pm or self.detect_package_manager()
        if pm is None:
            raise self._no_package_manager(missing)

        groups: dict[str, list[Dependency]] = {}
        results: list[InstallResult] = []
        for dep in missing:
            pkg = dep.packages.get(pm.id)
            if pkg is None:
                results.append(self._no_package(dep, pm))
                continue
            groups.setdefault(pkg.package, []).append(dep)

        for deps in groups.values():
            first = self.install_dependency(deps[0], pm)
            results.extend(first.model_copy(update={"dependency": dep}) for dep in deps)
        return results

    def _no_package(self, dependency: Dependency, pm: DetectedPackageManager) -> InstallResult:
        return InstallResult(
            dependency=dependency, status=InstallStatus.NO_PACKAGE,
            error=f"No package definition for {dependency.name} with {pm.name}",
            manual_command=self.fallback_command(dependency, pm),
        )


def _commands_for(pkg: PackageDefinition, config: PackageManagerConfig) -> list[str]:
    return [*pkg.pre_install, config.install_command(pkg.package), *pkg.post_install]
