"""
Tests for host dependency probing and installation.

Package-manager commands never actually run: ``run_interactive`` and
the tool lookup are patched.
"""

import re
from pathlib import Path
from unittest.mock import patch

import pytest

from binvault.core.config.paths import BinaryPaths
from binvault.core.models.dependency import DetectedPackageManager, InstallStatus
from binvault.core.services.provision import (
    DependencyManager,
    PackageManagerUnavailable,
    PlatformInfo,
    PrivilegeRequired,
)
from binvault.core.services.provision.data.os_dependencies import (
    ENGINE_DEPENDENCIES,
    HOST_PLATFORMS,
    OPTIONAL_TOOLS,
    PACKAGE_MANAGERS,
    PGCLI,
    POSTGRES_BREW_PACKAGE,
    USQL,
    get_package_manager,
    package_managers_for,
)
from binvault.core.services.provision.detection import package_manager as pm_detection

DM = "binvault.core.services.provision.orchestration.dependency_manager"

LINUX = PlatformInfo("linux", "x64")
DARWIN = PlatformInfo("darwin", "arm64")

PSQL = ENGINE_DEPENDENCIES["postgresql"].dependencies[0]


def _pm(pm_id: str) -> DetectedPackageManager:
    config = get_package_manager(pm_id)
    return DetectedPackageManager(id=config.id, name=config.name, config=config)


class FakeHost:
    """Tracks which binaries exist; installing a package adds them."""

    def __init__(self, installed: set[str] = frozenset(), provides: dict[str, set[str]] | None = None):
        self.installed = set(installed)
        self.provides = provides or {}
        self.commands: list[str] = []

    def find_tool(self, binary, paths=None, info=None):
        return Path(f"/usr/bin/{binary}") if binary in self.installed else None

    def run_interactive(self, command: str) -> dict:
        self.commands.append(command)
        for package, binaries in self.provides.items():
            if command.endswith(f" {package}"):
                self.installed |= binaries
        return {"ok": True, "command": command}


@pytest.fixture
def host():
    fake = FakeHost()
    with patch(f"{DM}.find_tool", side_effect=fake.find_tool), \
            patch(f"{DM}.get_tool_version", return_value="16.11"), \
            patch(f"{DM}.run_interactive", side_effect=fake.run_interactive):
        yield fake


# ── Data ──────────────────────────────────────────────────────────


class TestPackageManagerTable:
    def test_preference_order_per_platform(self):
        assert [p.id for p in package_managers_for("linux")] == ["apt", "yum", "dnf", "pacman"]
        assert [p.id for p in package_managers_for("darwin")] == ["brew"]
        assert [p.id for p in package_managers_for("win32")] == ["choco", "winget", "scoop"]
        assert package_managers_for("sunos") == []

    def test_every_dependency_names_known_managers(self):
        known = {p.id for p in PACKAGE_MANAGERS}
        for deps in ENGINE_DEPENDENCIES.values():
            for dep in deps.dependencies:
                assert set(dep.packages) <= known


ALL_DEPENDENCIES = [
    dep for deps in ENGINE_DEPENDENCIES.values() for dep in deps.dependencies
] + OPTIONAL_TOOLS


class TestManualCommands:
    @pytest.mark.parametrize("platform", HOST_PLATFORMS)
    def test_every_dependency_has_commands_on_every_platform(self, platform: str):
        mgr = DependencyManager(platform_info=PlatformInfo(platform, "x64"))
        for dep in ALL_DEPENDENCIES:
            commands = mgr.manual_commands(dep)
            assert commands, f"{dep.name} on {platform}"
            for command in commands:
                assert not re.match(r"^[A-Z][\w/ ]*:", command), command

    def test_derived_from_package_managers_in_order(self):
        assert DependencyManager(platform_info=LINUX).manual_commands(PSQL) == [
            "sudo apt update && sudo apt install -y postgresql-client",
            "sudo yum install -y postgresql",
            "sudo dnf install -y postgresql",
            "sudo pacman -S --noconfirm postgresql-libs",
        ]

    def test_extras_follow_package_managers(self):
        assert DependencyManager(platform_info=DARWIN).manual_commands(PGCLI) == [
            "brew install pgcli", "pip install pgcli",
        ]

    def test_download_page_only_in_instructions(self):
        mgr = DependencyManager(platform_info=PlatformInfo("win32", "x64"))
        assert mgr.manual_instructions(PSQL)[-1].startswith("Or download from: https://")
        assert all("download" not in c for c in mgr.manual_commands(PSQL))

    def test_fallback_avoids_the_failing_manager(self):
        mgr = DependencyManager(platform_info=PlatformInfo("win32", "x64"))
        assert mgr.fallback_command(PGCLI, _pm("choco")) == "pip install pgcli"
        assert mgr.fallback_command(PSQL, _pm("choco")) == "winget install PostgreSQL.PostgreSQL"


class TestDetectPackageManager:
    def test_first_available_in_preference_order(self):
        with patch.object(pm_detection, "_check", side_effect=lambda pm, t: pm.id in {"dnf", "pacman"}):
            detected = DependencyManager(platform_info=LINUX).detect_package_manager()
        assert detected.id == "dnf"

    def test_none_available(self):
        with patch.object(pm_detection, "_check", return_value=False):
            assert DependencyManager(platform_info=LINUX).detect_package_manager() is None


# ── Probing ───────────────────────────────────────────────────────


class TestCheck:
    def test_statuses_keep_order(self, host: FakeHost):
        host.installed = {"pg_dump", "psql"}
        statuses = DependencyManager(platform_info=LINUX).check_engine_dependencies("postgresql")
        assert [(s.dependency.name, s.installed) for s in statuses] == [
            ("psql", True), ("pg_dump", True), ("pg_restore", False), ("pg_basebackup", False),
        ]
        assert statuses[0].path == "/usr/bin/psql"
        assert statuses[0].version == "16.11"

    def test_missing(self, host: FakeHost):
        host.installed = {"psql"}
        missing = DependencyManager(platform_info=LINUX).get_missing_dependencies("postgresql")
        assert [d.name for d in missing] == ["pg_dump", "pg_restore", "pg_basebackup"]

    def test_unknown_engine_has_no_dependencies(self, host: FakeHost):
        assert DependencyManager(platform_info=LINUX).check_engine_dependencies("redis") == []

    def test_optional_tools(self, host: FakeHost):
        host.installed = {"pgcli"}
        statuses = DependencyManager(platform_info=LINUX).check_optional_tools()
        assert {s.dependency.name: s.installed for s in statuses} == {
            "usql": False, "pgcli": True, "mycli": False, "litecli": False,
        }


class TestRegisteredInstallsFirst:
    def test_binary_from_pipeline_install_wins(self, paths: BinaryPaths):
        bin_dir = paths.bin / "postgresql-16.11.0-linux-x64" / "bin"
        bin_dir.mkdir(parents=True)
        (bin_dir / "psql").write_bytes(b"")

        with patch(f"{DM}.get_tool_version", return_value="16.11"):
            status = DependencyManager(paths=paths, platform_info=LINUX).check_dependency(PSQL)

        assert status.installed
        assert status.path == str(bin_dir / "psql")


# ── Installation ─────────────────────────────────────────────────


class TestBuildInstallCommands:
    def test_brew_post_install_links(self):
        cmds = DependencyManager(platform_info=DARWIN).build_install_commands(PSQL, _pm("brew"))
        assert cmds == [
            f"brew install {POSTGRES_BREW_PACKAGE}",
            f"brew link --overwrite {POSTGRES_BREW_PACKAGE}",
        ]

    def test_pre_install_runs_first(self):
        cmds = DependencyManager(platform_info=DARWIN).build_install_commands(USQL, _pm("brew"))
        assert cmds == ["brew tap xo/xo", "brew install xo/xo/usql"]

    def test_apt_template(self):
        cmds = DependencyManager(platform_info=LINUX).build_install_commands(PSQL, _pm("apt"))
        assert cmds == ["sudo apt update && sudo apt install -y postgresql-client"]

    def test_no_package_for_manager(self):
        with pytest.raises(PackageManagerUnavailable) as exc:
            DependencyManager(platform_info=LINUX).build_install_commands(USQL, _pm("apt"))
        assert any("github.com/xo/usql" in line for line in exc.value.instructions)


class TestInstallDependency:
    def test_installed(self, host: FakeHost):
        host.provides = {"postgresql-client": {"psql"}}
        result = DependencyManager(platform_info=LINUX).install_dependency(PSQL, _pm("apt"))
        assert result.status == InstallStatus.INSTALLED
        assert result.success

    def test_not_found_after_install(self, host: FakeHost):
        result = DependencyManager(platform_info=LINUX).install_dependency(PSQL, _pm("apt"))
        assert result.status == InstallStatus.NOT_FOUND_AFTER_INSTALL
        assert result.error == "Installation completed but binary not found in PATH"
        assert result.manual_command == "sudo apt update && sudo apt install -y postgresql-client"

    def test_failed_command_stops_sequence(self, host: FakeHost):
        def fail_first(command):
            host.commands.append(command)
            return {"ok": False, "error": "Command failed with exit code 1", "command": command}

        with patch(f"{DM}.run_interactive", side_effect=fail_first):
            result = DependencyManager(platform_info=DARWIN).install_dependency(PSQL, _pm("brew"))

        assert result.status == InstallStatus.COMMAND_FAILED
        assert host.commands == [f"brew install {POSTGRES_BREW_PACKAGE}"]
        assert result.manual_command == (
            f"brew install {POSTGRES_BREW_PACKAGE} && brew link --overwrite {POSTGRES_BREW_PACKAGE}"
        )

    def test_privilege_required(self, host: FakeHost):
        command = "sudo apt update && sudo apt install -y postgresql-client"
        with patch(f"{DM}.run_interactive", side_effect=PrivilegeRequired(command)):
            result = DependencyManager(platform_info=LINUX).install_dependency(PSQL, _pm("apt"))
        assert result.status == InstallStatus.PRIVILEGE_REQUIRED
        assert command in result.error
        assert result.manual_command == command

    def test_no_package_result(self, host: FakeHost):
        result = DependencyManager(platform_info=LINUX).install_dependency(USQL, _pm("apt"))
        assert result.status == InstallStatus.NO_PACKAGE
        assert "github.com/xo/usql" in result.manual_command
        assert host.commands == []

    def test_no_package_on_windows_suggests_pip(self, host: FakeHost):
        mgr = DependencyManager(platform_info=PlatformInfo("win32", "x64"))
        result = mgr.install_dependency(PGCLI, _pm("choco"))
        assert result.status == InstallStatus.NO_PACKAGE
        assert result.manual_command == "pip install pgcli"

    @pytest.mark.parametrize("pm_id", [p.id for p in PACKAGE_MANAGERS])
    def test_every_failure_carries_manual_command(self, host: FakeHost, pm_id: str):
        pm = _pm(pm_id)
        mgr = DependencyManager(platform_info=PlatformInfo(pm.config.platforms[0], "x64"))
        for dep in ALL_DEPENDENCIES:
            result = mgr.install_dependency(dep, pm)
            assert not result.success
            assert result.manual_command, f"{dep.name} with {pm_id}"

    def test_no_package_manager(self, host: FakeHost):
        mgr = DependencyManager(platform_info=LINUX)
        with patch.object(mgr, "detect_package_manager", return_value=None):
            with pytest.raises(PackageManagerUnavailable) as exc:
                mgr.install_dependency(PSQL)
        assert "sudo apt update && sudo apt install -y postgresql-client" in exc.value.instructions


class TestInstallEngineDependencies:
    def test_shared_package_installed_once(self, host: FakeHost):
        host.provides = {"postgresql-client": {"psql", "pg_dump", "pg_restore", "pg_basebackup"}}
        results = DependencyManager(platform_info=LINUX).install_engine_dependencies(
            "postgresql", _pm("apt"),
        )
        assert len(host.commands) == 1
        assert [r.dependency.name for r in results] == [
            "psql", "pg_dump", "pg_restore", "pg_basebackup",
        ]
        assert all(r.success for r in results)

    def test_nothing_missing(self, host: FakeHost):
        host.installed = {"sqlite3"}
        assert DependencyManager(platform_info=LINUX).install_engine_dependencies("sqlite") == []
        assert host.commands == []

    def test_distinct_packages_each_installed(self, host: FakeHost):
        host.provides = {"mariadb-server": {"mysqld"}, "mariadb-client": {"mysql", "mysqldump", "mysqladmin"}}
        results = DependencyManager(platform_info=LINUX).install_engine_dependencies(
            "mysql", _pm("apt"),
        )
        assert len(host.commands) == 2
        assert {r.dependency.name for r in results if r.success} == {
            "mysqld", "mysql", "mysqldump", "mysqladmin",
        }

    def test_no_package_manager_aggregates_instructions(self, host: FakeHost):
        mgr = DependencyManager(platform_info=LINUX)
        with patch.object(mgr, "detect_package_manager", return_value=None):
            with pytest.raises(PackageManagerUnavailable) as exc:
                mgr.install_engine_dependencies("sqlite")
        assert "sudo apt update && sudo apt install -y sqlite3" in exc.value.instructions
        assert "Or download from: https://www.sqlite.org/download.html" in exc.value.instructions
