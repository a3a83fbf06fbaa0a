"""
Tests for the data models — install identity, pipeline state, engines.
"""

import pytest
from pydantic import ValidationError

from binvault.core.models import (
    FlatArchive,
    InstalledBinary,
    InstallResult,
    InstallStatus,
    PipelineRun,
    PipelineState,
    WindowsInstallTree,
)
from binvault.core.services.provision.data.engines import ENGINES
from binvault.core.services.provision.data.os_dependencies import ENGINE_DEPENDENCIES


class TestInstalledBinary:
    def test_dir_name(self):
        b = InstalledBinary(engine="postgresql", version="16.11.0", platform="darwin", arch="arm64")
        assert b.dir_name == "postgresql-16.11.0-darwin-arm64"
        assert b.platform_key == "darwin-arm64"

    def test_frozen(self):
        b = InstalledBinary(engine="redis", version="8.4.0", platform="linux", arch="x64")
        with pytest.raises(ValidationError):
            b.version = "7.4.7"


class TestPipelineRun:
    def _run(self) -> PipelineRun:
        return PipelineRun(InstalledBinary(engine="redis", version="8.4.0", platform="linux", arch="x64"))

    def test_history(self):
        run = self._run()
        run.advance(PipelineState.DOWNLOADING)
        run.advance(PipelineState.EXTRACTING)
        assert run.states == [
            PipelineState.PENDING, PipelineState.DOWNLOADING, PipelineState.EXTRACTING,
        ]

    def test_terminal_state_is_final(self):
        run = self._run()
        run.advance(PipelineState.INSTALLED)
        with pytest.raises(RuntimeError):
            run.advance(PipelineState.VERIFYING)

    def test_fail_records_error_once(self):
        run = self._run()
        run.advance(PipelineState.DOWNLOADING)
        run.fail(ValueError("boom"))
        run.fail(ValueError("again"))
        assert run.state == PipelineState.FAILED
        assert run.error == "boom"
        assert run.states.count(PipelineState.FAILED) == 1


class TestEngineSpec:
    def test_strategy_per_platform(self):
        pg = ENGINES["postgresql"]
        assert isinstance(pg.strategy_for("win32"), WindowsInstallTree)
        assert isinstance(pg.strategy_for("linux"), FlatArchive)

    def test_registry_vs_legacy(self):
        assert ENGINES["postgresql"].uses_registry
        assert not ENGINES["postgresql-embedded"].uses_registry

    def test_every_alias_resolves_to_published_platforms(self):
        for spec in ENGINES.values():
            assert spec.version_map
            assert spec.version_patterns
            for key in spec.platform_aliases:
                assert key in spec.supported_platforms


class TestInstallResult:
    def test_success_only_when_installed(self):
        dep = ENGINE_DEPENDENCIES["sqlite"].dependencies[0]
        assert InstallResult(dependency=dep, status=InstallStatus.INSTALLED).success
        assert not InstallResult(dependency=dep, status=InstallStatus.COMMAND_FAILED).success
