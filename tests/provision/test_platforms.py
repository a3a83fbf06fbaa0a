"""
Tests for engine lookup, platform validation and host detection.
"""

from unittest.mock import patch

import pytest

from binvault.core.services.provision import (
    UnknownEngine,
    UnsupportedPlatform,
    get_engine,
    get_platform_info,
    validate_platform,
)
from binvault.core.services.provision.data.engines import ALL_PLATFORMS, ENGINES
from binvault.core.services.provision.domain.platforms import executable_name


class TestGetEngine:
    def test_known(self):
        assert get_engine("postgresql").primary_binary == "postgres"

    def test_unknown_lists_known_engines(self):
        with pytest.raises(UnknownEngine) as exc:
            get_engine("oracle")
        assert "postgresql" in str(exc.value)
        assert exc.value.engine == "oracle"


class TestValidatePlatform:
    def test_returns_key(self):
        assert validate_platform(ENGINES["postgresql"], "darwin", "arm64") == "darwin-arm64"

    def test_unsupported_names_attempt_and_supported(self):
        with pytest.raises(UnsupportedPlatform) as exc:
            validate_platform(ENGINES["clickhouse"], "win32", "x64")
        err = exc.value
        assert err.attempted == "win32-x64"
        assert "linux-x64" in err.supported
        assert "win32-x64" in str(err)
        assert "linux-x64" in str(err)

    def test_unknown_arch(self):
        with pytest.raises(UnsupportedPlatform):
            validate_platform(ENGINES["redis"], "linux", "riscv64")

    def test_registry_engines_publish_all_platforms(self):
        for name in ("postgresql", "mysql", "mariadb", "redis", "valkey"):
            assert ENGINES[name].supported_platforms == ALL_PLATFORMS


class TestExecutableName:
    def test_windows_suffix(self):
        assert executable_name("postgres", "win32") == "postgres.exe"
        assert executable_name("postgres.exe", "win32") == "postgres.exe"

    def test_posix_unchanged(self):
        assert executable_name("postgres", "linux") == "postgres"


class TestPlatformInfo:
    @pytest.mark.parametrize("sys_platform,machine,expected", [
        ("darwin", "arm64", ("darwin", "arm64")),
        ("linux", "x86_64", ("linux", "x64")),
        ("linux", "aarch64", ("linux", "arm64")),
        ("win32", "AMD64", ("win32", "x64")),
    ])
    def test_normalization(self, sys_platform, machine, expected):
        with patch("sys.platform", sys_platform), \
                patch("platform.machine", return_value=machine):
            info = get_platform_info()
        assert (info.platform, info.arch) == expected

    def test_exe_suffix(self):
        with patch("sys.platform", "win32"), patch("platform.machine", return_value="AMD64"):
            info = get_platform_info()
        assert info.exe_suffix == ".exe"
        assert info.key == "win32-x64"
