"""
Tests for macOS library path repair, driven by a fake otool.
"""

from pathlib import Path

from binvault.core.models.binary import PatchStatus
from binvault.core.services.provision.data.engines import ENGINES
from binvault.core.services.provision.execution.library_patcher import LibraryPatcher
from tests.provision.fakes import FakeRunner

FOREIGN = "/Users/runner/work/hostdb/hostdb/install/postgresql/lib/libpq.5.dylib"
SYSTEM = "/usr/lib/libSystem.B.dylib"


def _otool(listing: dict[str, list[str]], fail_change: set[str] = frozenset()):
    """otool/install_name_tool stand-in keyed by binary file name."""
    def handler(cmd: list[str]) -> dict:
        name = Path(cmd[-1]).name
        if cmd[0] == "otool":
            if name not in listing:
                return {"ok": False, "error": "not an object file"}
            lines = [f"{cmd[-1]}:"] + [f"\t{lib} (compatibility version 1.0.0)" for lib in listing[name]]
            return {"ok": True, "stdout": "\n".join(lines)}
        if cmd[0] == "install_name_tool":
            if name in fail_change:
                return {"ok": False, "error": "exit 1", "stderr": "header too small"}
            return {"ok": True, "stdout": ""}
        return {"ok": False, "error": "unexpected"}
    return FakeRunner(handler)


def _bin(tmp_path: Path, *names: str) -> Path:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    for n in names:
        (bin_dir / n).write_bytes(b"\xcf\xfa\xed\xfe")
    return bin_dir


class TestLibraryPatcher:
    def test_rewrites_foreign_paths(self, tmp_path: Path):
        bin_dir = _bin(tmp_path, "postgres")
        runner = _otool({"postgres": [FOREIGN, SYSTEM]})
        patcher = LibraryPatcher(ENGINES["postgresql"].library_path_pattern, runner=runner)

        [result] = patcher.patch_dir(bin_dir)

        assert result.status == PatchStatus.PATCHED
        assert result.changed == [FOREIGN]
        assert [
            "install_name_tool", "-change", FOREIGN,
            "@loader_path/../lib/libpq.5.dylib", str(bin_dir / "postgres"),
        ] in runner.calls

    def test_clean_binary_skipped(self, tmp_path: Path):
        bin_dir = _bin(tmp_path, "pg_ctl")
        patcher = LibraryPatcher(
            ENGINES["postgresql"].library_path_pattern, runner=_otool({"pg_ctl": [SYSTEM]}),
        )
        [result] = patcher.patch_dir(bin_dir)
        assert result.status == PatchStatus.SKIPPED
        assert result.reason == "no foreign library paths"

    def test_unreadable_file_skipped(self, tmp_path: Path):
        bin_dir = _bin(tmp_path, "pg_config.sh")
        patcher = LibraryPatcher(ENGINES["postgresql"].library_path_pattern, runner=_otool({}))
        [result] = patcher.patch_dir(bin_dir)
        assert result.status == PatchStatus.SKIPPED

    def test_symlink_skipped(self, tmp_path: Path):
        bin_dir = _bin(tmp_path, "postgres")
        (bin_dir / "postmaster").symlink_to("postgres")
        runner = _otool({"postgres": [SYSTEM]})
        patcher = LibraryPatcher(ENGINES["postgresql"].library_path_pattern, runner=runner)
        results = {r.binary: r for r in patcher.patch_dir(bin_dir)}
        assert results["postmaster"].reason == "not a regular file"
        assert all(Path(c[-1]).name != "postmaster" for c in runner.calls)

    def test_failure_is_reported_not_raised(self, tmp_path: Path):
        bin_dir = _bin(tmp_path, "initdb", "postgres")
        runner = _otool(
            {"initdb": [FOREIGN], "postgres": [FOREIGN]}, fail_change={"initdb"},
        )
        patcher = LibraryPatcher(ENGINES["postgresql"].library_path_pattern, runner=runner)

        results = {r.binary: r for r in patcher.patch_dir(bin_dir)}

        assert results["initdb"].status == PatchStatus.FAILED
        assert "header too small" in results["initdb"].reason
        assert results["postgres"].status == PatchStatus.PATCHED

    def test_missing_bin_dir(self, tmp_path: Path):
        patcher = LibraryPatcher(ENGINES["postgresql"].library_path_pattern, runner=_otool({}))
        assert patcher.patch_dir(tmp_path / "bin") == []
