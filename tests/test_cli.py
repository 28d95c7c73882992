"""
Tests for the buildcache command line.
"""

import sys
from pathlib import Path

import pytest
from click.testing import CliRunner

from buildcache import cli as cli_module
from buildcache.cache import CacheStore
from buildcache.cli import cli
from buildcache.cli import main

X, Y, Z = "example.com/x", "example.com/y", "example.com/z"


def result_lines(output: str) -> list[str]:
    return [line for line in output.splitlines() if line.strip()]


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def manifest(workspace) -> Path:
    return workspace.write_manifest()


@pytest.mark.integration
@pytest.mark.usefixtures("mock_storage_env")
class TestSaveRestore:
    """Test save and restore output and exit codes."""

    def test_save_prints_saved_units(self, runner: CliRunner, manifest: Path, cache_dir: Path) -> None:
        result = runner.invoke(cli, ["--cache-dir", str(cache_dir), "save", "--manifest", str(manifest), Z])

        assert result.exit_code == 0, result.output
        lines = result_lines(result.stdout)
        assert len(lines) == 3
        for line, identity in zip(lines, [X, Y, Z]):
            fingerprint, rest = line[:64], line[64:]
            assert all(ch in "0123456789abcdef" for ch in fingerprint)
            assert rest == f" *{identity}"
        assert len(CacheStore(cache_dir).entries()) == 3

    def test_second_save_has_no_marker(self, runner: CliRunner, manifest: Path, cache_dir: Path) -> None:
        args = ["--cache-dir", str(cache_dir), "save", "--manifest", str(manifest), Z]
        runner.invoke(cli, args)
        result = runner.invoke(cli, args)

        assert result.exit_code == 0
        assert all(line[64:66] == "  " for line in result_lines(result.stdout))

    def test_restore_after_delete(self, runner: CliRunner, workspace, manifest: Path, cache_dir: Path) -> None:
        saved = runner.invoke(cli, ["--cache-dir", str(cache_dir), "save", "--manifest", str(manifest), Z])
        for key in (X, Y, Z):
            workspace.target(key).unlink()

        restored = runner.invoke(cli, ["--cache-dir", str(cache_dir), "restore", "--manifest", str(manifest), Z])

        assert restored.exit_code == 0, restored.output
        saved_fps = [line[:64] for line in result_lines(saved.stdout)]
        restored_fps = [line[:64] for line in result_lines(restored.stdout)]
        assert restored_fps == saved_fps
        assert all(workspace.target(key).exists() for key in (X, Y, Z))

    def test_restore_miss_prints_placeholder(
        self, runner: CliRunner, workspace, manifest: Path, cache_dir: Path
    ) -> None:
        runner.invoke(cli, ["--cache-dir", str(cache_dir), "save", "--manifest", str(manifest), Z])
        workspace.edit(X)

        result = runner.invoke(cli, ["--cache-dir", str(cache_dir), "restore", "--manifest", str(manifest), Z])

        assert result.exit_code == 0
        assert result_lines(result.stdout) == [f"{'-':<64}  {key}" for key in (X, Y, Z)]

    def test_restore_without_cache_directory(self, runner: CliRunner, manifest: Path, cache_dir: Path) -> None:
        result = runner.invoke(cli, ["--cache-dir", str(cache_dir), "restore", "--manifest", str(manifest), Z])

        assert result.exit_code == 0
        assert result_lines(result.stdout) == []

    def test_load_error_exits_1(self, runner: CliRunner, manifest: Path, cache_dir: Path) -> None:
        result = runner.invoke(
            cli, ["--cache-dir", str(cache_dir), "save", "--manifest", str(manifest), "example.com/nope"]
        )

        assert result.exit_code == 1

    def test_malformed_request_exits_1(self, runner: CliRunner, manifest: Path, cache_dir: Path) -> None:
        result = runner.invoke(
            cli, ["--cache-dir", str(cache_dir), "save", "--manifest", str(manifest), "x:race:msan"]
        )

        assert result.exit_code == 1
        assert "invalid build option" in result.output

    def test_invalid_manifest_exits_1(self, runner: CliRunner, tmp_path: Path, cache_dir: Path) -> None:
        manifest = tmp_path / "bad.yaml"
        manifest.write_text("units: []\n")

        result = runner.invoke(cli, ["--cache-dir", str(cache_dir), "save", "--manifest", str(manifest)])

        assert result.exit_code == 1
        assert "invalid manifest" in result.output

    def test_cache_env_variable(
        self, runner: CliRunner, manifest: Path, cache_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CACHE", str(cache_dir))

        result = runner.invoke(cli, ["save", "--manifest", str(manifest), Z])

        assert result.exit_code == 0
        assert len(CacheStore(cache_dir).entries()) == 3


@pytest.mark.integration
@pytest.mark.usefixtures("mock_storage_env")
class TestClear:
    """Test the clear command."""

    def test_clear_populated(self, runner: CliRunner, manifest: Path, cache_dir: Path) -> None:
        runner.invoke(cli, ["--cache-dir", str(cache_dir), "save", "--manifest", str(manifest), Z])

        result = runner.invoke(cli, ["--cache-dir", str(cache_dir), "clear"])

        assert result.exit_code == 0
        assert not cache_dir.exists()

    def test_clear_missing(self, runner: CliRunner, cache_dir: Path) -> None:
        result = runner.invoke(cli, ["--cache-dir", str(cache_dir), "clear", "ignored/unit"])

        assert result.exit_code == 0
        assert not cache_dir.exists()


@pytest.mark.unit
@pytest.mark.usefixtures("mock_storage_env")
class TestMain:
    """Test the console entry point."""

    def test_unknown_command_exits_1(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "argv", ["buildcache", "frobnicate"])

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1

    def test_unknown_option_exits_1(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "argv", ["buildcache", "save", "--bogus"])

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1

    def test_invalid_environment_setting_exits_1(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("BUILDCACHE_LOG_LEVEL", "verbose")
        monkeypatch.setattr(sys, "argv", ["buildcache", "clear"])

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "invalid configuration: log_level" in err
        assert "Traceback" not in err

    def test_invalid_config_file_value_exits_1(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path
    ) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("fingerprint_workers: 0\n")
        monkeypatch.setattr(sys, "argv", ["buildcache", "--config", str(config), "clear"])

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
        assert "invalid configuration: fingerprint_workers" in capsys.readouterr().err

    def test_keyboard_interrupt_exits_1(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def interrupted(*args, **kwargs):
            raise KeyboardInterrupt

        monkeypatch.setattr(cli_module.cli, "main", interrupted)

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
