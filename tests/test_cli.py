"""Tests for the root chunkc CLI."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from chunkc import __version__
from chunkc.cli import cli
from tests.conftest import write_file


@pytest.fixture
def project(source_tree: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """``tmp_path`` as CWD, with ``src/`` populated."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_cli_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "SEEDS" in result.output
    for flag in ("--source-root", "--dest-root", "--package", "--main", "--recursive", "--load"):
        assert flag in result.output


def test_cli_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_examples(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--examples"])
    assert result.exit_code == 0
    assert "chunkc -s src -d build -r ." in result.output


def test_no_seeds_is_usage_error(cli_runner: CliRunner, project: Path) -> None:
    result = cli_runner.invoke(cli, ["-d", "out"])
    assert result.exit_code == 2
    assert "Missing argument" in result.output
    assert not (project / "out").exists()


def test_unknown_option(cli_runner: CliRunner, project: Path) -> None:
    result = cli_runner.invoke(cli, ["--bogus", "."])
    assert result.exit_code == 2


# --- Builds ---


def test_recursive_build(cli_runner: CliRunner, project: Path) -> None:
    result = cli_runner.invoke(cli, ["-s", "src", "-d", "out", "-r", "."])
    assert result.exit_code == 0, result.output
    assert "OK  build" in result.output
    assert "units: 3 (ok 3, failed 0)" in result.output
    assert (project / "out" / "pkg" / "sub" / "leaf.pyc").is_file()


def test_package_prefix(cli_runner: CliRunner, project: Path) -> None:
    result = cli_runner.invoke(cli, ["-s", "src", "-d", "out", "-p", "com.acme", "top.py"])
    assert result.exit_code == 0, result.output
    assert (project / "out" / "com" / "acme" / "top.pyc").is_file()


def test_directory_seed_without_recursion_finds_nothing(cli_runner: CliRunner, project: Path) -> None:
    result = cli_runner.invoke(cli, ["-s", "src", "-d", "out", "."])
    assert result.exit_code == 1
    assert "no files found in ['.']" in result.output


def test_verbose_progress(cli_runner: CliRunner, project: Path) -> None:
    result = cli_runner.invoke(cli, ["-v", "-s", "src", "-d", "out", "top.py"])
    assert result.exit_code == 0, result.output
    assert f"chunkc {__version__}" in result.output
    assert "files: ['top.py']" in result.output
    assert "chunk=top srcfile=top.py" in result.output
    assert "bytes)" in result.output


def test_load_verification(cli_runner: CliRunner, project: Path) -> None:
    result = cli_runner.invoke(cli, ["-v", "-l", "-s", "src", "-d", "out", "-p", "pkg", "pkg/mod.py"])
    assert result.exit_code == 0, result.output
    assert "loaded pkg/mod as" in result.output
    assert "loaded pkg/mod$1 as" in result.output


def test_main_artifact(cli_runner: CliRunner, project: Path) -> None:
    result = cli_runner.invoke(cli, ["-m", "-s", "src", "-d", "out", "top.py"])
    assert result.exit_code == 0, result.output
    assert (project / "out" / "top$main.pyc").is_file()


def test_json_output(cli_runner: CliRunner, project: Path) -> None:
    result = cli_runner.invoke(cli, ["--json", "-s", "src", "-d", "out", "-r", "."])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["ok"] is True
    assert payload["data"]["units_total"] == 3


def test_unit_failure_is_permissive(cli_runner: CliRunner, project: Path) -> None:
    write_file(project / "src" / "broken.py", "def (:\n")
    result = cli_runner.invoke(cli, ["-s", "src", "-d", "out", "-r", "."])
    assert result.exit_code == 0
    assert "WARNING: failed to compile broken.py" in result.output
    assert (project / "out" / "top.pyc").is_file()


def test_strict_unit_failure_exits_nonzero(cli_runner: CliRunner, project: Path) -> None:
    write_file(project / "src" / "broken.py", "def (:\n")
    result = cli_runner.invoke(cli, ["--strict", "-s", "src", "-d", "out", "-r", "."])
    assert result.exit_code == 1
    assert "ERROR  build" in result.output


def test_unknown_compiler(cli_runner: CliRunner, project: Path) -> None:
    result = cli_runner.invoke(cli, ["--compiler", "cobol", "-s", "src", "-d", "out", "top.py"])
    assert result.exit_code == 1
    assert "Unknown compiler 'cobol'" in result.output


def test_invalid_prefix(cli_runner: CliRunner, project: Path) -> None:
    result = cli_runner.invoke(cli, ["-p", "a..b", "-s", "src", "-d", "out", "top.py"])
    assert result.exit_code == 1
    assert "Invalid build configuration" in result.output


def test_encoding_option(cli_runner: CliRunner, project: Path) -> None:
    write_file(project / "src" / "legacy.py", "S = 'naïve'\n".encode("latin-1"))
    result = cli_runner.invoke(cli, ["-c", "latin-1", "-s", "src", "-d", "out", "legacy.py"])
    assert result.exit_code == 0, result.output
    assert (project / "out" / "legacy.pyc").is_file()


# --- Configuration ---


def test_toml_defaults(cli_runner: CliRunner, project: Path) -> None:
    (project / "chunkc.toml").write_text(
        '[build]\nsource_root = "src"\ndest_root = "build"\nrecursive = true\n'
    )
    result = cli_runner.invoke(cli, ["."])
    assert result.exit_code == 0, result.output
    assert (project / "build" / "pkg" / "mod.pyc").is_file()


def test_cli_overrides_toml(cli_runner: CliRunner, project: Path) -> None:
    (project / "chunkc.toml").write_text('[build]\nsource_root = "src"\ndest_root = "build"\n')
    result = cli_runner.invoke(cli, ["-d", "other", "top.py"])
    assert result.exit_code == 0, result.output
    assert (project / "other" / "top.pyc").is_file()
    assert not (project / "build").exists()


def test_invalid_toml(cli_runner: CliRunner, project: Path) -> None:
    (project / "chunkc.toml").write_text("[build\n")
    result = cli_runner.invoke(cli, ["top.py"])
    assert result.exit_code == 1
    assert "Invalid TOML" in result.output


def test_missing_config_file(cli_runner: CliRunner, project: Path) -> None:
    result = cli_runner.invoke(cli, ["--config", "missing.toml", "-s", "src", "-d", "out", "top.py"])
    assert result.exit_code == 1
    assert "not found: missing.toml" in result.output
    assert not (project / "out").exists()


def test_verbose_reports_timings(cli_runner: CliRunner, project: Path) -> None:
    result = cli_runner.invoke(cli, ["-v", "-s", "src", "-d", "out", "top.py"])
    assert result.exit_code == 0, result.output
    assert "timings: total" in result.output


def test_local_plugin_compiler(cli_runner: CliRunner, project: Path) -> None:
    write_file(
        project / ".chunkc" / "plugins" / "upper.py",
        """\
import pluggy

hookimpl = pluggy.HookimplMarker("chunkc")


class UpperCompiler:
    name = "upper"
    source_suffix = ".txt"
    artifact_suffix = ".up"

    def compile_all(self, source, chunk_name, source_path, runtime, generate_main):
        return {chunk_name: bytes(source).upper()}

    def create_loader(self, artifacts, runtime):
        return None


class UpperPlugin:
    @hookimpl
    def register_compilers(self):
        return {"upper": UpperCompiler}
""",
    )
    result = cli_runner.invoke(cli, ["--compiler", "upper", "-s", "src", "-d", "out", "readme.txt"])
    assert result.exit_code == 0, result.output
    assert (project / "out" / "readme.up").read_bytes() == b"NOT A SOURCE FILE\n"
