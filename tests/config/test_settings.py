"""Tests for ChunkcSettings: unified settings with TOML source."""

from pathlib import Path

import click
import pytest

from chunkc.config.settings import ChunkcSettings


class TestChunkcSettingsDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        """With no TOML and no env vars, all fields use code defaults."""
        settings = ChunkcSettings.from_cli(project_root=tmp_path)
        assert settings.project_root == tmp_path
        assert settings.config_path is None
        assert settings.verbose is False
        assert settings.json_output is False
        assert settings.build.compiler == "python"
        assert settings.build.recursive is False
        assert settings.build.package_prefix is None

    def test_frozen(self, tmp_path: Path) -> None:
        settings = ChunkcSettings.from_cli(project_root=tmp_path)
        with pytest.raises(Exception):
            settings.verbose = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        (tmp_path / "chunkc.toml").write_text(
            '[build]\nsource_root = "src"\npackage_prefix = "com.acme"\nrecursive = true\n'
        )
        settings = ChunkcSettings.from_cli(project_root=tmp_path)
        assert settings.build.source_root == Path("src")
        assert settings.build.package_prefix == "com.acme"
        assert settings.build.recursive is True
        assert settings.build.verify_load is False  # default preserved

    def test_empty_toml_uses_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "chunkc.toml").write_text("")
        settings = ChunkcSettings.from_cli(project_root=tmp_path)
        assert settings.build.compiler == "python"

    def test_walk_up_sets_project_root(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "chunkc.toml").write_text("[build]\nrecursive = true\n")
        child = tmp_path / "a" / "b"
        child.mkdir(parents=True)
        monkeypatch.chdir(child)
        settings = ChunkcSettings.from_cli()
        assert settings.project_root == tmp_path.resolve()
        assert settings.build.recursive is True

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom" / "my.toml"
        custom.parent.mkdir(parents=True)
        custom.write_text('[build]\ncompiler = "lua"\n')
        settings = ChunkcSettings.from_cli(config_path=str(custom), project_root=tmp_path)
        assert settings.build.compiler == "lua"
        assert settings.config_path == custom

    def test_env_config_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "elsewhere.toml"
        custom.write_text("[build]\nstrict = true\n")
        monkeypatch.setenv("CHUNKC_CONFIG", str(custom))
        settings = ChunkcSettings.from_cli(project_root=tmp_path)
        assert settings.build.strict is True

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "chunkc.toml").write_text("[build\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            ChunkcSettings.from_cli(project_root=tmp_path)

    def test_build_must_be_a_table(self, tmp_path: Path) -> None:
        (tmp_path / "chunkc.toml").write_text('build = "fast"\n')
        with pytest.raises(click.ClickException, match="'build' must be a table"):
            ChunkcSettings.from_cli(project_root=tmp_path)

    def test_other_tables_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "chunkc.toml").write_text("[tool]\nverbose = true\n[build]\nrecursive = true\n")
        settings = ChunkcSettings.from_cli(project_root=tmp_path)
        assert settings.build.recursive is True
        assert settings.verbose is False


class TestPriority:
    def test_cli_build_overrides_toml(self, tmp_path: Path) -> None:
        (tmp_path / "chunkc.toml").write_text('[build]\npackage_prefix = "a"\nrecursive = true\n')
        settings = ChunkcSettings.from_cli(project_root=tmp_path, build={"package_prefix": "b"})
        assert settings.build.package_prefix == "b"
        # Keys the CLI did not pass still come from the TOML.
        assert settings.build.recursive is True

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "chunkc.toml").write_text('[build]\ncompiler = "lua"\n')
        monkeypatch.setenv("CHUNKC_BUILD__COMPILER", "python")
        settings = ChunkcSettings.from_cli(project_root=tmp_path)
        assert settings.build.compiler == "python"

    def test_output_flags(self, tmp_path: Path) -> None:
        settings = ChunkcSettings.from_cli(
            project_root=tmp_path, verbose=True, json_output=True, log_json=True
        )
        assert settings.verbose is True
        assert settings.json_output is True
        assert settings.log_json is True


class TestDiscoveryConfig:
    def test_relative_paths_resolve_against_project_root(self, tmp_path: Path) -> None:
        settings = ChunkcSettings.from_cli(
            project_root=tmp_path, build={"source_root": "src", "dest_root": "build"}
        )
        config = settings.discovery_config(default_suffix=".py")
        assert config.source_root == tmp_path / "src"
        assert config.dest_root == tmp_path / "build"

    def test_absolute_paths_kept(self, tmp_path: Path) -> None:
        elsewhere = tmp_path / "abs"
        settings = ChunkcSettings.from_cli(project_root=tmp_path / "p", build={"dest_root": elsewhere})
        assert settings.discovery_config(default_suffix=".py").dest_root == elsewhere

    def test_backend_suffix_is_default(self, tmp_path: Path) -> None:
        settings = ChunkcSettings.from_cli(project_root=tmp_path)
        assert settings.discovery_config(default_suffix=".lua").source_suffix == ".lua"

    def test_configured_suffix_wins(self, tmp_path: Path) -> None:
        settings = ChunkcSettings.from_cli(project_root=tmp_path, build={"source_suffix": "pyw"})
        assert settings.discovery_config(default_suffix=".py").source_suffix == ".pyw"

    def test_verbose_carried(self, tmp_path: Path) -> None:
        settings = ChunkcSettings.from_cli(project_root=tmp_path, verbose=True)
        assert settings.discovery_config(default_suffix=".py").verbose is True
