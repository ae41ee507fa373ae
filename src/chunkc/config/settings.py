"""Settings for one chunkc invocation.

Sources, highest priority first:

- options given on the command line
- ``CHUNKC_*`` environment variables (``CHUNKC_BUILD__RECURSIVE=1``)
- the ``[build]`` table of ``chunkc.toml``
- the defaults on :class:`~chunkc.config.models.BuildConfig`

Command-line ``[build]`` values are deep-merged, so passing ``-p`` keeps
``recursive = true`` from the file.  Relative paths resolve against
``project_root``: the directory holding ``chunkc.toml``, else the
working directory.
"""

from __future__ import annotations

import tomllib
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from chunkc.config.discovery import find_config
from chunkc.config.models import BuildConfig, DiscoveryConfig

# Config file the settings under construction read from.
_active_config: ContextVar[Path | None] = ContextVar("_active_config", default=None)


def _read_build_table(path: Path) -> dict[str, Any]:
    try:
        document = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise click.ClickException(msg) from exc
    build = document.get("build", {})
    if not isinstance(build, dict):
        msg = f"Invalid TOML in {path}: 'build' must be a table"
        raise click.ClickException(msg)
    return {"build": build} if build else {}


class BuildTableSource(PydanticBaseSettingsSource):
    """Feeds the ``[build]`` table of ``chunkc.toml`` into the settings."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None) -> None:
        super().__init__(settings_cls)
        self._values = _read_build_table(path) if path else {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        value = self._values.get(field_name)
        return value, field_name, field_name in self._values

    def __call__(self) -> dict[str, Any]:
        return dict(self._values)


class ChunkcSettings(BaseSettings):
    """Frozen settings for one build.

    Attributes:
        project_root: Anchor for relative ``[build]`` paths.
        config_path: The ``chunkc.toml`` in effect, if any.
        build: The merged ``[build]`` section.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "CHUNKC_",
        "env_nested_delimiter": "__",
    }

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    verbose: bool = False
    json_output: bool = False
    log_json: bool = False

    build: BuildConfig = Field(default_factory=BuildConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            BuildTableSource(settings_cls, _active_config.get()),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        build: dict[str, Any] | None = None,
        **cli_flags: Any,
    ) -> ChunkcSettings:
        """Build settings from parsed CLI options.

        *build* holds only the ``[build]`` keys given on the command line.
        """
        toml_path = find_config(project_root, explicit=config_path)
        root = project_root or (toml_path.parent if toml_path else Path.cwd())

        overrides: dict[str, Any] = dict(cli_flags)
        if build:
            overrides["build"] = build

        token = _active_config.set(toml_path)
        try:
            return cls(project_root=root, config_path=toml_path, **overrides)
        finally:
            _active_config.reset(token)

    def discovery_config(self, *, default_suffix: str) -> DiscoveryConfig:
        """Freeze the ``[build]`` section for the selected backend.

        *default_suffix* is the backend's source suffix, used unless a
        suffix is configured.
        """
        build = self.build
        return DiscoveryConfig(
            **build.model_dump(exclude={"source_root", "dest_root", "source_suffix"}),
            source_root=self.project_root / build.source_root,
            dest_root=self.project_root / build.dest_root,
            source_suffix=build.source_suffix or default_suffix,
            verbose=self.verbose,
        )
