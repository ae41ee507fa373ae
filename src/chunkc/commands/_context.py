"""Per-invocation application state behind the ``chunkc`` command."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import click

from chunkc.config.logging import configure_logging
from chunkc.output.formatters import OutputSettings, format_result
from chunkc.services.telemetry import enable_telemetry

if TYPE_CHECKING:
    from chunkc.config.settings import ChunkcSettings
    from chunkc.plugins.manager import PluginManager
    from chunkc.services.result import ServiceResult

LOCAL_PLUGIN_DIR = ".chunkc/plugins"


class AppContext:
    """Settings, logging and plugins for one build invocation.

    Verbose mode also turns on build timings.  Plugins load on first
    access to :attr:`plugins`.
    """

    def __init__(self, settings: ChunkcSettings) -> None:
        self.settings = settings
        self._plugins: PluginManager | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        if settings.verbose:
            enable_telemetry()

    @property
    def plugins(self) -> PluginManager:
        if self._plugins is None:
            from chunkc.plugins.builtins.python import PythonCompilerPlugin
            from chunkc.plugins.manager import PluginManager

            manager = PluginManager()
            manager.register_plugin(PythonCompilerPlugin(), name="python-builtin")
            manager.load_plugins(local_dir=self.settings.project_root / LOCAL_PLUGIN_DIR)
            self._plugins = manager
        return self._plugins

    def build(self, seeds: Sequence[str]) -> ServiceResult:
        from chunkc.services.build import BuildService

        return BuildService(self.settings, plugins=self.plugins).build(seeds)

    def emit(self, result: ServiceResult) -> None:
        """Print *result* and exit with its exit code when the build failed.

        The report goes to stdout on success and stderr on failure.  Plain
        output repeats each warning on stderr; JSON output already carries
        them in the payload.
        """
        output = OutputSettings(
            json_output=self.settings.json_output, verbose=self.settings.verbose
        )
        click.echo(format_result(result, settings=output), err=not result.ok)
        if not output.json_output:
            for warning in result.warnings:
                click.echo(f"WARNING: {warning}", err=True)
        if not result.ok:
            raise SystemExit(result.exit_code)
