"""Root CLI command for chunkc."""

from __future__ import annotations

from typing import Any

import click
from pydantic import ValidationError

from chunkc import __version__
from chunkc.commands._base import ChunkcCommand, split_options
from chunkc.commands._context import AppContext
from chunkc.config.settings import ChunkcSettings


@click.command(
    cls=ChunkcCommand,
    context_settings={"help_option_names": ["-h", "--help"]},
    examples="""\
  chunkc hello.py
  chunkc -s src -d build -r .
  chunkc -s src -d build -p com.example -r lib
  chunkc -r -l -v -d build scripts
  chunkc -c latin-1 legacy.py
  chunkc --strict --json -r -d build src""",
)
@click.version_option(version=__version__, prog_name="chunkc")
@click.argument("seeds", nargs=-1, required=True)
def cli(seeds: tuple[str, ...], **options: Any) -> None:
    """Compile source files under SEEDS and write artifacts to a mirrored tree."""
    build, flags = split_options(options)
    try:
        settings = ChunkcSettings.from_cli(
            config_path=options.get("config_path"), build=build, **flags
        )
    except ValidationError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc
    app = AppContext(settings)

    if settings.verbose and not settings.json_output:
        b = settings.build
        click.echo(f"chunkc {__version__}")
        click.echo(f"srcdir: {b.source_root}")
        click.echo(f"destdir: {b.dest_root}")
        click.echo(f"files: {list(seeds)}")
        click.echo(f"recurse: {b.recursive}")

    app.emit(app.build(seeds))
