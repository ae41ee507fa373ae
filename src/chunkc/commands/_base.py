"""The ``chunkc`` click command class.

:class:`ChunkcCommand` carries the build flag set: the classic
single-letter flags (``-s -d -p -m -r -l -c -v``) plus long-only
extensions.  It also adds an eager ``--examples`` flag that prints usage
examples and exits without touching the filesystem.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click

_DIR = click.Path(file_okay=False, path_type=Path)

# Options that feed the [build] section; everything else is an output flag.
BUILD_KEYS = (
    "source_root",
    "dest_root",
    "package_prefix",
    "generate_main",
    "recursive",
    "verify_load",
    "encoding",
    "compiler",
    "source_suffix",
    "strict",
)
OUTPUT_KEYS = ("verbose", "json_output", "log_json")


def _build_options() -> list[click.Option]:
    return [
        click.Option(["-s", "--source-root"], type=_DIR, help="Source root directory."),
        click.Option(["-d", "--dest-root"], type=_DIR, help="Destination root directory."),
        click.Option(["-p", "--package", "package_prefix"], help="Package prefix for all units."),
        click.Option(["-m", "--main", "generate_main"], is_flag=True, help="Emit an entry point."),
        click.Option(["-r", "--recursive"], is_flag=True, help="Recurse into subdirectories."),
        click.Option(["-l", "--load", "verify_load"], is_flag=True, help="Load artifacts back."),
        click.Option(["-c", "--encoding"], help="Decode source files with this encoding."),
        click.Option(["-v", "--verbose"], is_flag=True, help="Verbose progress output."),
        click.Option(["--compiler"], help="Compiler backend name."),
        click.Option(["--suffix", "source_suffix"], help="Source file suffix to collect."),
        click.Option(["--strict"], is_flag=True, help="Exit non-zero when any unit fails."),
        click.Option(["--json", "json_output"], is_flag=True, help="Structured JSON output."),
        click.Option(["--log-json"], is_flag=True, help="Structured JSON log output to stderr."),
        click.Option(["--config", "config_path"], help="Config file instead of chunkc.toml."),
    ]


def _show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if not value:
        return
    click.echo(f"Examples for '{ctx.command_path}':\n")
    click.echo(ctx.command.examples)
    ctx.exit(0)


def split_options(options: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split parsed options into ``[build]`` overrides and output flags.

    Only options the user actually gave are returned, so they override
    ``chunkc.toml`` and the environment without masking them.  Directory
    options are resolved against the working directory.
    """
    build = {k: options[k] for k in BUILD_KEYS if options.get(k) not in (None, False)}
    for key in ("source_root", "dest_root"):
        if key in build:
            build[key] = build[key].resolve()
    flags = {k: True for k in OUTPUT_KEYS if options.get(k)}
    return build, flags


class ChunkcCommand(click.Command):
    """Click command with the build flag set and ``--examples``."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        self.params.extend(_build_options())
        if examples:
            self.params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=_show_examples,
                    help="Show usage examples.",
                )
            )
