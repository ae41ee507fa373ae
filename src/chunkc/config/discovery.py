"""Locating ``chunkc.toml``.

Precedence, first match wins:

1. ``--config PATH``
2. ``CHUNKC_CONFIG=PATH``
3. the nearest ``chunkc.toml`` in the start directory or one of its parents

An explicitly named file that does not exist is an error; a walk-up that
finds nothing just means "no config file".
"""

from __future__ import annotations

import os
from pathlib import Path

import click

CONFIG_FILENAME = "chunkc.toml"
CONFIG_ENV_VAR = "CHUNKC_CONFIG"


def _explicit(path: str | Path, origin: str) -> Path:
    candidate = Path(path)
    if not candidate.is_file():
        msg = f"Config file from {origin} not found: {candidate}"
        raise click.ClickException(msg)
    return candidate


def find_config(start: Path | None = None, *, explicit: str | Path | None = None) -> Path | None:
    """Return the config file in effect for a build started in *start*.

    Raises:
        click.ClickException: If ``--config`` or ``CHUNKC_CONFIG`` names a
            missing file.
    """
    if explicit:
        return _explicit(explicit, "--config")
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return _explicit(env_path, CONFIG_ENV_VAR)

    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
