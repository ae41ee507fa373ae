"""Allow ``python -m chunkc``."""

from chunkc.cli import cli

cli()
