"""Rich console for build reports.

Reports are drawn on a StringIO-backed console and handed back as a
string, so the caller decides whether they go to stdout or stderr.
Without a terminal rich emits no ANSI codes.  Soft wrapping keeps long
artifact paths on a single line.
"""

from __future__ import annotations

from collections.abc import Callable
from io import StringIO

from rich.console import Console
from rich.theme import Theme

CHUNKC_THEME = Theme(
    {
        "chunkc.ok": "bold green",
        "chunkc.error": "bold red",
        "chunkc.op": "bold cyan",
        "chunkc.key": "dim",
        "chunkc.chunk": "bold blue",
        "chunkc.path": "dim",
        "chunkc.bytes": "magenta",
        "chunkc.slow": "yellow",
    }
)


def create_console() -> Console:
    return Console(
        file=StringIO(),
        theme=CHUNKC_THEME,
        highlight=False,
        soft_wrap=True,
        width=120,
    )


def render_text(draw: Callable[[Console], None]) -> str:
    """Run *draw* on a fresh console and return what it printed."""
    console = create_console()
    draw(console)
    assert isinstance(console.file, StringIO)
    return console.file.getvalue().rstrip("\n")
