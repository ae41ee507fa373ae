"""Logging for chunkc: structlog over stdlib logging, always on stderr.

stdout carries the build result only, so every log line goes to stderr
either as console text or, with ``--log-json``, as JSON lines.

While a unit is processed, :func:`unit_context` binds its ``chunk`` and
``source`` into structlog's context variables.  Both structlog and
plain ``logging`` records emitted inside the block carry them.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import PurePath
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from chunkc.domain.units import CompileUnit

PACKAGE_LOGGER = "chunkc"


def _paths_as_posix(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Render ``Path`` values as forward-slash strings."""
    for key, value in event_dict.items():
        if isinstance(value, PurePath):
            event_dict[key] = value.as_posix()
    return event_dict


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _paths_as_posix,
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route structlog and stdlib logging to a single stderr handler.

    Args:
        verbose: Let ``chunkc.*`` debug records through (progress events,
            timings).  Otherwise only warnings and errors are shown.
        log_json: One JSON object per line instead of console text.
    """
    renderer: structlog.types.Processor
    if log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.WARNING)
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)


@contextmanager
def unit_context(unit: CompileUnit) -> Generator[None]:
    """Tag every log record emitted in the block with the unit's identity."""
    with structlog.contextvars.bound_contextvars(
        chunk=unit.chunk_name,
        source=unit.source_relative_path,
    ):
        yield
