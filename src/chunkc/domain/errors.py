"""Error taxonomy for a build run.

Fatal errors (``NoSourcesFound``, ``UnknownCompilerError``,
``ChunkCollisionError``) abort before any artifact is written.  Per-unit
and per-artifact errors (``CompileError``, ``WriteError``, ``LoadError``)
are caught at the unit/artifact boundary by the build service and never
abort the batch.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from chunkc.domain.units import CompileUnit


class ChunkcError(Exception):
    """Base class for all chunkc errors."""

    code: str = "INTERNAL"

    @property
    def detail(self) -> dict[str, Any]:
        """Structured context for machine-readable output."""
        return {}


class NoSourcesFound(ChunkcError):
    """Discovery produced an empty unit set."""

    code = "NO_SOURCES"

    def __init__(self, seeds: Sequence[str]) -> None:
        self.seeds = list(seeds)
        super().__init__(f"no files found in {self.seeds}")

    @property
    def detail(self) -> dict[str, Any]:
        return {"seeds": self.seeds}


class UnknownCompilerError(ChunkcError):
    """No backend is registered under the requested name."""

    code = "UNKNOWN_COMPILER"

    def __init__(self, name: str, available: Sequence[str]) -> None:
        self.name = name
        self.available = sorted(available)
        super().__init__(
            f"Unknown compiler {name!r} (available: {', '.join(self.available) or 'none'})"
        )

    @property
    def detail(self) -> dict[str, Any]:
        return {"available": self.available}


class ChunkCollisionError(ChunkcError):
    """Two or more source files resolve to the same chunk name."""

    code = "CHUNK_COLLISION"

    def __init__(self, collisions: dict[str, list[str]]) -> None:
        self.collisions = collisions
        names = ", ".join(sorted(collisions))
        super().__init__(f"chunk name collision: {names}")

    @property
    def detail(self) -> dict[str, Any]:
        return {"collisions": self.collisions}


class CompilerError(ChunkcError):
    """Raised by a compiler backend when it rejects its input."""

    code = "COMPILER"


class CompileError(ChunkcError):
    """A unit could not be compiled (unreadable source or compiler rejection)."""

    code = "COMPILE_FAILED"

    def __init__(self, unit: CompileUnit, cause: BaseException) -> None:
        self.unit = unit
        self.cause = cause
        super().__init__(f"failed to compile {unit.source_relative_path}: {cause}")


class WriteError(ChunkcError):
    """An artifact could not be written to the destination tree."""

    code = "WRITE_FAILED"

    def __init__(self, identifier: str, path: Path, cause: BaseException | str) -> None:
        self.identifier = identifier
        self.path = path
        self.cause = cause
        super().__init__(f"failed to write {identifier} to {path}: {cause}")


class LoadError(ChunkcError):
    """An artifact could not be loaded or instantiated during verification."""

    code = "LOAD_FAILED"

    def __init__(self, identifier: str, cause: BaseException | str) -> None:
        self.identifier = identifier
        self.cause = cause
        super().__init__(f"failed to load {identifier}: {cause}")
