"""Build timings.

A :class:`BuildTimer` records how long discovery took and, per unit, how
long each stage (``compile``, ``write``, ``verify``) took.  Timing is
always measured; it is attached to ``ServiceResult.meta`` only when
telemetry is enabled (``--verbose``).
"""

from __future__ import annotations

import time
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

import structlog

from chunkc.services.result import ServiceResult

_enabled: ContextVar[bool] = ContextVar("_chunkc_timings_enabled", default=False)

logger = structlog.get_logger(__name__)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


@dataclass
class UnitTiming:
    """Stage timings of one compile unit, in milliseconds."""

    chunk: str
    stages: dict[str, float] = field(default_factory=dict)
    artifacts: int = 0

    @property
    def total_ms(self) -> float:
        return round(sum(self.stages.values()), 2)

    @contextmanager
    def stage(self, name: str) -> Generator[None]:
        """Time one stage; recorded even when the stage raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.stages[name] = _elapsed_ms(start)

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunk": self.chunk,
            "total_ms": self.total_ms,
            "stages": dict(self.stages),
            "artifacts": self.artifacts,
        }


class BuildTimer:
    """Collects timings for one build pass."""

    def __init__(self) -> None:
        self._start = time.perf_counter()
        self.phases: dict[str, float] = {}
        self.units: list[UnitTiming] = []

    @contextmanager
    def phase(self, name: str) -> Generator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.phases[name] = _elapsed_ms(start)

    def unit(self, chunk: str) -> UnitTiming:
        timing = UnitTiming(chunk=chunk)
        self.units.append(timing)
        return timing

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_ms": _elapsed_ms(self._start),
            "phases": dict(self.phases),
            "units": [u.to_dict() for u in self.units],
        }

    def attach(self, result: ServiceResult) -> ServiceResult:
        """Return *result* with ``meta["timings"]`` set, when enabled."""
        if not _enabled.get():
            return result
        timings = self.to_dict()
        logger.debug("build.timed", total_ms=timings["total_ms"], units=len(self.units))
        meta = {**(result.meta or {}), "timings": timings}
        return result.model_copy(update={"meta": meta})


def enable_telemetry() -> None:
    """Attach timings to build results (set by AppContext when verbose)."""
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)
