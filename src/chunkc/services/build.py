"""Build pass: discover sources, compile each unit, write and verify artifacts.

Pipeline per invocation::

    collect_units -> for each unit: compile -> write -> (verify)

Only discovery-time problems (bad configuration, unknown compiler, no
sources, strict-mode collisions) fail the whole build.  Compile, write
and verify failures are contained at the unit/artifact boundary: they
are logged, recorded on the result, and the batch moves on.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from chunkc.config.logging import unit_context
from chunkc.domain.compiler import ArtifactSet, Compiler, RuntimeContext, get_compiler
from chunkc.domain.errors import ChunkcError, ChunkCollisionError, CompileError, WriteError
from chunkc.domain.units import CompileUnit, find_collisions
from chunkc.infrastructure.filesystem import (
    WrittenArtifact,
    collect_units,
    read_source,
    write_artifacts,
)
from chunkc.services.result import ServiceError, ServiceResult
from chunkc.services.telemetry import BuildTimer, UnitTiming
from chunkc.services.verify import VerifyOutcome, verify_artifacts

if TYPE_CHECKING:
    from chunkc.config.models import DiscoveryConfig
    from chunkc.config.settings import ChunkcSettings
    from chunkc.plugins.manager import PluginManager

logger = structlog.get_logger(__name__)


@dataclass
class UnitReport:
    """Outcome of processing one compile unit."""

    chunk: str
    source: str
    stage: str | None = None
    error: str | None = None
    artifacts: list[WrittenArtifact] = field(default_factory=list)
    verified: list[VerifyOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    def fail(self, stage: str, exc: ChunkcError) -> UnitReport:
        self.stage = stage
        self.error = str(exc)
        return self

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "chunk": self.chunk,
            "source": self.source,
            "ok": self.ok,
            "artifacts": [
                {"id": a.identifier, "path": str(a.path), "bytes": a.size} for a in self.artifacts
            ],
        }
        if self.verified:
            result["verify"] = [v.to_dict() for v in self.verified]
        if self.error is not None:
            result["stage"] = self.stage
            result["error"] = self.error
        return result


class BuildService:
    """Runs one build pass.

    Args:
        settings: Resolved invocation settings.
        compiler: Backend override; defaults to the registry entry named
            by ``settings.build.compiler``.
        runtime: Shared read-only runtime context for compile and load calls.
        plugins: Plugin manager used to dispatch ``post_build``.
    """

    def __init__(
        self,
        settings: ChunkcSettings,
        *,
        compiler: Compiler | None = None,
        runtime: RuntimeContext | None = None,
        plugins: PluginManager | None = None,
    ) -> None:
        self._settings = settings
        self._compiler = compiler
        self._runtime = runtime or RuntimeContext()
        self._plugins = plugins

    def build(self, seeds: Sequence[str]) -> ServiceResult:
        """Compile every source file reachable from *seeds*."""
        timer = BuildTimer()
        return timer.attach(self._run(seeds, timer))

    def _run(self, seeds: Sequence[str], timer: BuildTimer) -> ServiceResult:
        warnings: list[str] = []
        try:
            with timer.phase("discover"):
                compiler = self._compiler or get_compiler(self._settings.build.compiler)
                config = self._settings.discovery_config(default_suffix=compiler.source_suffix)
                units = collect_units(seeds, config)
        except ValidationError as exc:
            return _fatal(
                ServiceError(code="INVALID_CONFIG", message=f"Invalid build configuration: {exc}")
            )
        except ChunkcError as exc:
            return _fatal(ServiceError.from_exception(exc))
        except OSError as exc:
            return _fatal(
                ServiceError(code="DISCOVERY_FAILED", message=f"Source discovery failed: {exc}")
            )

        collisions = find_collisions(units)
        for chunk, sources in collisions.items():
            logger.warning("chunk.collision", chunk=chunk, sources=sources)
            warnings.append(
                f"chunk {chunk} is produced by {len(sources)} files, "
                f"later output overwrites earlier: {', '.join(sources)}"
            )
        if collisions and config.strict:
            return _fatal(ServiceError.from_exception(ChunkCollisionError(collisions)), warnings)

        logger.debug("build.start", units=len(units), compiler=compiler.name)
        reports = []
        for unit in units:
            with unit_context(unit):
                reports.append(
                    self._process_unit(unit, compiler, config, timer.unit(unit.chunk_name))
                )
        return self._summarize(reports, compiler, config, warnings)

    # ------------------------------------------------------------------
    # Per-unit pipeline
    # ------------------------------------------------------------------

    def _process_unit(
        self,
        unit: CompileUnit,
        compiler: Compiler,
        config: DiscoveryConfig,
        timing: UnitTiming,
    ) -> UnitReport:
        report = UnitReport(chunk=unit.chunk_name, source=unit.source_relative_path)

        try:
            with timing.stage("compile"):
                artifacts = self._compile_unit(unit, compiler, config)
        except CompileError as exc:
            logger.error("compile.failed", error=str(exc.cause))
            return report.fail("compile", exc)
        timing.artifacts = len(artifacts)

        try:
            with timing.stage("write"):
                report.artifacts = self._write_unit(unit, artifacts, compiler, config)
        except WriteError as exc:
            logger.error(
                "write.failed", artifact=exc.identifier, path=exc.path, error=str(exc.cause)
            )
            return report.fail("write", exc)

        if config.verify_load:
            with timing.stage("verify"):
                report.verified = self._verify_unit(artifacts, compiler)

        logger.debug("unit.done", artifacts=len(report.artifacts))
        return report

    def _compile_unit(
        self,
        unit: CompileUnit,
        compiler: Compiler,
        config: DiscoveryConfig,
    ) -> ArtifactSet:
        """Read the unit's source and hand it to the compiler backend.

        Raises:
            CompileError: On unreadable source, a bad encoding, or any
                failure inside the backend.
        """
        try:
            source = read_source(unit, config.encoding)
            return compiler.compile_all(
                source,
                unit.chunk_name,
                unit.source_relative_path,
                self._runtime,
                config.generate_main,
            )
        except Exception as exc:
            # Backends are plugins; whatever they raise only fails this unit.
            raise CompileError(unit, exc) from exc

    @staticmethod
    def _write_unit(
        unit: CompileUnit,
        artifacts: ArtifactSet,
        compiler: Compiler,
        config: DiscoveryConfig,
    ) -> list[WrittenArtifact]:
        try:
            unit.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WriteError(unit.chunk_name, unit.output_dir, exc) from exc
        return write_artifacts(artifacts, config.dest_root, compiler.artifact_suffix)

    def _verify_unit(self, artifacts: ArtifactSet, compiler: Compiler) -> list[VerifyOutcome]:
        try:
            loader = compiler.create_loader(artifacts, self._runtime)
        except Exception as exc:
            logger.error("verify.loader_failed", error=str(exc))
            return [VerifyOutcome(identifier=i, ok=False, error=str(exc)) for i in sorted(artifacts)]
        return verify_artifacts(artifacts, loader)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _summarize(
        self,
        reports: list[UnitReport],
        compiler: Compiler,
        config: DiscoveryConfig,
        warnings: list[str],
    ) -> ServiceResult:
        failed = [r for r in reports if not r.ok]
        verify_failures = [(r.chunk, v) for r in reports for v in r.verified if not v.ok]

        failures: list[dict[str, Any]] = [
            {"chunk": r.chunk, "source": r.source, "stage": r.stage, "error": r.error} for r in failed
        ]
        failures.extend(
            {"chunk": chunk, "artifact": v.identifier, "stage": "verify", "error": v.error}
            for chunk, v in verify_failures
        )
        warnings.extend(r.error for r in failed if r.error)
        warnings.extend(f"failed to load {v.identifier}: {v.error}" for _chunk, v in verify_failures)

        data: dict[str, Any] = {
            "compiler": compiler.name,
            "source_root": str(config.source_root),
            "dest_root": str(config.dest_root),
            "units": [r.to_dict() for r in reports],
            "units_total": len(reports),
            "units_ok": len(reports) - len(failed),
            "units_failed": len(failed),
            "artifacts_written": sum(len(r.artifacts) for r in reports),
            "bytes_written": sum(a.size for r in reports for a in r.artifacts),
            "artifacts_verified": sum(1 for r in reports for v in r.verified if v.ok),
            "artifacts_failed_verify": len(verify_failures),
            "failures": failures,
        }
        self._dispatch_post_build(data, warnings)

        if config.strict and failures:
            message = (
                f"{len(failed)} unit(s) failed, "
                f"{len(verify_failures)} artifact(s) failed verification"
            )
            error = ServiceError(
                code="BUILD_FAILED", message=message, detail={"failures": failures}
            )
            return _fatal(error, warnings, data)
        return ServiceResult(ok=True, op="build", data=data, warnings=warnings)

    def _dispatch_post_build(self, data: dict[str, Any], warnings: list[str]) -> None:
        """Fire the ``post_build`` hook.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        if self._plugins is None:
            return
        try:
            self._plugins.hook.post_build(
                dest_root=data["dest_root"],
                units_total=data["units_total"],
                units_failed=data["units_failed"],
                artifacts_written=data["artifacts_written"],
            )
        except Exception:
            logger.debug("post_build dispatch failed", exc_info=True)
            warnings.append("Event dispatch failed for post_build")


def _fatal(
    error: ServiceError,
    warnings: list[str] | None = None,
    data: dict[str, Any] | None = None,
) -> ServiceResult:
    logger.debug("build.failed", code=error.code, error=error.message)
    return ServiceResult(
        ok=False,
        op="build",
        data=data or {},
        warnings=warnings or [],
        error=error,
    )
