"""Load-verification of freshly compiled artifacts.

Verification runs against the in-memory artifact set, never the files
just written, so a writer bug cannot be masked by re-reading from disk.
Every artifact is attempted independently.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import structlog

from chunkc.domain.compiler import ArtifactLoader, ArtifactSet

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class VerifyOutcome:
    """Result of loading one artifact."""

    identifier: str
    ok: bool
    instance: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def verify_artifacts(artifacts: ArtifactSet, loader: ArtifactLoader) -> list[VerifyOutcome]:
    """Load and instantiate every artifact in *artifacts* through *loader*.

    A failure is recorded for the offending artifact and verification
    moves on to the next one.
    """
    outcomes: list[VerifyOutcome] = []
    for identifier in sorted(artifacts):
        try:
            instance = loader.load(identifier)
        except Exception as exc:
            logger.error("verify.failed", artifact=identifier, error=str(exc))
            outcomes.append(VerifyOutcome(identifier=identifier, ok=False, error=str(exc)))
            continue
        logger.debug("verify.loaded", artifact=identifier, instance=repr(instance))
        outcomes.append(VerifyOutcome(identifier=identifier, ok=True, instance=repr(instance)))
    return outcomes
