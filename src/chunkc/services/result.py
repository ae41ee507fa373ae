"""Result envelope for a build.

``BuildService.build`` never raises for expected failures; it returns a
``ServiceResult`` instead.  The CLI renders it (text or ``--json``) and
exits with :attr:`ServiceResult.exit_code`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from chunkc.domain.errors import ChunkcError


class ServiceError(BaseModel):
    """Why a build did not succeed: a stable ``code`` plus a message."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: ChunkcError) -> ServiceError:
        return cls(code=exc.code, message=str(exc), detail=exc.detail)


class ServiceResult(BaseModel):
    """Outcome of one operation.

    ``data`` is kept on failure when part of the work was done, e.g. a
    ``--strict`` build that still wrote the units that compiled.
    ``meta`` holds build timings when verbose.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1
