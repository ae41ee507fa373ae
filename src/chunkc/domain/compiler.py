"""Compiler backend contracts and the backend registry.

A backend turns one source file into an :data:`ArtifactSet` and knows
how to load its own artifacts back for verification.  Backends are
registered by name; plugins contribute extra backends through the
``register_compilers`` hook.
"""

from __future__ import annotations

import builtins
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

from chunkc.domain.errors import UnknownCompilerError

# Artifact identifier -> artifact bytes.
ArtifactSet = dict[str, bytes]


def _default_globals() -> Mapping[str, Any]:
    return MappingProxyType({"__builtins__": builtins})


@dataclass(frozen=True)
class RuntimeContext:
    """Read-only environment handed to every compile and load call.

    Attributes:
        globals: Base namespace artifacts are instantiated against.
            Loaders must copy it, never mutate it.
        optimize: Optimization level forwarded to the compiler.
    """

    globals: Mapping[str, Any] = field(default_factory=_default_globals)
    optimize: int = -1


@runtime_checkable
class ArtifactLoader(Protocol):
    """Isolated loader over an in-memory artifact set."""

    def load(self, identifier: str) -> Any:
        """Load and instantiate *identifier*.

        Resolves from the in-memory set first, then the ambient
        environment.  Raises :class:`~chunkc.domain.errors.LoadError`.
        """
        ...


@runtime_checkable
class Compiler(Protocol):
    """A compiler backend."""

    name: str
    source_suffix: str
    artifact_suffix: str

    def compile_all(
        self,
        source: bytes | str,
        chunk_name: str,
        source_path: str,
        runtime: RuntimeContext,
        generate_main: bool,
    ) -> ArtifactSet:
        """Compile *source* into one or more named artifacts.

        Raises :class:`~chunkc.domain.errors.CompilerError` on malformed source.
        """
        ...

    def create_loader(self, artifacts: ArtifactSet, runtime: RuntimeContext) -> ArtifactLoader:
        """Return a loader that resolves from *artifacts* first."""
        ...


COMPILER_REGISTRY: dict[str, type[Compiler]] = {}


def register_compiler(name: str, compiler_cls: type[Compiler]) -> None:
    """Register a compiler backend under *name*.

    Re-registering the same class is a no-op; a different class under an
    existing name is rejected.
    """
    normalized_name = name.strip()
    if not normalized_name:
        msg = "Compiler name must not be empty"
        raise ValueError(msg)

    if not isinstance(compiler_cls, type):
        msg = f"Compiler {normalized_name!r} must be a class"
        raise TypeError(msg)

    existing = COMPILER_REGISTRY.get(normalized_name)
    if existing is not None and existing is not compiler_cls:
        msg = f"Compiler {normalized_name!r} is already registered"
        raise ValueError(msg)

    COMPILER_REGISTRY[normalized_name] = compiler_cls


def get_compiler(name: str) -> Compiler:
    """Instantiate the backend registered under *name*.

    Raises:
        UnknownCompilerError: If nothing is registered under *name*.
    """
    compiler_cls = COMPILER_REGISTRY.get(name)
    if compiler_cls is None:
        raise UnknownCompilerError(name, list(COMPILER_REGISTRY))
    return compiler_cls()
