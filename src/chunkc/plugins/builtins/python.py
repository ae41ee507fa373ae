"""Built-in ``python`` compiler backend.

Compiles Python source with the interpreter's own ``compile()`` and
emits one artifact per code object:

- ``{chunk}``: the module body
- ``{chunk}$1``, ``{chunk}$2``, ...: nested function and class bodies,
  depth-first in constant-table order
- ``{chunk}$main`` (with ``generate_main``): a launcher that runs the
  module as ``__main__`` via :mod:`runpy`

Each artifact is a hash-based, unchecked ``.pyc`` image, so the module
artifact is importable as a sourceless module from the destination tree.
"""

from __future__ import annotations

import importlib
import importlib.util
import marshal
import types
from typing import Any

import pluggy

from chunkc.domain.compiler import ArtifactSet, Compiler, RuntimeContext
from chunkc.domain.errors import CompilerError, LoadError

hookimpl = pluggy.HookimplMarker("chunkc")

HEADER_SIZE = 16
# Hash-based pyc, source hash not checked on import.
_FLAGS_UNCHECKED_HASH = 0b01
_VALID_FLAGS = 0b11

_LAUNCHER = """\
import runpy
runpy.run_module({module!r}, run_name="__main__", alter_sys=True)
"""


def module_name_for(chunk_name: str) -> str:
    """``pkg/sub/mod`` -> ``pkg.sub.mod``."""
    return chunk_name.replace("/", ".")


def pack_code(code: types.CodeType, source_hash: bytes) -> bytes:
    """Serialize *code* as a hash-based pyc image."""
    data = bytearray(importlib.util.MAGIC_NUMBER)
    data.extend(_FLAGS_UNCHECKED_HASH.to_bytes(4, "little"))
    data.extend(source_hash)
    data.extend(marshal.dumps(code))
    return bytes(data)


def unpack_code(identifier: str, data: bytes) -> types.CodeType:
    """Validate a pyc image header and return its code object.

    Raises:
        LoadError: On a short image, foreign magic number, unknown flags,
            or a payload that does not unmarshal to a code object.
    """
    if len(data) < HEADER_SIZE:
        raise LoadError(identifier, f"truncated header ({len(data)} bytes)")
    if data[:4] != importlib.util.MAGIC_NUMBER:
        raise LoadError(identifier, "bad magic number")
    flags = int.from_bytes(data[4:8], "little")
    if flags & ~_VALID_FLAGS:
        raise LoadError(identifier, f"invalid flags {flags:#x}")
    try:
        code = marshal.loads(data[HEADER_SIZE:])
    except (EOFError, ValueError, TypeError) as exc:
        raise LoadError(identifier, exc) from exc
    if not isinstance(code, types.CodeType):
        raise LoadError(identifier, f"payload is {type(code).__name__}, not code")
    return code


def nested_code(code: types.CodeType) -> list[types.CodeType]:
    """Return every code object nested in *code*, depth-first."""
    found: list[types.CodeType] = []
    for const in code.co_consts:
        if isinstance(const, types.CodeType):
            found.append(const)
            found.extend(nested_code(const))
    return found


class PythonArtifactLoader:
    """Loads pyc images from an in-memory artifact set.

    Instantiation binds the code object into a function against a private
    copy of the runtime globals; the code is never executed.  Identifiers
    missing from the set fall back to the regular import system.
    """

    def __init__(self, artifacts: ArtifactSet, runtime: RuntimeContext) -> None:
        self._artifacts = artifacts
        self._runtime = runtime

    def load(self, identifier: str) -> Any:
        data = self._artifacts.get(identifier)
        if data is None:
            return self._load_ambient(identifier)

        code = unpack_code(identifier, data)
        namespace = dict(self._runtime.globals)
        namespace["__name__"] = module_name_for(identifier)
        closure = tuple(types.CellType() for _ in code.co_freevars) or None
        try:
            return types.FunctionType(code, namespace, code.co_name, None, closure)
        except (TypeError, ValueError) as exc:
            raise LoadError(identifier, exc) from exc

    @staticmethod
    def _load_ambient(identifier: str) -> Any:
        try:
            return importlib.import_module(module_name_for(identifier))
        except ImportError as exc:
            raise LoadError(identifier, exc) from exc


class PythonCompiler:
    """Compiler backend for Python source files."""

    name = "python"
    source_suffix = ".py"
    artifact_suffix = ".pyc"

    def compile_all(
        self,
        source: bytes | str,
        chunk_name: str,
        source_path: str,
        runtime: RuntimeContext,
        generate_main: bool,
    ) -> ArtifactSet:
        if isinstance(source, str):
            # Decoding with plain utf-8 keeps the BOM, which compile() rejects.
            source = source.removeprefix("\ufeff")
        try:
            code = compile(source, source_path, "exec", dont_inherit=True, optimize=runtime.optimize)
        except (SyntaxError, ValueError) as exc:
            raise CompilerError(str(exc)) from exc

        raw = source.encode("utf-8") if isinstance(source, str) else source
        source_hash = importlib.util.source_hash(raw)

        artifacts: ArtifactSet = {chunk_name: pack_code(code, source_hash)}
        for index, inner in enumerate(nested_code(code), start=1):
            artifacts[f"{chunk_name}${index}"] = pack_code(inner, source_hash)

        if generate_main:
            launcher = compile(
                _LAUNCHER.format(module=module_name_for(chunk_name)),
                source_path,
                "exec",
                dont_inherit=True,
            )
            artifacts[f"{chunk_name}$main"] = pack_code(launcher, source_hash)
        return artifacts

    def create_loader(self, artifacts: ArtifactSet, runtime: RuntimeContext) -> PythonArtifactLoader:
        return PythonArtifactLoader(artifacts, runtime)


class PythonCompilerPlugin:
    """Registers the built-in ``python`` backend."""

    @hookimpl
    def register_compilers(self) -> dict[str, type[Compiler]]:
        return {PythonCompiler.name: PythonCompiler}
