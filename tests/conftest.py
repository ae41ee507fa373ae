"""Shared pytest fixtures and test helpers for chunkc tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import structlog
from click.testing import CliRunner

from chunkc.config.settings import ChunkcSettings
from chunkc.domain.compiler import COMPILER_REGISTRY, register_compiler
from chunkc.plugins.builtins.python import PythonCompiler
from chunkc.services.telemetry import disable_telemetry


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop any CHUNKC_* variables from the developer's shell."""
    for key in list(os.environ):
        if key.startswith("CHUNKC_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _restore_runtime_state() -> Generator[None]:
    """Undo logging, telemetry and compiler-registry changes made by a test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    chunkc_level = logging.getLogger("chunkc").level
    compilers = dict(COMPILER_REGISTRY)
    register_compiler(PythonCompiler.name, PythonCompiler)
    yield
    COMPILER_REGISTRY.clear()
    COMPILER_REGISTRY.update(compilers)
    root.handlers = original_handlers
    root.setLevel(original_level)
    logging.getLogger("chunkc").setLevel(chunkc_level)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


def write_file(path: Path, content: str | bytes = "") -> Path:
    """Write *content* to *path*, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """A small source tree under ``tmp_path/src``::

    src/
      top.py
      readme.txt
      pkg/
        mod.py
        sub/
          leaf.py
          data.json
    """
    src = tmp_path / "src"
    write_file(src / "top.py", "X = 1\n")
    write_file(src / "readme.txt", "not a source file\n")
    write_file(src / "pkg" / "mod.py", "def f():\n    return 1\n")
    write_file(src / "pkg" / "sub" / "leaf.py", "Y = 2\n")
    write_file(src / "pkg" / "sub" / "data.json", "{}\n")
    return src


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., ChunkcSettings]:
    """Factory for settings rooted at ``tmp_path`` with ``[build]`` overrides.

    Defaults: ``source_root=tmp_path/src``, ``dest_root=tmp_path/out``.
    """

    def _make(*, verbose: bool = False, **build: Any) -> ChunkcSettings:
        build.setdefault("source_root", tmp_path / "src")
        build.setdefault("dest_root", tmp_path / "out")
        return ChunkcSettings.from_cli(project_root=tmp_path, verbose=verbose, build=build)

    return _make
