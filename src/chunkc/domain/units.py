"""Compile units and chunk naming.

A :class:`CompileUnit` is one source file scheduled for compilation.
Its chunk name and output directory are derived purely from the file
name, the dotted package prefix, and the destination root:

- ``chunk_name``: ``pkg/sub/name`` (prefix path + base name, no extension)
- ``output_dir``: ``{dest_root}/pkg/sub`` (or ``dest_root`` without prefix)
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath


@dataclass(frozen=True)
class CompileUnit:
    """One source file with its resolved prefix and naming."""

    source_file: Path
    source_relative_path: str
    package_prefix: str | None
    chunk_name: str
    output_dir: Path


def prefix_path(package_prefix: str | None) -> str | None:
    """Convert a dotted package prefix to a slash path (``a.b`` -> ``a/b``)."""
    if not package_prefix:
        return None
    return package_prefix.replace(".", "/")


def join_prefix(package_prefix: str | None, segment: str) -> str:
    """Append a directory name to a dotted prefix."""
    return f"{package_prefix}.{segment}" if package_prefix else segment


def strip_extension(file_name: str) -> str:
    """Drop the last extension from *file_name*.

    Names without a dot are returned unchanged.  A leading dot alone
    (``.hidden``) is not treated as an extension.
    """
    stem, dot, _ext = file_name.rpartition(".")
    if not dot or not stem:
        return file_name
    return stem


def resolve_names(
    file_name: str,
    package_prefix: str | None,
    dest_root: Path,
) -> tuple[str, Path]:
    """Derive ``(chunk_name, output_dir)`` for a source file.

    Pure and idempotent: the same inputs always give the same names.
    """
    subdir = prefix_path(package_prefix)
    base = strip_extension(file_name)
    chunk_name = f"{subdir}/{base}" if subdir else base
    output_dir = dest_root / subdir if subdir else dest_root
    return chunk_name, output_dir


def build_unit(source_file: Path, package_prefix: str | None, dest_root: Path) -> CompileUnit:
    """Create a :class:`CompileUnit` for *source_file* under *package_prefix*."""
    subdir = prefix_path(package_prefix)
    chunk_name, output_dir = resolve_names(source_file.name, package_prefix, dest_root)
    relative = PurePosixPath(subdir, source_file.name) if subdir else PurePosixPath(source_file.name)
    return CompileUnit(
        source_file=source_file.absolute(),
        source_relative_path=relative.as_posix(),
        package_prefix=package_prefix or None,
        chunk_name=chunk_name,
        output_dir=output_dir,
    )


def find_collisions(units: Iterable[CompileUnit]) -> dict[str, list[str]]:
    """Return chunk names claimed by more than one distinct source file.

    Maps each colliding chunk name to the sorted source paths that claim it.
    """
    claims: dict[str, set[str]] = defaultdict(set)
    for unit in units:
        claims[unit.chunk_name].add(str(unit.source_file))
    return {name: sorted(paths) for name, paths in sorted(claims.items()) if len(paths) > 1}
