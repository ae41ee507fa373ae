"""Filesystem operations: source discovery, source reads, artifact writes.

Discovery is a pure function of the filesystem and the configuration.
Each recursive step returns its own units and the caller merges them;
there is no shared accumulator.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from chunkc.config.models import DiscoveryConfig
from chunkc.domain.compiler import ArtifactSet
from chunkc.domain.errors import NoSourcesFound, WriteError
from chunkc.domain.units import CompileUnit, build_unit, join_prefix

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def collect_units(seeds: Sequence[str], config: DiscoveryConfig) -> list[CompileUnit]:
    """Resolve *seeds* against ``source_root`` and return the units to compile.

    Directory seeds are traversed only when ``recursive`` is set; each
    subdirectory appends its name to the package prefix.  File seeds are
    kept when they carry the source suffix and take the configured prefix.
    Missing seeds are skipped.

    Units are sorted by ``source_relative_path`` and de-duplicated by
    physical file.

    Raises:
        NoSourcesFound: If no unit was discovered.
    """
    found: list[CompileUnit] = []
    for seed in seeds:
        found.extend(_collect_seed(config.source_root / seed, config))

    units = _dedupe(found)
    if not units:
        raise NoSourcesFound(seeds)
    return units


def _collect_seed(path: Path, config: DiscoveryConfig) -> list[CompileUnit]:
    if path.is_dir():
        if not config.recursive:
            logger.debug("Skipping directory seed %s (not recursive)", path)
            return []
        return _scan_dir(path, config.package_prefix, config)
    if path.is_file():
        return _scan_file(path, config.package_prefix, config)
    logger.debug("Skipping missing seed %s", path)
    return []


def _scan_dir(directory: Path, package_prefix: str | None, config: DiscoveryConfig) -> list[CompileUnit]:
    units: list[CompileUnit] = []
    for entry in sorted(directory.iterdir()):
        if entry.is_dir():
            units.extend(_scan_dir(entry, join_prefix(package_prefix, entry.name), config))
        elif entry.is_file():
            units.extend(_scan_file(entry, package_prefix, config))
    return units


def _scan_file(path: Path, package_prefix: str | None, config: DiscoveryConfig) -> list[CompileUnit]:
    if not path.name.endswith(config.source_suffix):
        return []
    if path.name == config.source_suffix:
        logger.debug("Skipping %s (no name before the suffix)", path)
        return []
    return [build_unit(path, package_prefix, config.dest_root)]


def _dedupe(units: Iterable[CompileUnit]) -> list[CompileUnit]:
    seen: set[tuple[Path, str]] = set()
    result: list[CompileUnit] = []
    for unit in sorted(units, key=lambda u: (u.source_relative_path, str(u.source_file))):
        key = (unit.source_file.resolve(), unit.chunk_name)
        if key in seen:
            continue
        seen.add(key)
        result.append(unit)
    return result


# ---------------------------------------------------------------------------
# Source reads
# ---------------------------------------------------------------------------


def read_source(unit: CompileUnit, encoding: str | None = None) -> bytes | str:
    """Read a unit's source; decode to ``str`` only when *encoding* is set."""
    raw = unit.source_file.read_bytes()
    if encoding is None:
        return raw
    return raw.decode(encoding)


# ---------------------------------------------------------------------------
# Artifact writes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WrittenArtifact:
    """One artifact materialized on disk."""

    identifier: str
    path: Path
    size: int


def artifact_path(dest_root: Path, identifier: str, suffix: str) -> Path:
    """Return ``{dest_root}/{identifier}{suffix}``.

    Raises:
        WriteError: If *identifier* is absolute or climbs out of *dest_root*.
    """
    relative = PurePosixPath(identifier)
    if not identifier or relative.is_absolute() or ".." in relative.parts:
        raise WriteError(identifier, dest_root, "identifier escapes destination root")
    return dest_root.joinpath(*relative.parts[:-1], f"{relative.name}{suffix}")


def write_artifacts(artifacts: ArtifactSet, dest_root: Path, suffix: str) -> list[WrittenArtifact]:
    """Write every artifact under *dest_root*, creating directories as needed.

    Writes are neither atomic nor transactional: a failure leaves the
    artifacts written so far in place.

    Raises:
        WriteError: On the first artifact that cannot be written.
    """
    written: list[WrittenArtifact] = []
    for identifier in sorted(artifacts):
        data = artifacts[identifier]
        path = artifact_path(dest_root, identifier, suffix)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise WriteError(identifier, path, exc) from exc
        logger.debug("Wrote %s (%d bytes)", path, len(data))
        written.append(WrittenArtifact(identifier=identifier, path=path, size=len(data)))
    return written
