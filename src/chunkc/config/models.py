"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, ``chunkc.toml`` only contains
overrides under its ``[build]`` section.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class BuildConfig(BaseModel):
    """[build] section."""

    model_config = {"frozen": True}

    source_root: Path = Path(".")
    dest_root: Path = Path(".")
    package_prefix: str | None = None
    recursive: bool = False
    encoding: str | None = None
    generate_main: bool = False
    verify_load: bool = False
    compiler: str = "python"
    source_suffix: str | None = None
    strict: bool = False


class DiscoveryConfig(BaseModel):
    """Resolved, immutable configuration for one build invocation."""

    model_config = {"frozen": True}

    source_root: Path
    dest_root: Path
    package_prefix: str | None = None
    recursive: bool = False
    encoding: str | None = None
    generate_main: bool = False
    verbose: bool = False
    verify_load: bool = False
    source_suffix: str = Field(min_length=1)
    compiler: str = "python"
    strict: bool = False

    @field_validator("package_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().strip(".")
        if not value:
            return None
        if any(not segment for segment in value.split(".")):
            msg = f"Invalid package prefix: {value!r}"
            raise ValueError(msg)
        return value

    @field_validator("source_suffix")
    @classmethod
    def _dotted_suffix(cls, value: str) -> str:
        return value if value.startswith(".") else f".{value}"
