"""Pluggy hook specifications for chunkc.

One setup-time hook lets plugins contribute compiler backends; one
lifecycle hook fires after every build.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from chunkc.domain.compiler import Compiler

hookspec = pluggy.HookspecMarker("chunkc")


class ChunkcHookSpec:
    """Hook specifications for the chunkc plugin system."""

    @hookspec
    def register_compilers(self) -> dict[str, type[Compiler]] | None:
        """Return name -> Compiler class mappings to extend COMPILER_REGISTRY."""

    @hookspec
    def post_build(
        self,
        dest_root: str,
        units_total: int,
        units_failed: int,
        artifacts_written: int,
    ) -> None:
        """Called after a build pass completes."""
