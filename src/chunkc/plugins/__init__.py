"""Extension layer — compiler backends and build hooks via pluggy.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints,
plus single-file plugins under ``.chunkc/plugins/``.
INVARIANT: Plugin failures are warnings, never errors.
"""

from chunkc.plugins.manager import PluginManager

__all__ = ["PluginManager"]
