"""Compiler backend plugins.

Backends arrive three ways: the built-in python backend registered by
the CLI, distributions advertising the ``chunkc.plugins`` entry point,
and single-file plugins dropped into ``.chunkc/plugins/`` of a project.
Every plugin that implements ``register_compilers`` has its backends
added to the compiler registry.  A broken plugin is logged and skipped;
it never stops a build.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType

import pluggy

from chunkc.domain.compiler import register_compiler
from chunkc.plugins.hookspecs import ChunkcHookSpec

PROJECT_NAME = "chunkc"
ENTRY_POINT_GROUP = "chunkc.plugins"
LOCAL_MODULE_PREFIX = "chunkc_local_plugin_"

logger = logging.getLogger(__name__)


def _has_hookimpls(obj: object) -> bool:
    # HookimplMarker("chunkc") tags decorated methods with ``chunkc_impl``.
    return any(
        getattr(getattr(obj, attr, None), "chunkc_impl", None)
        for attr in dir(obj)
        if not attr.startswith("_")
    )


def _import_local(path: Path) -> ModuleType | None:
    module_name = f"{LOCAL_MODULE_PREFIX}{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        logger.warning("Cannot import local plugin %s", path)
        return None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        sys.modules.pop(module_name, None)
        logger.warning("Local plugin %s raised on import", path, exc_info=True)
        return None
    return module


def _plugin_classes(module: ModuleType) -> list[type]:
    """Classes defined in *module* that carry hook implementations."""
    return [
        cls
        for _name, cls in inspect.getmembers(module, inspect.isclass)
        if cls.__module__ == module.__name__ and _has_hookimpls(cls)
    ]


class PluginManager:
    """pluggy manager for chunkc plugins, feeding the compiler registry."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(ChunkcHookSpec)

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance and the compilers it provides."""
        name = name or type(plugin).__name__
        self._pm.register(plugin, name=name)
        self._add_compilers(plugin, name)
        logger.debug("Registered plugin %s", name)

    def load_plugins(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins, then single-file plugins in *local_dir*.

        Returns the names of every registered plugin.
        """
        before = set(self._pm.get_plugins())
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        for plugin in set(self._pm.get_plugins()) - before:
            instance = self._instantiate_entry_point(plugin)
            if instance is not None:
                self._add_compilers(instance, self._name_of(instance))
        if local_dir is not None and local_dir.is_dir():
            for path in sorted(local_dir.glob("*.py")):
                if not path.name.startswith("_"):
                    self._load_local(path)
        return self.list_plugin_names()

    def list_plugin_names(self) -> list[str]:
        return [self._name_of(p) for p in self._pm.get_plugins()]

    def _name_of(self, plugin: object) -> str:
        return self._pm.get_name(plugin) or type(plugin).__name__

    def _instantiate_entry_point(self, plugin: object) -> object | None:
        """Swap a class registered by an entry point for an instance of it.

        Hooks dispatched against a bare class would leave ``self`` unbound.
        """
        if not inspect.isclass(plugin) or not _has_hookimpls(plugin):
            return plugin
        name = self._pm.get_name(plugin) or plugin.__name__
        self._pm.unregister(plugin)
        try:
            instance = plugin()
        except Exception:
            logger.warning("Entry-point plugin %s failed to instantiate", name, exc_info=True)
            return None
        self._pm.register(instance, name=name)
        return instance

    def _load_local(self, path: Path) -> None:
        module = _import_local(path)
        if module is None:
            return
        for cls in _plugin_classes(module):
            try:
                self.register_plugin(cls(), name=f"{module.__name__}.{cls.__name__}")
            except Exception:
                logger.warning(
                    "Local plugin class %s in %s failed to register",
                    cls.__name__,
                    path,
                    exc_info=True,
                )

    @staticmethod
    def _add_compilers(plugin: object, plugin_name: str) -> None:
        provider = getattr(plugin, "register_compilers", None)
        if provider is None:
            return
        try:
            backends = provider()
        except Exception:
            logger.warning("Plugin %s failed to list compilers", plugin_name, exc_info=True)
            return
        if backends is None:
            return
        if not isinstance(backends, dict):
            logger.warning("Plugin %s returned %s, expected a dict", plugin_name, type(backends))
            return
        for backend_name, compiler_cls in backends.items():
            try:
                register_compiler(backend_name, compiler_cls)
            except (TypeError, ValueError):
                logger.warning(
                    "Plugin %s: rejected compiler %r", plugin_name, backend_name, exc_info=True
                )
