"""Plugin discovery and loading.

Two sources, in order: the ``subctl.plugins`` entry-point group
(pip-installed packages) and single-file plugins in ``.subctl/plugins/``.
Names listed in ``[hooks] disabled`` are blocked in pluggy before either
source is scanned.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from collections.abc import Iterable, Iterator
from pathlib import Path
from types import ModuleType

import pluggy

from subctl.plugins.hookspecs import SubctlHookSpec

PROJECT_NAME = "subctl"
ENTRY_POINT_GROUP = "subctl.plugins"
LOCAL_PREFIX = "subctl_local_plugin_"

logger = logging.getLogger(__name__)


def _local_module_name(stem: str) -> str:
    return f"{LOCAL_PREFIX}{stem}"


def _import_file(py_file: Path) -> ModuleType | None:
    """Import a standalone plugin file; None (and a warning) if it fails."""
    module_name = _local_module_name(py_file.stem)
    spec = importlib.util.spec_from_file_location(module_name, py_file)
    if spec is None or spec.loader is None:
        logger.warning("Could not create module spec for %s", py_file)
        return None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
        sys.modules.pop(module_name, None)
        return None
    return module


def has_hook_impls(cls: type) -> bool:
    """True if any public attribute carries the ``subctl_impl`` marker."""
    marker = f"{PROJECT_NAME}_impl"
    return any(
        getattr(getattr(cls, name, None), marker, None)
        for name in dir(cls)
        if not name.startswith("_")
    )


def _plugin_classes(module: ModuleType) -> Iterator[type]:
    """Hook-carrying classes defined in *module* itself (not imported into it)."""
    for _name, obj in inspect.getmembers(module, inspect.isclass):
        if obj.__module__ == module.__name__ and has_hook_impls(obj):
            yield obj


class PluginManager:
    """Owns the pluggy manager for the ``subctl`` hook namespace."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(SubctlHookSpec)
        self._loaded: bool = False

    def discover_and_load(
        self,
        *,
        local_dir: Path | None = None,
        blocked: Iterable[str] = (),
    ) -> list[str]:
        """Load entry-point plugins, then local plugin files.

        Args:
            local_dir: Directory of single-file plugins; skipped if missing.
            blocked: Plugin names to keep out. Entry points are named by
                their entry-point name, local files by their stem.

        Returns the names of all registered plugins.
        """
        blocked = set(blocked)
        for name in blocked:
            self._pm.set_blocked(name)

        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._instantiate_entry_point_classes()
        if local_dir is not None and local_dir.is_dir():
            self._load_local_dir(local_dir, blocked)

        self._loaded = True
        names = self.list_plugin_names()
        logger.debug("Plugins loaded: %s", ", ".join(names) or "(none)")
        return names

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        plugin_name = name or type(plugin).__name__
        if self._pm.register(plugin, name=plugin_name) is None:
            logger.debug("Plugin %s is blocked", plugin_name)
        else:
            logger.debug("Registered plugin: %s", plugin_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    def is_blocked(self, name: str) -> bool:
        return self._pm.is_blocked(name)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        """Hook relay used by the event bus to call implementations."""
        return self._pm.hook

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or type(p).__name__ for p in self._pm.get_plugins()]

    # ------------------------------------------------------------------
    # Discovery internals
    # ------------------------------------------------------------------

    def _load_local_dir(self, local_dir: Path, blocked: set[str]) -> None:
        """Register hook classes from every ``*.py`` not starting with ``_``."""
        for py_file in sorted(local_dir.glob("*.py")):
            if py_file.name.startswith("_"):
                continue
            if py_file.stem in blocked:
                logger.debug("Skipping blocked local plugin %s", py_file.name)
                continue
            module = _import_file(py_file)
            if module is None:
                continue
            for cls in _plugin_classes(module):
                self._register_instance(cls, f"{module.__name__}.{cls.__name__}")

    def _instantiate_entry_point_classes(self) -> None:
        """Swap entry points that registered a bare class for an instance of it."""
        for plugin in list(self._pm.get_plugins()):
            if inspect.isclass(plugin) and has_hook_impls(plugin):
                name = self._pm.get_name(plugin) or plugin.__name__
                self._pm.unregister(plugin)
                self._register_instance(plugin, name)

    def _register_instance(self, cls: type, name: str) -> None:
        try:
            instance = cls()
        except Exception:
            logger.warning("Failed to instantiate plugin class %s", name, exc_info=True)
            return
        self.register_plugin(instance, name=name)
