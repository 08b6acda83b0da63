"""
plugins/loader.py - Directory-scanning plugin loader.

:func:`load_plugins` imports every module of a plugin directory and registers
it with the app. Without a directory it scans the built-in
``coverage_server.plugins.tools`` package.

Adding a plugin
---------------
Drop a ``.py`` file into a directory listed in the ``plugin_dirs`` setting
that defines ``plugin = PluginMeta(...)`` or ``def register(app): ...``.
Files starting with ``_`` or ``.`` are ignored.
"""

from __future__ import annotations

import importlib
import importlib.util
import pkgutil
from functools import partial
from pathlib import Path
from types import ModuleType
from typing import Callable, Iterator, Optional, Tuple, Union

import structlog
from fastapi import FastAPI

from coverage_server.plugins.base import PluginMeta

logger = structlog.get_logger()

BUILTIN_PACKAGE = "coverage_server.plugins.tools"

ModuleSource = Tuple[str, Callable[[], ModuleType]]


def _import_file(path: Path) -> ModuleType:
    module_name = f"coverage_server_plugin_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load plugin from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _builtin_sources() -> Iterator[ModuleSource]:
    package = importlib.import_module(BUILTIN_PACKAGE)
    for _finder, name, is_pkg in sorted(pkgutil.iter_modules(package.__path__), key=lambda m: m.name):
        if is_pkg or name.startswith("_"):
            continue
        yield name, partial(importlib.import_module, f"{BUILTIN_PACKAGE}.{name}")


def _directory_sources(directory: Path) -> Iterator[ModuleSource]:
    for path in sorted(directory.glob("*.py")):
        if path.name.startswith(("_", ".")):
            continue
        yield path.name, partial(_import_file, path)


def _register_module(app: FastAPI, module: ModuleType, source: str, prefix: str) -> Optional[str]:
    plugin = getattr(module, "plugin", None)
    if isinstance(plugin, PluginMeta):
        plugin.register(app, prefix=prefix)
        return plugin.name

    register = getattr(module, "register", None)
    if callable(register):
        register(app)
        return getattr(module, "PLUGIN_NAME", None) or Path(source).stem

    logger.warning("Plugin module does not expose a plugin or register()", source=source)
    return None


def load_plugins(
    app: FastAPI,
    plugins_dir: Union[str, Path, None] = None,
    prefix: str = "",
) -> list[str]:
    """Import and register every plugin module; return the loaded plugin names.

    A module that fails to import or register is logged and skipped.
    """
    if plugins_dir is None:
        sources: Iterator[ModuleSource] = _builtin_sources()
    else:
        directory = Path(plugins_dir)
        if not directory.is_dir():
            logger.warning("Plugins directory does not exist", plugins_dir=str(directory))
            return []
        sources = _directory_sources(directory)

    loaded: list[str] = []
    for source, importer in sources:
        try:
            name = _register_module(app, importer(), source, prefix)
        except Exception as e:
            logger.error("Failed to load plugin", source=source, error=str(e), exc_info=True)
            continue
        if name:
            logger.info("Loaded plugin", plugin=name, source=source)
            loaded.append(name)
    return loaded
