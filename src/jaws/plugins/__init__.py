"""Plugin resolution and loading for jaws.

Plugins are configured as an ordered mapping of name → config (the
``[plugins.<name>]`` tables in jaws.toml). Each name resolves to a factory
through a lookup table built from the built-in plugins plus any factories
contributed by installed packages through the ``jaws`` entry-point group
(pluggy). The factory is called with the plugin config and returns a
``register(actions, hooks)`` callback.

Usage:
    from jaws.plugins import PluginLoader

    PluginLoader(framework).load({"timing": {}, "scaffold": {}})
"""

from __future__ import annotations

import importlib
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import pluggy
from pydantic import ValidationError

from jaws.config import PluginConfig
from jaws.errors import PluginLoadError
from jaws.logger import logger
from jaws.plugins.hookspecs import JawsSpec
from jaws.types import PluginFactory

if TYPE_CHECKING:
    from jaws.framework import Framework

__all__ = [
    "PluginLoader",
    "discover_factories",
    "get_plugin_manager",
]

# Static registry of built-in plugin providers: (module_path, class_name, key)
_BUILTIN_PLUGIN_SPECS: list[tuple[str, str, str]] = [
    ("jaws.plugins.scaffold", "ScaffoldPlugins", "scaffold"),
    ("jaws.plugins.timing", "TimingPlugins", "timing"),
]


def get_plugin_manager() -> pluggy.PluginManager:
    """Create a plugin manager with the built-in providers and entry points.

    Returns:
        PluginManager whose ``jaws_plugin_factories`` hook yields every
        known factory table.
    """
    pm = pluggy.PluginManager("jaws")
    pm.add_hookspecs(JawsSpec)

    for module_path, class_name, key in _BUILTIN_PLUGIN_SPECS:
        mod = importlib.import_module(module_path)
        pm.register(getattr(mod, class_name)(), name=f"builtin-{key}")

    # Third-party packages register under the "jaws" group in their pyproject.toml
    discovered = pm.load_setuptools_entrypoints("jaws")
    if discovered:
        logger.info("Discovered third-party plugin packages", count=discovered)

    return pm


def discover_factories(pm: pluggy.PluginManager | None = None) -> dict[str, PluginFactory]:
    """Merge every provider's factory table into one lookup table.

    Providers registered first (the built-ins) win on name clashes.
    """
    if pm is None:
        pm = get_plugin_manager()

    factories: dict[str, PluginFactory] = {}
    # pluggy calls the most recently registered implementation first
    for table in reversed(pm.hook.jaws_plugin_factories()):
        for name, factory in (table or {}).items():
            if name in factories:
                logger.warning("Ignoring duplicate plugin factory", plugin=name)
                continue
            factories[name] = factory
    return factories


def _split_config(config: Any) -> tuple[Any, bool]:
    """Return (config handed to the factory, enabled flag)."""
    if config is None:
        return {}, True
    if isinstance(config, PluginConfig):
        return config.options(), config.enabled
    if isinstance(config, Mapping):
        parsed = PluginConfig.model_validate(dict(config))
        return parsed.options(), parsed.enabled
    return config, True


class PluginLoader:
    """Applies configured plugins to a framework's registries, in order."""

    def __init__(
        self,
        framework: Framework,
        factories: Mapping[str, PluginFactory] | None = None,
    ) -> None:
        self._framework = framework
        self._factories = dict(factories) if factories is not None else None

    @property
    def factories(self) -> dict[str, PluginFactory]:
        if self._factories is None:
            self._factories = discover_factories()
        return self._factories

    def load(self, plugins: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> list[str]:
        """Resolve and apply each plugin.

        Raises:
            PluginLoadError: a name has no factory, or the factory or its
                register callback raised. The framework is marked unusable.
        """
        items = plugins.items() if isinstance(plugins, Mapping) else plugins
        loaded: list[str] = []

        for name, config in items:
            try:
                options, enabled = _split_config(config)
            except ValidationError as exc:
                self._framework.mark_failed(name)
                raise PluginLoadError(name, f"invalid config: {exc}") from exc
            if not enabled:
                logger.info("Plugin disabled via config", plugin=name)
                continue

            factory = self.factories.get(name)
            if factory is None:
                self._framework.mark_failed(name)
                raise PluginLoadError(name, "no plugin factory registered under this name")

            try:
                register = factory(options)
                if not callable(register):
                    raise TypeError(f"factory returned {type(register).__name__}, not a callable")
                register(self._framework.actions, self._framework.hooks)
            except Exception as exc:
                self._framework.mark_failed(name)
                raise PluginLoadError(name, str(exc)) from exc

            loaded.append(name)
            logger.info("Loaded plugin", plugin=name)

        return loaded
