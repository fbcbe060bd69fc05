"""The Framework value: registries, plugin loading and runs in one place.

There is no process-wide instance. Build one per project and pass it to
whatever needs to register or run actions::

    fw = Framework.from_settings(get_settings())
    result = await fw.run(ActionName.MODULE_CREATE, {"module": "users", "action": "show"})
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from jaws.config import Settings
from jaws.errors import FrameworkNotReadyError
from jaws.logger import logger
from jaws.pipeline import ComposedChain, QueueExecutor, compose
from jaws.registry import ActionRegistry, HookRegistry
from jaws.types import ActionName, Context, Handler, HookPhase, PluginFactory, RunResult

DEFAULT_PLUGINS: tuple[str, ...] = ("scaffold",)


class Framework:
    """Owns the ActionRegistry and HookRegistry for one project."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings
        self.actions = ActionRegistry()
        self.hooks = HookRegistry()
        self._executor = QueueExecutor(self)
        self._ready = True
        self._failed_plugin: str | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        factories: Mapping[str, PluginFactory] | None = None,
    ) -> Framework:
        """Build a framework and load the plugins configured in jaws.toml.

        Default plugins load first, unless jaws.toml lists them explicitly
        (which also lets a project disable them).
        """
        plugins: dict[str, Any] = {n: {} for n in DEFAULT_PLUGINS if n not in settings.plugins}
        plugins.update(settings.plugins)
        framework = cls(settings)
        framework.configure(plugins, factories=factories)
        return framework

    # --- Registration ---

    def action(self, name: ActionName | str, handler: Handler) -> None:
        self.actions.register(name, handler)

    def hook(
        self,
        name: ActionName | str,
        phase: HookPhase | str,
        handler: Handler,
        index: int | None = None,
    ) -> int:
        return self.hooks.register(name, phase, handler, index)

    def plugin(self, factory: PluginFactory, config: Any = None) -> None:
        """Apply a single plugin factory directly, bypassing name resolution."""
        register = factory(config if config is not None else {})
        register(self.actions, self.hooks)

    def configure(
        self,
        plugins: Mapping[str, Any] | Iterable[tuple[str, Any]],
        factories: Mapping[str, PluginFactory] | None = None,
    ) -> list[str]:
        """Load *plugins* in order. Returns the names that were applied."""
        from jaws.plugins import PluginLoader

        return PluginLoader(self, factories=factories).load(plugins)

    # --- Run lifecycle ---

    @property
    def ready(self) -> bool:
        return self._ready

    def mark_failed(self, plugin: str) -> None:
        """Called by the loader when configuration aborts part-way."""
        self._ready = False
        self._failed_plugin = plugin
        logger.error("Framework unusable after plugin failure", plugin=plugin)

    def ensure_ready(self) -> None:
        if not self._ready:
            raise FrameworkNotReadyError(
                f"Plugin {self._failed_plugin!r} failed to load; refusing to run "
                "against a partially configured registry"
            )

    @contextlib.contextmanager
    def frozen(self) -> Iterator[None]:
        """Reject registry mutation while the block is active."""
        self.actions.set_locked(True)
        self.hooks.set_locked(True)
        try:
            yield
        finally:
            self.actions.set_locked(False)
            self.hooks.set_locked(False)

    def compose(self, name: ActionName | str) -> ComposedChain:
        return compose(self.actions, self.hooks, name)

    async def run(
        self,
        name: ActionName | str,
        context: Context | dict[str, Any] | None = None,
    ) -> RunResult:
        return await self._executor.run(name, context)
