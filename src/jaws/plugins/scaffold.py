"""Built-in ``scaffold`` plugin: registers ProjectCreate and ModuleCreate bodies."""

from __future__ import annotations

from typing import Any

from jaws.pipeline import action_body
from jaws.plugins.hookspecs import hookimpl
from jaws.registry import ActionRegistry, HookRegistry
from jaws.scaffold import create_module, create_project
from jaws.types import ActionName, RegisterFn


def scaffold_factory(config: dict[str, Any]) -> RegisterFn:
    def register(actions: ActionRegistry, hooks: HookRegistry) -> None:
        actions.register(ActionName.PROJECT_CREATE, action_body(create_project))
        actions.register(ActionName.MODULE_CREATE, action_body(create_module))

    return register


class ScaffoldPlugins:
    @hookimpl
    def jaws_plugin_factories(self) -> dict[str, Any]:
        return {"scaffold": scaffold_factory}
