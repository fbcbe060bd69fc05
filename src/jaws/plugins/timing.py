"""Built-in ``timing`` plugin: measures how long each action's chain takes.

Config::

    [plugins.timing]
    actions = ["ModuleCreate", "LambdaDeploy"]   # default: every action
    index = 0                                    # default: outermost Pre hook

Elapsed seconds are written to ``context["timings"][<action>]``.
"""

from __future__ import annotations

import time
from typing import Any

from jaws.logger import logger
from jaws.plugins.hookspecs import hookimpl
from jaws.registry import ActionRegistry, HookRegistry, parse_action
from jaws.types import ActionName, Context, Continuation, HookPhase, RegisterFn


async def timing(context: Context, next: Continuation) -> Any:
    started = time.monotonic()
    try:
        return await next(context)
    finally:
        elapsed = time.monotonic() - started
        context.setdefault("timings", {})[str(context.action)] = elapsed
        logger.info("Action timed", action=str(context.action), seconds=round(elapsed, 3))


def timing_factory(config: dict[str, Any]) -> RegisterFn:
    names = config.get("actions")
    targets = [parse_action(n) for n in names] if names else list(ActionName)
    index = config.get("index", 0)

    def register(actions: ActionRegistry, hooks: HookRegistry) -> None:
        for action in targets:
            hooks.register(action, HookPhase.PRE, timing, index=index)

    return register


class TimingPlugins:
    @hookimpl
    def jaws_plugin_factories(self) -> dict[str, Any]:
        return {"timing": timing_factory}
