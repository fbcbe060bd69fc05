"""Pipeline composition and execution.

A composed chain wraps Pre hooks around the action body around Post hooks
("onion" order)::

    pre[0]( pre[1]( action( post[0]( post[1]( terminal ) ) ) ) )

It is built by folding the stage list from the innermost end, so every
handler receives the remainder of the pipeline as its continuation. A
handler that never awaits its continuation short-circuits everything inside
it. Any exception escaping a handler is wrapped once in StageFailure and then
propagates unchanged through the outer stages.
"""

from __future__ import annotations

import contextlib
import inspect
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from jaws.errors import ContinuationReusedError, ExecutorBusyError, StageFailure
from jaws.logger import logger
from jaws.registry import NOT_IMPLEMENTED, handler_label, parse_action
from jaws.types import (
    ActionName,
    Context,
    Continuation,
    Handler,
    HookPhase,
    RunResult,
    RunState,
    Stage,
)

if TYPE_CHECKING:
    from jaws.registry import ActionRegistry, HookRegistry

_STATE_FOR_STAGE: dict[Stage, RunState] = {
    Stage.PRE: RunState.RUNNING_PRE,
    Stage.ACTION: RunState.RUNNING_ACTION,
    Stage.POST: RunState.RUNNING_POST,
}


async def _not_implemented(context: Context, next: Continuation) -> Any:
    logger.info("Action not implemented, passing through", action=str(context.action))
    return await next(context)


async def _terminal(context: Context) -> Context:
    return context


@dataclass(frozen=True)
class StageSpec:
    stage: Stage
    label: str
    handler: Handler


@dataclass
class _RunTrace:
    visited: list[str] = field(default_factory=list)

    def enter(self, spec: StageSpec, context: Context) -> None:
        self.visited.append(spec.label)
        state = _STATE_FOR_STAGE[spec.stage]
        if context.state != state:
            logger.debug("Run state", action=str(context.action), state=str(state))
        context.state = state


@dataclass(frozen=True)
class ComposedChain:
    """Per-invocation snapshot of Pre, Action and Post stages for one action."""

    action: ActionName
    stages: tuple[StageSpec, ...]

    def labels(self) -> list[str]:
        return [spec.label for spec in self.stages]

    def build(self, trace: _RunTrace) -> Continuation:
        """Fold the stages into a single continuation, innermost first."""
        continuation: Continuation = _terminal
        for spec in reversed(self.stages):
            continuation = _wrap(spec, continuation, trace)
        return continuation


def _wrap(spec: StageSpec, inner: Continuation, trace: _RunTrace) -> Continuation:
    called = False

    async def next_stage(context: Context) -> Context:
        nonlocal called
        if called:
            raise ContinuationReusedError(f"{spec.label} invoked its continuation more than once")
        called = True
        return await inner(context)

    async def run_stage(context: Context) -> Context:
        trace.enter(spec, context)
        try:
            await spec.handler(context, next_stage)
        except StageFailure:
            raise
        except Exception as exc:
            raise StageFailure(spec.stage, spec.label, exc) from exc
        return context

    return run_stage


def compose(
    actions: ActionRegistry, hooks: HookRegistry, name: ActionName | str
) -> ComposedChain:
    """Build the chain for *name* from the current registry contents."""
    action = parse_action(name)
    stages: list[StageSpec] = [
        StageSpec(Stage.PRE, f"pre:{handler_label(h)}", h)
        for h in hooks.list(action, HookPhase.PRE)
    ]

    body = actions.get(action)
    if body is NOT_IMPLEMENTED:
        body = _not_implemented
    stages.append(StageSpec(Stage.ACTION, "action", body))

    stages.extend(
        StageSpec(Stage.POST, f"post:{handler_label(h)}", h)
        for h in hooks.list(action, HookPhase.POST)
    )
    return ComposedChain(action=action, stages=tuple(stages))


class QueueExecutor:
    """Runs composed chains for a framework, one invocation at a time.

    The framework's registries are frozen for the duration of a run, so
    plugins cannot register handlers from inside a hook.
    """

    def __init__(self, framework: Any) -> None:
        self._framework = framework
        self._active: ActionName | None = None

    @property
    def active(self) -> ActionName | None:
        return self._active

    @contextlib.contextmanager
    def _claim(self, action: ActionName) -> Iterator[None]:
        if self._active is not None:
            raise ExecutorBusyError(
                f"Cannot run {action}: {self._active} is still running"
            )
        self._active = action
        try:
            yield
        finally:
            self._active = None

    async def run(
        self,
        name: ActionName | str,
        context: Context | dict[str, Any] | None = None,
    ) -> RunResult:
        """Compose and run the chain for *name*.

        Raises StageFailure if any stage fails; the context is left in the
        ``Failed`` state and partial side effects are not undone.
        """
        action = parse_action(name)
        self._framework.ensure_ready()

        if context is None:
            context = Context()
        elif isinstance(context, dict):
            context = Context(data=context)
        context.action = action
        context.state = RunState.IDLE

        with self._claim(action), self._framework.frozen():
            chain = compose(self._framework.actions, self._framework.hooks, action)
            trace = _RunTrace()
            logger.info("Running pipeline", action=str(action), stages=chain.labels())
            try:
                await chain.build(trace)(context)
            except StageFailure as exc:
                context.state = RunState.FAILED
                logger.error(
                    "Pipeline failed",
                    action=str(action),
                    stage=str(exc.stage),
                    handler=exc.label,
                    err=str(exc.cause),
                )
                raise

        context.state = RunState.COMPLETED
        logger.info("Pipeline completed", action=str(action), visited=trace.visited)
        return RunResult(context=context, visited=trace.visited)


def action_body(execute: Callable[[Context], Any]) -> Handler:
    """Adapt a collaborator ``execute(context) -> outcome`` into an action handler.

    A mapping outcome is merged into the context, any other non-None outcome
    is stored under ``"result"``. The Post chain runs once ``execute`` returns.
    """

    async def body(context: Context, next: Continuation) -> Context:
        outcome = execute(context)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        if isinstance(outcome, Mapping):
            context.update(dict(outcome))
        elif outcome is not None:
            context["result"] = outcome
        return await next(context)

    body.__name__ = getattr(execute, "__name__", "action_body")
    return body
