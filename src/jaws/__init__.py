"""jaws: action/hook orchestration for serverless projects."""

from jaws.errors import (
    JawsError,
    PluginLoadError,
    StageFailure,
    UnknownActionError,
)
from jaws.framework import Framework
from jaws.pipeline import action_body
from jaws.types import ActionName, Context, HookPhase, RunResult, RunState, Stage

__all__ = [
    "ActionName",
    "Context",
    "Framework",
    "HookPhase",
    "JawsError",
    "PluginLoadError",
    "RunResult",
    "RunState",
    "Stage",
    "StageFailure",
    "UnknownActionError",
    "action_body",
]
