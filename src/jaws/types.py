"""Data models for jaws pipelines."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeAlias


class ActionName(StrEnum):
    """The fixed set of operations a project exposes."""

    PROJECT_CREATE = "ProjectCreate"
    STAGE_CREATE = "StageCreate"
    REGION_CREATE = "RegionCreate"
    MODULE_CREATE = "ModuleCreate"
    MODULE_POST_INSTALL = "ModulePostInstall"
    LAMBDA_PACKAGE = "LambdaPackage"
    LAMBDA_UPLOAD = "LambdaUpload"
    LAMBDA_PROVISION = "LambdaProvision"
    LAMBDA_DEPLOY = "LambdaDeploy"
    API_GATEWAY_PROVISION = "ApiGatewayProvision"
    RESOURCES_PROVISION = "ResourcesProvision"
    ENV_LIST = "EnvList"
    ENV_GET = "EnvGet"
    ENV_SET = "EnvSet"
    TAG_RESOURCE = "TagResource"
    LAMBDA_RUN = "LambdaRun"
    DASH = "Dash"


class HookPhase(StrEnum):
    PRE = "Pre"
    POST = "Post"


class Stage(StrEnum):
    """Which part of a composed chain a handler belongs to."""

    PRE = "Pre"
    ACTION = "Action"
    POST = "Post"


class RunState(StrEnum):
    IDLE = "Idle"
    RUNNING_PRE = "RunningPre"
    RUNNING_ACTION = "RunningAction"
    RUNNING_POST = "RunningPost"
    COMPLETED = "Completed"
    FAILED = "Failed"


@dataclass
class Context:
    """Mutable bag threaded through every stage of one run.

    Item access proxies to ``data`` so handlers can write ``ctx["key"]``.
    ``state`` is maintained by the executor.
    """

    action: ActionName | None = None
    data: dict[str, Any] = field(default_factory=dict)
    state: RunState = RunState.IDLE

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.data[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def setdefault(self, key: str, default: Any) -> Any:
        return self.data.setdefault(key, default)

    def update(self, values: dict[str, Any]) -> None:
        self.data.update(values)


Continuation: TypeAlias = Callable[[Context], Awaitable[Context]]
Handler: TypeAlias = Callable[[Context, Continuation], Awaitable[Any]]
RegisterFn: TypeAlias = Callable[[Any, Any], None]
PluginFactory: TypeAlias = Callable[[Any], RegisterFn]


@dataclass
class RunResult:
    """Outcome of a completed run: the final context and the stages visited."""

    context: Context
    visited: list[str] = field(default_factory=list)

    @property
    def state(self) -> RunState:
        return self.context.state
