"""Exception hierarchy for the jaws orchestration engine.

Every error raised by the engine derives from :class:`JawsError` and carries
an :class:`ErrorCode` so the CLI can report failures uniformly.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from jaws.types import Stage


class ErrorCode(StrEnum):
    UNKNOWN = "unknown"
    UNKNOWN_ACTION = "unknown-action"
    PLUGIN_LOAD = "plugin-load"
    STAGE_FAILURE = "stage-failure"
    REGISTRY_LOCKED = "registry-locked"
    INVALID_PROJECT = "invalid-project"
    NOT_READY = "not-ready"
    EXECUTOR_BUSY = "executor-busy"
    CONTINUATION_REUSED = "continuation-reused"


class JawsError(Exception):
    """Base class for all jaws errors."""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class UnknownActionError(JawsError):
    """A registration or lookup named an action outside the fixed set."""

    code = ErrorCode.UNKNOWN_ACTION

    def __init__(self, name: Any) -> None:
        super().__init__(f"Unknown action {name!r}")
        self.name = name


class PluginLoadError(JawsError):
    """A configured plugin could not be resolved or failed during setup."""

    code = ErrorCode.PLUGIN_LOAD

    def __init__(self, plugin: str, reason: str) -> None:
        super().__init__(f"Failed to load plugin {plugin!r}: {reason}")
        self.plugin = plugin
        self.reason = reason


class StageFailure(JawsError):
    """A hook or the action body raised during a run.

    ``stage`` is the part of the chain that failed and ``label`` names the
    individual handler (``pre:audit``, ``action``, ``post:notify``). The
    original exception is kept on ``cause`` and chained as ``__cause__``.
    """

    code = ErrorCode.STAGE_FAILURE

    def __init__(self, stage: Stage, label: str, cause: BaseException) -> None:
        super().__init__(f"{stage} stage {label!r} failed: {cause}")
        self.stage = stage
        self.label = label
        self.cause = cause


class RegistryLockedError(JawsError):
    """Registration attempted while a pipeline run holds the registries."""

    code = ErrorCode.REGISTRY_LOCKED


class FrameworkNotReadyError(JawsError):
    """A run was requested after plugin loading aborted part-way."""

    code = ErrorCode.NOT_READY


class ExecutorBusyError(JawsError):
    """A second run was started while another run is active."""

    code = ErrorCode.EXECUTOR_BUSY


class ContinuationReusedError(JawsError):
    """A handler invoked its continuation more than once."""

    code = ErrorCode.CONTINUATION_REUSED


class ScaffoldError(JawsError):
    """Invalid scaffolding input or a conflicting file on disk."""

    code = ErrorCode.INVALID_PROJECT
