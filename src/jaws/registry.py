"""Action and hook registries.

Both registries are keyed by :class:`ActionName`. Names outside the fixed
set are rejected before anything is stored, so a failed registration never
leaves partial state behind.
"""

from __future__ import annotations

from typing import Any, Final

from jaws.errors import RegistryLockedError, UnknownActionError
from jaws.logger import logger
from jaws.types import ActionName, Handler, HookPhase


class _NotImplemented:
    """Sentinel returned for actions with no registered handler."""

    _instance: _NotImplemented | None = None

    def __new__(cls) -> _NotImplemented:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_IMPLEMENTED"

    def __bool__(self) -> bool:
        return False


NOT_IMPLEMENTED: Final = _NotImplemented()


def parse_action(name: Any) -> ActionName:
    """Coerce *name* to an ActionName or raise UnknownActionError."""
    if isinstance(name, ActionName):
        return name
    try:
        return ActionName(name)
    except ValueError:
        raise UnknownActionError(name) from None


def parse_phase(phase: Any) -> HookPhase:
    """Accept HookPhase members or "pre"/"post" in any case."""
    if isinstance(phase, HookPhase):
        return phase
    if isinstance(phase, str):
        for member in HookPhase:
            if member.value.lower() == phase.lower():
                return member
    raise ValueError(f"Invalid hook phase {phase!r}; expected 'Pre' or 'Post'")


def handler_label(handler: Any) -> str:
    return getattr(handler, "__name__", None) or type(handler).__name__


class _Lockable:
    def __init__(self) -> None:
        self._locked = False

    @property
    def locked(self) -> bool:
        return self._locked

    def set_locked(self, locked: bool) -> None:
        self._locked = locked

    def _check_unlocked(self) -> None:
        if self._locked:
            raise RegistryLockedError(
                f"{type(self).__name__} cannot be modified while a run is active"
            )


class ActionRegistry(_Lockable):
    """Holds at most one handler per action; the last registration wins."""

    def __init__(self) -> None:
        super().__init__()
        self._handlers: dict[ActionName, Handler] = {}

    def register(self, name: ActionName | str, handler: Handler) -> None:
        action = parse_action(name)
        self._check_unlocked()
        replaced = action in self._handlers
        self._handlers[action] = handler
        logger.debug(
            "Registered action",
            action=str(action),
            handler=handler_label(handler),
            replaced=replaced,
        )

    def get(self, name: ActionName | str) -> Handler | _NotImplemented:
        return self._handlers.get(parse_action(name), NOT_IMPLEMENTED)

    def is_implemented(self, name: ActionName | str) -> bool:
        return parse_action(name) in self._handlers

    def names(self) -> list[ActionName]:
        return list(ActionName)

    def __contains__(self, name: object) -> bool:
        try:
            parse_action(name)
        except UnknownActionError:
            return False
        return True


class HookRegistry(_Lockable):
    """Ordered Pre/Post handler lists for every action."""

    def __init__(self) -> None:
        super().__init__()
        self._hooks: dict[tuple[ActionName, HookPhase], list[Handler]] = {
            (action, phase): [] for action in ActionName for phase in HookPhase
        }

    def register(
        self,
        name: ActionName | str,
        phase: HookPhase | str,
        handler: Handler,
        index: int | None = None,
    ) -> int:
        """Insert *handler* and return the position it landed at.

        *index* defaults to appending. Out-of-range values are clamped to
        ``[0, len]``; entries at or after the index shift right.
        """
        action = parse_action(name)
        hook_phase = parse_phase(phase)
        self._check_unlocked()

        handlers = self._hooks[(action, hook_phase)]
        position = len(handlers) if index is None else max(0, min(index, len(handlers)))
        handlers.insert(position, handler)
        logger.debug(
            "Registered hook",
            action=str(action),
            phase=str(hook_phase),
            handler=handler_label(handler),
            index=position,
        )
        return position

    def hook(self, hook_name: str, handler: Handler, index: int | None = None) -> int:
        """Register using a combined name such as ``PreModuleCreate``."""
        for phase in HookPhase:
            if hook_name.startswith(phase.value):
                return self.register(hook_name[len(phase.value) :], phase, handler, index)
        raise UnknownActionError(hook_name)

    def list(self, name: ActionName | str, phase: HookPhase | str) -> tuple[Handler, ...]:
        return tuple(self._hooks[(parse_action(name), parse_phase(phase))])

    def count(self) -> int:
        return sum(len(handlers) for handlers in self._hooks.values())
