"""Shared test fixtures for jaws."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from jaws.config import reset_settings
from jaws.framework import Framework
from jaws.types import Context, Continuation

# ---------------------------------------------------------------------------
# Shared helpers (plain functions, not fixtures, importable by test files)
# ---------------------------------------------------------------------------


def recording_hook(label: str) -> Callable[[Context, Continuation], Any]:
    """Hook that appends *label* to ``ctx["log"]`` and continues."""

    async def hook(ctx: Context, next: Continuation) -> Any:
        ctx.setdefault("log", []).append(label)
        return await next(ctx)

    hook.__name__ = label
    return hook


def recording_action(label: str = "run") -> Callable[[Context, Continuation], Any]:
    return recording_hook(label)


def failing_hook(label: str, exc: Exception | None = None) -> Callable[[Context, Continuation], Any]:
    """Hook that appends *label* then raises before continuing."""

    async def hook(ctx: Context, next: Continuation) -> Any:
        ctx.setdefault("log", []).append(label)
        raise exc or RuntimeError(f"{label} exploded")

    hook.__name__ = label
    return hook


def hook_plugin(label: str, action: str = "ModuleCreate", phase: str = "pre"):
    """Plugin factory that appends one recording hook with no explicit index."""

    def factory(config: dict[str, Any]):
        def register(actions, hooks) -> None:
            hooks.register(action, phase, recording_hook(config.get("label", label)))

        return register

    return factory


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def framework() -> Framework:
    return Framework()
