"""Entry point for `python -m jaws` / `jaws`.

Subcommands:
    jaws project create NAME     Create a new project directory
    jaws module create MOD ACT   Add a lambda/endpoint action to a module
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from jaws.config import Settings, get_settings
from jaws.errors import JawsError, StageFailure
from jaws.framework import Framework
from jaws.logger import logger, set_level
from jaws.scaffold import MODULE_TYPES, SUPPORTED_METHODS, SUPPORTED_RUNTIMES
from jaws.types import ActionName, Context


def _run(settings: Settings, action: ActionName, data: dict[str, Any]) -> int:
    framework = Framework.from_settings(settings)
    context = Context(data={"settings": settings, **data})
    try:
        result = asyncio.run(framework.run(action, context))
    except StageFailure as exc:
        print(f"Error: {exc.stage} stage {exc.label!r} failed: {exc.cause}", file=sys.stderr)
        return 1
    for path in result.context.get("written", []):
        print(f"  created {path}")
    return 0


def _project_create(settings: Settings, args: argparse.Namespace) -> int:
    result = _run(
        settings,
        ActionName.PROJECT_CREATE,
        {
            "name": args.name,
            "directory": args.dir,
            "description": args.description,
            "profile": args.profile,
        },
    )
    if result == 0:
        print(f"Successfully created project {args.name}")
    return result


def _module_create(settings: Settings, args: argparse.Namespace) -> int:
    if not settings.in_project:
        print("Error: must be run inside a jaws project (no jaws.toml found)", file=sys.stderr)
        return 1
    result = _run(
        settings,
        ActionName.MODULE_CREATE,
        {
            "project_root": settings.project_root,
            "module": args.module,
            "action": args.action,
            "runtime": args.runtime,
            "package_manager": args.package_manager,
            "module_type": args.module_type,
            "method": args.method,
            "path": args.path,
            "query_params": args.query_param,
        },
    )
    if result == 0:
        print(f"Successfully created {args.module}/{args.action}")
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jaws", description="Serverless project tool")
    sub = parser.add_subparsers(dest="resource", required=True)

    project = sub.add_parser("project", help="Project commands")
    project_sub = project.add_subparsers(dest="verb", required=True)
    create = project_sub.add_parser("create", help="Create a new project")
    create.add_argument("name")
    create.add_argument("--dir", type=Path, default=None, help="Target directory")
    create.add_argument("--description", default="")
    create.add_argument("--profile", default=None, help="Admin AWS profile for admin.env")
    create.set_defaults(handler=_project_create)

    module = sub.add_parser("module", help="Module commands")
    module_sub = module.add_subparsers(dest="verb", required=True)
    create = module_sub.add_parser("create", help="Create a module action")
    create.add_argument("module")
    create.add_argument("action")
    create.add_argument("--runtime", choices=sorted(SUPPORTED_RUNTIMES), default="nodejs")
    create.add_argument("--package-manager", choices=["npm"], default=None)
    create.add_argument("--module-type", choices=MODULE_TYPES, default="both")
    create.add_argument("--method", type=str.upper, choices=SUPPORTED_METHODS, default="GET")
    create.add_argument("--path", default=None, help="API path (default: <module>/<action>)")
    create.add_argument(
        "--query-param", action="append", default=[], help="Query string parameter (repeatable)"
    )
    create.set_defaults(handler=_module_create)
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    set_level(settings.logging.level)
    try:
        code = args.handler(settings, args)
    except JawsError as exc:
        logger.debug("Command failed", code=str(exc.code))
        print(f"Error: {exc}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
