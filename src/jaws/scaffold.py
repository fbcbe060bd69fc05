"""Project and module scaffolding: the bodies behind ProjectCreate / ModuleCreate.

These are plain ``execute(context) -> outcome`` collaborators. The engine
wraps them with :func:`jaws.pipeline.action_body`; the returned dicts are
merged back into the run's context.
"""

from __future__ import annotations

import copy
import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomlkit

from jaws.config import ADMIN_ENV_FILE, PROJECT_FILE, Settings
from jaws.errors import ScaffoldError
from jaws.logger import logger
from jaws.types import Context

SUPPORTED_RUNTIMES: dict[str, dict[str, Any]] = {
    "nodejs": {"default_pkg_mgr": "npm", "valid_pkg_mgrs": ["npm"]},
}
SUPPORTED_METHODS = ["DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT"]
BODY_METHODS = {"POST", "PUT", "PATCH"}
MODULE_TYPES = ("lambda", "endpoint", "both")
MAX_NAME_LENGTH = 19

_MODULE_TEMPLATE: dict[str, Any] = {
    "name": "",
    "version": "0.0.1",
    "profile": "aws-v0.1.1",
    "location": "",
    "author": "",
    "description": "",
    "resources": {"cloudFormation": {"LambdaIamPolicyDocumentStatements": []}},
}

_ACTION_TEMPLATE: dict[str, Any] = {
    "lambda": {
        "envVars": [],
        "deploy": False,
        "package": {"optimize": {"builder": "browserify", "minify": True, "ignore": []}},
        "cloudFormation": {
            "Description": "",
            "Handler": "",
            "MemorySize": 1024,
            "Runtime": "",
            "Timeout": 6,
        },
    },
    "apiGateway": {
        "deploy": False,
        "cloudFormation": {
            "Type": "AWS",
            "Path": "",
            "Method": "GET",
            "AuthorizationType": "none",
            "ApiKeyRequired": False,
            "RequestTemplates": {},
            "RequestParameters": {},
            "Responses": {
                "400": {"statusCode": "400"},
                "default": {
                    "statusCode": "200",
                    "responseParameters": {},
                    "responseModels": {},
                    "responseTemplates": {"application/json": ""},
                },
            },
        },
    },
}

_NODEJS_HANDLER = """\
'use strict';

var action = require('./index.js');

module.exports.handler = function(event, context) {
  action.run(event, context, function(error, result) {
    return context.done(error, result);
  });
};
"""

_NODEJS_INDEX = """\
'use strict';

module.exports.run = function(event, context, cb) {
  return cb(null, {message: 'Your aws-module ran successfully!'});
};
"""


def sanitize_name(name: str) -> str:
    """Lower-case, dash-separated, [a-z0-9-:] only, at most 19 characters."""
    cleaned = re.sub(r"\s", "-", name.lower().strip())
    cleaned = re.sub(r"[^a-zA-Z\d:-]", "", cleaned)
    return cleaned[:MAX_NAME_LENGTH]


def extract_path_params(path: str) -> list[str]:
    """Return the names of ``{param}`` segments in an API path."""
    return [
        segment[1:-1]
        for segment in path.split("/")
        if segment.startswith("{") and segment.endswith("}")
    ]


def request_parameters(path_params: list[str], query_params: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for kind, names in (("path", path_params), ("querystring", query_params)):
        for p in names:
            params[f"integration.request.{kind}.{p}"] = f"method.request.querystring.{p}"
    return params


def request_templates(
    method: str, path_params: list[str], query_params: list[str]
) -> dict[str, str]:
    parts: list[str] = []
    if method in BODY_METHODS:
        parts.append("\"body\": $input.json('$')")
    for p in [*path_params, *query_params]:
        parts.append(f"\"{p}\": \"$input.params('{p}')\"")
    return {"application/json": "{" + ", ".join(parts) + "}"}


@dataclass
class ModuleSpec:
    """Validated ModuleCreate input."""

    name: str
    action: str
    runtime: str = "nodejs"
    package_manager: str | None = None
    module_type: str = "both"
    method: str = "GET"
    path: str = ""
    query_params: list[str] = field(default_factory=list)

    @classmethod
    def from_context(cls, context: Context) -> ModuleSpec:
        try:
            raw_name = context["module"]
            raw_action = context["action"]
        except KeyError as exc:
            raise ScaffoldError(f"ModuleCreate requires {exc.args[0]!r}") from None

        runtime = context.get("runtime") or "nodejs"
        if runtime not in SUPPORTED_RUNTIMES:
            raise ScaffoldError(f'Unsupported runtime "{runtime}"')

        pkg_mgr = context.get("package_manager") or None
        if pkg_mgr and pkg_mgr not in SUPPORTED_RUNTIMES[runtime]["valid_pkg_mgrs"]:
            raise ScaffoldError(f'Unsupported package manager "{pkg_mgr}"')

        module_type = context.get("module_type") or "both"
        if module_type not in MODULE_TYPES:
            raise ScaffoldError(
                f'Unsupported module type "{module_type}". '
                f'Must be one of {", ".join(MODULE_TYPES)}.'
            )

        method = (context.get("method") or "GET").upper()
        if method not in SUPPORTED_METHODS:
            raise ScaffoldError(
                f'Unsupported method "{method}". Must be one of {", ".join(SUPPORTED_METHODS)}.'
            )

        name = sanitize_name(raw_name)
        action = sanitize_name(raw_action)
        if not name or not action:
            raise ScaffoldError("Module and action names must contain letters or digits")

        # awsm.json paths carry no leading slash
        path = (context.get("path") or f"{raw_name}/{raw_action}").removeprefix("/")
        return cls(
            name=name,
            action=action,
            runtime=runtime,
            package_manager=pkg_mgr,
            module_type=module_type,
            method=method,
            path=path,
            query_params=list(context.get("query_params") or []),
        )

    @property
    def has_lambda(self) -> bool:
        return self.module_type in ("lambda", "both")

    def action_descriptor(self, trim: bool = True) -> dict[str, Any]:
        descriptor = copy.deepcopy(_ACTION_TEMPLATE)
        path_params = extract_path_params(self.path)

        api = descriptor["apiGateway"]["cloudFormation"]
        api["Path"] = self.path
        api["Method"] = self.method
        api["Type"] = "AWS"
        api["RequestParameters"] = request_parameters(path_params, self.query_params)
        api["RequestTemplates"] = request_templates(self.method, path_params, self.query_params)

        if self.has_lambda or not trim:
            fn = descriptor["lambda"]["cloudFormation"]
            fn["Runtime"] = self.runtime
            fn["Handler"] = f"aws_modules/{self.name}/{self.action}/handler.handler"

        if not trim:
            return descriptor
        if self.module_type == "lambda":
            del descriptor["apiGateway"]
        elif self.module_type == "endpoint":
            del descriptor["lambda"]
        return descriptor


def _write_json(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n")


def _module_descriptor(name: str) -> dict[str, Any]:
    descriptor = copy.deepcopy(_MODULE_TEMPLATE)
    descriptor["name"] = name
    return descriptor


def _project_toml(name: str, description: str) -> str:
    doc = tomlkit.document()

    project = tomlkit.table()
    project.add("name", name)
    project.add("description", description)
    project.add("version", "0.0.1")
    doc.add("project", project)

    logging_table = tomlkit.table()
    logging_table.add("level", "INFO")
    doc.add("logging", logging_table)

    return tomlkit.dumps(doc)


def _project_root(context: Context) -> Path:
    root = context.get("project_root")
    if root is None:
        settings = context.get("settings")
        if isinstance(settings, Settings) and settings.project_root is not None:
            root = settings.project_root
    if root is None:
        raise ScaffoldError("Not inside a jaws project (no jaws.toml found)")
    return Path(root)


def _create_npm_skeleton(root: Path, spec: ModuleSpec) -> list[Path]:
    """Mirror the module under node_modules/ so it can be published to npm."""
    module_path = root / "node_modules" / spec.name
    written: list[Path] = []

    package_json = module_path / "package.json"
    if not package_json.exists():
        _write_json(
            package_json,
            {
                "name": spec.name,
                "version": "0.0.1",
                "description": "An aws-module",
                "dependencies": {},
            },
        )
        written.append(package_json)

    module_json = module_path / "awsm.json"
    if not module_json.exists():
        _write_json(module_json, _module_descriptor(spec.name))
        written.append(module_json)

    (module_path / "lib").mkdir(parents=True, exist_ok=True)

    action_path = module_path / "awsm" / spec.action
    if not action_path.exists():
        # The published copy is always complete, whatever the module type.
        written.extend(_write_action(action_path, spec, full=True))
    return written


def _write_action(action_path: Path, spec: ModuleSpec, full: bool = False) -> list[Path]:
    action_path.mkdir(parents=True, exist_ok=True)
    files = [action_path / "awsm.json"]
    _write_json(files[0], spec.action_descriptor(trim=not full))

    if spec.has_lambda or full:
        for filename, content in (
            ("handler.js", _NODEJS_HANDLER),
            ("index.js", _NODEJS_INDEX),
            ("event.json", "{}"),
        ):
            (action_path / filename).write_text(content)
            files.append(action_path / filename)
    return files


def create_module(context: Context) -> dict[str, Any]:
    """ModuleCreate body: write aws_modules/<module>/<action>/ for a new action."""
    spec = ModuleSpec.from_context(context)
    root = _project_root(context)

    module_path = root / Settings.MODULES_DIR / spec.name
    action_path = module_path / spec.action
    if action_path.exists():
        raise ScaffoldError(f"{action_path} already exists")

    written: list[Path] = []
    module_json = module_path / "awsm.json"
    if not module_json.exists():
        _write_json(module_json, _module_descriptor(spec.name))
        written.append(module_json)

    written.extend(_write_action(action_path, spec))

    if spec.package_manager == "npm":
        written.extend(_create_npm_skeleton(root, spec))

    logger.info("Created module action", module=spec.name, action=spec.action)
    return {
        "module": spec.name,
        "action": spec.action,
        "module_path": str(module_path),
        "action_path": str(action_path),
        "written": [str(p) for p in written],
    }


def create_project(context: Context) -> dict[str, Any]:
    """ProjectCreate body: write jaws.toml, admin.env and aws_modules/ into a directory."""
    raw_name = context.get("name")
    if not raw_name:
        raise ScaffoldError("ProjectCreate requires 'name'")
    name = sanitize_name(raw_name)

    root = Path(context.get("directory") or Path.cwd() / name)
    if (root / PROJECT_FILE).exists():
        raise ScaffoldError(f"{root} already contains a jaws project")

    root.mkdir(parents=True, exist_ok=True)
    (root / PROJECT_FILE).write_text(_project_toml(name, context.get("description") or ""))

    admin_env = root / ADMIN_ENV_FILE
    if not admin_env.exists():
        profile = context.get("profile") or "default"
        admin_env.write_text(f"ADMIN_AWS_PROFILE={profile}\n")

    (root / Settings.MODULES_DIR).mkdir(exist_ok=True)
    logger.info("Created project", name=name, root=str(root))
    return {"name": name, "project_root": str(root)}
