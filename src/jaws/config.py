"""Project configuration: Pydantic BaseSettings with TOML + dotenv sources.

Project settings live in ``jaws.toml`` at the project root. Admin credentials
(profile names) live in ``admin.env`` next to it. Environment variables
override both using ``__`` as the nested delimiter (e.g.
``LOGGING__LEVEL=DEBUG``).

Priority (highest wins): init args > env vars > admin.env > jaws.toml

Usage::

    from jaws.config import get_settings

    s = get_settings()
    print(s.project.name)
    for name, plugin in s.plugins.items():
        print(name, plugin.options())
"""

from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Any, ClassVar

from pydantic import BaseModel, field_validator
from pydantic_settings import (
    BaseSettings,
    DotEnvSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

PROJECT_FILE = "jaws.toml"
ADMIN_ENV_FILE = "admin.env"

_source_root: ContextVar[Path | None] = ContextVar("_source_root", default=None)


class _StrictModel(BaseModel):
    """Base for config sub-models: reject unknown keys so typos fail loudly."""

    model_config = {"extra": "forbid"}


class ProjectConfig(_StrictModel):
    name: str | None = None
    description: str = ""
    version: str = "0.0.1"


class LoggingConfig(_StrictModel):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.upper()


class PluginConfig(BaseModel):
    """One ``[plugins.<name>]`` table.

    Everything except ``enabled`` is plugin-specific and handed to the
    plugin factory untouched.
    """

    model_config = {"extra": "allow"}

    enabled: bool = True

    def options(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        extra="ignore",
    )

    project_root: Path | None = None
    project: ProjectConfig = ProjectConfig()
    logging: LoggingConfig = LoggingConfig()
    admin_aws_profile: str | None = None
    # Table order in jaws.toml is the plugin load order.
    plugins: dict[str, PluginConfig] = {}

    MODULES_DIR: ClassVar[str] = "aws_modules"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority: init > env vars > admin.env > jaws.toml > file secrets."""
        root = _source_root.get()
        if root is None:
            return (init_settings, env_settings, file_secret_settings)
        return (
            init_settings,
            env_settings,
            DotEnvSettingsSource(settings_cls, env_file=root / ADMIN_ENV_FILE),
            TomlConfigSettingsSource(settings_cls, toml_file=root / PROJECT_FILE),
            file_secret_settings,
        )

    @property
    def in_project(self) -> bool:
        return self.project_root is not None

    @property
    def modules_dir(self) -> Path | None:
        if self.project_root is None:
            return None
        return self.project_root / self.MODULES_DIR


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) to the nearest directory holding jaws.toml."""
    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / PROJECT_FILE).is_file():
            return candidate
    return None


def load_settings(project_root: Path | None = None) -> Settings:
    """Read settings for *project_root*, discovering it from cwd when omitted."""
    root = project_root or find_project_root()
    token = _source_root.set(root)
    try:
        return Settings(project_root=root)
    finally:
        _source_root.reset(token)


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_settings: Settings | None = None


def get_settings() -> Settings:
    """Lazy cached singleton."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Clear the cached singleton (for tests)."""
    global _settings
    _settings = None
