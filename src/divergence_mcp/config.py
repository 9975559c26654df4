"""Configuration management for Divergence MCP."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated
import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

TMUX_PATH_ENV = "DIVERGENCE_TMUX_PATH"


def _default_workspaces_root() -> Path:
    return Path.home() / ".divergence" / "repos"


class DivergenceSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    workspaces_root: Path = Field(
        default_factory=_default_workspaces_root, validation_alias="DIVERGENCE_WORKSPACES_ROOT"
    )
    git_path: str = Field(default="git", validation_alias="DIVERGENCE_GIT_PATH")
    tmux_path: str | None = Field(default=None, validation_alias=TMUX_PATH_ENV)
    project_paths: Annotated[tuple[Path, ...], NoDecode] = Field(
        default=(Path("projects"),), validation_alias="DIVERGENCE_PROJECT_PATHS"
    )
    log_level: str = Field(default="INFO", validation_alias="DIVERGENCE_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "DIVERGENCE_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("workspaces_root")
    @classmethod
    def _expand_workspaces_root(cls, value: Path) -> Path:
        return value.expanduser().resolve()

    @field_validator("project_paths", mode="before")
    @classmethod
    def _parse_project_paths(cls, value):
        if value is None or value == "":
            return (Path("projects"),)
        if isinstance(value, (list, tuple)):
            return tuple(Path(str(item)) for item in value)
        if isinstance(value, str):
            parts = [part.strip() for part in value.split(os.pathsep) if part.strip()]
            return tuple(Path(part) for part in parts) or (Path("projects"),)
        raise ValueError("DIVERGENCE_PROJECT_PATHS must be a list of paths or a path-separated string")

    @field_validator("tmux_path")
    @classmethod
    def _blank_tmux_path(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def divergence_dir(self) -> Path:
        """Directory holding all Divergence state; parent of the workspaces root."""

        return self.workspaces_root.parent


@lru_cache(maxsize=1)
def get_settings() -> DivergenceSettings:
    """Return cached settings instance."""

    settings = DivergenceSettings()
    settings.project_paths = tuple(path.expanduser().resolve() for path in settings.project_paths)
    return settings


__all__ = ["DivergenceSettings", "TMUX_PATH_ENV", "get_settings"]
