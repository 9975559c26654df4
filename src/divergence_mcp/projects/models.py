"""Per-project defaults applied when creating divergence workspaces."""

from __future__ import annotations

from typing import Any, Iterable

from pydantic import BaseModel, Field, field_validator

from ..workspaces.models import DivergenceMode

DEFAULT_COPY_IGNORED_SKIP = (
    "node_modules",
    "dist",
    "build",
    "target",
    ".turbo",
    ".next",
    ".cache",
)


def normalize_skip_list(entries: Iterable[Any]) -> list[str]:
    """Trim entries and drop blanks and duplicates, keeping first occurrences."""

    result: list[str] = []
    seen: set[str] = set()
    for entry in entries:
        trimmed = str(entry).strip()
        if not trimmed or trimmed in seen:
            continue
        seen.add(trimmed)
        result.append(trimmed)
    return result


class ProjectSettings(BaseModel):
    """Defaults for one source repository."""

    id: str = Field(..., description="Stable identifier for the project.")
    name: str = Field(..., description="Human-readable project name used in workspace names.")
    path: str | None = Field(default=None, description="Filesystem path of the source repository.")
    copy_ignored_skip: list[str] = Field(
        default_factory=lambda: list(DEFAULT_COPY_IGNORED_SKIP),
        description="Ignored paths that must not be copied into new workspaces.",
    )
    divergence_mode: DivergenceMode = Field(
        default=DivergenceMode.CLONE,
        description="How new workspaces are created: a full clone or a linked worktree.",
    )

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str:
        normalized = str(value).strip() if value is not None else ""
        if not normalized:
            raise ValueError("Project id must not be empty")
        return normalized

    @field_validator("copy_ignored_skip", mode="before")
    @classmethod
    def _normalize_skip(cls, value: Any):
        if value is None:
            return list(DEFAULT_COPY_IGNORED_SKIP)
        if isinstance(value, (list, tuple)):
            return normalize_skip_list(value)
        raise ValueError("copy_ignored_skip must be a sequence of strings")

    @field_validator("divergence_mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any):
        return DivergenceMode.parse(value)


__all__ = ["DEFAULT_COPY_IGNORED_SKIP", "ProjectSettings", "normalize_skip_list"]
