"""Discovery of per-project settings files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import yaml
from pydantic import ValidationError

from .models import ProjectSettings

SETTINGS_SUFFIXES = (".yml", ".yaml")


class ProjectSettingsError(RuntimeError):
    """Raised when project settings files are unreadable or invalid."""


def _settings_files(directory: Path) -> list[Path]:
    return sorted(
        path for path in directory.iterdir() if path.is_file() and path.suffix in SETTINGS_SUFFIXES
    )


def _repository_key(path: Path | str) -> Path:
    return Path(path).expanduser().resolve()


def read_project_file(path: Path) -> ProjectSettings | None:
    """Parse one settings file; an empty document yields None."""

    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ProjectSettingsError(f"Failed to parse YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ProjectSettingsError(f"Failed to read {path}: {exc}") from exc

    if document is None:
        return None
    try:
        return ProjectSettings.model_validate(document)
    except ValidationError as exc:
        raise ProjectSettingsError(f"Invalid project settings in {path}: {exc}") from exc


class ProjectSettingsLoader:
    """Project defaults read from YAML files in the configured directories.

    Directories are read in order and files by name; a project id defined
    again later replaces the earlier definition.
    """

    def __init__(self, search_paths: Iterable[Path] | None = None) -> None:
        directories = [Path(path) for path in (search_paths or [])]
        self._directories = [directory for directory in directories if directory.is_dir()]

    @property
    def search_paths(self) -> list[Path]:
        return list(self._directories)

    def load_all(self) -> dict[str, ProjectSettings]:
        projects: dict[str, ProjectSettings] = {}
        problems: list[str] = []

        for directory in self._directories:
            for path in _settings_files(directory):
                try:
                    project = read_project_file(path)
                except ProjectSettingsError as exc:
                    problems.append(str(exc))
                    continue
                if project is not None:
                    projects[project.id] = project

        if problems:
            raise ProjectSettingsError("; ".join(problems))
        return projects

    def find_by_path(self, repository: Path | str) -> ProjectSettings | None:
        """Return the project whose ``path`` names the ``repository`` checkout."""

        target = _repository_key(repository)
        for project in self.load_all().values():
            if project.path and _repository_key(project.path) == target:
                return project
        return None


__all__ = ["ProjectSettingsError", "ProjectSettingsLoader", "read_project_file"]
