"""Project settings models and loader exports."""

from .loader import ProjectSettingsError, ProjectSettingsLoader
from .models import DEFAULT_COPY_IGNORED_SKIP, ProjectSettings, normalize_skip_list

__all__ = [
    "DEFAULT_COPY_IGNORED_SKIP",
    "ProjectSettings",
    "ProjectSettingsError",
    "ProjectSettingsLoader",
    "normalize_skip_list",
]
