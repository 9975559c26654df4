"""tmux session names owned by Divergence."""

from __future__ import annotations

import re
from typing import Literal

SESSION_PREFIX = "divergence-"
MAX_SESSION_NAME_LENGTH = 120

SessionKind = Literal["project", "divergence"]

_INVALID_CHARS = re.compile(r"[^a-z0-9\-_]+")
_DASH_RUNS = re.compile(r"-+")


def sanitize_session_label(value: str) -> str:
    label = _INVALID_CHARS.sub("-", value.lower())
    label = _DASH_RUNS.sub("-", label)
    return label.strip("-_")


def build_session_name(
    kind: SessionKind,
    project_name: str,
    project_id: int,
    *,
    divergence_id: int | None = None,
    branch: str | None = None,
) -> str:
    """Name the session for a project or one of its divergence workspaces.

    Long names are truncated from the label side so the id suffix survives.
    """

    parts = ["divergence", "branch" if kind == "divergence" else "project"]
    parts.append(sanitize_session_label(project_name) or "project")

    if kind == "divergence":
        parts.append(sanitize_session_label(branch) if branch else "branch")
        id_part = str(divergence_id if divergence_id is not None else project_id)
    else:
        id_part = str(project_id)

    prefix = "-".join(part for part in parts if part)
    name = f"{prefix}-{id_part}"
    if len(name) > MAX_SESSION_NAME_LENGTH:
        keep = max(1, MAX_SESSION_NAME_LENGTH - (len(id_part) + 1))
        name = f"{prefix[:keep]}-{id_part}"
    return name


def build_split_session_name(base: str, suffix: str) -> str:
    label = sanitize_session_label(suffix) or "split"
    keep = max(1, MAX_SESSION_NAME_LENGTH - (len(label) + 1))
    return f"{base[:keep]}-{label}"


def build_legacy_session_name(session_id: str) -> str:
    return f"{SESSION_PREFIX}{session_id}"


def is_owned_session(name: str, prefix: str = SESSION_PREFIX) -> bool:
    return name.startswith(prefix)


__all__ = [
    "MAX_SESSION_NAME_LENGTH",
    "SESSION_PREFIX",
    "SessionKind",
    "build_legacy_session_name",
    "build_session_name",
    "build_split_session_name",
    "is_owned_session",
    "sanitize_session_label",
]
