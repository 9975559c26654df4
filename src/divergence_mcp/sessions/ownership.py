"""Attribute tmux sessions to the projects and workspaces that own them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Literal, Mapping

from pydantic import BaseModel

from .naming import build_legacy_session_name, build_session_name, build_split_session_name
from .registry import TerminalSession

OwnershipKind = Literal["project", "divergence", "orphan", "unknown"]

SPLIT_PANE_SUFFIX = "pane-2"


class SessionProject(BaseModel):
    """Project record as persisted by the caller."""

    id: int
    name: str


class SessionDivergence(BaseModel):
    """Divergence workspace record as persisted by the caller."""

    id: int
    project_id: int
    branch: str


@dataclass(slots=True, frozen=True)
class SessionOwnership:
    kind: OwnershipKind
    project: SessionProject | None = None
    divergence: SessionDivergence | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "project_id": self.project.id if self.project else None,
            "divergence_id": self.divergence.id if self.divergence else None,
        }


ORPHAN = SessionOwnership("orphan")
UNKNOWN = SessionOwnership("unknown")


@dataclass(slots=True, frozen=True)
class AnnotatedSession:
    session: TerminalSession
    ownership: SessionOwnership

    def to_dict(self) -> dict[str, Any]:
        payload = self.session.to_dict()
        payload["ownership"] = self.ownership.to_dict()
        return payload


def _owned_names(base: str, legacy_id: str) -> tuple[str, ...]:
    return (
        base,
        build_split_session_name(base, SPLIT_PANE_SUFFIX),
        build_legacy_session_name(legacy_id),
    )


def build_ownership_map(
    projects: Iterable[SessionProject],
    divergences: Iterable[SessionDivergence] = (),
) -> dict[str, SessionOwnership]:
    """Map every session name Divergence may have created to its owner.

    Each owner claims its main session, the split pane session and the
    legacy id-based name. Divergences of unlisted projects are ignored.
    """

    by_project: dict[int, list[SessionDivergence]] = {}
    for divergence in divergences:
        by_project.setdefault(divergence.project_id, []).append(divergence)

    ownership: dict[str, SessionOwnership] = {}
    for project in projects:
        project_owner = SessionOwnership("project", project)
        base = build_session_name("project", project.name, project.id)
        for name in _owned_names(base, f"project-{project.id}"):
            ownership[name] = project_owner

        for divergence in by_project.get(project.id, []):
            divergence_owner = SessionOwnership("divergence", project, divergence)
            base = build_session_name(
                "divergence",
                project.name,
                project.id,
                divergence_id=divergence.id,
                branch=divergence.branch,
            )
            for name in _owned_names(base, f"divergence-{divergence.id}"):
                ownership[name] = divergence_owner

    return ownership


def annotate_sessions(
    sessions: Iterable[TerminalSession],
    ownership: Mapping[str, SessionOwnership] | None,
) -> list[AnnotatedSession]:
    """Tag sessions with their owner; ``None`` means owners are not known yet."""

    if ownership is None:
        return [AnnotatedSession(session, UNKNOWN) for session in sessions]
    return [AnnotatedSession(session, ownership.get(session.name, ORPHAN)) for session in sessions]


def count_orphan_sessions(annotated: Iterable[AnnotatedSession]) -> int:
    return sum(1 for item in annotated if item.ownership.kind == "orphan")


__all__ = [
    "AnnotatedSession",
    "OwnershipKind",
    "SessionDivergence",
    "SessionOwnership",
    "SessionProject",
    "annotate_sessions",
    "build_ownership_map",
    "count_orphan_sessions",
]
