"""Tool registration for Divergence MCP."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastmcp import Context, FastMCP
from pydantic import ValidationError

from ..config import DivergenceSettings
from ..process import ProcessRunnerError
from ..projects import (
    DEFAULT_COPY_IGNORED_SKIP,
    ProjectSettings,
    ProjectSettingsError,
    ProjectSettingsLoader,
    normalize_skip_list,
)
from ..sessions import (
    SessionDivergence,
    SessionError,
    SessionProject,
    SessionRegistry,
    annotate_sessions,
    build_ownership_map,
    count_orphan_sessions,
)
from ..vcs import (
    DiffMode,
    GitClient,
    NotARepositoryError,
    get_branch_diff,
    get_branch_status,
    get_diff,
    list_branch_changes,
    list_changes,
    list_remote_branches,
)
from ..vcs.git import ensure_repository
from ..workspaces import DivergenceMode, WorkspaceError, WorkspaceProvisioner, delete_workspace

logger = logging.getLogger(__name__)

_TOOL_ERRORS = (
    NotARepositoryError,
    ProcessRunnerError,
    ProjectSettingsError,
    SessionError,
    WorkspaceError,
)


@dataclass(slots=True)
class ToolHandles:
    create_divergence: Any
    delete_divergence: Any
    list_git_changes: Any
    get_git_diff: Any
    check_branch_status: Any
    list_remote_branches: Any
    list_branch_changes: Any
    get_branch_diff: Any
    get_divergence_base_path: Any
    list_tmux_sessions: Any
    kill_tmux_session: Any
    kill_all_tmux_sessions: Any
    annotate_tmux_sessions: Any
    list_projects: Any


def _find_project(
    projects: ProjectSettingsLoader, project_path: str, context: Context | None
) -> ProjectSettings | None:
    try:
        return projects.find_by_path(project_path)
    except ProjectSettingsError as exc:
        _emit_log(context, "warning", "Project settings unavailable", extra={"error": str(exc)})
        return None


def register_tools(
    server: FastMCP,
    *,
    settings: DivergenceSettings,
    projects: ProjectSettingsLoader,
    git: GitClient,
    sessions: SessionRegistry,
) -> ToolHandles:
    """Register Divergence's MCP tools on the server."""

    provisioner = WorkspaceProvisioner(settings.workspaces_root, git=git)

    def _create_divergence(
        project_name: str,
        project_path: str,
        branch_name: str,
        project_id: int = 0,
        copy_ignored_skip: list[str] | None = None,
        use_existing_branch: bool = False,
        divergence_mode: str | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        project = _find_project(projects, project_path, context)
        if copy_ignored_skip is not None:
            skip = normalize_skip_list(copy_ignored_skip)
        elif project is not None:
            skip = project.copy_ignored_skip
        else:
            skip = list(DEFAULT_COPY_IGNORED_SKIP)

        if divergence_mode is not None:
            mode = DivergenceMode.parse(divergence_mode)
        elif project is not None:
            mode = project.divergence_mode
        else:
            mode = DivergenceMode.CLONE

        try:
            workspace = provisioner.provision(
                project_path,
                project_name,
                branch_name,
                mode,
                use_existing_branch=use_existing_branch,
                copy_ignored_skip=skip,
                project_id=project_id,
            )
        except _TOOL_ERRORS as exc:
            _emit_log(
                context,
                "error",
                "Divergence creation failed",
                extra={"project_path": project_path, "branch": branch_name, "error": str(exc)},
            )
            raise ValueError(str(exc)) from exc

        _emit_log(
            context,
            "info",
            "Created divergence",
            extra={"path": workspace.path, "branch": branch_name, "mode": mode.value},
        )
        return workspace.to_dict()

    def _delete_divergence(path: str, context: Context | None = None) -> dict[str, Any]:
        try:
            removed = delete_workspace(path, settings.workspaces_root, git=git)
        except _TOOL_ERRORS as exc:
            raise ValueError(str(exc)) from exc
        _emit_log(context, "info", "Deleted divergence", extra={"path": path, "removed": removed})
        return {"path": path, "removed": removed}

    def _list_git_changes(path: str, context: Context | None = None) -> list[dict[str, Any]]:
        try:
            changes = list_changes(path, git=git)
        except _TOOL_ERRORS as exc:
            raise ValueError(str(exc)) from exc
        _emit_log(context, "debug", "Listed changes", extra={"path": path, "count": len(changes)})
        return [change.to_dict() for change in changes]

    def _get_git_diff(
        path: str,
        file_path: str,
        mode: str = DiffMode.WORKING.value,
        context: Context | None = None,
    ) -> dict[str, Any]:
        try:
            diff = get_diff(path, file_path, DiffMode.parse(mode), git=git)
        except _TOOL_ERRORS as exc:
            raise ValueError(str(exc)) from exc
        return diff.to_dict()

    def _check_branch_status(
        path: str, branch: str, context: Context | None = None
    ) -> dict[str, bool]:
        try:
            status = get_branch_status(path, branch, git=git)
        except _TOOL_ERRORS as exc:
            raise ValueError(str(exc)) from exc
        _emit_log(
            context,
            "debug",
            "Branch status",
            extra={"path": path, "branch": branch, **status.to_dict()},
        )
        return status.to_dict()

    def _list_remote_branches(path: str, context: Context | None = None) -> list[str]:
        try:
            return list_remote_branches(ensure_repository(path), git=git)
        except _TOOL_ERRORS as exc:
            raise ValueError(str(exc)) from exc

    def _list_branch_changes(path: str, context: Context | None = None) -> dict[str, Any]:
        try:
            return list_branch_changes(path, git=git).to_dict()
        except _TOOL_ERRORS as exc:
            raise ValueError(str(exc)) from exc

    def _get_branch_diff(
        path: str, file_path: str, context: Context | None = None
    ) -> dict[str, Any]:
        try:
            return get_branch_diff(path, file_path, git=git).to_dict()
        except _TOOL_ERRORS as exc:
            raise ValueError(str(exc)) from exc

    def _get_divergence_base_path(context: Context | None = None) -> str:
        return str(settings.divergence_dir)

    def _list_tmux_sessions(context: Context | None = None) -> list[dict[str, Any]]:
        try:
            listed = sessions.list_sessions()
        except _TOOL_ERRORS as exc:
            raise ValueError(str(exc)) from exc
        _emit_log(context, "debug", "Listed tmux sessions", extra={"count": len(listed)})
        return [session.to_dict() for session in listed]

    def _kill_tmux_session(session_name: str, context: Context | None = None) -> dict[str, Any]:
        try:
            sessions.kill_session(session_name)
        except _TOOL_ERRORS as exc:
            raise ValueError(str(exc)) from exc
        _emit_log(context, "info", "Killed tmux session", extra={"session": session_name})
        return {"session_name": session_name, "killed": True}

    def _kill_all_tmux_sessions(
        session_names: list[str], context: Context | None = None
    ) -> dict[str, Any]:
        try:
            killed = sessions.kill_sessions(session_names)
        except _TOOL_ERRORS as exc:
            raise ValueError(str(exc)) from exc
        _emit_log(context, "info", "Killed tmux sessions", extra={"count": killed})
        return {"killed": killed}

    def _annotate_tmux_sessions(
        projects: list[dict[str, Any]] | None = None,
        divergences: list[dict[str, Any]] | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        try:
            ownership = None
            if projects is not None:
                ownership = build_ownership_map(
                    [SessionProject.model_validate(item) for item in projects],
                    [SessionDivergence.model_validate(item) for item in divergences or []],
                )
        except ValidationError as exc:
            raise ValueError(f"Invalid ownership records: {exc}") from exc

        try:
            annotated = annotate_sessions(sessions.list_sessions(), ownership)
        except _TOOL_ERRORS as exc:
            raise ValueError(str(exc)) from exc

        orphans = count_orphan_sessions(annotated)
        _emit_log(
            context,
            "debug",
            "Annotated tmux sessions",
            extra={"count": len(annotated), "orphans": orphans},
        )
        return {
            "sessions": [item.to_dict() for item in annotated],
            "orphan_count": orphans,
        }

    def _list_projects(context: Context | None = None) -> list[dict[str, Any]]:
        try:
            project_map = projects.load_all()
        except ProjectSettingsError as exc:
            raise ValueError(str(exc)) from exc
        return [project.model_dump(mode="json") for project in project_map.values()]

    tool_create = server.tool(
        name="create_divergence",
        description="Create a branch-scoped workspace as a clone or linked worktree of a project.",
    )(_create_divergence)

    tool_delete = server.tool(
        name="delete_divergence",
        description="Remove a divergence workspace; only paths under the workspaces root are accepted.",
    )(_delete_divergence)

    tool_changes = server.tool(
        name="list_git_changes",
        description="List staged, unstaged, untracked and conflicted files of a workspace.",
    )(_list_git_changes)

    tool_diff = server.tool(
        name="get_git_diff",
        description="Return the unified diff of one file in working-tree or staged mode.",
    )(_get_git_diff)

    tool_branch_status = server.tool(
        name="check_branch_status",
        description="Report whether a branch is merged into, or has diverged from, its base branch.",
    )(_check_branch_status)

    tool_remote_branches = server.tool(
        name="list_remote_branches",
        description="List the branches available on the origin remote of a repository.",
    )(_list_remote_branches)

    tool_branch_changes = server.tool(
        name="list_branch_changes",
        description="List files committed on HEAD since it forked from the base branch.",
    )(_list_branch_changes)

    tool_branch_diff = server.tool(
        name="get_branch_diff",
        description="Return the diff of one file between the base branch and HEAD.",
    )(_get_branch_diff)

    tool_base_path = server.tool(
        name="get_divergence_base_path",
        description="Return the directory that holds all Divergence state.",
    )(_get_divergence_base_path)

    tool_list_sessions = server.tool(
        name="list_tmux_sessions",
        description="List tmux sessions created by Divergence.",
    )(_list_tmux_sessions)

    tool_kill_session = server.tool(
        name="kill_tmux_session",
        description="Kill one Divergence tmux session; already-dead sessions count as killed.",
    )(_kill_tmux_session)

    tool_kill_all = server.tool(
        name="kill_all_tmux_sessions",
        description="Kill several Divergence tmux sessions and report how many were killed.",
    )(_kill_all_tmux_sessions)

    tool_annotate = server.tool(
        name="annotate_tmux_sessions",
        description=(
            "List Divergence tmux sessions tagged with the project or divergence that owns "
            "them, given the caller's project and divergence records."
        ),
    )(_annotate_tmux_sessions)

    tool_projects = server.tool(
        name="list_projects",
        description="List configured project defaults loaded from YAML settings files.",
    )(_list_projects)

    return ToolHandles(
        create_divergence=tool_create,
        delete_divergence=tool_delete,
        list_git_changes=tool_changes,
        get_git_diff=tool_diff,
        check_branch_status=tool_branch_status,
        list_remote_branches=tool_remote_branches,
        list_branch_changes=tool_branch_changes,
        get_branch_diff=tool_branch_diff,
        get_divergence_base_path=tool_base_path,
        list_tmux_sessions=tool_list_sessions,
        kill_tmux_session=tool_kill_session,
        kill_all_tmux_sessions=tool_kill_all,
        annotate_tmux_sessions=tool_annotate,
        list_projects=tool_projects,
    )


__all__ = ["register_tools", "ToolHandles"]


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)
