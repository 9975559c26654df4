"""FastMCP server bootstrap for Divergence."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastmcp import Context, FastMCP

from . import __version__
from .config import DivergenceSettings, get_settings
from .projects import ProjectSettingsError, ProjectSettingsLoader
from .sessions import SessionError, SessionRegistry, get_tmux_resolver
from .tools import register_tools
from .vcs import GitClient


def configure_logging(level: str) -> None:
    """Configure root logging for the Divergence server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def build_status(
    settings: DivergenceSettings,
    project_loader: ProjectSettingsLoader,
    sessions: SessionRegistry,
) -> dict[str, Any]:
    """Summarize workspaces, project settings and tmux availability."""

    try:
        project_ids = sorted(project_loader.load_all().keys())
        project_error: str | None = None
    except ProjectSettingsError as exc:
        project_ids = []
        project_error = str(exc)

    tmux_path = sessions.resolver.resolve_executable()
    try:
        session_names = [session.name for session in sessions.list_sessions()]
        session_error: str | None = None
    except SessionError as exc:
        session_names = []
        session_error = str(exc)

    root = settings.workspaces_root
    workspace_count = sum(1 for entry in root.iterdir() if entry.is_dir()) if root.is_dir() else 0

    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "server_version": __version__,
        "log_level": settings.log_level,
        "workspaces": {
            "root": str(root),
            "count": workspace_count,
        },
        "projects": {
            "count": len(project_ids),
            "ids": project_ids,
            "error": project_error,
        },
        "tmux": {
            "path": str(tmux_path) if tmux_path else None,
            "available": tmux_path is not None,
            "sessions": session_names,
            "error": session_error,
        },
    }


def create_server(
    settings: Optional[DivergenceSettings] = None,
    git: GitClient | None = None,
    sessions: SessionRegistry | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server with tools and a status resource."""

    settings = settings or get_settings()
    git = git or GitClient(executable=settings.git_path)
    if sessions is None:
        sessions = SessionRegistry(get_tmux_resolver(settings.tmux_path))

    project_loader = ProjectSettingsLoader(settings.project_paths)

    server = FastMCP(
        name="Divergence MCP",
        version=__version__,
        instructions=(
            "Divergence provisions branch-scoped workspaces of a git repository, "
            "reports their changes, diffs and branch status, and manages the tmux "
            "sessions bound to them."
        ),
    )

    handles = register_tools(
        server,
        settings=settings,
        projects=project_loader,
        git=git,
        sessions=sessions,
    )

    @server.resource(
        "resource://divergence/status",
        name="divergence_status",
        title="Divergence MCP Status",
        description="Provides the current runtime status for the Divergence MCP server.",
        mime_type="application/json",
        tags={"status", "health"},
    )
    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing basic runtime state."""

        payload = build_status(settings, project_loader, sessions)
        payload["request_id"] = getattr(context, "request_id", None)
        return json.dumps(payload)

    setattr(server, "project_loader", project_loader)
    setattr(server, "session_registry", sessions)
    setattr(server, "git_client", git)
    setattr(server, "tool_handles", handles)
    return server


def main() -> None:
    """Entry point for running the Divergence MCP server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    logging.getLogger(__name__).info(
        "Launching Divergence MCP server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "workspaces_root": str(settings.workspaces_root),
        },
    )
    server.run()


if __name__ == "__main__":
    main()
