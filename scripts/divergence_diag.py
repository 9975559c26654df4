"""Divergence diagnostics CLI."""

from __future__ import annotations

import argparse
import json

from divergence_mcp.config import DivergenceSettings, get_settings
from divergence_mcp.process import ProcessRunnerError
from divergence_mcp.projects import (
    DEFAULT_COPY_IGNORED_SKIP,
    ProjectSettingsError,
    ProjectSettingsLoader,
)
from divergence_mcp.sessions import (
    SessionDivergence,
    SessionError,
    SessionOwnership,
    SessionProject,
    SessionRegistry,
    annotate_sessions,
    build_ownership_map,
    count_orphan_sessions,
    get_tmux_resolver,
)
from divergence_mcp.vcs import (
    NotARepositoryError,
    get_branch_status,
    get_diff,
    list_branch_changes,
    list_changes,
)
from divergence_mcp.workspaces import WorkspaceError, WorkspaceProvisioner, delete_workspace

_CLI_ERRORS = (
    NotARepositoryError,
    ProcessRunnerError,
    ProjectSettingsError,
    SessionError,
    WorkspaceError,
)


def load_registry(settings: DivergenceSettings) -> SessionRegistry:
    return SessionRegistry(get_tmux_resolver(settings.tmux_path))


def fail(exc: Exception) -> None:
    print(f"Error: {exc}")
    raise SystemExit(1)


def load_owners(path: str) -> dict[str, SessionOwnership]:
    """Read ``{"projects": [...], "divergences": [...]}`` records from a JSON file."""

    with open(path, encoding="utf-8") as handle:
        document = json.load(handle)
    return build_ownership_map(
        [SessionProject.model_validate(item) for item in document.get("projects", [])],
        [SessionDivergence.model_validate(item) for item in document.get("divergences", [])],
    )


def cmd_sessions(args: argparse.Namespace) -> None:
    registry = load_registry(get_settings())
    try:
        ownership = load_owners(args.owners) if args.owners else None
        sessions = annotate_sessions(registry.list_sessions(), ownership)
    except (OSError, ValueError, *_CLI_ERRORS) as exc:
        fail(exc)
    if args.json:
        print(json.dumps([item.to_dict() for item in sessions], indent=2))
    else:
        for item in sessions:
            session = item.session
            marker = "*" if session.attached else " "
            print(
                f"{marker} {session.name} [{session.window_count} windows] "
                f"active {session.activity} ({item.ownership.kind})"
            )
        if ownership is not None:
            print(f"orphans: {count_orphan_sessions(sessions)}")


def cmd_kill(args: argparse.Namespace) -> None:
    registry = load_registry(get_settings())
    try:
        killed = registry.kill_sessions(args.names)
    except _CLI_ERRORS as exc:
        fail(exc)
    print(json.dumps({"killed": killed}))


def cmd_status(args: argparse.Namespace) -> None:
    try:
        changes = list_changes(args.path)
    except _CLI_ERRORS as exc:
        fail(exc)
    print(json.dumps([change.to_dict() for change in changes], indent=2))


def cmd_diff(args: argparse.Namespace) -> None:
    try:
        diff = get_diff(args.path, args.file, args.mode)
    except _CLI_ERRORS as exc:
        fail(exc)
    if args.json:
        print(json.dumps(diff.to_dict(), indent=2))
    else:
        print(diff.diff, end="")


def cmd_branch_status(args: argparse.Namespace) -> None:
    try:
        status = get_branch_status(args.path, args.branch)
    except _CLI_ERRORS as exc:
        fail(exc)
    print(json.dumps(status.to_dict()))


def cmd_branch_changes(args: argparse.Namespace) -> None:
    try:
        changes = list_branch_changes(args.path)
    except _CLI_ERRORS as exc:
        fail(exc)
    print(json.dumps(changes.to_dict(), indent=2))


def cmd_provision(args: argparse.Namespace) -> None:
    settings = get_settings()
    provisioner = WorkspaceProvisioner(settings.workspaces_root)
    skip = args.skip if args.skip is not None else list(DEFAULT_COPY_IGNORED_SKIP)
    try:
        workspace = provisioner.provision(
            args.source,
            args.project,
            args.branch,
            args.mode,
            use_existing_branch=args.existing,
            copy_ignored_skip=skip,
        )
    except _CLI_ERRORS as exc:
        fail(exc)
    print(json.dumps(workspace.to_dict(), indent=2))


def cmd_delete(args: argparse.Namespace) -> None:
    settings = get_settings()
    try:
        removed = delete_workspace(args.path, settings.workspaces_root)
    except _CLI_ERRORS as exc:
        fail(exc)
    print(json.dumps({"path": args.path, "removed": removed}))


def cmd_projects(args: argparse.Namespace) -> None:
    settings = get_settings()
    loader = ProjectSettingsLoader(settings.project_paths)
    try:
        projects = loader.load_all()
    except ProjectSettingsError as exc:
        fail(exc)
    print(json.dumps([project.model_dump(mode="json") for project in projects.values()], indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Divergence diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_sessions = sub.add_parser("sessions", help="List Divergence tmux sessions")
    p_sessions.add_argument("--json", action="store_true", help="Output JSON")
    p_sessions.add_argument(
        "--owners",
        default=None,
        help="JSON file of project and divergence records used to tag session owners",
    )
    p_sessions.set_defaults(func=cmd_sessions)

    p_kill = sub.add_parser("kill", help="Kill Divergence tmux sessions by name")
    p_kill.add_argument("names", nargs="+")
    p_kill.set_defaults(func=cmd_kill)

    p_status = sub.add_parser("status", help="List changes in a workspace")
    p_status.add_argument("path")
    p_status.set_defaults(func=cmd_status)

    p_diff = sub.add_parser("diff", help="Show the diff of one file")
    p_diff.add_argument("path")
    p_diff.add_argument("file")
    p_diff.add_argument("--mode", choices=["working", "staged"], default="working")
    p_diff.add_argument("--json", action="store_true", help="Output JSON")
    p_diff.set_defaults(func=cmd_diff)

    p_branch = sub.add_parser("branch-status", help="Show merged/diverged status of a branch")
    p_branch.add_argument("path")
    p_branch.add_argument("branch")
    p_branch.set_defaults(func=cmd_branch_status)

    p_branch_changes = sub.add_parser(
        "branch-changes",
        help="List files committed on HEAD since the base branch",
    )
    p_branch_changes.add_argument("path")
    p_branch_changes.set_defaults(func=cmd_branch_changes)

    p_provision = sub.add_parser("provision", help="Create a divergence workspace")
    p_provision.add_argument("source")
    p_provision.add_argument("project")
    p_provision.add_argument("branch")
    p_provision.add_argument("--mode", choices=["clone", "worktree"], default="clone")
    p_provision.add_argument("--existing", action="store_true", help="Use an existing branch")
    p_provision.add_argument(
        "--skip",
        action="append",
        default=None,
        help="Ignored path to leave behind (repeatable)",
    )
    p_provision.set_defaults(func=cmd_provision)

    p_delete = sub.add_parser("delete", help="Delete a divergence workspace")
    p_delete.add_argument("path")
    p_delete.set_defaults(func=cmd_delete)

    p_projects = sub.add_parser("projects", help="List configured project settings")
    p_projects.set_defaults(func=cmd_projects)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
