"""Creation of divergence workspaces as clones or linked worktrees."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence
from uuid import uuid4

from ..vcs.git import GitClient, NotARepositoryError, is_git_repo
from .errors import WorkspaceError
from .ignored import copy_ignored_paths
from .models import DivergenceMode, DivergenceWorkspace

logger = logging.getLogger(__name__)


def workspace_dir_name(project_name: str, branch: str, suffix: str | None = None) -> str:
    """Build ``<project>-<branch>-<8 hex>`` for a new workspace directory."""

    safe_project = project_name.replace(" ", "-").lower()
    safe_branch = branch.replace("/", "-").replace(" ", "-")
    suffix = suffix or uuid4().hex[:8]
    return f"{safe_project}-{safe_branch}-{suffix}"


class WorkspaceProvisioner:
    """Provision divergence workspaces under a single workspaces root."""

    def __init__(self, workspaces_root: Path, git: GitClient | None = None) -> None:
        self._root = Path(workspaces_root)
        self._git = git or GitClient()

    @property
    def workspaces_root(self) -> Path:
        return self._root

    def provision(
        self,
        source: Path | str,
        project_name: str,
        branch: str,
        mode: DivergenceMode | str = DivergenceMode.CLONE,
        *,
        use_existing_branch: bool = False,
        copy_ignored_skip: Sequence[str] = (),
        project_id: int = 0,
    ) -> DivergenceWorkspace:
        """Create a workspace for ``branch`` of ``source``.

        Any failing step aborts with the git error text. Nothing is rolled
        back; callers should tear down the returned path on error.
        """

        source_path = Path(source)
        if not is_git_repo(source_path):
            raise NotARepositoryError(source_path, "Project is not a git repository")

        mode = DivergenceMode.parse(mode)
        name = workspace_dir_name(project_name, branch)
        destination = self._root / name
        self._root.mkdir(parents=True, exist_ok=True)

        logger.info(
            "Provisioning workspace",
            extra={
                "source": str(source_path),
                "branch": branch,
                "mode": mode.value,
                "use_existing_branch": use_existing_branch,
                "path": str(destination),
            },
        )

        if mode is DivergenceMode.WORKTREE:
            self._add_worktree(source_path, destination, branch, use_existing_branch)
        else:
            self._clone(source_path, destination, branch, use_existing_branch)

        copy_ignored_paths(source_path, destination, copy_ignored_skip, git=self._git)

        return DivergenceWorkspace(
            id=0,
            project_id=project_id,
            name=name,
            branch=branch,
            path=str(destination),
            created_at=datetime.now(timezone.utc).isoformat(),
            has_diverged=False,
            mode=mode,
        )

    def _add_worktree(
        self, source: Path, destination: Path, branch: str, use_existing_branch: bool
    ) -> None:
        git = self._git
        if not use_existing_branch:
            git.check(
                source,
                "worktree",
                "add",
                "-b",
                branch,
                str(destination),
                message="Git worktree add failed",
            )
            return

        git.fetch_origin(source)
        if git.ref_exists(source, f"refs/heads/{branch}"):
            git.check(
                source, "worktree", "add", str(destination), branch, message="Git worktree add failed"
            )
            return
        if git.ref_exists(source, f"refs/remotes/origin/{branch}"):
            git.check(
                source,
                "worktree",
                "add",
                "--track",
                "-b",
                branch,
                str(destination),
                f"origin/{branch}",
                message="Git worktree add failed",
            )
            return
        raise WorkspaceError(f"Branch {branch} not found locally or on origin")

    def _clone(
        self, source: Path, destination: Path, branch: str, use_existing_branch: bool
    ) -> None:
        git = self._git
        git.check(
            None, "clone", "--local", str(source), str(destination), message="Git clone failed"
        )

        # A local clone's origin is the source path; point it at the real upstream.
        remote_url = git.remote_url(source)
        if remote_url is not None:
            git.set_remote_url(destination, remote_url)

        if use_existing_branch:
            self._checkout_existing_branch(destination, branch)
        else:
            git.checkout(destination, branch, create=True)

        if remote_url is None:
            # The source has no upstream, so the clone gets none either.
            git.check(destination, "remote", "remove", "origin", message="Failed to remove origin")

    def _checkout_existing_branch(self, repo: Path, branch: str) -> None:
        git = self._git
        git.fetch_origin(repo)

        if git.ref_exists(repo, f"refs/heads/{branch}"):
            git.checkout(repo, branch)
            return

        if not git.ref_exists(repo, f"refs/remotes/origin/{branch}"):
            raise WorkspaceError(f"Remote branch origin/{branch} not found")

        git.check(
            repo, "checkout", "-b", branch, f"origin/{branch}", message="Git checkout failed"
        )


__all__ = ["WorkspaceProvisioner", "workspace_dir_name"]
