"""Removal of divergence workspaces."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ..vcs.git import GitClient, is_linked_worktree
from .errors import PathOutsideRootError, WorkspaceError

logger = logging.getLogger(__name__)


def ensure_within_root(path: Path | str, workspaces_root: Path | str) -> Path:
    """Return the resolved ``path`` if it lies strictly inside ``workspaces_root``."""

    resolved = Path(path).expanduser().resolve()
    root = Path(workspaces_root).expanduser().resolve()
    if resolved == root or root not in resolved.parents:
        raise PathOutsideRootError(
            "Cannot delete path outside of divergence repos directory"
        )
    return resolved


def remove_worktree(path: Path, git: GitClient) -> None:
    """Detach a linked worktree through the repository that owns it."""

    owner = git.common_dir(path).parent
    git.check(owner, "worktree", "remove", "--force", str(path), message="Failed to remove worktree")


def delete_workspace(
    path: Path | str,
    workspaces_root: Path | str,
    git: GitClient | None = None,
) -> bool:
    """Delete the workspace at ``path``.

    Returns False when there was nothing to delete. Linked worktrees are
    detached with git; clones are removed recursively.
    """

    target = ensure_within_root(path, workspaces_root)
    if not target.exists():
        logger.info("Workspace already removed", extra={"path": str(target)})
        return False

    if is_linked_worktree(target):
        remove_worktree(target, git or GitClient())
        logger.info("Removed worktree", extra={"path": str(target)})
        return True

    try:
        shutil.rmtree(target)
    except OSError as exc:
        raise WorkspaceError(f"Failed to delete divergence directory: {exc}") from exc
    logger.info("Removed workspace directory", extra={"path": str(target)})
    return True


__all__ = ["delete_workspace", "ensure_within_root", "remove_worktree"]
