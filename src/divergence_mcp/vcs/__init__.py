"""Git status, diff and branch divergence helpers."""

from .diff import DiffMode, DiffResult, get_diff
from .divergence import (
    BranchChanges,
    BranchStatus,
    find_base_ref,
    get_branch_diff,
    get_branch_status,
    is_branch_merged,
    list_branch_changes,
    list_remote_branches,
)
from .git import GitClient, NotARepositoryError, is_git_repo, is_linked_worktree
from .status import ChangeRecord, ChangeStatus, list_changes, parse_porcelain_v2

__all__ = [
    "BranchChanges",
    "BranchStatus",
    "ChangeRecord",
    "ChangeStatus",
    "DiffMode",
    "DiffResult",
    "GitClient",
    "NotARepositoryError",
    "find_base_ref",
    "get_branch_diff",
    "get_branch_status",
    "get_diff",
    "is_branch_merged",
    "is_git_repo",
    "is_linked_worktree",
    "list_branch_changes",
    "list_changes",
    "list_remote_branches",
    "parse_porcelain_v2",
]
