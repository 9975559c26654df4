"""Branch divergence analysis against an upstream base reference."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .diff import DiffResult, relative_to_workspace, run_git_diff
from .git import GitClient, ensure_repository
from .status import ChangeRecord, ChangeStatus

logger = logging.getLogger(__name__)

REMOTE_BASE_CANDIDATES = ("origin/main", "origin/master", "origin/develop")
LOCAL_BASE_CANDIDATES = ("main", "master", "develop")
MERGE_TARGETS = ("main", "master")


@dataclass(slots=True, frozen=True)
class BranchStatus:
    merged: bool
    diverged: bool

    def to_dict(self) -> dict[str, bool]:
        return {"merged": self.merged, "diverged": self.diverged}


@dataclass(slots=True)
class BranchChanges:
    base_ref: str | None
    changes: list[ChangeRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_ref": self.base_ref,
            "changes": [change.to_dict() for change in self.changes],
        }


def default_remote_branch(git: GitClient, repo: Path) -> str | None:
    result = git.run(repo, "symbolic-ref", "--quiet", "--short", "refs/remotes/origin/HEAD")
    if not result.ok:
        return None
    return result.stdout.strip() or None


def find_base_ref(repo: Path | str, git: GitClient | None = None) -> str | None:
    """Resolve the reference that branch status is computed against.

    Order: the remote's default branch, then ``origin/main``,
    ``origin/master``, ``origin/develop``, then the same names locally.
    """

    git = git or GitClient()
    repo = Path(repo)

    default_remote = default_remote_branch(git, repo)
    if default_remote:
        return default_remote

    for name in REMOTE_BASE_CANDIDATES:
        if git.ref_exists(repo, f"refs/remotes/{name}"):
            return name

    for name in LOCAL_BASE_CANDIDATES:
        if git.ref_exists(repo, f"refs/heads/{name}"):
            return name

    return None


def branch_ahead_count(git: GitClient, repo: Path, base_ref: str, branch: str) -> int:
    result = git.check(
        repo,
        "rev-list",
        "--count",
        f"{base_ref}..{branch}",
        message="Failed to compute branch ahead count",
    )
    try:
        return int(result.stdout.strip())
    except ValueError:
        return 0


def is_ancestor(git: GitClient, repo: Path, branch: str, base_ref: str) -> bool:
    return git.run(repo, "merge-base", "--is-ancestor", branch, base_ref).ok


def get_branch_status(
    workspace: Path | str, branch: str, git: GitClient | None = None
) -> BranchStatus:
    """Report whether ``branch`` is merged into, and has diverged from, the base."""

    git = git or GitClient()
    repo = ensure_repository(workspace)
    git.fetch_origin(repo)

    base_ref = find_base_ref(repo, git)
    if base_ref is None:
        logger.info("No base reference found", extra={"repo": str(repo), "branch": branch})
        return BranchStatus(merged=False, diverged=False)

    diverged = branch_ahead_count(git, repo, base_ref, branch) > 0
    merged = is_ancestor(git, repo, branch, base_ref)
    logger.debug(
        "Computed branch status",
        extra={"branch": branch, "base_ref": base_ref, "merged": merged, "diverged": diverged},
    )
    return BranchStatus(merged=merged, diverged=diverged)


def is_branch_merged(workspace: Path | str, branch: str, git: GitClient | None = None) -> bool:
    """Return True if ``branch`` appears in ``git branch --merged`` for main or master."""

    git = git or GitClient()
    repo = Path(workspace)
    git.fetch_origin(repo)

    for target in MERGE_TARGETS:
        result = git.run(repo, "branch", "--merged", target)
        if not result.ok:
            continue
        # "*" marks the current branch, "+" one checked out in another worktree.
        merged = [line[2:].strip() for line in result.stdout.splitlines() if line.strip()]
        if branch in merged:
            return True
    return False


def list_remote_branches(repo_path: Path | str, git: GitClient | None = None) -> list[str]:
    """List branch names available on ``origin``, without the remote prefix."""

    git = git or GitClient()
    repo = Path(repo_path)
    if git.remote_url(repo) is None:
        raise ValueError("Remote origin is not configured for this repository")

    git.fetch_origin(repo)
    result = git.check(
        repo,
        "for-each-ref",
        "--format=%(refname:short)",
        "refs/remotes/origin",
        message="Failed to list remote branches",
    )

    branches: set[str] = set()
    for line in result.stdout.splitlines():
        name = line.strip()
        if not name or name in {"origin", "origin/HEAD"}:
            continue
        branches.add(name.removeprefix("origin/"))
    return sorted(branches)


def parse_name_status(output: bytes | str) -> list[ChangeRecord]:
    """Parse ``git diff --name-status -z`` output into committed change records."""

    if isinstance(output, bytes):
        output = output.decode("utf-8", errors="replace")
    tokens = [token for token in output.split("\0") if token]

    changes: list[ChangeRecord] = []
    index = 0
    while index < len(tokens):
        code = tokens[index]
        status = ChangeStatus.from_code(code[:1])
        if status in (ChangeStatus.RENAMED, ChangeStatus.COPIED):
            if index + 2 >= len(tokens):
                break
            old_path, path = tokens[index + 1], tokens[index + 2]
            index += 3
        else:
            if index + 1 >= len(tokens):
                break
            old_path, path = None, tokens[index + 1]
            index += 2
        changes.append(
            ChangeRecord(path=path, old_path=old_path, status=status, staged=False, unstaged=False)
        )
    return changes


def list_branch_changes(workspace: Path | str, git: GitClient | None = None) -> BranchChanges:
    """Return the files committed on HEAD since it forked from the base reference."""

    repo = ensure_repository(workspace)
    git = git or GitClient()
    base_ref = find_base_ref(repo, git)
    if base_ref is None:
        return BranchChanges(base_ref=None)

    result = git.check(
        repo,
        "diff",
        "--name-status",
        "-z",
        "-M",
        f"{base_ref}...HEAD",
        message="Failed to list branch changes",
    )
    return BranchChanges(base_ref=base_ref, changes=parse_name_status(result.stdout_bytes))


def get_branch_diff(
    workspace: Path | str, file_path: Path | str, git: GitClient | None = None
) -> DiffResult:
    repo = ensure_repository(workspace)
    git = git or GitClient()
    base_ref = find_base_ref(repo, git)
    if base_ref is None:
        return DiffResult.from_text("")

    rel_path = relative_to_workspace(repo, file_path)
    text = run_git_diff(git, repo, "--no-color", "--patch", f"{base_ref}...HEAD", "--", rel_path)
    return DiffResult.from_text(text)


__all__ = [
    "BranchChanges",
    "BranchStatus",
    "find_base_ref",
    "get_branch_diff",
    "get_branch_status",
    "is_branch_merged",
    "list_branch_changes",
    "list_remote_branches",
    "parse_name_status",
]
