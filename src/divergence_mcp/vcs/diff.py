"""Unified diff retrieval for single files."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from ..process import CommandFailedError, ProcessRunnerError
from .git import GitClient, ensure_repository

logger = logging.getLogger(__name__)

BINARY_MARKERS = ("Binary files", "GIT binary patch")


class DiffMode(str, Enum):
    WORKING = "working"
    STAGED = "staged"

    @classmethod
    def parse(cls, value: "DiffMode | str | None") -> "DiffMode":
        if isinstance(value, DiffMode):
            return value
        if value is not None and str(value).strip().lower() == cls.STAGED.value:
            return cls.STAGED
        return cls.WORKING


@dataclass(slots=True, frozen=True)
class DiffResult:
    diff: str
    is_binary: bool

    @classmethod
    def from_text(cls, text: str) -> "DiffResult":
        return cls(diff=text, is_binary=any(marker in text for marker in BINARY_MARKERS))

    def to_dict(self) -> dict[str, Any]:
        return {"diff": self.diff, "is_binary": self.is_binary}


def relative_to_workspace(workspace: Path, file_path: Path | str) -> str:
    """Return ``file_path`` relative to ``workspace`` when it lies inside it."""

    candidate = Path(file_path)
    if candidate.is_absolute():
        try:
            candidate = candidate.relative_to(workspace)
        except ValueError:
            try:
                candidate = candidate.resolve().relative_to(workspace.resolve())
            except ValueError:
                pass
    return candidate.as_posix()


def run_git_diff(git: GitClient, repo: Path, *args: str) -> str:
    """Run ``git diff``; exit status 1 means differences were found."""

    result = git.run(repo, "diff", *args)
    if result.returncode > 1:
        detail = result.stderr.strip() or f"exit code {result.returncode}"
        raise CommandFailedError(f"Git diff failed: {detail}", result)
    return result.stdout


def is_untracked(git: GitClient, repo: Path, rel_path: str) -> bool:
    try:
        result = git.run(repo, "ls-files", "--error-unmatch", "--", rel_path)
    except ProcessRunnerError:
        return False
    return not result.ok


def get_diff(
    workspace: Path | str,
    file_path: Path | str,
    mode: DiffMode | str = DiffMode.WORKING,
    git: GitClient | None = None,
) -> DiffResult:
    """Return the diff of one file in the working tree or the index.

    A brand-new untracked file has no diff against the index, so it is
    compared against ``/dev/null`` instead and shows up as fully added.
    """

    repo = ensure_repository(workspace)
    git = git or GitClient()
    mode = DiffMode.parse(mode)
    rel_path = relative_to_workspace(repo, file_path)

    args = ["--no-color", "--patch"]
    if mode is DiffMode.STAGED:
        args.append("--cached")
    diff_text = run_git_diff(git, repo, *args, "--", rel_path)

    if not diff_text and mode is DiffMode.WORKING and is_untracked(git, repo, rel_path):
        logger.debug("Diffing untracked file against /dev/null", extra={"path": rel_path})
        diff_text = run_git_diff(
            git, repo, "--no-color", "--patch", "--no-index", "--", "/dev/null", rel_path
        )

    return DiffResult.from_text(diff_text)


__all__ = [
    "BINARY_MARKERS",
    "DiffMode",
    "DiffResult",
    "get_diff",
    "is_untracked",
    "relative_to_workspace",
    "run_git_diff",
]
