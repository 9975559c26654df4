"""Thin wrapper around the git command-line tool."""

from __future__ import annotations

import logging
from pathlib import Path

from ..process import (
    CommandResult,
    ProcessRunner,
    ProcessRunnerError,
    ToolNotFoundError,
)

logger = logging.getLogger(__name__)

REPOSITORY_MARKER = ".git"


class NotARepositoryError(ValueError):
    """Raised when a path does not hold a git repository."""

    def __init__(self, path: Path | str, message: str | None = None) -> None:
        super().__init__(message or f"Path is not a git repository: {path}")
        self.path = Path(path)


def is_git_repo(path: Path | str) -> bool:
    """Return True when ``path`` carries git metadata (a directory or worktree file)."""

    return (Path(path) / REPOSITORY_MARKER).exists()


def is_linked_worktree(path: Path | str) -> bool:
    """Linked worktrees keep a ``.git`` file pointing at the owning repository."""

    return (Path(path) / REPOSITORY_MARKER).is_file()


def ensure_repository(path: Path | str) -> Path:
    repo = Path(path)
    if not is_git_repo(repo):
        raise NotARepositoryError(repo)
    return repo


class GitClient:
    """Runs git subcommands against a working directory."""

    def __init__(self, runner: ProcessRunner | None = None, executable: str = "git") -> None:
        self._runner = runner or ProcessRunner()
        self._executable = executable

    @property
    def runner(self) -> ProcessRunner:
        return self._runner

    def run(self, repo: Path | str | None, *args: str) -> CommandResult:
        try:
            return self._runner.run(self._executable, *args, cwd=repo)
        except ToolNotFoundError as exc:
            raise ToolNotFoundError(self._executable, "git executable not found on PATH") from exc

    def check(self, repo: Path | str | None, *args: str, message: str) -> CommandResult:
        return self.run(repo, *args).check(message)

    def fetch_origin(self, repo: Path | str) -> None:
        """Best-effort fetch; remote or network failures never propagate."""

        try:
            result = self.run(repo, "fetch", "origin")
        except ProcessRunnerError as exc:
            logger.debug("Skipping fetch", extra={"repo": str(repo), "error": str(exc)})
            return
        if not result.ok:
            logger.debug(
                "Fetch from origin failed",
                extra={"repo": str(repo), "stderr": result.stderr.strip()},
            )

    def ref_exists(self, repo: Path | str, reference: str) -> bool:
        return self.run(repo, "show-ref", "--verify", "--quiet", reference).ok

    def remote_url(self, repo: Path | str, remote: str = "origin") -> str | None:
        result = self.run(repo, "remote", "get-url", remote)
        if not result.ok:
            return None
        url = result.stdout.strip()
        return url or None

    def set_remote_url(self, repo: Path | str, url: str, remote: str = "origin") -> None:
        """Point ``remote`` at ``url``, adding the remote when it does not exist."""

        if self.run(repo, "remote", "set-url", remote, url).ok:
            return
        self.check(repo, "remote", "add", remote, url, message=f"Failed to set {remote} URL")

    def checkout(self, repo: Path | str, branch: str, *, create: bool = False) -> None:
        args = ["checkout", "-b", branch] if create else ["checkout", branch]
        result = self.run(repo, *args)
        if result.ok:
            return
        if create:
            # Branch probably exists already.
            logger.debug("Branch creation failed, checking out", extra={"branch": branch})
            self.checkout(repo, branch, create=False)
            return
        result.check("Git checkout failed")

    def common_dir(self, repo: Path | str) -> Path:
        """Return the shared ``.git`` directory of a (possibly linked) working tree."""

        output = self.check(
            repo, "rev-parse", "--git-common-dir", message="Failed to locate repository"
        ).stdout.strip()
        path = Path(output)
        if not path.is_absolute():
            path = Path(repo) / path
        return path.resolve()


__all__ = [
    "GitClient",
    "NotARepositoryError",
    "REPOSITORY_MARKER",
    "ensure_repository",
    "is_git_repo",
    "is_linked_worktree",
]
