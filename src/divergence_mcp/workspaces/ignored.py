"""Carry git-ignored files from a source repository into a workspace."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path, PurePosixPath
from typing import Iterable, Sequence

from ..vcs.git import GitClient
from .errors import WorkspaceError

logger = logging.getLogger(__name__)


def list_ignored_paths(repo: Path, git: GitClient) -> list[str]:
    """Return every ignored, untracked path of ``repo`` relative to its root."""

    result = git.check(
        repo,
        "ls-files",
        "--others",
        "-i",
        "--exclude-standard",
        "-z",
        message="Failed to list ignored files",
    )
    decoded = result.stdout_bytes.decode("utf-8", errors="replace")
    return [part for part in decoded.split("\0") if part]


def should_skip_path(path: str, skip_list: Iterable[str]) -> bool:
    """Match ``path`` against skip entries.

    Entries containing ``/`` match the exact path or anything below it; bare
    entries match any single path component.
    """

    normalized_path = path.replace("\\", "/")
    components = PurePosixPath(normalized_path).parts

    for entry in skip_list:
        normalized = entry.strip().replace("\\", "/").rstrip("/")
        if not normalized:
            continue
        if "/" in normalized:
            if normalized_path == normalized or normalized_path.startswith(normalized + "/"):
                return True
        elif normalized in components:
            return True
    return False


def copy_tree(source: Path, destination: Path) -> int:
    """Copy a directory tree without recursion; returns the number of entries copied.

    Symlinks are recreated as links and never followed.
    """

    copied = 0
    stack: list[tuple[Path, Path]] = [(source, destination)]
    while stack:
        src_dir, dest_dir = stack.pop()
        dest_dir.mkdir(parents=True, exist_ok=True)
        for entry in src_dir.iterdir():
            target = dest_dir / entry.name
            if entry.is_symlink():
                shutil.copy2(entry, target, follow_symlinks=False)
                copied += 1
            elif entry.is_dir():
                stack.append((entry, target))
            elif entry.is_file():
                shutil.copy2(entry, target)
                copied += 1
    return copied


def copy_ignored_paths(
    source: Path,
    destination: Path,
    skip_list: Sequence[str] = (),
    git: GitClient | None = None,
) -> list[str]:
    """Copy ignored paths from ``source`` to ``destination`` honoring ``skip_list``.

    Returns the relative paths that were copied.
    """

    git = git or GitClient()
    copied: list[str] = []
    skipped = 0

    for relative in list_ignored_paths(source, git):
        if should_skip_path(relative, skip_list):
            skipped += 1
            continue

        src_path = source / relative
        dest_path = destination / relative
        try:
            if src_path.is_symlink():
                dest_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src_path, dest_path, follow_symlinks=False)
            elif src_path.is_dir():
                copy_tree(src_path, dest_path)
            elif src_path.is_file():
                dest_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src_path, dest_path)
            else:
                continue
        except OSError as exc:
            raise WorkspaceError(f"Failed to copy {src_path}: {exc}") from exc
        copied.append(relative)

    logger.info(
        "Copied ignored paths",
        extra={"source": str(source), "copied": len(copied), "skipped": skipped},
    )
    return copied


__all__ = ["copy_ignored_paths", "copy_tree", "list_ignored_paths", "should_skip_path"]
