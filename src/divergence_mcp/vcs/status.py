"""Parsing of ``git status --porcelain=v2 -z`` output into change records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from .git import GitClient, ensure_repository

logger = logging.getLogger(__name__)

_UNCHANGED = "."


class ChangeStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"
    UNMERGED = "unmerged"
    UNTRACKED = "untracked"
    UNKNOWN = "unknown"
    IGNORED = "ignored"

    @classmethod
    def from_code(cls, code: str) -> "ChangeStatus":
        """Map a single git status letter to a status."""

        return _CODE_MAP.get(code, cls.UNKNOWN)

    @property
    def code(self) -> str:
        """Single-letter form for compact display."""

        return _LETTERS[self]


_CODE_MAP = {
    "A": ChangeStatus.ADDED,
    "M": ChangeStatus.MODIFIED,
    "T": ChangeStatus.MODIFIED,
    "D": ChangeStatus.DELETED,
    "R": ChangeStatus.RENAMED,
    "C": ChangeStatus.COPIED,
    "U": ChangeStatus.UNMERGED,
    "?": ChangeStatus.UNTRACKED,
    "!": ChangeStatus.IGNORED,
}

_LETTERS = {
    ChangeStatus.ADDED: "A",
    ChangeStatus.MODIFIED: "M",
    ChangeStatus.DELETED: "D",
    ChangeStatus.RENAMED: "R",
    ChangeStatus.COPIED: "C",
    ChangeStatus.UNMERGED: "U",
    ChangeStatus.UNTRACKED: "?",
    ChangeStatus.UNKNOWN: "X",
    ChangeStatus.IGNORED: "!",
}


@dataclass(slots=True, frozen=True)
class ChangeRecord:
    path: str
    status: ChangeStatus
    staged: bool
    unstaged: bool
    untracked: bool = False
    old_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "old_path": self.old_path,
            "status": self.status.value,
            "code": self.status.code,
            "staged": self.staged,
            "unstaged": self.unstaged,
            "untracked": self.untracked,
        }


def change_from_xy(path: str, xy: str, old_path: str | None = None) -> ChangeRecord:
    """Build a record from the two-character index/worktree status."""

    index_state = xy[0] if len(xy) > 0 else _UNCHANGED
    worktree_state = xy[1] if len(xy) > 1 else _UNCHANGED

    if index_state != _UNCHANGED:
        status = ChangeStatus.from_code(index_state)
    elif worktree_state != _UNCHANGED:
        status = ChangeStatus.from_code(worktree_state)
    else:
        status = ChangeStatus.UNKNOWN

    return ChangeRecord(
        path=path,
        old_path=old_path,
        status=status,
        staged=index_state != _UNCHANGED,
        unstaged=worktree_state != _UNCHANGED,
    )


def parse_porcelain_v2(output: bytes | str) -> list[ChangeRecord]:
    """Parse a NUL-delimited porcelain v2 stream.

    Malformed records are skipped; ignored entries are dropped.
    """

    if isinstance(output, bytes):
        output = output.decode("utf-8", errors="replace")
    parts = [part for part in output.split("\0") if part]

    changes: list[ChangeRecord] = []
    index = 0
    while index < len(parts):
        part = parts[index]
        tag = part[0]

        if tag == "1":
            fields = part.split(" ", 8)
            if len(fields) == 9:
                changes.append(change_from_xy(fields[8], fields[1]))
            else:
                logger.debug("Skipping malformed status record", extra={"record": part})
        elif tag == "2":
            fields = part.split(" ", 9)
            if len(fields) == 10:
                old_path = parts[index + 1] if index + 1 < len(parts) else None
                changes.append(change_from_xy(fields[9], fields[1], old_path))
                index += 1
            else:
                logger.debug("Skipping malformed status record", extra={"record": part})
        elif tag == "u":
            fields = part.split(" ", 10)
            if len(fields) == 11:
                changes.append(
                    ChangeRecord(
                        path=fields[10],
                        status=ChangeStatus.UNMERGED,
                        staged=True,
                        unstaged=True,
                    )
                )
            else:
                logger.debug("Skipping malformed status record", extra={"record": part})
        elif tag == "?":
            path = part[2:] if part.startswith("? ") else ""
            if path:
                changes.append(
                    ChangeRecord(
                        path=path,
                        status=ChangeStatus.UNTRACKED,
                        staged=False,
                        unstaged=False,
                        untracked=True,
                    )
                )

        index += 1

    return changes


def list_changes(workspace: Path | str, git: GitClient | None = None) -> list[ChangeRecord]:
    """Return the working tree and index changes of ``workspace``."""

    repo = ensure_repository(workspace)
    git = git or GitClient()
    result = git.check(repo, "status", "--porcelain=v2", "-z", message="Failed to list git changes")
    return parse_porcelain_v2(result.stdout_bytes)


__all__ = [
    "ChangeRecord",
    "ChangeStatus",
    "change_from_xy",
    "list_changes",
    "parse_porcelain_v2",
]
