"""Value objects describing divergence workspaces."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class DivergenceMode(str, Enum):
    CLONE = "clone"
    WORKTREE = "worktree"

    @classmethod
    def parse(cls, value: "DivergenceMode | str | None") -> "DivergenceMode":
        """Accept mode names case-insensitively; anything unrecognized means clone."""

        if isinstance(value, DivergenceMode):
            return value
        if value is not None and str(value).strip().lower() == cls.WORKTREE.value:
            return cls.WORKTREE
        return cls.CLONE


@dataclass(slots=True)
class DivergenceWorkspace:
    """Workspace descriptor handed back to the caller for persistence."""

    id: int
    project_id: int
    name: str
    branch: str
    path: str
    created_at: str
    has_diverged: bool
    mode: DivergenceMode

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["mode"] = self.mode.value
        return payload


__all__ = ["DivergenceMode", "DivergenceWorkspace"]
