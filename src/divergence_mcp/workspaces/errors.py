"""Errors raised while provisioning or tearing down workspaces."""

from __future__ import annotations


class WorkspaceError(RuntimeError):
    """Raised when a workspace cannot be created or removed."""


class PathOutsideRootError(WorkspaceError):
    """Raised before any deletion when a path escapes the workspaces root."""


__all__ = ["PathOutsideRootError", "WorkspaceError"]
