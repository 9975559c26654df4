"""Workspace provisioning and teardown."""

from .errors import PathOutsideRootError, WorkspaceError
from .ignored import copy_ignored_paths, should_skip_path
from .models import DivergenceMode, DivergenceWorkspace
from .provisioner import WorkspaceProvisioner, workspace_dir_name
from .teardown import delete_workspace, ensure_within_root

__all__ = [
    "DivergenceMode",
    "DivergenceWorkspace",
    "PathOutsideRootError",
    "WorkspaceError",
    "WorkspaceProvisioner",
    "copy_ignored_paths",
    "delete_workspace",
    "ensure_within_root",
    "should_skip_path",
    "workspace_dir_name",
]
