"""Divergence MCP: branch-scoped workspaces, git status and tmux sessions."""

__version__ = "0.1.0"

__all__ = ["__version__"]
