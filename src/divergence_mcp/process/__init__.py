"""Subprocess orchestration utilities."""

from .runner import (
    CommandFailedError,
    CommandResult,
    FakeProcessRunner,
    ProcessRunner,
    ProcessRunnerError,
    ToolNotFoundError,
)

__all__ = [
    "CommandFailedError",
    "CommandResult",
    "FakeProcessRunner",
    "ProcessRunner",
    "ProcessRunnerError",
    "ToolNotFoundError",
]
