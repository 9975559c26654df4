"""Synchronous runner for external command-line tools."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from .utils import sanitize_environment

logger = logging.getLogger(__name__)


class ProcessRunnerError(RuntimeError):
    """Base class for process runner errors."""


class ToolNotFoundError(ProcessRunnerError):
    """Raised when an executable cannot be located."""

    def __init__(self, executable: str, message: str | None = None) -> None:
        super().__init__(message or f"Executable not found: {executable}")
        self.executable = executable


class CommandFailedError(ProcessRunnerError):
    """Raised when a tool ran but reported a non-success status."""

    def __init__(self, message: str, result: "CommandResult") -> None:
        super().__init__(message)
        self.result = result


@dataclass(slots=True)
class CommandResult:
    """Holds the outcome of a tool invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    stdout_bytes: bytes = field(default=b"", repr=False)

    def __post_init__(self) -> None:
        if not self.stdout_bytes and self.stdout:
            self.stdout_bytes = self.stdout.encode("utf-8")

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def check(self, message: str) -> "CommandResult":
        """Return ``self`` on success, otherwise raise with the tool's stderr."""

        if self.ok:
            return self
        detail = self.stderr.strip() or self.stdout.strip() or f"exit code {self.returncode}"
        raise CommandFailedError(f"{message}: {detail}", self)


class ProcessRunner:
    """Execute external commands and capture their output."""

    def run(
        self,
        executable: str | Path,
        *args: str,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        return self._invoke(str(executable), *args, cwd=cwd, env=env)

    def _invoke(
        self,
        executable: str,
        *args: str,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        if cwd is not None and not Path(cwd).is_dir():
            raise ProcessRunnerError(f"Working directory does not exist: {cwd}")

        cmd = [executable, *args]
        logger.debug("Running command", extra={"command": cmd, "cwd": str(cwd) if cwd else None})
        try:
            completed = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd is not None else None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=sanitize_environment(env),
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(executable) from exc
        except OSError as exc:
            raise ProcessRunnerError(f"Failed to execute {executable}: {exc}") from exc

        return CommandResult(
            args=tuple(cmd),
            returncode=completed.returncode,
            stdout=completed.stdout.decode("utf-8", errors="replace"),
            stderr=completed.stderr.decode("utf-8", errors="replace"),
            stdout_bytes=completed.stdout,
        )


class FakeProcessRunner(ProcessRunner):
    """Test double that replays queued command results."""

    def __init__(self, responses: Iterable[CommandResult | Exception] | None = None) -> None:
        self._responses = list(responses or [])
        self._invocations: list[tuple[str, ...]] = []

    def _invoke(  # type: ignore[override]
        self,
        executable: str,
        *args: str,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        self._invocations.append((executable, *args))
        if self._responses:
            response = self._responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return CommandResult(args=(executable, *args), returncode=0, stdout="", stderr="")

    @property
    def invocations(self) -> list[tuple[str, ...]]:
        return self._invocations
