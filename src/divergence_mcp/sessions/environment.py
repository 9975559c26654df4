"""Locate the tmux executable when launched with a minimal environment.

GUI-launched processes usually inherit a bare ``PATH`` that misses package
manager prefixes such as ``/opt/homebrew/bin``. The resolver asks the user's
login shell for its ``PATH`` once and reuses the answer.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Sequence

from ..config import get_settings
from ..process import ProcessRunner, ProcessRunnerError
from ..process.utils import merge_search_paths

logger = logging.getLogger(__name__)

COMMON_BIN_DIRS: tuple[str, ...] = (
    "/opt/homebrew/bin",
    "/usr/local/bin",
    "/opt/local/bin",
    "/home/linuxbrew/.linuxbrew/bin",
    "/usr/bin",
    "/bin",
)
DEFAULT_SHELL = "/bin/sh"

_UNSET = object()


def is_executable(path: Path | str) -> bool:
    candidate = Path(path)
    return candidate.is_file() and os.access(candidate, os.X_OK)


def search_directories(name: str, directories: Sequence[str]) -> Path | None:
    for directory in directories:
        if not directory:
            continue
        candidate = Path(directory) / name
        if is_executable(candidate):
            return candidate
    return None


class EnvironmentResolver:
    """Resolve an executable and the login-shell ``PATH``, each computed once."""

    def __init__(
        self,
        executable_name: str = "tmux",
        *,
        override: str | None = None,
        runner: ProcessRunner | None = None,
        shell: str | None = None,
        fallback_dirs: Sequence[str] = COMMON_BIN_DIRS,
    ) -> None:
        self._name = executable_name
        self._override = override
        self._runner = runner or ProcessRunner()
        self._shell = shell
        self._fallback_dirs = tuple(fallback_dirs)
        self._lock = threading.Lock()
        self._login_path: object = _UNSET
        self._executable: object = _UNSET

    @property
    def executable_name(self) -> str:
        return self._name

    def login_shell_path(self) -> str | None:
        """``PATH`` as seen by ``$SHELL -l``; None when the shell gives nothing usable."""

        if self._login_path is _UNSET:
            with self._lock:
                if self._login_path is _UNSET:
                    self._login_path = self._query_login_shell()
        return self._login_path  # type: ignore[return-value]

    def resolve_executable(self) -> Path | None:
        if self._executable is _UNSET:
            # _search() takes the lock itself through login_shell_path().
            resolved = self._search()
            with self._lock:
                if self._executable is _UNSET:
                    self._executable = resolved
        return self._executable  # type: ignore[return-value]

    def environment(self) -> dict[str, str]:
        """Environment overlay giving child processes the login-shell ``PATH``."""

        merged = merge_search_paths(self.login_shell_path(), os.environ.get("PATH"))
        return {"PATH": merged} if merged else {}

    def _query_login_shell(self) -> str | None:
        shell = self._shell or os.environ.get("SHELL") or DEFAULT_SHELL
        try:
            result = self._runner.run(shell, "-l", "-c", 'printf "%s\\n" "$PATH"')
        except ProcessRunnerError as exc:
            logger.debug("Login shell unavailable", extra={"shell": shell, "error": str(exc)})
            return None
        if not result.ok:
            logger.debug(
                "Login shell PATH query failed",
                extra={"shell": shell, "returncode": result.returncode},
            )
            return None
        # Profile scripts may print banners; the PATH is the last line.
        lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        return lines[-1] if lines else None

    def _search(self) -> Path | None:
        if self._override:
            if is_executable(self._override):
                return Path(self._override)
            logger.warning(
                "Ignoring executable override",
                extra={"override": self._override, "executable": self._name},
            )

        login_path = self.login_shell_path()
        for search_path in (login_path, os.environ.get("PATH")):
            if not search_path:
                continue
            found = search_directories(self._name, search_path.split(os.pathsep))
            if found is not None:
                return found

        found = search_directories(self._name, self._fallback_dirs)
        if found is None:
            logger.info("Executable not found", extra={"executable": self._name})
        return found


_default_resolver: EnvironmentResolver | None = None
_default_lock = threading.Lock()


def get_tmux_resolver(override: str | None = None) -> EnvironmentResolver:
    """Return the process-wide resolver for tmux.

    ``override`` is only consulted by the call that creates the resolver and
    defaults to the configured ``tmux_path``.
    """

    global _default_resolver
    if _default_resolver is None:
        with _default_lock:
            if _default_resolver is None:
                if override is None:
                    override = get_settings().tmux_path
                _default_resolver = EnvironmentResolver("tmux", override=override)
    return _default_resolver


__all__ = [
    "COMMON_BIN_DIRS",
    "EnvironmentResolver",
    "get_tmux_resolver",
    "is_executable",
    "search_directories",
]
