"""Enumerate and terminate tmux sessions created by Divergence."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from ..process import ProcessRunner, ToolNotFoundError
from .environment import EnvironmentResolver, get_tmux_resolver
from .naming import SESSION_PREFIX, is_owned_session

logger = logging.getLogger(__name__)

LIST_FORMAT = "\t".join(
    [
        "#{session_name}",
        "#{session_created}",
        "#{session_attached}",
        "#{session_windows}",
        "#{session_activity}",
    ]
)

_NO_SERVER_MARKERS = (
    "no server running",
    "failed to connect to server",
    "error connecting to",
    "no sessions",
)
_MISSING_SESSION_MARKERS = ("can't find session", "session not found")


class SessionError(RuntimeError):
    """Raised when tmux rejects a session operation."""


class SessionOwnershipError(SessionError):
    """Raised for session names outside the Divergence namespace."""


@dataclass(slots=True, frozen=True)
class TerminalSession:
    name: str
    created: str
    attached: bool
    window_count: int
    activity: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def epoch_to_timestamp(value: str) -> str:
    """Convert tmux epoch seconds to RFC 3339; empty string when unparseable."""

    try:
        return datetime.fromtimestamp(int(value.strip()), tz=timezone.utc).isoformat()
    except (ValueError, OverflowError, OSError):
        return ""


def _parse_int(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def parse_session_lines(output: str, prefix: str = SESSION_PREFIX) -> list[TerminalSession]:
    sessions: list[TerminalSession] = []
    for line in output.splitlines():
        fields = line.split("\t")
        if len(fields) < 5 or not is_owned_session(fields[0], prefix):
            continue
        name, created, attached, windows, activity = fields[:5]
        sessions.append(
            TerminalSession(
                name=name,
                created=epoch_to_timestamp(created),
                attached=_parse_int(attached) > 0,
                window_count=_parse_int(windows),
                activity=epoch_to_timestamp(activity),
            )
        )
    return sessions


def _matches(stderr: str, markers: Iterable[str]) -> bool:
    lowered = stderr.lower()
    return any(marker in lowered for marker in markers)


class SessionRegistry:
    """Lifecycle operations on the tmux sessions this tool owns."""

    def __init__(
        self,
        resolver: EnvironmentResolver | None = None,
        runner: ProcessRunner | None = None,
        prefix: str = SESSION_PREFIX,
    ) -> None:
        self._resolver = resolver
        self._runner = runner or ProcessRunner()
        self._prefix = prefix

    @property
    def resolver(self) -> EnvironmentResolver:
        if self._resolver is None:
            self._resolver = get_tmux_resolver()
        return self._resolver

    @property
    def prefix(self) -> str:
        return self._prefix

    def owns(self, name: str) -> bool:
        return is_owned_session(name, self._prefix)

    def list_sessions(self) -> list[TerminalSession]:
        """Return owned sessions; an idle host or missing tmux yields an empty list."""

        executable = self.resolver.resolve_executable()
        if executable is None:
            return []

        try:
            result = self._runner.run(
                executable, "list-sessions", "-F", LIST_FORMAT, env=self.resolver.environment()
            )
        except ToolNotFoundError:
            return []

        if not result.ok:
            if _matches(result.stderr, _NO_SERVER_MARKERS):
                return []
            raise SessionError(f"Failed to list tmux sessions: {result.stderr.strip()}")

        return parse_session_lines(result.stdout, self._prefix)

    def kill_session(self, name: str) -> None:
        """Kill ``name``; sessions that are already gone count as killed."""

        if not self.owns(name):
            raise SessionOwnershipError(
                f"Refusing to kill session {name!r}: not a {self._prefix.rstrip('-')} session"
            )

        executable = self.resolver.resolve_executable()
        if executable is None:
            return

        try:
            # "=" forces an exact match instead of tmux's prefix matching.
            result = self._runner.run(
                executable, "kill-session", "-t", f"={name}", env=self.resolver.environment()
            )
        except ToolNotFoundError:
            return

        if result.ok or _matches(result.stderr, _MISSING_SESSION_MARKERS + _NO_SERVER_MARKERS):
            logger.info("Killed tmux session", extra={"session": name})
            return
        raise SessionError(f"Failed to kill tmux session: {result.stderr.strip()}")

    def kill_sessions(self, names: Iterable[str]) -> int:
        killed = 0
        for name in names:
            self.kill_session(name)
            killed += 1
        return killed


__all__ = [
    "LIST_FORMAT",
    "SessionError",
    "SessionOwnershipError",
    "SessionRegistry",
    "TerminalSession",
    "epoch_to_timestamp",
    "parse_session_lines",
]
