"""tmux session registry and executable resolution."""

from .environment import EnvironmentResolver, get_tmux_resolver
from .naming import (
    SESSION_PREFIX,
    build_legacy_session_name,
    build_session_name,
    build_split_session_name,
    is_owned_session,
    sanitize_session_label,
)
from .ownership import (
    AnnotatedSession,
    SessionDivergence,
    SessionOwnership,
    SessionProject,
    annotate_sessions,
    build_ownership_map,
    count_orphan_sessions,
)
from .registry import SessionError, SessionOwnershipError, SessionRegistry, TerminalSession

__all__ = [
    "AnnotatedSession",
    "EnvironmentResolver",
    "SESSION_PREFIX",
    "SessionDivergence",
    "SessionError",
    "SessionOwnership",
    "SessionOwnershipError",
    "SessionProject",
    "SessionRegistry",
    "TerminalSession",
    "annotate_sessions",
    "build_legacy_session_name",
    "build_ownership_map",
    "build_session_name",
    "build_split_session_name",
    "count_orphan_sessions",
    "get_tmux_resolver",
    "is_owned_session",
    "sanitize_session_label",
]
