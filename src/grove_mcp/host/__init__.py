"""Client for the host platform's session RPCs."""

from .client import HostClient, open_sessions, require_id, set_session_title, unwrap_response

__all__ = [
    "HostClient",
    "open_sessions",
    "require_id",
    "set_session_title",
    "unwrap_response",
]
