"""Durable records: worktree mode and session mappings."""

from .mode import ModeStore
from .models import ModeState, SessionEntry, SessionState
from .state import SessionStateStore

__all__ = [
    "ModeState",
    "ModeStore",
    "SessionEntry",
    "SessionState",
    "SessionStateStore",
]
