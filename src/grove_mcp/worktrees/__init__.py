"""Worktree lifecycle, session binding and aggregate reports."""

from .dashboard import DashboardAggregator, DashboardReport
from .lifecycle import (
    PruneResult,
    WorktreeCreateResult,
    WorktreeListing,
    WorktreeManager,
    WorktreeRemoveResult,
)
from .sessions import SessionLaunch, WorktreeSessions
from .status import StatusAggregator, StatusReport
from .swarm import SwarmReport, SwarmRunner

__all__ = [
    "DashboardAggregator",
    "DashboardReport",
    "PruneResult",
    "SessionLaunch",
    "StatusAggregator",
    "StatusReport",
    "SwarmReport",
    "SwarmRunner",
    "WorktreeCreateResult",
    "WorktreeListing",
    "WorktreeManager",
    "WorktreeRemoveResult",
    "WorktreeSessions",
]
