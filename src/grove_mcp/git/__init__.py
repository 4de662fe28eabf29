"""Git subprocess orchestration and output parsing."""

from .porcelain import StatusSummary, WorktreeRecord, parse_worktree_list, summarize_status
from .runner import FakeGitRunner, GitCommandResult, GitRunner, classify_git_failure

__all__ = [
    "FakeGitRunner",
    "GitCommandResult",
    "GitRunner",
    "StatusSummary",
    "WorktreeRecord",
    "classify_git_failure",
    "parse_worktree_list",
    "summarize_status",
]
