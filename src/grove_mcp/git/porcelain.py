"""Parsers for git's porcelain output formats."""

from __future__ import annotations

from dataclasses import dataclass, field

_BRANCH_PREFIX = "refs/heads/"


@dataclass(slots=True)
class WorktreeRecord:
    """One entry of ``git worktree list --porcelain``."""

    path: str
    head: str = ""
    branch: str | None = None
    detached: bool = False
    locked: bool = False
    lock_reason: str | None = None
    prunable: bool = False
    prunable_reason: str | None = None

    @property
    def label(self) -> str:
        if self.branch:
            return self.branch
        return "(detached)" if self.detached else "-"

    @property
    def short_head(self) -> str:
        return self.head[:7] if self.head else "-"


@dataclass(slots=True)
class StatusSummary:
    """Counts derived from ``git status --porcelain``."""

    staged: int = 0
    unstaged: int = 0
    untracked: int = 0
    lines: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.lines


def _strip_branch_ref(value: str) -> str:
    return value[len(_BRANCH_PREFIX):] if value.startswith(_BRANCH_PREFIX) else value


def parse_worktree_list(output: str) -> list[WorktreeRecord]:
    """Parse blank-line-delimited worktree blocks into records."""

    records: list[WorktreeRecord] = []
    current: WorktreeRecord | None = None

    for line in output.splitlines():
        if not line.strip():
            if current is not None:
                records.append(current)
            current = None
            continue

        key, _, value = line.partition(" ")
        value = value.strip()

        if key == "worktree":
            if current is not None:
                records.append(current)
            current = WorktreeRecord(path=value)
            continue

        if current is None:
            continue

        if key == "HEAD":
            current.head = value
        elif key == "branch":
            current.branch = _strip_branch_ref(value)
        elif key == "detached":
            current.detached = True
            current.branch = None
        elif key == "locked":
            current.locked = True
            current.lock_reason = value or None
        elif key == "prunable":
            current.prunable = True
            current.prunable_reason = value or None

    if current is not None:
        records.append(current)
    return records


def summarize_status(output: str) -> StatusSummary:
    """Summarize porcelain v1 status lines (``XY path``)."""

    summary = StatusSummary()
    for line in output.splitlines():
        if not line.strip():
            continue
        code = line[:2].ljust(2)
        if code == "!!":
            continue
        summary.lines.append(line)
        if code == "??":
            summary.untracked += 1
            continue
        if code[0] != " ":
            summary.staged += 1
        if code[1] != " ":
            summary.unstaged += 1
    return summary


__all__ = ["StatusSummary", "WorktreeRecord", "parse_worktree_list", "summarize_status"]
