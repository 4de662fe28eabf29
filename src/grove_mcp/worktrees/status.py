"""Per-worktree status report, gathered concurrently."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field

from ..errors import WorktreeNotFoundError
from ..formatting import first_line, format_command, render_notes, render_table
from ..git import WorktreeRecord, summarize_status
from ..paths import LIST_HINT, paths_equal, resolve_worktree_path
from .lifecycle import LIST_ARGS, STATUS_ARGS, WorktreeManager

CLEAN = "clean"
DIRTY = "dirty"
MISSING = "missing"
PRUNABLE = "prunable"
ERROR = "error"


@dataclass(slots=True)
class StatusRow:
    record: WorktreeRecord
    state: str
    staged: int | None = None
    unstaged: int | None = None
    untracked: int | None = None
    porcelain: str | None = None
    note: str | None = None

    def cells(self) -> list[str]:
        def _count(value: int | None) -> str:
            return "-" if value is None else str(value)

        return [
            self.record.label,
            self.record.path,
            self.state,
            _count(self.staged),
            _count(self.unstaged),
            _count(self.untracked),
        ]


@dataclass(slots=True)
class StatusReport:
    rows: list[StatusRow]
    include_porcelain: bool = False
    notes: list[str] = field(default_factory=list)

    def render(self) -> str:
        table = render_table(
            ["branch", "path", "status", "staged", "unstaged", "untracked"],
            [row.cells() for row in self.rows] or [["-"] * 6],
        )
        sections = [f"Worktree status:\n{table}"]
        if self.notes:
            sections.append(render_notes(self.notes))
        if self.include_porcelain:
            details: list[str] = []
            for row in self.rows:
                details.extend(
                    [f"{row.record.path} ({row.record.label})", "```", row.porcelain or "", "```"]
                )
            if details:
                sections.append("Porcelain output:\n" + "\n".join(details))
        list_command = format_command(["git", *LIST_ARGS])
        status_command = format_command(["git", *STATUS_ARGS])
        sections.append(f"Commands:\n- {list_command}\n- {status_command} (per worktree)")
        return "\n\n".join(sections)


class StatusAggregator:
    """Run ``git status`` across worktrees without letting one failure spoil the rest."""

    def __init__(self, manager: WorktreeManager) -> None:
        self._manager = manager

    async def _inspect(self, record: WorktreeRecord) -> StatusRow:
        if not os.path.exists(record.path):
            return StatusRow(
                record=record,
                state=PRUNABLE if record.prunable else MISSING,
                porcelain="(missing)",
            )

        result = await self._manager.runner.run(STATUS_ARGS, cwd=record.path)
        if not result.ok:
            message = first_line(result.stderr or result.stdout) or "status failed"
            return StatusRow(
                record=record,
                state=ERROR,
                porcelain=f"(error) {message}",
                note=f"{record.path}: {message}",
            )

        summary = summarize_status(result.stdout)
        return StatusRow(
            record=record,
            state=CLEAN if summary.clean else DIRTY,
            staged=summary.staged,
            unstaged=summary.unstaged,
            untracked=summary.untracked,
            porcelain="(clean)" if summary.clean else "\n".join(summary.lines),
        )

    def _select(
        self,
        records: list[WorktreeRecord],
        repo_root: str,
        *,
        path: str | None,
        include_all: bool,
    ) -> list[WorktreeRecord]:
        if path:
            resolved = resolve_worktree_path(repo_root, path)
            targets = [record for record in records if paths_equal(record.path, resolved)]
            if not targets:
                raise WorktreeNotFoundError("Worktree path not found.", hint=LIST_HINT)
            return targets
        if include_all:
            return records
        # ``repo_root`` is the top level of the worktree the server runs in.
        current = next(
            (record for record in records if paths_equal(record.path, repo_root)),
            None,
        )
        return [current] if current is not None else records[:1]

    async def collect(
        self,
        *,
        path: str | None = None,
        include_all: bool = True,
        porcelain: bool = False,
    ) -> StatusReport:
        repo_root = await self._manager.repo_root()
        records = await self._manager.list_worktrees(repo_root)
        targets = self._select(records, repo_root, path=path, include_all=include_all)

        rows = list(await asyncio.gather(*(self._inspect(record) for record in targets)))
        notes = [row.note for row in rows if row.note]
        return StatusReport(rows=rows, include_porcelain=porcelain, notes=notes)


__all__ = ["StatusAggregator", "StatusReport", "StatusRow"]
