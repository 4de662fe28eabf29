"""Dashboard joining recorded sessions with live git and host state."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..errors import HostRpcError, WorktreeNotFoundError
from ..formatting import first_line, render_notes, render_table
from ..git import summarize_status
from ..host import HostClient, unwrap_response
from ..storage import SessionEntry, SessionStateStore
from .lifecycle import STATUS_ARGS, WorktreeManager


def format_timestamp(value: Any) -> str:
    """Host times are epoch milliseconds; stored times are ISO strings."""

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()
        except (OverflowError, OSError, ValueError):
            return "-"
    if isinstance(value, str) and value.strip():
        return value
    return "-"


@dataclass(slots=True)
class DashboardRow:
    entry: SessionEntry
    branch: str
    dirty: str
    updated_at: str
    notes: list[str] = field(default_factory=list)

    def cells(self) -> list[str]:
        return [
            self.entry.branch,
            self.branch,
            self.entry.worktree_path,
            self.entry.session_id,
            self.dirty,
            self.updated_at,
        ]


@dataclass(slots=True)
class DashboardReport:
    rows: list[DashboardRow]
    state_path: str

    @property
    def notes(self) -> list[str]:
        return [note for row in self.rows for note in row.notes]

    def render(self) -> str:
        table = render_table(
            ["task/name", "branch", "worktreePath", "sessionID", "dirty?", "updatedAt"],
            [row.cells() for row in self.rows],
        )
        sections = [f"Worktree dashboard ({len(self.rows)}):\n{table}", f"State: {self.state_path}"]
        notes = self.notes
        if notes:
            sections.append(render_notes(notes))
        return "\n\n".join(sections)


class DashboardAggregator:
    """Fan out branch, dirty and host lookups for every recorded session."""

    def __init__(
        self,
        manager: WorktreeManager,
        host: HostClient,
        state_store: SessionStateStore,
    ) -> None:
        self._manager = manager
        self._host = host
        self._state_store = state_store

    async def _branch(self, entry: SessionEntry) -> tuple[str, str | None]:
        result = await self._manager.runner.run(
            ["rev-parse", "--abbrev-ref", "HEAD"], cwd=entry.worktree_path
        )
        if not result.ok:
            return entry.branch, first_line(result.stderr or result.stdout or "branch lookup failed")
        name = result.stdout.strip()
        if not name:
            return entry.branch, None
        if name == "HEAD":
            return "(detached)", None
        return name, None

    async def _dirty(self, entry: SessionEntry) -> tuple[str, str | None]:
        result = await self._manager.runner.run(STATUS_ARGS, cwd=entry.worktree_path)
        if not result.ok:
            return "error", first_line(result.stderr or result.stdout or "status failed")
        return ("clean" if summarize_status(result.stdout).clean else "dirty"), None

    async def _updated_at(self, entry: SessionEntry, fallback: str) -> tuple[str, str | None]:
        try:
            data = unwrap_response(await self._host.get_session(entry.session_id), "Session lookup")
        except HostRpcError as exc:
            return fallback, first_line(exc.render())
        times = data.get("time") if isinstance(data, dict) else None
        updated = times.get("updated") if isinstance(times, dict) else None
        return format_timestamp(updated), None

    async def _row(self, entry: SessionEntry) -> DashboardRow:
        fallback = format_timestamp(entry.created_at)
        if not os.path.exists(entry.worktree_path):
            return DashboardRow(
                entry=entry,
                branch=entry.branch,
                dirty="missing",
                updated_at=fallback,
                notes=[f"{entry.worktree_path}: missing on disk"],
            )

        (branch, branch_note), (dirty, dirty_note), (updated, session_note) = await asyncio.gather(
            self._branch(entry),
            self._dirty(entry),
            self._updated_at(entry, fallback),
        )
        notes = []
        if branch_note:
            notes.append(f"{entry.worktree_path}: {branch_note}")
        if dirty_note:
            notes.append(f"{entry.worktree_path}: {dirty_note}")
        if session_note:
            notes.append(f"Session {entry.session_id}: {session_note}")
        return DashboardRow(entry=entry, branch=branch, dirty=dirty, updated_at=updated, notes=notes)

    async def collect(self) -> DashboardReport:
        state = self._state_store.read()
        if not state.entries:
            raise WorktreeNotFoundError(
                "No worktree sessions recorded.",
                hint='Run worktree_make { "action": "start" } to create a mapping.',
            )
        rows = await asyncio.gather(*(self._row(entry) for entry in state.entries))
        return DashboardReport(rows=list(rows), state_path=str(self._state_store.path))


__all__ = ["DashboardAggregator", "DashboardReport", "DashboardRow", "format_timestamp"]
