"""Batch creation of worktree + forked-session pairs."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Sequence

from ..errors import FilesystemError, GroveError, InvalidInputError
from ..formatting import first_line, render_notes, render_table
from ..host import HostClient, open_sessions, require_id, set_session_title, unwrap_response
from ..paths import default_worktree_path, normalize_branch_name
from ..storage import SessionEntry, SessionStateStore
from ..storage.models import utc_now_iso
from .lifecycle import WorktreeManager
from .sessions import session_title

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "wt/"


@dataclass(slots=True)
class SwarmRow:
    task: str
    branch: str = "-"
    worktree_path: str = "-"
    session_id: str = "-"
    status: str = "-"

    def cells(self) -> list[str]:
        return [self.task, self.branch, self.worktree_path, self.session_id, self.status]


@dataclass(slots=True)
class SwarmReport:
    rows: list[SwarmRow]
    total: int
    state_path: str
    notes: list[str] = field(default_factory=list)

    @property
    def created(self) -> int:
        return sum(1 for row in self.rows if row.status.startswith("created"))

    def render(self) -> str:
        table = render_table(
            ["task", "branch", "worktreePath", "sessionID", "status"],
            [row.cells() for row in self.rows] or [["-"] * 5],
        )
        sections = [
            f"Swarm results ({self.created}/{self.total} created):\n{table}",
            f"State: {self.state_path}",
            "Next steps:\n- Open sessions UI and pick a task session",
        ]
        if self.notes:
            sections.append(render_notes(self.notes))
        return "\n\n".join(sections)


class SwarmRunner:
    """Create one worktree and forked session per task, strictly one at a time.

    Each task reads and rewrites the session-state record and races on
    ``git worktree add``; running tasks concurrently would corrupt both.
    """

    def __init__(
        self,
        manager: WorktreeManager,
        host: HostClient,
        state_store: SessionStateStore,
    ) -> None:
        self._manager = manager
        self._host = host
        self._state_store = state_store

    async def _run_task(
        self,
        raw: str,
        *,
        source_session_id: str,
        repo_root: str,
        prefix: str,
        force: bool,
        notes: list[str],
    ) -> SwarmRow:
        task = raw.strip()
        if not task:
            return SwarmRow(task=raw, status="skipped: empty task")

        normalized = normalize_branch_name(task)
        if not normalized:
            return SwarmRow(task=task, status="skipped: invalid task name")

        branch = f"{prefix.strip()}{normalized}"
        worktree_path = default_worktree_path(repo_root, branch)
        row = SwarmRow(task=task, branch=branch, worktree_path=worktree_path)

        try:
            exists = await self._manager.branch_exists(repo_root, branch)
            if exists and not force:
                row.status = "skipped: branch exists"
                return row
            if os.path.exists(worktree_path) and not force:
                row.status = "skipped: path exists"
                return row

            created = await self._manager.create(name=task, branch=branch, repo_root=repo_root)
            response = await self._host.fork_session(source_session_id, created.worktree_path)
            session_id = require_id(unwrap_response(response, "Session fork"), "Session fork")
        except GroveError as exc:
            row.status = "error"
            notes.append(f"{branch}: {first_line(exc.render())}")
            return row

        row.session_id = session_id
        statuses = ["created"]

        title_error = await set_session_title(self._host, session_id, session_title(created.branch))
        if title_error:
            statuses.append("title update failed")
            notes.append(f"Session {session_id}: {first_line(title_error)}")

        try:
            self._state_store.store_mapping(
                SessionEntry(
                    worktree_path=created.worktree_path,
                    branch=created.branch,
                    session_id=session_id,
                    created_at=utc_now_iso(),
                )
            )
        except FilesystemError as exc:
            statuses.append("state write failed")
            notes.append(f"{branch}: {first_line(exc.render())}")

        row.status = ", ".join(statuses)
        logger.info("Swarm task created", extra={"branch": branch, "session_id": session_id})
        return row

    async def run(
        self,
        source_session_id: str | None,
        tasks: Sequence[str] | None,
        *,
        prefix: str | None = None,
        force: bool = False,
        open_sessions_ui: bool = False,
    ) -> SwarmReport:
        if not source_session_id:
            raise InvalidInputError(
                "Current session ID is unavailable.",
                hint="Pass session_id or set GROVE_SESSION_ID to the session to fork.",
            )
        if not tasks:
            raise InvalidInputError(
                "Tasks array is required.",
                hint="Provide one or more task names.",
            )

        repo_root = await self._manager.repo_root()
        effective_prefix = DEFAULT_PREFIX if prefix is None else prefix

        rows: list[SwarmRow] = []
        notes: list[str] = []
        for raw in tasks:
            rows.append(
                await self._run_task(
                    raw,
                    source_session_id=source_session_id,
                    repo_root=repo_root,
                    prefix=effective_prefix,
                    force=force,
                    notes=notes,
                )
            )

        if open_sessions_ui:
            open_error = await open_sessions(self._host)
            if open_error:
                notes.append(f"Open sessions failed: {first_line(open_error)}")

        return SwarmReport(
            rows=rows, total=len(tasks), state_path=str(self._state_store.path), notes=notes
        )


__all__ = ["DEFAULT_PREFIX", "SwarmReport", "SwarmRow", "SwarmRunner"]
