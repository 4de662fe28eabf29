"""Attach host sessions to worktrees (start / open / fork)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..errors import FilesystemError, InvalidInputError, WorktreeNotFoundError
from ..formatting import first_line, render_notes
from ..host import HostClient, open_sessions, require_id, set_session_title, unwrap_response
from ..paths import (
    LIST_HINT,
    find_worktree_match,
    normalize_branch_name,
    paths_equal,
    resolve_worktree_path,
    select_single_match,
)
from ..storage import SessionEntry, SessionStateStore
from ..storage.models import utc_now_iso
from .lifecycle import WorktreeManager

logger = logging.getLogger(__name__)


def session_title(branch: str) -> str:
    return f"wt:{branch}"


@dataclass(slots=True)
class SessionTarget:
    branch: str
    worktree_path: str
    created: bool
    command: str | None = None
    branch_exists: bool = True
    base: str | None = None


@dataclass(slots=True)
class SessionLaunch:
    """Outcome of start/open/fork, rendered for the host."""

    target: SessionTarget
    session_id: str
    title: str
    state_path: str
    base_requested: bool = False
    open_requested: bool = False
    open_failed: bool = False
    notes: list[str] = field(default_factory=list)

    def _next_steps(self) -> str:
        if not self.open_requested:
            open_label = "set openSessions: true (or run /sessions)"
        elif self.open_failed:
            open_label = "retry with openSessions: true (or run /sessions)"
        else:
            open_label = "already opened"
        return "\n".join(
            [
                "Next steps:",
                f"- Open sessions UI: {open_label}",
                f"- Select session {self.session_id}",
            ]
        )

    def render(self) -> str:
        target = self.target
        lines = [
            "Worktree session created.",
            f"Branch: {target.branch}",
            f"Worktree: {target.worktree_path}",
            f"Mode: {'created new worktree' if target.created else 'existing worktree'}",
            f"Session: {self.session_id}",
            f"Title: {self.title}",
        ]
        if target.command:
            lines.append(f"Command: {target.command}")
        if target.created and target.base and not target.branch_exists:
            lines.append(f"Base: {target.base}")
        elif target.created and target.branch_exists and self.base_requested:
            lines.append("Note: Base ignored because the branch already exists.")
        lines.append(f"State: {self.state_path}")
        if self.notes:
            lines.append(render_notes(self.notes))
        lines.append(self._next_steps())
        return "\n".join(lines)


def _branch_from_input(name: str | None, branch: str | None) -> str:
    branch_input = (branch or "").strip()
    name_input = (name or "").strip()
    if not branch_input and not name_input:
        raise InvalidInputError(
            "Name or branch is required.",
            hint="Provide name (for derived branch) or an explicit branch.",
        )
    resolved = branch_input or normalize_branch_name(name_input)
    if not resolved:
        raise InvalidInputError(
            "Unable to derive a valid branch name.",
            hint="Provide an explicit branch name.",
        )
    return resolved


class WorktreeSessions:
    """Resolve or create a worktree, then bind a host session to it."""

    def __init__(
        self,
        manager: WorktreeManager,
        host: HostClient,
        state_store: SessionStateStore,
    ) -> None:
        self._manager = manager
        self._host = host
        self._state_store = state_store

    async def resolve_target(
        self,
        *,
        name: str | None = None,
        branch: str | None = None,
        base: str | None = None,
        path: str | None = None,
        path_or_branch: str | None = None,
        require_existing: bool = False,
    ) -> SessionTarget:
        repo_root = await self._manager.repo_root()
        records = await self._manager.list_worktrees(repo_root)

        lookup = (path_or_branch or "").strip()
        if lookup:
            match = select_single_match(find_worktree_match(records, repo_root, lookup))
            return SessionTarget(branch=match.label, worktree_path=match.path, created=False)

        path_input = (path or "").strip()
        if path_input:
            resolved = resolve_worktree_path(repo_root, path_input)
            existing = next((record for record in records if paths_equal(record.path, resolved)), None)
            if existing is not None:
                return SessionTarget(branch=existing.label, worktree_path=existing.path, created=False)
            if require_existing:
                raise WorktreeNotFoundError("Worktree path not found.", hint=LIST_HINT)

        branch_name = _branch_from_input(name, branch)
        by_branch = next((record for record in records if record.branch == branch_name), None)
        if by_branch is not None:
            return SessionTarget(branch=by_branch.label, worktree_path=by_branch.path, created=False)

        if require_existing:
            raise WorktreeNotFoundError(
                "No worktree matches the provided value.",
                hint='Use worktree_make { "action": "create" } to create one first.',
            )

        created = await self._manager.create(
            name=(name or "").strip() or branch_name,
            branch=branch_name,
            base=base,
            path=path,
            repo_root=repo_root,
        )
        return SessionTarget(
            branch=created.branch,
            worktree_path=created.worktree_path,
            created=True,
            command=created.command,
            branch_exists=created.branch_exists,
            base=created.base,
        )

    def _record(self, target: SessionTarget, session_id: str) -> None:
        entry = SessionEntry(
            worktree_path=target.worktree_path,
            branch=target.branch,
            session_id=session_id,
            created_at=utc_now_iso(),
        )
        try:
            self._state_store.store_mapping(entry)
        except FilesystemError as exc:
            raise FilesystemError(
                exc.title,
                hint=f"Session {session_id} exists for {target.worktree_path} but was not recorded.",
                details=exc.details,
            ) from exc

    async def _finish(
        self,
        target: SessionTarget,
        session_id: str,
        *,
        base: str | None,
        open_ui: bool,
        notes: list[str],
    ) -> SessionLaunch:
        self._record(target, session_id)

        open_error = await open_sessions(self._host) if open_ui else None
        if open_error:
            notes.append(f"Open sessions failed: {first_line(open_error)}")

        logger.info(
            "Bound session to worktree",
            extra={"session_id": session_id, "worktree_path": target.worktree_path},
        )
        return SessionLaunch(
            target=target,
            session_id=session_id,
            title=session_title(target.branch),
            state_path=str(self._state_store.path),
            base_requested=bool(base),
            open_requested=open_ui,
            open_failed=bool(open_error),
            notes=notes,
        )

    async def _create_session(self, target: SessionTarget) -> str:
        response = await self._host.create_session(target.worktree_path, session_title(target.branch))
        return require_id(unwrap_response(response, "Session create"), "Session create")

    async def start(self, *, open_sessions_ui: bool = False, **options) -> SessionLaunch:
        target = await self.resolve_target(require_existing=False, **options)
        session_id = await self._create_session(target)
        return await self._finish(
            target, session_id, base=options.get("base"), open_ui=open_sessions_ui, notes=[]
        )

    async def open(self, *, open_sessions_ui: bool = False, **options) -> SessionLaunch:
        if not any((options.get(key) or "").strip() for key in ("path_or_branch", "path", "name", "branch")):
            raise InvalidInputError(
                "Path or branch is required.",
                hint="Provide pathOrBranch, path, name, or branch to open.",
            )
        target = await self.resolve_target(require_existing=True, **options)
        session_id = await self._create_session(target)
        return await self._finish(
            target, session_id, base=options.get("base"), open_ui=open_sessions_ui, notes=[]
        )

    async def fork(
        self,
        source_session_id: str | None,
        *,
        open_sessions_ui: bool = False,
        **options,
    ) -> SessionLaunch:
        if not source_session_id:
            raise InvalidInputError(
                "Current session ID is unavailable.",
                hint="Pass session_id or set GROVE_SESSION_ID to the session to fork.",
            )

        target = await self.resolve_target(require_existing=False, **options)
        response = await self._host.fork_session(source_session_id, target.worktree_path)
        session_id = require_id(unwrap_response(response, "Session fork"), "Session fork")

        notes: list[str] = []
        title_error = await set_session_title(self._host, session_id, session_title(target.branch))
        if title_error:
            notes.append(f"Session title update failed: {first_line(title_error)}")

        return await self._finish(
            target, session_id, base=options.get("base"), open_ui=open_sessions_ui, notes=notes
        )


__all__ = ["SessionLaunch", "SessionTarget", "WorktreeSessions", "session_title"]
