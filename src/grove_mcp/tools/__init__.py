"""Tool registration for Grove MCP."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal

from fastmcp import Context, FastMCP

from ..config import GroveSettings
from ..errors import GroveError, InvalidInputError
from ..git import GitRunner
from ..host import HostClient
from ..paths import worktree_root
from ..storage import ModeStore, SessionStateStore
from ..worktrees import (
    DashboardAggregator,
    StatusAggregator,
    SwarmRunner,
    WorktreeManager,
    WorktreeSessions,
)

TOOL_CATALOG = [
    {
        "id": "worktree_mode",
        "summary": "Enable/disable worktree mode and show help.",
        "examples": [
            "worktree_mode",
            'worktree_mode { "action": "on" }',
            'worktree_mode { "action": "off" }',
        ],
    },
    {
        "id": "worktree_overview",
        "summary": "List, status, or dashboard worktrees.",
        "examples": [
            "worktree_overview",
            'worktree_overview { "view": "status" }',
            'worktree_overview { "view": "dashboard" }',
        ],
    },
    {
        "id": "worktree_make",
        "summary": "Create or open worktrees and sessions.",
        "examples": [
            'worktree_make { "action": "create", "name": "feature audit" }',
            'worktree_make { "action": "start", "name": "feature audit", "open_sessions": true }',
            'worktree_make { "action": "open", "path_or_branch": "feature/audit" }',
            'worktree_make { "action": "swarm", "tasks": ["api docs", "login bug"] }',
        ],
    },
    {
        "id": "worktree_cleanup",
        "summary": "Remove or prune worktrees safely; forget deleted sessions.",
        "examples": [
            'worktree_cleanup { "action": "remove", "path_or_branch": "feature/audit" }',
            'worktree_cleanup { "action": "prune", "dry_run": true }',
            'worktree_cleanup { "action": "forget", "session_id": "ses_123" }',
        ],
    },
]


@dataclass(slots=True)
class ToolHandles:
    worktree_mode: Any
    worktree_overview: Any
    worktree_make: Any
    worktree_cleanup: Any
    forget_session: Callable[[str], int]
    manager: WorktreeManager


def build_help(enabled: bool, mode_path: str, default_root: str | None = None) -> str:
    lines = [f"Worktree mode: {'ON' if enabled else 'OFF'}", f"State: {mode_path}"]
    if default_root:
        lines.append(f"Default worktree root: {default_root}")

    lines.extend(["", "Tools:"])
    lines.extend(f"- {entry['id']}: {entry['summary']}" for entry in TOOL_CATALOG)
    lines.extend(["", "Examples:"])
    for entry in TOOL_CATALOG:
        lines.extend(f"- {example}" for example in entry["examples"])
    return "\n".join(lines)


def register_tools(
    server: FastMCP,
    *,
    settings: GroveSettings,
    runner: GitRunner,
    host: HostClient,
    mode_store: ModeStore,
    state_store: SessionStateStore,
) -> ToolHandles:
    """Register Grove's MCP tools on the server."""

    manager = WorktreeManager(runner, cwd=settings.repo_path)
    sessions = WorktreeSessions(manager, host, state_store)
    status = StatusAggregator(manager)
    dashboard = DashboardAggregator(manager, host, state_store)
    swarm = SwarmRunner(manager, host, state_store)

    async def _gated(
        tool: str,
        action: str,
        fn: Callable[[], Awaitable[Any]],
        context: Context | None,
    ) -> str:
        try:
            mode_store.ensure_enabled()
            result = await fn()
        except GroveError as exc:
            _emit_log(
                context,
                "warning",
                "Worktree tool failed",
                extra={"tool": tool, "action": action, "kind": exc.kind.value, "title": exc.title},
            )
            return exc.render()
        _emit_log(context, "debug", "Worktree tool finished", extra={"tool": tool, "action": action})
        return result.render()

    async def _worktree_mode(
        action: Literal["on", "off", "status", "help"] = "status",
        context: Context | None = None,
    ) -> str:
        """Enable/disable worktree mode or show help."""

        try:
            if action in {"on", "off"}:
                mode_store.set(action == "on")
                _emit_log(context, "info", "Worktree mode toggled", extra={"action": action})
            state = mode_store.read()
        except GroveError as exc:
            return exc.render()

        try:
            default_root = worktree_root(await manager.repo_root())
        except GroveError:
            default_root = None

        help_text = build_help(state.enabled, str(mode_store.path), default_root)
        if action in {"status", "help"}:
            return help_text
        return f"Worktree mode is now {'ON' if state.enabled else 'OFF'}.\n\n{help_text}"

    async def _worktree_overview(
        view: Literal["list", "status", "dashboard"] = "list",
        path: str | None = None,
        all: bool | None = None,
        porcelain: bool = False,
        context: Context | None = None,
    ) -> str:
        """Show worktrees as a list, a status table, or the session dashboard."""

        async def _run():
            if view == "dashboard":
                return await dashboard.collect()
            if view == "status":
                return await status.collect(
                    path=path,
                    include_all=True if all is None else all,
                    porcelain=porcelain,
                )
            return await manager.list_report()

        return await _gated("worktree_overview", view, _run, context)

    async def _worktree_make(
        action: Literal["create", "start", "open", "fork", "swarm"],
        name: str | None = None,
        branch: str | None = None,
        base: str | None = None,
        path: str | None = None,
        path_or_branch: str | None = None,
        open_sessions: bool = False,
        tasks: list[str] | None = None,
        prefix: str | None = None,
        force: bool = False,
        session_id: str | None = None,
        context: Context | None = None,
    ) -> str:
        """Create worktrees, bind sessions to them, or fan out a swarm."""

        source_session = session_id or settings.session_id
        target = {
            "name": name,
            "branch": branch,
            "base": base,
            "path": path,
            "path_or_branch": path_or_branch,
        }

        async def _run():
            if action == "create":
                if not name and not branch:
                    raise InvalidInputError(
                        "Name or branch is required.",
                        hint="Provide name (for derived branch) or an explicit branch.",
                    )
                return await manager.create(name=name, branch=branch, base=base, path=path)
            if action == "start":
                return await sessions.start(open_sessions_ui=open_sessions, **target)
            if action == "open":
                return await sessions.open(open_sessions_ui=open_sessions, **target)
            if action == "fork":
                return await sessions.fork(source_session, open_sessions_ui=open_sessions, **target)
            return await swarm.run(
                source_session,
                tasks,
                prefix=prefix if prefix is not None else settings.swarm_prefix,
                force=force,
                open_sessions_ui=open_sessions,
            )

        return await _gated("worktree_make", action, _run, context)

    def _forget_session(session_id: str) -> int:
        """Drop mappings for a session the host reports as deleted."""

        removed = state_store.remove_mappings(session_id)
        _emit_log(None, "info", "Forgot session", extra={"session_id": session_id, "removed": removed})
        return removed

    async def _worktree_cleanup(
        action: Literal["remove", "prune", "forget"],
        path_or_branch: str | None = None,
        force: bool = False,
        dry_run: bool = False,
        session_id: str | None = None,
        context: Context | None = None,
    ) -> str:
        """Remove one worktree, prune stale metadata, or forget a deleted session."""

        if action == "forget":
            # Session deletions are reported by the host whether or not the mode is on.
            target = (session_id or "").strip()
            try:
                if not target:
                    raise InvalidInputError(
                        "session_id is required.",
                        hint="Pass the ID of the session the host deleted.",
                    )
                removed = _forget_session(target)
            except GroveError as exc:
                return exc.render()
            return "\n".join(
                [
                    f"Forgot session {target}.",
                    f"Removed mappings: {removed}",
                    f"State: {state_store.path}",
                ]
            )

        async def _run():
            if action == "prune":
                return await manager.prune(dry_run=dry_run)
            if not path_or_branch:
                raise InvalidInputError(
                    "pathOrBranch is required.",
                    hint="Provide a worktree path or branch name.",
                )
            return await manager.remove(path_or_branch, force=force)

        return await _gated("worktree_cleanup", action, _run, context)

    tool_mode = server.tool(
        name="worktree_mode",
        description=TOOL_CATALOG[0]["summary"],
    )(_worktree_mode)

    tool_overview = server.tool(
        name="worktree_overview",
        description=TOOL_CATALOG[1]["summary"],
    )(_worktree_overview)

    tool_make = server.tool(
        name="worktree_make",
        description=TOOL_CATALOG[2]["summary"],
        annotations={"destructiveHint": False, "idempotentHint": False},
    )(_worktree_make)

    tool_cleanup = server.tool(
        name="worktree_cleanup",
        description=TOOL_CATALOG[3]["summary"],
        annotations={"destructiveHint": True},
    )(_worktree_cleanup)

    return ToolHandles(
        worktree_mode=tool_mode,
        worktree_overview=tool_overview,
        worktree_make=tool_make,
        worktree_cleanup=tool_cleanup,
        forget_session=_forget_session,
        manager=manager,
    )


__all__ = ["ToolHandles", "TOOL_CATALOG", "build_help", "register_tools"]

logger = logging.getLogger(__name__)


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)
