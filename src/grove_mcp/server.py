"""FastMCP server bootstrap for Grove."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastmcp import Context, FastMCP

from . import __version__
from .config import GroveSettings, get_settings
from .errors import GroveError
from .git import GitRunner
from .host import HostClient
from .storage import ModeStore, SessionStateStore
from .tools import register_tools


def configure_logging(level: str) -> None:
    """Configure root logging for the Grove server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def _run_sync(coro):
    """Execute an async coroutine on a dedicated event loop."""

    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def status_payload(
    settings: GroveSettings,
    *,
    host: HostClient,
    git_metadata: dict[str, object],
    mode_store: ModeStore,
    state_store: SessionStateStore,
) -> dict[str, object]:
    mode_payload: dict[str, object] = {"path": str(mode_store.path)}
    try:
        mode = mode_store.read()
        mode_payload.update({"enabled": mode.enabled, "updated_at": mode.updated_at})
    except GroveError as exc:
        mode_payload["error"] = exc.title

    state_payload: dict[str, object] = {"path": str(state_store.path)}
    try:
        state = state_store.read()
        state_payload.update(
            {
                "entries": len(state.entries),
                "dropped": state.dropped,
                "recent": [entry.to_payload() for entry in state.entries[-5:]],
            }
        )
    except GroveError as exc:
        state_payload["error"] = exc.title

    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "server_version": __version__,
        "log_level": settings.log_level,
        "repo_path": str(settings.repo_path),
        "host_url": host.base_url,
        "git": git_metadata,
        "mode": mode_payload,
        "sessions": state_payload,
    }


def create_server(
    settings: Optional[GroveSettings] = None,
    runner: GitRunner | None = None,
    host: HostClient | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server with the worktree tools."""

    settings = settings or get_settings()
    runner = runner or GitRunner(settings.git_path)
    host = host or HostClient(settings.host_url, timeout=settings.host_timeout)
    mode_store = ModeStore(settings.mode_path)
    state_store = SessionStateStore(settings.state_path)

    git_metadata = {
        "executable": runner.executable,
        "available": False,
        "version": None,
        "error": None,
    }
    version_result = _run_sync(runner.version())
    if version_result.ok:
        git_metadata["available"] = True
        git_metadata["version"] = version_result.stdout.strip()
    else:
        git_metadata["error"] = (
            version_result.stderr.strip()
            or f"git --version failed with exit code {version_result.returncode}"
        )

    server = FastMCP(
        name="Grove MCP",
        version=__version__,
        instructions=(
            "Grove manages git worktrees as isolated workspaces bound to agent sessions. "
            "Turn it on with worktree_mode, then create, inspect, and clean up worktrees "
            "with worktree_make, worktree_overview, and worktree_cleanup."
        ),
    )

    handles = register_tools(
        server,
        settings=settings,
        runner=runner,
        host=host,
        mode_store=mode_store,
        state_store=state_store,
    )

    @server.resource(
        "resource://grove/status",
        name="grove_status",
        title="Grove MCP Status",
        description="Provides the current runtime status for the Grove MCP server.",
        mime_type="application/json",
        tags={"status", "health"},
    )
    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing basic runtime state."""

        payload = status_payload(
            settings,
            host=host,
            git_metadata=git_metadata,
            mode_store=mode_store,
            state_store=state_store,
        )
        payload["request_id"] = getattr(context, "request_id", None)
        return json.dumps(payload)

    setattr(server, "git_runner", runner)
    setattr(server, "git_metadata", git_metadata)
    setattr(server, "host_client", host)
    setattr(server, "mode_store", mode_store)
    setattr(server, "state_store", state_store)
    setattr(server, "tool_handles", handles)
    return server


def main() -> None:
    """Entry point for running the Grove MCP server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    logging.getLogger(__name__).info(
        "Launching Grove MCP server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "git_available": getattr(server, "git_metadata", {}).get("available"),
            "repo_path": str(settings.repo_path),
        },
    )
    server.run()


if __name__ == "__main__":
    main()
