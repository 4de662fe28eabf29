from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from grove_mcp.git import FakeGitRunner, GitCommandResult
from grove_mcp.storage import ModeStore, SessionStateStore

MAIN_HEAD = "1111111111111111111111111111111111111111"


class ScriptedGit:
    """Answers the git commands Grove issues against an in-memory worktree table."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = str(repo_root)
        self.worktrees: list[dict[str, Any]] = [
            {"path": self.repo_root, "head": MAIN_HEAD, "branch": "main"}
        ]
        self.branches: set[str] = {"main"}
        self.dirty: dict[str, str] = {}
        self.failures: list[tuple[tuple[str, ...], GitCommandResult]] = []
        self.prune_output = ""
        self.status_errors: dict[str, str] = {}
        self.runner = FakeGitRunner(self.handle)

    def fail(self, prefix: tuple[str, ...], *, returncode: int = 128, stderr: str = "fatal: boom") -> None:
        self.failures.append(
            (prefix, GitCommandResult(args=prefix, returncode=returncode, stdout="", stderr=stderr))
        )

    def add_worktree(self, path: Path | str, branch: str | None, **extra: Any) -> None:
        self.worktrees.append({"path": str(path), "head": MAIN_HEAD, "branch": branch, **extra})
        if branch:
            self.branches.add(branch)

    def porcelain(self) -> str:
        blocks = []
        for worktree in self.worktrees:
            lines = [f"worktree {worktree['path']}", f"HEAD {worktree['head']}"]
            if worktree.get("branch"):
                lines.append(f"branch refs/heads/{worktree['branch']}")
            else:
                lines.append("detached")
            if worktree.get("locked"):
                lines.append("locked")
            if worktree.get("prunable"):
                lines.append("prunable gitdir file points to non-existent location")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks) + "\n"

    def _ok(self, args: tuple[str, ...], stdout: str = "") -> GitCommandResult:
        return GitCommandResult(args=args, returncode=0, stdout=stdout, stderr="")

    def _worktree_for(self, cwd: str | None) -> dict[str, Any] | None:
        return next((wt for wt in self.worktrees if wt["path"] == cwd), None)

    def _toplevel(self, cwd: str | None) -> str:
        # Innermost known worktree containing ``cwd``; unknown locations map to the main one.
        containing = [
            wt["path"]
            for wt in self.worktrees
            if cwd is not None and (cwd == wt["path"] or cwd.startswith(wt["path"] + "/"))
        ]
        return max(containing, key=len) if containing else self.repo_root

    def handle(self, args: tuple[str, ...], cwd: str | None) -> GitCommandResult | None:
        for prefix, result in self.failures:
            if args[: len(prefix)] == prefix:
                return GitCommandResult(
                    args=args, returncode=result.returncode, stdout="", stderr=result.stderr
                )

        if args == ("rev-parse", "--show-toplevel"):
            return self._ok(args, self._toplevel(cwd))
        if args == ("worktree", "list", "--porcelain"):
            return self._ok(args, self.porcelain())
        if args[:1] == ("show-ref",):
            branch = args[-1].removeprefix("refs/heads/")
            if branch in self.branches:
                return self._ok(args)
            return GitCommandResult(args=args, returncode=1, stdout="", stderr="")
        if args == ("status", "--porcelain"):
            if cwd in self.status_errors:
                return GitCommandResult(
                    args=args, returncode=128, stdout="", stderr=self.status_errors[cwd]
                )
            return self._ok(args, self.dirty.get(cwd or "", ""))
        if args == ("rev-parse", "--abbrev-ref", "HEAD"):
            worktree = self._worktree_for(cwd)
            return self._ok(args, (worktree or {}).get("branch") or "HEAD")
        if args[:2] == ("worktree", "add"):
            if args[2] == "-b":
                branch, path = args[3], args[4]
            else:
                path, branch = args[2], args[3]
            self.add_worktree(path, branch)
            return self._ok(args)
        if args[:2] == ("worktree", "remove"):
            self.worktrees = [wt for wt in self.worktrees if wt["path"] != args[-1]]
            return self._ok(args)
        if args[:2] == ("worktree", "prune"):
            return self._ok(args, self.prune_output)
        return None


class FakeHost:
    """In-memory stand-in for the host session API."""

    base_url = "http://host.test"

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.overrides: dict[str, dict[str, Any]] = {}
        self.sessions: dict[str, dict[str, Any]] = {}
        self._counter = 0

    def _next_id(self) -> str:
        self._counter += 1
        return f"ses_{self._counter}"

    def _answer(self, method: str, default: dict[str, Any]) -> dict[str, Any]:
        return self.overrides.get(method, default)

    async def create_session(self, directory: str, title: str) -> dict[str, Any]:
        self.calls.append(("create_session", (directory, title)))
        return self._answer("create_session", {"data": {"id": self._next_id(), "title": title}})

    async def fork_session(self, session_id: str, directory: str) -> dict[str, Any]:
        self.calls.append(("fork_session", (session_id, directory)))
        return self._answer("fork_session", {"data": {"id": self._next_id()}})

    async def update_session_title(self, session_id: str, title: str) -> dict[str, Any]:
        self.calls.append(("update_session_title", (session_id, title)))
        return self._answer("update_session_title", {"data": {"id": session_id, "title": title}})

    async def get_session(self, session_id: str) -> dict[str, Any]:
        self.calls.append(("get_session", (session_id,)))
        if session_id in self.sessions:
            return {"data": self.sessions[session_id]}
        return self._answer("get_session", {"error": {"message": "Session not found"}})

    async def open_sessions_ui(self) -> dict[str, Any]:
        self.calls.append(("open_sessions_ui", ()))
        return self._answer("open_sessions_ui", {"data": True})

    def called(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    root.mkdir()
    return root


@pytest.fixture
def git(repo_root: Path) -> ScriptedGit:
    return ScriptedGit(repo_root)


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def state_store(tmp_path: Path) -> SessionStateStore:
    return SessionStateStore(tmp_path / "config" / "grove" / "state.json")


@pytest.fixture
def mode_store(tmp_path: Path) -> ModeStore:
    return ModeStore(tmp_path / "config" / "grove" / "mode.json")
