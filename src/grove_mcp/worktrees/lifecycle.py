"""Create, list, remove and prune git worktrees."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from ..errors import FilesystemError, GitCommandError, InvalidInputError
from ..formatting import format_command, render_table
from ..git import (
    GitCommandResult,
    GitRunner,
    StatusSummary,
    WorktreeRecord,
    classify_git_failure,
    parse_worktree_list,
    summarize_status,
)
from ..paths import (
    default_worktree_path,
    find_worktree_match,
    normalize_branch_name,
    resolve_worktree_path,
    select_single_match,
)

logger = logging.getLogger(__name__)

LIST_ARGS = ("worktree", "list", "--porcelain")
STATUS_ARGS = ("status", "--porcelain")


@dataclass(slots=True)
class WorktreeListing:
    records: list[WorktreeRecord]

    def render(self) -> str:
        rows = [
            [
                record.label,
                record.path,
                record.short_head,
                "yes" if record.locked else "no",
                "yes" if record.prunable else "no",
            ]
            for record in self.records
        ]
        table = render_table(
            ["branch", "path", "head", "locked", "prunable"],
            rows or [["-", "-", "-", "-", "-"]],
        )
        command = format_command(["git", *LIST_ARGS])
        return f"Worktrees ({len(self.records)}):\n{table}\nCommand: {command}"


@dataclass(slots=True)
class WorktreeCreateResult:
    """A worktree that now exists, either freshly added or reused."""

    branch: str
    worktree_path: str
    base: str
    command: str
    branch_exists: bool
    base_requested: bool = False

    def base_line(self) -> str | None:
        if not self.branch_exists:
            return f"Base: {self.base}"
        if self.base_requested:
            return "Note: Base ignored because the branch already exists."
        return None

    def render(self) -> str:
        lines = [
            "Worktree created.",
            f"Branch: {self.branch}",
            f"Path: {self.worktree_path}",
            f"Command: {self.command}",
        ]
        base_line = self.base_line()
        if base_line:
            lines.append(base_line)
        return "\n".join(lines)


@dataclass(slots=True)
class WorktreeRemoveResult:
    record: WorktreeRecord
    command: str
    forced: bool

    def render(self) -> str:
        lines = [
            "Worktree removed.",
            f"Branch: {self.record.label}",
            f"Path: {self.record.path}",
            f"Command: {self.command}",
        ]
        if self.forced:
            lines.append("Note: Removed with --force.")
        return "\n".join(lines)


@dataclass(slots=True)
class PruneResult:
    command: str
    output: str

    def render(self) -> str:
        return "\n".join(
            [
                "Worktree prune complete.",
                f"Command: {self.command}",
                f"Output: {self.output}" if self.output else "Output: (none)",
            ]
        )


def _prepare_directory(worktree_path: str) -> None:
    """Create ``worktree_path`` if needed; it must end up an empty directory."""

    target = Path(worktree_path)
    if target.exists() and not target.is_dir():
        raise InvalidInputError(
            "Path exists and is not a directory.",
            hint=f"Choose a new path or remove {worktree_path}.",
        )
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError("Unable to prepare worktree directory.", details=str(exc)) from exc

    try:
        has_entries = any(target.iterdir())
    except OSError as exc:
        raise FilesystemError("Unable to inspect worktree contents.", details=str(exc)) from exc
    if has_entries:
        raise InvalidInputError(
            "Path exists and is not empty.",
            hint=f"Choose an empty directory or remove {worktree_path}.",
        )


class WorktreeManager:
    """Worktree state transitions on top of :class:`GitRunner`.

    Steps are not rolled back: a directory prepared for a ``git worktree
    add`` that later fails is left on disk.
    """

    def __init__(self, runner: GitRunner, *, cwd: str | Path) -> None:
        self._runner = runner
        self._cwd = Path(cwd)

    @property
    def runner(self) -> GitRunner:
        return self._runner

    @property
    def cwd(self) -> Path:
        return self._cwd

    async def _git(self, args, cwd: str | Path) -> GitCommandResult:
        result = await self._runner.run(args, cwd=cwd)
        logger.debug(
            "git finished",
            extra={"command": result.command, "cwd": str(cwd), "returncode": result.returncode},
        )
        return result

    async def repo_root(self) -> str:
        result = await self._git(["rev-parse", "--show-toplevel"], self._cwd)
        if not result.ok:
            raise classify_git_failure(result)
        root = result.stdout.strip()
        if not root:
            raise GitCommandError("Unable to resolve git repository root.", command=result.command)
        return root

    async def list_worktrees(self, repo_root: str) -> list[WorktreeRecord]:
        result = await self._git(LIST_ARGS, repo_root)
        if not result.ok:
            raise classify_git_failure(result)
        return parse_worktree_list(result.stdout)

    async def list_report(self) -> WorktreeListing:
        repo_root = await self.repo_root()
        return WorktreeListing(records=await self.list_worktrees(repo_root))

    async def branch_exists(self, repo_root: str, branch: str) -> bool:
        result = await self._git(
            ["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"], repo_root
        )
        if result.ok:
            return True
        if result.returncode == 1:
            return False
        raise classify_git_failure(result)

    async def status(self, worktree_path: str, *, hint: str | None = None) -> StatusSummary:
        result = await self._git(STATUS_ARGS, worktree_path)
        if not result.ok:
            raise classify_git_failure(result, hint)
        return summarize_status(result.stdout)

    async def create(
        self,
        *,
        name: str | None = None,
        branch: str | None = None,
        base: str | None = None,
        path: str | None = None,
        repo_root: str | None = None,
    ) -> WorktreeCreateResult:
        repo_root = repo_root or await self.repo_root()

        name_input = (name or "").strip()
        branch_input = (branch or "").strip()
        if not name_input and not branch_input:
            raise InvalidInputError(
                "Name or branch is required.",
                hint="Provide a logical name to derive the branch or an explicit branch.",
            )

        branch_name = branch_input or normalize_branch_name(name_input)
        if not branch_name:
            raise InvalidInputError(
                "Unable to derive a valid branch name.",
                hint="Provide an explicit branch name.",
            )

        check = await self._git(["check-ref-format", "--branch", branch_name], repo_root)
        if not check.ok:
            raise classify_git_failure(check, "Choose a different branch name.")

        base_ref = (base or "").strip() or "HEAD"
        worktree_path = (
            resolve_worktree_path(repo_root, path)
            if path
            else default_worktree_path(repo_root, branch_name)
        )

        _prepare_directory(worktree_path)

        exists = await self.branch_exists(repo_root, branch_name)
        if exists:
            args = ["worktree", "add", worktree_path, branch_name]
        else:
            args = ["worktree", "add", "-b", branch_name, worktree_path, base_ref]

        added = await self._git(args, repo_root)
        if not added.ok:
            raise classify_git_failure(added)

        logger.info(
            "Created worktree",
            extra={"branch": branch_name, "path": worktree_path, "branch_exists": exists},
        )
        return WorktreeCreateResult(
            branch=branch_name,
            worktree_path=worktree_path,
            base=base_ref,
            command=added.command,
            branch_exists=exists,
            base_requested=bool((base or "").strip()),
        )

    async def remove(self, path_or_branch: str, *, force: bool = False) -> WorktreeRemoveResult:
        value = path_or_branch.strip()
        if not value:
            raise InvalidInputError(
                "pathOrBranch is required.",
                hint="Provide a worktree path or branch name.",
            )

        repo_root = await self.repo_root()
        records = await self.list_worktrees(repo_root)
        target = select_single_match(find_worktree_match(records, repo_root, value))

        if not os.path.exists(target.path):
            raise InvalidInputError(
                "Worktree path does not exist.",
                hint=(
                    "If it was deleted manually, run "
                    'worktree_cleanup { "action": "prune" } instead.'
                ),
            )

        if not force:
            summary = await self.status(target.path, hint="Unable to check worktree status.")
            if not summary.clean:
                raise InvalidInputError(
                    "Worktree has uncommitted changes.",
                    hint="Re-run with force: true to remove anyway.",
                )

        args = ["worktree", "remove", "--force", target.path] if force else [
            "worktree",
            "remove",
            target.path,
        ]
        removed = await self._git(args, repo_root)
        if not removed.ok:
            raise classify_git_failure(removed)

        logger.info("Removed worktree", extra={"path": target.path, "force": force})
        return WorktreeRemoveResult(record=target, command=removed.command, forced=force)

    async def prune(self, *, dry_run: bool = False) -> PruneResult:
        repo_root = await self.repo_root()
        args = ["worktree", "prune", "--dry-run"] if dry_run else ["worktree", "prune"]
        result = await self._git(args, repo_root)
        if not result.ok:
            raise classify_git_failure(result)
        return PruneResult(command=result.command, output=result.stdout.strip())


__all__ = [
    "PruneResult",
    "WorktreeCreateResult",
    "WorktreeListing",
    "WorktreeManager",
    "WorktreeRemoveResult",
]
