"""Async runner for the git CLI."""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from ..errors import GitCommandError
from ..formatting import first_non_empty_line, format_command
from .utils import sanitize_environment

BINARY_NOT_FOUND_EXIT = 127


@dataclass(slots=True)
class GitCommandResult:
    """Holds the outcome of a git invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        return format_command(["git", *self.args])


class GitRunner:
    """Execute git commands asynchronously.

    ``run`` never raises: a missing executable is reported the way a shell
    would, with exit code 127.
    """

    def __init__(self, executable: str | Path | None = None) -> None:
        self._executable = self._resolve_executable(executable)

    @staticmethod
    def _resolve_executable(explicit: str | Path | None) -> str:
        if explicit is not None:
            return str(explicit)
        return shutil.which("git") or "git"

    @property
    def executable(self) -> str:
        return self._executable

    async def version(self) -> GitCommandResult:
        return await self.run(["--version"])

    async def run(self, args: Sequence[str], *, cwd: str | Path | None = None) -> GitCommandResult:
        return await self._invoke(tuple(args), cwd)

    async def _invoke(self, args: tuple[str, ...], cwd: str | Path | None) -> GitCommandResult:
        try:
            process = await asyncio.create_subprocess_exec(
                self._executable,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd) if cwd is not None else None,
                env=sanitize_environment(),
            )
        except FileNotFoundError as exc:
            missing = exc.filename or self._executable
            if cwd is not None and str(missing) == str(cwd):
                message = f"{cwd}: No such file or directory"
            else:
                message = f"{self._executable}: command not found"
            return GitCommandResult(
                args=args, returncode=BINARY_NOT_FOUND_EXIT, stdout="", stderr=message
            )
        except OSError as exc:
            return GitCommandResult(
                args=args, returncode=BINARY_NOT_FOUND_EXIT, stdout="", stderr=str(exc)
            )

        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace").rstrip()
        stderr = stderr_bytes.decode("utf-8", errors="replace").rstrip()
        return GitCommandResult(args=args, returncode=process.returncode, stdout=stdout, stderr=stderr)


class FakeGitRunner(GitRunner):
    """Test double that answers git invocations through a handler."""

    def __init__(  # type: ignore[override]
        self,
        handler: Callable[[tuple[str, ...], str | None], GitCommandResult | None] | None = None,
    ) -> None:
        self._handler = handler
        self._invocations: list[tuple[tuple[str, ...], str | None]] = []
        self._executable = "/tmp/fake-git"

    async def _invoke(  # type: ignore[override]
        self, args: tuple[str, ...], cwd: str | Path | None
    ) -> GitCommandResult:
        cwd_text = str(cwd) if cwd is not None else None
        self._invocations.append((args, cwd_text))
        if self._handler is not None:
            result = self._handler(args, cwd_text)
            if result is not None:
                return result
        return GitCommandResult(args=args, returncode=0, stdout="", stderr="")

    @property
    def invocations(self) -> list[tuple[tuple[str, ...], str | None]]:
        return self._invocations

    def commands(self) -> list[tuple[str, ...]]:
        return [args for args, _ in self._invocations]


def classify_git_failure(result: GitCommandResult, hint: str | None = None) -> GitCommandError:
    """Map a failed git result to a user-facing error."""

    detail = first_non_empty_line(result.stderr or result.stdout)
    lowered = detail.lower()

    if "not a git repository" in lowered:
        return GitCommandError(
            "Not a git repository.",
            cause=GitCommandError.NOT_A_REPOSITORY,
            hint="Run this tool from inside a git repository.",
            command=result.command,
        )

    if (
        result.returncode == BINARY_NOT_FOUND_EXIT
        or "command not found" in lowered
        or "no such file or directory" in lowered
    ):
        return GitCommandError(
            "Git is not installed or not on PATH.",
            cause=GitCommandError.BINARY_NOT_FOUND,
            hint="Install git and ensure it is available on your PATH.",
            command=result.command,
        )

    return GitCommandError(
        "Git command failed.",
        cause=GitCommandError.COMMAND_FAILED,
        hint=hint,
        command=result.command,
        details=detail or None,
    )


__all__ = [
    "FakeGitRunner",
    "GitCommandResult",
    "GitRunner",
    "classify_git_failure",
]
