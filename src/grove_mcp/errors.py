"""Error types surfaced by Grove tools.

Every failure carries a short title plus optional ``hint``, ``command`` and
``details`` fields. Text is produced only by :meth:`GroveError.render`, which
the tool layer calls right before answering the host.
"""

from __future__ import annotations

from enum import Enum

MAX_DETAIL_LENGTH = 200


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    SANDBOX_VIOLATION = "sandbox-violation"
    NOT_FOUND = "not-found"
    AMBIGUOUS = "ambiguous"
    GIT_COMMAND_FAILURE = "git-command-failure"
    IO_FAILURE = "io-failure"
    RPC_FAILURE = "rpc-failure"


def _trim_detail(value: str) -> str:
    if len(value) <= MAX_DETAIL_LENGTH:
        return value
    return f"{value[:MAX_DETAIL_LENGTH]}..."


class GroveError(RuntimeError):
    """Base class for all user-facing Grove failures."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(
        self,
        title: str,
        *,
        hint: str | None = None,
        command: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(title)
        self.title = title
        self.hint = hint
        self.command = command
        self.details = details

    def render(self) -> str:
        lines = [f"Error: {self.title}"]
        if self.hint:
            lines.append(f"Hint: {self.hint}")
        if self.command:
            lines.append(f"Command: {self.command}")
        if self.details:
            lines.append(f"Details: {_trim_detail(self.details)}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.render()


class InvalidInputError(GroveError):
    """Missing or malformed tool argument."""

    kind = ErrorKind.VALIDATION


class ModeDisabledError(InvalidInputError):
    """Raised when a gated tool runs while worktree mode is off."""


class SandboxViolationError(GroveError):
    """A relative worktree path resolved outside the worktree root."""

    kind = ErrorKind.SANDBOX_VIOLATION


class WorktreeNotFoundError(GroveError):
    kind = ErrorKind.NOT_FOUND


class AmbiguousMatchError(GroveError):
    kind = ErrorKind.AMBIGUOUS


class GitCommandError(GroveError):
    """A git invocation failed; ``cause`` tells why."""

    kind = ErrorKind.GIT_COMMAND_FAILURE

    NOT_A_REPOSITORY = "not-a-repository"
    BINARY_NOT_FOUND = "binary-not-found"
    COMMAND_FAILED = "command-failed"

    def __init__(self, title: str, *, cause: str = COMMAND_FAILED, **kwargs) -> None:
        super().__init__(title, **kwargs)
        self.cause = cause


class FilesystemError(GroveError):
    """A filesystem read or write failed."""

    kind = ErrorKind.IO_FAILURE


class HostRpcError(GroveError):
    """The host platform answered with an error or without data."""

    kind = ErrorKind.RPC_FAILURE


__all__ = [
    "AmbiguousMatchError",
    "ErrorKind",
    "GitCommandError",
    "GroveError",
    "HostRpcError",
    "InvalidInputError",
    "ModeDisabledError",
    "SandboxViolationError",
    "FilesystemError",
    "WorktreeNotFoundError",
]
