"""Branch-name normalization and worktree path sandboxing."""

from __future__ import annotations

import os
import re
from typing import Iterable

from .errors import (
    AmbiguousMatchError,
    InvalidInputError,
    SandboxViolationError,
    WorktreeNotFoundError,
)
from .git.porcelain import WorktreeRecord

WORKTREE_DIRNAME = ".worktrees"
LIST_HINT = 'Use worktree_overview { "view": "list" } to see available worktrees.'

_SEPARATOR_RUNS = re.compile(r"[\s_]+")
_UNSAFE_CHARS = re.compile(r"[^a-z0-9./-]+")
_DASH_RUNS = re.compile(r"-+")
_LEADING = re.compile(r"^[-/]+")
_TRAILING = re.compile(r"[-/]+$")


def normalize_branch_name(name: str) -> str:
    """Turn free text into a git-safe branch name; empty means unusable."""

    trimmed = name.strip()
    if not trimmed:
        return ""
    normalized = _SEPARATOR_RUNS.sub("-", trimmed.lower())
    normalized = _UNSAFE_CHARS.sub("-", normalized)
    normalized = _DASH_RUNS.sub("-", normalized)
    normalized = _LEADING.sub("", normalized)
    return _TRAILING.sub("", normalized)


def worktree_root(repo_root: str | os.PathLike[str]) -> str:
    return os.path.join(os.fspath(repo_root), WORKTREE_DIRNAME)


def default_worktree_path(repo_root: str | os.PathLike[str], branch: str) -> str:
    return os.path.join(worktree_root(repo_root), branch)


def paths_equal(left: str, right: str) -> bool:
    return os.path.abspath(left) == os.path.abspath(right)


def _is_within(root: str, target: str) -> bool:
    resolved_root = os.path.abspath(root)
    resolved_target = os.path.abspath(target)
    prefix = resolved_root if resolved_root.endswith(os.sep) else resolved_root + os.sep
    return resolved_target == resolved_root or resolved_target.startswith(prefix)


def resolve_worktree_path(repo_root: str | os.PathLike[str], value: str) -> str:
    """Resolve a user-supplied worktree path.

    Absolute input is normalized and returned without sandboxing. Relative
    input is resolved under ``<repo_root>/.worktrees`` and must stay there.
    """

    trimmed = value.strip()
    if not trimmed:
        raise InvalidInputError("Worktree path is required.")

    if os.path.isabs(trimmed):
        return os.path.normpath(trimmed)

    root = worktree_root(repo_root)
    resolved = os.path.abspath(os.path.join(root, trimmed))
    if not _is_within(root, resolved):
        raise SandboxViolationError(
            "Worktree path must stay within the worktree root.",
            hint=f"Use a path under {root}.",
        )
    return resolved


def find_worktree_match(
    records: Iterable[WorktreeRecord],
    repo_root: str | os.PathLike[str],
    value: str,
) -> list[WorktreeRecord]:
    """Return every worktree matching a path or branch name."""

    trimmed = value.strip()
    resolved = resolve_worktree_path(repo_root, trimmed)
    raw = os.path.normpath(trimmed)
    raw_is_absolute = os.path.isabs(raw)

    matches: list[WorktreeRecord] = []
    for record in records:
        if paths_equal(record.path, resolved):
            matches.append(record)
        elif raw_is_absolute and paths_equal(record.path, raw):
            matches.append(record)
        elif record.branch and (
            record.branch == trimmed or f"refs/heads/{record.branch}" == trimmed
        ):
            matches.append(record)
    return matches


def select_single_match(matches: list[WorktreeRecord], *, hint: str = LIST_HINT) -> WorktreeRecord:
    """Reduce matches to exactly one record or raise."""

    if not matches:
        raise WorktreeNotFoundError("No worktree matches the provided value.", hint=hint)
    if len(matches) > 1:
        raise AmbiguousMatchError(
            "Multiple worktrees match the provided value.",
            details=", ".join(match.path for match in matches),
        )
    return matches[0]


__all__ = [
    "LIST_HINT",
    "default_worktree_path",
    "find_worktree_match",
    "normalize_branch_name",
    "paths_equal",
    "resolve_worktree_path",
    "select_single_match",
    "worktree_root",
]
