"""Utility helpers for the git runner."""

from __future__ import annotations

import os
from typing import Mapping

# Set by git hooks and wrappers; they would point commands away from ``cwd``.
_SANITIZED_VARS = {
    "GIT_DIR",
    "GIT_WORK_TREE",
    "GIT_INDEX_FILE",
    "GIT_COMMON_DIR",
    "GIT_PREFIX",
}


def sanitize_environment(additional: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return a sanitized environment suitable for subprocess execution."""

    env = dict(os.environ)
    for key in _SANITIZED_VARS:
        env.pop(key, None)
    env.setdefault("GIT_TERMINAL_PROMPT", "0")
    if additional:
        env.update(additional)
    return env
