"""Persisted on/off switch gating the worktree tools."""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import ModeDisabledError
from .files import read_record, write_record
from .models import ModeState, utc_now_iso

logger = logging.getLogger(__name__)

_LABEL = "worktree mode state"


class ModeStore:
    """Reads and writes the mode record; absence means disabled."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> ModeState:
        document = read_record(self._path, label=_LABEL)
        if document is None:
            return ModeState()
        return ModeState.from_payload(document)

    def set(self, enabled: bool) -> ModeState:
        state = ModeState(enabled=enabled, updated_at=utc_now_iso())
        write_record(self._path, state.to_payload(), label=_LABEL)
        logger.info("Worktree mode updated", extra={"enabled": enabled})
        return state

    def ensure_enabled(self) -> ModeState:
        state = self.read()
        if not state.enabled:
            raise ModeDisabledError(
                "Worktree mode is off.",
                hint='Run worktree_mode { "action": "on" } to enable.',
            )
        return state


__all__ = ["ModeStore"]
