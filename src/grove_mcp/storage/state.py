"""Durable mapping between worktrees and host sessions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .files import read_record, write_record
from .models import SessionEntry, SessionState

logger = logging.getLogger(__name__)

_LABEL = "state file"
_READ_HINT = "Fix or remove the state file to recreate it."


class SessionStateStore:
    """Read-modify-write store over a single JSON document.

    Reads are lenient: entries that fail validation are dropped (and
    counted) so one corrupt entry never hides the rest. There is no locking;
    concurrent writers from other processes may lose updates.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @staticmethod
    def _parse(document: Any) -> SessionState:
        if not isinstance(document, dict):
            return SessionState()
        raw_entries = document.get("entries")
        if not isinstance(raw_entries, list):
            return SessionState()

        entries: list[SessionEntry] = []
        dropped = 0
        for raw in raw_entries:
            try:
                entries.append(SessionEntry.model_validate(raw))
            except ValidationError:
                dropped += 1
        return SessionState(entries=entries, dropped=dropped)

    def read(self) -> SessionState:
        document = read_record(self._path, label=_LABEL, hint=_READ_HINT)
        if document is None:
            return SessionState()
        state = self._parse(document)
        if state.dropped:
            logger.warning(
                "Dropped malformed session entries",
                extra={"path": str(self._path), "dropped": state.dropped},
            )
        return state

    def _write(self, state: SessionState) -> None:
        write_record(self._path, state.to_payload(), label=_LABEL)

    def store_mapping(self, entry: SessionEntry) -> None:
        """Insert ``entry``, evicting any entry sharing its worktree path or session id."""

        state = self.read()
        # TODO: decide whether a reused session id on another worktree should
        # really evict that worktree's entry; kept as OR-eviction for now.
        kept = [
            existing
            for existing in state.entries
            if existing.worktree_path != entry.worktree_path
            and existing.session_id != entry.session_id
        ]
        self._write(SessionState(entries=[*kept, entry]))
        logger.debug(
            "Stored session mapping",
            extra={"session_id": entry.session_id, "worktree_path": entry.worktree_path},
        )

    def remove_mappings(self, session_id: str) -> int:
        """Drop every entry for ``session_id``; returns how many were removed."""

        state = self.read()
        remaining = [entry for entry in state.entries if entry.session_id != session_id]
        removed = len(state.entries) - len(remaining)
        if removed == 0:
            return 0
        self._write(SessionState(entries=remaining))
        logger.info("Removed session mappings", extra={"session_id": session_id, "removed": removed})
        return removed


__all__ = ["SessionStateStore"]
