"""Data models for the durable records."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

EPOCH_ISO = "1970-01-01T00:00:00+00:00"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SessionEntry(BaseModel):
    """Maps one worktree to the host session working in it."""

    model_config = ConfigDict(strict=True, populate_by_name=True, frozen=True)

    worktree_path: str = Field(..., alias="worktreePath")
    branch: str
    session_id: str = Field(..., alias="sessionID")
    created_at: str = Field(..., alias="createdAt")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class SessionState(BaseModel):
    """Parsed contents of the session-state record."""

    entries: list[SessionEntry] = Field(default_factory=list)
    dropped: int = Field(default=0, exclude=True)

    def to_payload(self) -> dict[str, Any]:
        return {"entries": [entry.to_payload() for entry in self.entries]}


class ModeState(BaseModel):
    """Process-wide on/off switch for the worktree tools."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    updated_at: str = Field(default=EPOCH_ISO, alias="updatedAt")

    @classmethod
    def from_payload(cls, payload: Any) -> "ModeState":
        """Build a state, falling back to defaults field by field."""

        if not isinstance(payload, dict):
            return cls()
        enabled = payload.get("enabled")
        updated_at = payload.get("updatedAt")
        return cls(
            enabled=enabled if isinstance(enabled, bool) else False,
            updated_at=(
                updated_at if isinstance(updated_at, str) and updated_at.strip() else EPOCH_ISO
            ),
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


__all__ = ["EPOCH_ISO", "ModeState", "SessionEntry", "SessionState", "utc_now_iso"]
