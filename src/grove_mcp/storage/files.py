"""JSON record persistence shared by the mode and session-state stores."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..errors import FilesystemError


def read_record(path: Path, *, label: str, hint: str | None = None) -> Any | None:
    """Return the decoded JSON document, or ``None`` when the file is absent."""

    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise FilesystemError(f"Unable to read {label}.", details=str(exc), hint=hint) from exc

    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise FilesystemError(f"Unable to read {label}.", details=str(exc), hint=hint) from exc


def write_record(path: Path, payload: Any, *, label: str) -> None:
    """Rewrite the whole record, pretty-printed with a trailing newline."""

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError("Unable to create config directory.", details=str(exc)) from exc

    content = json.dumps(payload, indent=2) + "\n"
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f"Unable to write {label}.", details=str(exc)) from exc


__all__ = ["read_record", "write_record"]
