"""Plain-text helpers for tool output."""

from __future__ import annotations

import shlex
from typing import Iterable, Sequence


def format_command(parts: Sequence[str]) -> str:
    """Render an argument vector as a copy-pasteable shell command."""

    return shlex.join(parts)


def first_line(value: str) -> str:
    return value.splitlines()[0] if value else value


def first_non_empty_line(value: str) -> str:
    for line in value.splitlines():
        stripped = line.strip()
        if stripped:
            return stripped
    return ""


def _sanitize_cell(value: str) -> str:
    return value.replace("|", "\\|")


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Render a markdown-style table with padded columns."""

    clean_headers = [_sanitize_cell(header) for header in headers]
    clean_rows = [[_sanitize_cell(cell) for cell in row] for row in rows]
    widths = []
    for index, header in enumerate(clean_headers):
        cell_widths = [len(row[index]) if index < len(row) else 0 for row in clean_rows]
        widths.append(max([len(header), 3, *cell_widths]))

    def _line(cells: Sequence[str]) -> str:
        padded = [
            (cells[index] if index < len(cells) else "").ljust(width)
            for index, width in enumerate(widths)
        ]
        return "| " + " | ".join(padded) + " |"

    lines = [_line(clean_headers), "| " + " | ".join("-" * width for width in widths) + " |"]
    lines.extend(_line(row) for row in clean_rows)
    return "\n".join(lines)


def render_notes(notes: Iterable[str], heading: str = "Notes:") -> str:
    return heading + "\n" + "\n".join(f"- {note}" for note in notes)


__all__ = [
    "first_line",
    "first_non_empty_line",
    "format_command",
    "render_notes",
    "render_table",
]
