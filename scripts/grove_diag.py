"""Grove MCP diagnostics CLI."""

from __future__ import annotations

import argparse
import json

from grove_mcp.config import GroveSettings
from grove_mcp.errors import GroveError
from grove_mcp.formatting import render_table
from grove_mcp.storage import ModeStore, SessionStateStore


def load_state_store(settings: GroveSettings) -> SessionStateStore:
    return SessionStateStore(settings.state_path)


def load_mode_store(settings: GroveSettings) -> ModeStore:
    return ModeStore(settings.mode_path)


def _fail(exc: GroveError) -> None:
    print(exc.render())
    raise SystemExit(1)


def cmd_mode(args: argparse.Namespace) -> None:
    store = load_mode_store(GroveSettings())
    try:
        state = store.read()
    except GroveError as exc:
        _fail(exc)
    if args.json:
        print(json.dumps({**state.to_payload(), "path": str(store.path)}, indent=2))
    else:
        print(f"Worktree mode: {'ON' if state.enabled else 'OFF'} (updated {state.updated_at})")


def cmd_mode_set(args: argparse.Namespace) -> None:
    store = load_mode_store(GroveSettings())
    try:
        state = store.set(args.value == "on")
    except GroveError as exc:
        _fail(exc)
    print(f"Worktree mode is now {'ON' if state.enabled else 'OFF'}.")


def cmd_sessions(args: argparse.Namespace) -> None:
    store = load_state_store(GroveSettings())
    try:
        state = store.read()
    except GroveError as exc:
        _fail(exc)

    if args.json:
        print(json.dumps({**state.to_payload(), "dropped": state.dropped}, indent=2))
        return

    rows = [
        [entry.session_id, entry.branch, entry.worktree_path, entry.created_at]
        for entry in state.entries
    ]
    print(render_table(["sessionID", "branch", "worktreePath", "createdAt"], rows or [["-"] * 4]))
    if state.dropped:
        print(f"Dropped {state.dropped} malformed entries from {store.path}")


def cmd_forget(args: argparse.Namespace) -> None:
    store = load_state_store(GroveSettings())
    try:
        removed = store.remove_mappings(args.session_id)
    except GroveError as exc:
        _fail(exc)
    print(json.dumps({"session_id": args.session_id, "removed": removed}))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Grove MCP diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_mode = sub.add_parser("mode", help="Show the worktree mode record")
    p_mode.add_argument("--json", action="store_true", help="Output JSON")
    p_mode.set_defaults(func=cmd_mode)

    p_mode_set = sub.add_parser("mode-set", help="Turn worktree mode on or off")
    p_mode_set.add_argument("value", choices=["on", "off"])
    p_mode_set.set_defaults(func=cmd_mode_set)

    p_sessions = sub.add_parser("sessions", help="List recorded worktree sessions")
    p_sessions.add_argument("--json", action="store_true", help="Output JSON")
    p_sessions.set_defaults(func=cmd_sessions)

    p_forget = sub.add_parser(
        "forget",
        help="Drop mappings for a session the host has deleted",
    )
    p_forget.add_argument("session_id")
    p_forget.set_defaults(func=cmd_forget)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
