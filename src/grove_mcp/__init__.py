"""Grove MCP: git worktrees as session-addressable workspaces."""

__version__ = "0.1.0"

__all__ = ["__version__"]
