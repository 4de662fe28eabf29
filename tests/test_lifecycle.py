from __future__ import annotations

import asyncio
import os
import shutil
import subprocess
from pathlib import Path

import pytest

from grove_mcp.errors import (
    GitCommandError,
    InvalidInputError,
    SandboxViolationError,
    WorktreeNotFoundError,
)
from grove_mcp.git import GitRunner
from grove_mcp.worktrees import WorktreeManager


def _manager(git) -> WorktreeManager:
    return WorktreeManager(git.runner, cwd=git.repo_root)


def test_create_derives_branch_and_default_path(git, repo_root: Path) -> None:
    result = asyncio.run(_manager(git).create(name="Feature Audit"))

    expected_path = str(repo_root / ".worktrees" / "feature-audit")
    assert result.branch == "feature-audit"
    assert result.worktree_path == expected_path
    assert not result.branch_exists
    assert os.path.isdir(expected_path)
    assert ("worktree", "add", "-b", "feature-audit", expected_path, "HEAD") in git.runner.commands()
    rendered = result.render()
    assert rendered.startswith("Worktree created.")
    assert "Base: HEAD" in rendered
    assert f"Command: git worktree add -b feature-audit {expected_path} HEAD" in rendered


def test_create_existing_branch_ignores_base(git, repo_root: Path) -> None:
    git.branches.add("release")

    result = asyncio.run(_manager(git).create(branch="release", base="origin/main", path="rel"))

    expected_path = str(repo_root / ".worktrees" / "rel")
    assert result.branch_exists
    assert git.runner.commands()[-1] == ("worktree", "add", expected_path, "release")
    assert "Note: Base ignored because the branch already exists." in result.render()


def test_create_requires_name_or_branch(git) -> None:
    with pytest.raises(InvalidInputError) as excinfo:
        asyncio.run(_manager(git).create(name="  "))
    assert excinfo.value.title == "Name or branch is required."

    with pytest.raises(InvalidInputError) as derived:
        asyncio.run(_manager(git).create(name="???"))
    assert derived.value.title == "Unable to derive a valid branch name."


def test_create_rejects_bad_ref(git) -> None:
    git.fail(("check-ref-format",), stderr="fatal: 'a..b' is not a valid branch name")

    with pytest.raises(GitCommandError) as excinfo:
        asyncio.run(_manager(git).create(branch="a..b"))

    assert excinfo.value.hint == "Choose a different branch name."
    assert not any(args[:2] == ("worktree", "add") for args in git.runner.commands())


def test_create_rejects_escaping_path(git) -> None:
    with pytest.raises(SandboxViolationError):
        asyncio.run(_manager(git).create(name="x", path="../../outside"))


def test_create_rejects_non_empty_directory(git, repo_root: Path) -> None:
    target = repo_root / ".worktrees" / "busy"
    target.mkdir(parents=True)
    (target / "file.txt").write_text("x", encoding="utf-8")

    with pytest.raises(InvalidInputError) as excinfo:
        asyncio.run(_manager(git).create(name="busy"))

    assert excinfo.value.title == "Path exists and is not empty."
    assert not any(args[:2] == ("worktree", "add") for args in git.runner.commands())


def test_create_rejects_file_at_target(git, repo_root: Path) -> None:
    (repo_root / ".worktrees").mkdir()
    (repo_root / ".worktrees" / "plain").write_text("x", encoding="utf-8")

    with pytest.raises(InvalidInputError) as excinfo:
        asyncio.run(_manager(git).create(name="plain"))
    assert excinfo.value.title == "Path exists and is not a directory."


def test_create_surfaces_add_failure(git) -> None:
    git.fail(("worktree", "add"), stderr="fatal: 'x' is already checked out")

    with pytest.raises(GitCommandError) as excinfo:
        asyncio.run(_manager(git).create(name="x"))
    assert excinfo.value.details == "fatal: 'x' is already checked out"


def test_repo_root_outside_repository(git) -> None:
    git.fail(("rev-parse", "--show-toplevel"), stderr="fatal: not a git repository")

    with pytest.raises(GitCommandError) as excinfo:
        asyncio.run(_manager(git).list_report())
    assert excinfo.value.cause == GitCommandError.NOT_A_REPOSITORY


def test_list_report_renders_table(git, repo_root: Path) -> None:
    git.add_worktree(repo_root / ".worktrees" / "scratch", None, locked=True)

    rendered = asyncio.run(_manager(git).list_report()).render()

    assert rendered.startswith("Worktrees (2):")
    assert "(detached)" in rendered
    assert "| main " in rendered
    assert rendered.endswith("Command: git worktree list --porcelain")


def test_remove_dirty_worktree_requires_force(git, repo_root: Path) -> None:
    target = repo_root / ".worktrees" / "feature-audit"
    target.mkdir(parents=True)
    git.add_worktree(target, "feature-audit")
    git.dirty[str(target)] = " M app.py"

    with pytest.raises(InvalidInputError) as excinfo:
        asyncio.run(_manager(git).remove("feature-audit"))

    assert excinfo.value.title == "Worktree has uncommitted changes."
    assert excinfo.value.hint == "Re-run with force: true to remove anyway."
    assert not any(args[:2] == ("worktree", "remove") for args in git.runner.commands())

    result = asyncio.run(_manager(git).remove("feature-audit", force=True))
    assert git.runner.commands()[-1] == ("worktree", "remove", "--force", str(target))
    assert "Note: Removed with --force." in result.render()


def test_remove_clean_worktree_by_path(git, repo_root: Path) -> None:
    target = repo_root / ".worktrees" / "tidy"
    target.mkdir(parents=True)
    git.add_worktree(target, "tidy")

    result = asyncio.run(_manager(git).remove("tidy"))

    assert result.record.branch == "tidy"
    assert git.runner.commands()[-1] == ("worktree", "remove", str(target))
    assert "--force" not in result.render()


def test_remove_missing_directory_suggests_prune(git, repo_root: Path) -> None:
    git.add_worktree(repo_root / ".worktrees" / "gone", "gone")

    with pytest.raises(InvalidInputError) as excinfo:
        asyncio.run(_manager(git).remove("gone"))
    assert excinfo.value.title == "Worktree path does not exist."
    assert '"action": "prune"' in (excinfo.value.hint or "")


def test_remove_unknown_target(git) -> None:
    with pytest.raises(WorktreeNotFoundError):
        asyncio.run(_manager(git).remove("nothing-here"))
    with pytest.raises(InvalidInputError):
        asyncio.run(_manager(git).remove("   "))


def test_prune_dry_run(git) -> None:
    git.prune_output = "Removing worktrees/gone: gitdir file points to non-existent location"

    result = asyncio.run(_manager(git).prune(dry_run=True))

    assert git.runner.commands()[-1] == ("worktree", "prune", "--dry-run")
    rendered = result.render()
    assert "Command: git worktree prune --dry-run" in rendered
    assert "Output: Removing worktrees/gone" in rendered

    git.prune_output = ""
    assert "Output: (none)" in asyncio.run(_manager(git).prune()).render()


def _git(*args: str, cwd: Path) -> None:
    subprocess.run(
        ["git", "-c", "user.name=Grove", "-c", "user.email=grove@example.com", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
    )


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_real_git_create_list_remove(tmp_path: Path) -> None:
    repo = tmp_path / "real"
    repo.mkdir()
    _git("init", "-q", cwd=repo)
    _git("commit", "-q", "--allow-empty", "-m", "init", cwd=repo)

    manager = WorktreeManager(GitRunner(), cwd=repo)
    created = asyncio.run(manager.create(name="Feature Audit"))
    root = asyncio.run(manager.repo_root())

    assert created.worktree_path == os.path.join(root, ".worktrees", "feature-audit")
    listing = asyncio.run(manager.list_report())
    assert "feature-audit" in [record.branch for record in listing.records]

    (Path(created.worktree_path) / "notes.txt").write_text("wip", encoding="utf-8")
    with pytest.raises(InvalidInputError):
        asyncio.run(manager.remove("feature-audit"))

    asyncio.run(manager.remove("feature-audit", force=True))
    assert not os.path.exists(created.worktree_path)
