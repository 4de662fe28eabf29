from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from grove_mcp.errors import GitCommandError
from grove_mcp.git import FakeGitRunner, GitCommandResult, GitRunner, classify_git_failure
from grove_mcp.git.utils import sanitize_environment


def _script(tmp_path: Path, body: str) -> Path:
    script = tmp_path / "git"
    script.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    script.chmod(0o755)
    return script


def test_git_runner_executes_script(tmp_path: Path) -> None:
    runner = GitRunner(_script(tmp_path, "echo 'git version 2.44.0'"))
    result = asyncio.run(runner.version())

    assert result.ok
    assert result.stdout == "git version 2.44.0"
    assert result.command == "git --version"


def test_git_runner_passes_args_and_cwd(tmp_path: Path) -> None:
    workdir = tmp_path / "work"
    workdir.mkdir()
    runner = GitRunner(_script(tmp_path, 'echo "$@"; pwd'))

    result = asyncio.run(runner.run(["status", "--porcelain"], cwd=workdir))

    lines = result.stdout.splitlines()
    assert lines[0] == "status --porcelain"
    assert Path(lines[1]).resolve() == workdir.resolve()


def test_git_runner_reports_failure_without_raising(tmp_path: Path) -> None:
    runner = GitRunner(_script(tmp_path, "echo 'fatal: bad' >&2\nexit 128"))
    result = asyncio.run(runner.run(["rev-parse"]))

    assert not result.ok
    assert result.returncode == 128
    assert result.stderr == "fatal: bad"


def test_git_runner_missing_executable_returns_127(tmp_path: Path) -> None:
    runner = GitRunner(tmp_path / "missing-git")
    result = asyncio.run(runner.version())

    assert result.returncode == 127
    assert "command not found" in result.stderr
    error = classify_git_failure(result)
    assert error.cause == GitCommandError.BINARY_NOT_FOUND


def test_git_runner_strips_inherited_git_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GIT_DIR", "/somewhere/else")
    runner = GitRunner(_script(tmp_path, 'echo "dir=${GIT_DIR:-unset}"'))

    result = asyncio.run(runner.run(["status"]))

    assert result.stdout == "dir=unset"


def test_fake_git_runner_records_invocations() -> None:
    def handler(args, cwd):
        if args == ("rev-parse", "--show-toplevel"):
            return GitCommandResult(args=args, returncode=0, stdout="/repo", stderr="")
        return None

    fake = FakeGitRunner(handler)
    first = asyncio.run(fake.run(["rev-parse", "--show-toplevel"], cwd="/repo/sub"))
    second = asyncio.run(fake.run(["worktree", "prune"]))

    assert first.stdout == "/repo"
    assert second.ok and second.stdout == ""
    assert fake.invocations == [
        (("rev-parse", "--show-toplevel"), "/repo/sub"),
        (("worktree", "prune"), None),
    ]


def test_classify_not_a_repository() -> None:
    result = GitCommandResult(
        args=("rev-parse", "--show-toplevel"),
        returncode=128,
        stdout="",
        stderr="fatal: not a git repository (or any of the parent directories): .git",
    )
    error = classify_git_failure(result)

    assert error.title == "Not a git repository."
    assert error.cause == GitCommandError.NOT_A_REPOSITORY
    assert error.command == "git rev-parse --show-toplevel"


def test_classify_generic_failure_keeps_first_line_and_hint() -> None:
    result = GitCommandResult(
        args=("check-ref-format", "--branch", "bad..name"),
        returncode=128,
        stdout="",
        stderr="\nfatal: 'bad..name' is not a valid branch name\nmore noise",
    )
    error = classify_git_failure(result, "Choose a different branch name.")

    assert error.title == "Git command failed."
    assert error.cause == GitCommandError.COMMAND_FAILED
    assert error.details == "fatal: 'bad..name' is not a valid branch name"
    rendered = error.render()
    assert "Hint: Choose a different branch name." in rendered
    assert "Command: git check-ref-format --branch bad..name" in rendered


def test_sanitize_environment_strips_git_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GIT_WORK_TREE", "/elsewhere")
    monkeypatch.setenv("GIT_INDEX_FILE", "/elsewhere/index")
    monkeypatch.delenv("GIT_TERMINAL_PROMPT", raising=False)

    env = sanitize_environment({"EXTRA": "1"})

    assert "GIT_WORK_TREE" not in env
    assert "GIT_INDEX_FILE" not in env
    assert env["GIT_TERMINAL_PROMPT"] == "0"
    assert env["EXTRA"] == "1"
