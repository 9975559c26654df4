from __future__ import annotations

from pathlib import Path

import pytest

from conftest import requires_git
from divergence_mcp.process import CommandFailedError, CommandResult, FakeProcessRunner
from divergence_mcp.vcs import DiffMode, DiffResult, GitClient, NotARepositoryError, get_diff
from divergence_mcp.vcs.diff import relative_to_workspace


def test_diff_mode_parse() -> None:
    assert DiffMode.parse("staged") is DiffMode.STAGED
    assert DiffMode.parse(" STAGED ") is DiffMode.STAGED
    assert DiffMode.parse("working") is DiffMode.WORKING
    assert DiffMode.parse(None) is DiffMode.WORKING
    assert DiffMode.parse("anything") is DiffMode.WORKING


def test_binary_detection_markers() -> None:
    assert DiffResult.from_text("Binary files a/x and b/x differ\n").is_binary
    assert DiffResult.from_text("diff --git a/x b/x\nGIT binary patch\n").is_binary
    assert not DiffResult.from_text("").is_binary


def test_relative_to_workspace(tmp_path: Path) -> None:
    assert relative_to_workspace(tmp_path, tmp_path / "src" / "app.py") == "src/app.py"
    assert relative_to_workspace(tmp_path, "src/app.py") == "src/app.py"


def test_get_diff_requires_repository(tmp_path: Path) -> None:
    with pytest.raises(NotARepositoryError):
        get_diff(tmp_path, "README.md")


def test_git_diff_failure_is_raised(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    runner = FakeProcessRunner(
        [CommandResult(args=("git", "diff"), returncode=128, stdout="", stderr="fatal: bad revision")]
    )

    with pytest.raises(CommandFailedError) as excinfo:
        get_diff(tmp_path, "README.md", git=GitClient(runner=runner))

    assert "fatal: bad revision" in str(excinfo.value)


def test_exit_status_one_means_differences(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    runner = FakeProcessRunner(
        [CommandResult(args=("git", "diff"), returncode=1, stdout="+added\n", stderr="")]
    )

    result = get_diff(tmp_path, "file.txt", DiffMode.STAGED, git=GitClient(runner=runner))

    assert result.diff == "+added\n"
    assert runner.invocations[0] == (
        "git",
        "diff",
        "--no-color",
        "--patch",
        "--cached",
        "--",
        "file.txt",
    )


@requires_git
def test_working_and_staged_diff(make_repo, run_git) -> None:
    repo = make_repo()
    (repo / "README.md").write_text("changed\n", encoding="utf-8")

    working = get_diff(repo, "README.md")
    assert "-hello" in working.diff
    assert "+changed" in working.diff
    assert not working.is_binary
    assert get_diff(repo, "README.md", "staged").diff == ""

    run_git(repo, "add", "README.md")

    assert get_diff(repo, "README.md").diff == ""
    assert "+changed" in get_diff(repo, repo / "README.md", DiffMode.STAGED).diff


@requires_git
def test_untracked_file_shows_as_added(make_repo) -> None:
    repo = make_repo()
    (repo / "notes.txt").write_text("first line\n", encoding="utf-8")

    result = get_diff(repo, "notes.txt")

    assert "new file mode" in result.diff
    assert "+first line" in result.diff


@requires_git
def test_untracked_binary_file(make_repo) -> None:
    repo = make_repo()
    (repo / "blob.bin").write_bytes(b"\x00\x01\x02binary\x00")

    result = get_diff(repo, "blob.bin")

    assert result.is_binary
