from __future__ import annotations

from pathlib import Path

import pytest

from divergence_mcp.process import (
    CommandFailedError,
    CommandResult,
    FakeProcessRunner,
    ProcessRunner,
    ProcessRunnerError,
    ToolNotFoundError,
)
from divergence_mcp.process.utils import merge_search_paths, sanitize_environment


def test_runner_captures_output(tmp_path: Path) -> None:
    script = tmp_path / "tool"
    script.write_text("#!/bin/sh\necho \"$@\"\necho oops >&2\nexit 3\n", encoding="utf-8")
    script.chmod(0o755)

    result = ProcessRunner().run(script, "one", "two")

    assert result.returncode == 3
    assert not result.ok
    assert result.stdout.strip() == "one two"
    assert result.stdout_bytes.strip() == b"one two"
    assert result.stderr.strip() == "oops"
    assert result.args == (str(script), "one", "two")


def test_runner_uses_working_directory(tmp_path: Path) -> None:
    script = tmp_path / "pwd-tool"
    script.write_text("#!/bin/sh\npwd\n", encoding="utf-8")
    script.chmod(0o755)
    workdir = tmp_path / "work"
    workdir.mkdir()

    result = ProcessRunner().run(script, cwd=workdir)

    assert Path(result.stdout.strip()).resolve() == workdir.resolve()


def test_runner_passes_environment_overlay(tmp_path: Path) -> None:
    script = tmp_path / "env-tool"
    script.write_text("#!/bin/sh\nprintf '%s' \"$DIVERGENCE_PROBE\"\n", encoding="utf-8")
    script.chmod(0o755)

    result = ProcessRunner().run(script, env={"DIVERGENCE_PROBE": "visible"})

    assert result.stdout == "visible"


def test_missing_executable_raises_tool_not_found(tmp_path: Path) -> None:
    with pytest.raises(ToolNotFoundError) as excinfo:
        ProcessRunner().run(tmp_path / "missing-tool")

    assert excinfo.value.executable == str(tmp_path / "missing-tool")


def test_missing_working_directory_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ProcessRunnerError):
        ProcessRunner().run("true", cwd=tmp_path / "nowhere")


def test_check_raises_with_stderr_detail() -> None:
    result = CommandResult(args=("git", "status"), returncode=128, stdout="", stderr="fatal: nope\n")

    with pytest.raises(CommandFailedError) as excinfo:
        result.check("Git status failed")

    assert str(excinfo.value) == "Git status failed: fatal: nope"
    assert excinfo.value.result is result


def test_check_returns_result_on_success() -> None:
    result = CommandResult(args=("true",), returncode=0, stdout="ok", stderr="")

    assert result.check("unused") is result
    assert result.stdout_bytes == b"ok"


def test_fake_runner_replays_and_records() -> None:
    fake = FakeProcessRunner(
        [
            CommandResult(args=("git",), returncode=1, stdout="", stderr="boom"),
            ToolNotFoundError("tmux"),
        ]
    )

    first = fake.run("git", "status")
    with pytest.raises(ToolNotFoundError):
        fake.run("tmux", "ls")
    default = fake.run("git", "log")

    assert first.returncode == 1
    assert default.ok
    assert fake.invocations == [("git", "status"), ("tmux", "ls"), ("git", "log")]


def test_sanitize_environment_strips_python_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PYTHONPATH", "/tmp/shadow")
    monkeypatch.setenv("VIRTUAL_ENV", "/tmp/venv")

    env = sanitize_environment({"EXTRA": "1"})

    assert "PYTHONPATH" not in env
    assert "VIRTUAL_ENV" not in env
    assert env["EXTRA"] == "1"


def test_merge_search_paths_keeps_first_occurrence() -> None:
    merged = merge_search_paths("/opt/bin:/usr/bin", None, "/usr/bin:/bin::/opt/bin")

    assert merged == "/opt/bin:/usr/bin:/bin"
