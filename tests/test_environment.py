from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from divergence_mcp.config import get_settings
from divergence_mcp.process import CommandResult, FakeProcessRunner, ToolNotFoundError
from divergence_mcp.sessions import EnvironmentResolver, environment, get_tmux_resolver


def _make_tool(directory: Path, name: str = "tmux", executable: bool = True) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    tool = directory / name
    tool.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    tool.chmod(0o755 if executable else 0o644)
    return tool


def _shell_output(stdout: str, returncode: int = 0) -> CommandResult:
    return CommandResult(args=("/bin/sh",), returncode=returncode, stdout=stdout, stderr="")


@pytest.fixture
def empty_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    empty = tmp_path / "empty-bin"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))
    return empty


def test_override_wins(tmp_path: Path, empty_path: Path) -> None:
    tool = _make_tool(tmp_path / "custom")
    runner = FakeProcessRunner()
    resolver = EnvironmentResolver("tmux", override=str(tool), runner=runner, fallback_dirs=())

    assert resolver.resolve_executable() == tool
    assert runner.invocations == []


def test_non_executable_override_is_ignored(tmp_path: Path, empty_path: Path) -> None:
    bad = _make_tool(tmp_path / "custom", executable=False)
    good = _make_tool(tmp_path / "login-bin")
    runner = FakeProcessRunner([_shell_output(f"{good.parent}\n")])
    resolver = EnvironmentResolver("tmux", override=str(bad), runner=runner, fallback_dirs=())

    assert resolver.resolve_executable() == good


def test_login_shell_path_takes_last_line(tmp_path: Path, empty_path: Path) -> None:
    tool = _make_tool(tmp_path / "brew" / "bin")
    runner = FakeProcessRunner(
        [_shell_output(f"Welcome back!\n\n{tmp_path / 'nothing'}:{tool.parent}\n\n")]
    )
    resolver = EnvironmentResolver("tmux", runner=runner, shell="/bin/zsh", fallback_dirs=())

    assert resolver.login_shell_path() == f"{tmp_path / 'nothing'}:{tool.parent}"
    assert resolver.resolve_executable() == tool
    assert runner.invocations == [("/bin/zsh", "-l", "-c", 'printf "%s\\n" "$PATH"')]


def test_shell_defaults_to_environment_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHELL", "/usr/bin/fish")
    runner = FakeProcessRunner([_shell_output("/usr/bin\n")])

    EnvironmentResolver("tmux", runner=runner).login_shell_path()

    assert runner.invocations[0][0] == "/usr/bin/fish"


def test_inherited_path_is_searched(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    tool = _make_tool(tmp_path / "inherited")
    monkeypatch.setenv("PATH", str(tool.parent))
    runner = FakeProcessRunner([_shell_output("", returncode=1)])
    resolver = EnvironmentResolver("tmux", runner=runner, fallback_dirs=())

    assert resolver.login_shell_path() is None
    assert resolver.resolve_executable() == tool


def test_fallback_directories(tmp_path: Path, empty_path: Path) -> None:
    tool = _make_tool(tmp_path / "opt" / "bin")
    runner = FakeProcessRunner([ToolNotFoundError("/bin/sh")])
    resolver = EnvironmentResolver(
        "tmux", runner=runner, fallback_dirs=(str(tmp_path / "missing"), str(tool.parent))
    )

    assert resolver.resolve_executable() == tool


def test_unresolvable_executable(tmp_path: Path, empty_path: Path) -> None:
    runner = FakeProcessRunner([_shell_output(f"{empty_path}\n")])
    resolver = EnvironmentResolver("tmux", runner=runner, fallback_dirs=(str(tmp_path),))

    assert resolver.resolve_executable() is None


def test_results_are_computed_once(tmp_path: Path, empty_path: Path) -> None:
    tool = _make_tool(tmp_path / "bin")
    runner = FakeProcessRunner([_shell_output(f"{tool.parent}\n")])
    resolver = EnvironmentResolver("tmux", runner=runner, fallback_dirs=())

    first = resolver.resolve_executable()
    tool.unlink()

    assert resolver.resolve_executable() == first
    assert resolver.login_shell_path() == str(tool.parent)
    assert len(runner.invocations) == 1


def test_environment_merges_login_and_inherited_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PATH", "/usr/bin:/bin")
    runner = FakeProcessRunner([_shell_output("/opt/homebrew/bin:/usr/bin\n")])
    resolver = EnvironmentResolver("tmux", runner=runner)

    assert resolver.environment() == {"PATH": "/opt/homebrew/bin:/usr/bin:/bin"}


def test_default_resolver_is_shared(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    tool = _make_tool(tmp_path / "custom")
    monkeypatch.setenv("DIVERGENCE_TMUX_PATH", str(tool))
    monkeypatch.setattr(environment, "_default_resolver", None)
    get_settings.cache_clear()
    try:
        resolver = get_tmux_resolver()

        assert get_tmux_resolver() is resolver
        assert resolver.resolve_executable() == tool
    finally:
        get_settings.cache_clear()


class SlowShellRunner(FakeProcessRunner):
    def _invoke(self, executable, *args, cwd=None, env=None):
        time.sleep(0.05)
        return super()._invoke(executable, *args, cwd=cwd, env=env)


def test_concurrent_first_access_queries_shell_once(tmp_path: Path, empty_path: Path) -> None:
    tool = _make_tool(tmp_path / "bin")
    runner = SlowShellRunner([_shell_output(f"{tool.parent}\n")] * 8)
    resolver = EnvironmentResolver("tmux", runner=runner, fallback_dirs=())
    barrier = threading.Barrier(8)
    results: list[object] = []

    def _resolve() -> None:
        barrier.wait()
        results.append((resolver.login_shell_path(), resolver.resolve_executable()))

    threads = [threading.Thread(target=_resolve) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(runner.invocations) == 1
    assert len(results) == 8
    assert set(results) == {(str(tool.parent), tool)}
