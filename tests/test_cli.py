from __future__ import annotations

import argparse
import importlib.util
import json
from pathlib import Path

import pytest

from conftest import requires_git
from divergence_mcp.process import CommandResult, FakeProcessRunner
from divergence_mcp.config import get_settings
from divergence_mcp.sessions import SessionRegistry, environment


def load_diag(name: str):
    module_path = Path(__file__).resolve().parents[1] / "scripts" / "divergence_diag.py"
    spec = importlib.util.spec_from_file_location(name, module_path)
    assert spec and spec.loader
    diag = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(diag)
    return diag


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    monkeypatch.setattr(environment, "_default_resolver", None)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class StubResolver:
    def resolve_executable(self) -> Path:
        return Path("/usr/bin/tmux")

    def environment(self) -> dict[str, str]:
        return {}


def test_sessions_json(monkeypatch, capsys):
    runner = FakeProcessRunner(
        [
            CommandResult(
                args=("tmux",),
                returncode=0,
                stdout="divergence-project-app-1\t0\t1\t2\t0\nscratch\t0\t0\t1\t0\n",
                stderr="",
            )
        ]
    )
    diag = load_diag("divergence_diag_sessions")
    monkeypatch.setattr(diag, "load_registry", lambda _settings: SessionRegistry(StubResolver(), runner))

    diag.cmd_sessions(argparse.Namespace(json=True, owners=None))

    payload = json.loads(capsys.readouterr().out)
    assert [session["name"] for session in payload] == ["divergence-project-app-1"]
    assert payload[0]["window_count"] == 2
    assert payload[0]["attached"] is True
    assert payload[0]["ownership"]["kind"] == "unknown"



def test_sessions_with_owner_records(monkeypatch, capsys, tmp_path: Path):
    runner = FakeProcessRunner(
        [
            CommandResult(
                args=("tmux",),
                returncode=0,
                stdout="divergence-project-app-3\t0\t0\t1\t0\ndivergence-random\t0\t0\t1\t0\n",
                stderr="",
            )
        ]
    )
    owners = tmp_path / "owners.json"
    owners.write_text(json.dumps({"projects": [{"id": 3, "name": "App"}]}), encoding="utf-8")
    diag = load_diag("divergence_diag_owners")
    monkeypatch.setattr(diag, "load_registry", lambda _settings: SessionRegistry(StubResolver(), runner))

    diag.main(["sessions", "--owners", str(owners)])

    out = capsys.readouterr().out
    assert "divergence-project-app-3 [1 windows]" in out
    assert "(project)" in out
    assert "divergence-random" in out and "(orphan)" in out
    assert out.rstrip().endswith("orphans: 1")

def test_kill_refuses_foreign_session(monkeypatch, capsys):
    diag = load_diag("divergence_diag_kill")
    monkeypatch.setattr(
        diag, "load_registry", lambda _settings: SessionRegistry(StubResolver(), FakeProcessRunner())
    )

    with pytest.raises(SystemExit) as excinfo:
        diag.main(["kill", "scratch"])

    assert excinfo.value.code == 1
    assert "Refusing to kill" in capsys.readouterr().out


def test_delete_outside_root(monkeypatch, capsys, tmp_path: Path, workspaces_root: Path):
    monkeypatch.setenv("DIVERGENCE_WORKSPACES_ROOT", str(workspaces_root))
    diag = load_diag("divergence_diag_delete")

    with pytest.raises(SystemExit):
        diag.main(["delete", str(tmp_path)])

    assert capsys.readouterr().out.startswith("Error: Cannot delete path outside")


def test_help_without_command(capsys):
    diag = load_diag("divergence_diag_help")

    diag.main([])

    assert "Divergence diagnostics" in capsys.readouterr().out


@requires_git
def test_provision_status_and_delete(monkeypatch, capsys, make_repo, workspaces_root: Path):
    monkeypatch.setenv("DIVERGENCE_WORKSPACES_ROOT", str(workspaces_root))
    source = make_repo()
    diag = load_diag("divergence_diag_provision")

    diag.main(["provision", str(source), "app", "feature", "--mode", "worktree", "--skip", "dist"])
    workspace = json.loads(capsys.readouterr().out)
    path = Path(workspace["path"])
    assert workspace["mode"] == "worktree"
    assert path.is_dir()

    (path / "README.md").write_text("changed\n", encoding="utf-8")
    diag.main(["status", str(path)])
    changes = json.loads(capsys.readouterr().out)
    assert changes[0]["path"] == "README.md"

    diag.main(["diff", str(path), "README.md"])
    assert "+changed" in capsys.readouterr().out

    diag.main(["branch-status", str(path), "feature"])
    assert json.loads(capsys.readouterr().out) == {"merged": True, "diverged": False}

    diag.main(["delete", str(path)])
    assert json.loads(capsys.readouterr().out)["removed"] is True
    assert not path.exists()


@requires_git
def test_provision_expands_home_in_workspaces_root(monkeypatch, capsys, make_repo, tmp_path: Path):
    home = tmp_path.resolve() / "home-dir"
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("DIVERGENCE_WORKSPACES_ROOT", "~/ws")
    monkeypatch.chdir(cwd)
    source = make_repo()
    diag = load_diag("divergence_diag_home")

    diag.main(["provision", str(source), "app", "feature"])

    path = Path(json.loads(capsys.readouterr().out)["path"])
    assert path.is_absolute()
    assert path.parent == home / "ws"
    assert path.is_dir()
    assert not (cwd / "~").exists()
