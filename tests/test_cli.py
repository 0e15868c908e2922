"""Tests for the scad-library-sync command line."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from scad_library_sync import __version__, cli
from scad_library_sync.preferences import Preferences
from scad_library_sync.workspace import WorkspaceService


@pytest.fixture
def run_cli(tmp_path, monkeypatch, fake_client, registry):
    """Invoke ``cli.main`` against the fake remote, returning the exit code."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "load_hierarchical_config", lambda extra=None: {})
    monkeypatch.setattr(cli, "setup_logging", MagicMock())
    monkeypatch.setattr(
        cli,
        "build_service",
        lambda config: WorkspaceService(config, client=fake_client, registry=registry),
    )
    for name in ("SCAD_SYNC_PROXY", "SCAD_SYNC_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)

    prefs = tmp_path / "prefs.json"
    cache = tmp_path / "cache"

    def _run(*argv: str) -> int:
        return cli.main(["--prefs", str(prefs), "--cache-dir", str(cache), *argv])

    _run.prefs = Preferences(prefs)
    return _run


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--version"])
    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_missing_command_is_usage_error():
    with pytest.raises(SystemExit) as exc_info:
        cli.main([])
    assert exc_info.value.code == 2


def test_init_then_update(run_cli, tmp_path, capsys):
    root = tmp_path / "ws"

    assert run_cli("init", str(root)) == 0
    out = capsys.readouterr().out
    assert "Fetching Demo Toolkit repository tree..." in out
    assert "Demo Toolkit (demo) -- init" in out
    assert run_cli.prefs.workspace_dir == str(root)

    assert run_cli("update") == 0
    assert "0 updated, 2 unchanged" in capsys.readouterr().out


def test_update_without_workspace(run_cli, capsys):
    assert run_cli("update") == 1
    assert "No working directory set" in capsys.readouterr().err


def test_update_with_failures_exits_nonzero(run_cli, fake_client, tmp_path, capsys):
    fake_client.failing_listings.add("demo")
    assert run_cli("update", "--directory", str(tmp_path / "ws")) == 1
    assert "Warning: Could not fetch tree" in capsys.readouterr().out


def test_update_json(run_cli, tmp_path, capsys):
    assert run_cli("--json", "update", "--directory", str(tmp_path / "ws")) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["ok"] is True
    assert data["profiles"][0]["counts"]["updated"] == 2


def test_status(run_cli, tmp_path, capsys):
    run_cli("init", str(tmp_path / "ws"))
    capsys.readouterr()

    assert run_cli("--json", "status") == 0
    data = json.loads(capsys.readouterr().out)
    assert data["workspace"] == str(tmp_path / "ws")
    assert data["profiles"][0]["tracked_files"] == 2


def test_check(run_cli, tmp_path, capsys):
    root = tmp_path / "ws"
    run_cli("init", str(root))
    capsys.readouterr()

    assert run_cli("--json", "check", str(root / "demo" / "alice" / "box.scad")) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["repo_owned"] == "demo"
    assert data["save_allowed"] is False
    assert data["inside_workspace"] is True
    assert data["detected_profile"] == "demo"


def test_tree(run_cli, tmp_path, capsys):
    run_cli("init", str(tmp_path / "ws"))
    capsys.readouterr()

    assert run_cli("tree") == 0
    out = capsys.readouterr().out
    assert "Demo Toolkit (demo)" in out
    assert "    box" in out


def test_copy_libs(run_cli, tmp_path, capsys):
    target = tmp_path / "loose"
    assert run_cli("copy-libs", "demo", str(target)) == 0
    assert (target / "demo_lib.scad").exists()

    assert run_cli("copy-libs", "demo", str(target)) == 0
    assert "already present" in capsys.readouterr().out


def test_copy_libs_unknown_profile(run_cli, tmp_path, capsys):
    assert run_cli("copy-libs", "nope", str(tmp_path)) == 1
    assert "Unknown library profile: nope" in capsys.readouterr().err


def test_set_proxy(run_cli, fake_client):
    assert run_cli("set-proxy", "http://proxy.local:3128") == 0
    assert run_cli.prefs.get("proxy") == "http://proxy.local:3128"
    assert fake_client.proxy_url == "http://proxy.local:3128"

    assert run_cli("set-proxy") == 0
    assert run_cli.prefs.get("proxy") == ""


def test_set_proxy_invalid(run_cli, capsys):
    assert run_cli("set-proxy", "not a url") == 1
    assert "Invalid proxy URL" in capsys.readouterr().err


def test_bad_config_reports_error(run_cli, monkeypatch, capsys):
    monkeypatch.setenv("SCAD_SYNC_TIMEOUT", "soon")
    assert run_cli("status") == 1
    assert "Configuration error" in capsys.readouterr().err
