"""Tests for the preferences store."""

import json
from pathlib import Path

from scad_library_sync.preferences import DEFAULT_PREFS, Preferences


def test_missing_file_gives_defaults(tmp_path: Path):
    prefs = Preferences(tmp_path / "prefs.json")
    assert prefs.load() == DEFAULT_PREFS
    assert prefs.workspace_dir == ""


def test_set_persists_and_creates_parent(tmp_path: Path):
    path = tmp_path / "config" / "prefs.json"
    Preferences(path).set("workspace_dir", "/home/me/scad")

    assert json.loads(path.read_text())["workspace_dir"] == "/home/me/scad"
    assert Preferences(path).workspace_dir == "/home/me/scad"


def test_set_keeps_other_keys(tmp_path: Path):
    prefs = Preferences(tmp_path / "prefs.json")
    prefs.set("proxy", "http://p:1")
    prefs.set("workspace_dir", "/ws")

    assert prefs.get("proxy") == "http://p:1"
    assert prefs.get("workspace_dir") == "/ws"


def test_reads_fresh_each_time(tmp_path: Path):
    path = tmp_path / "prefs.json"
    prefs = Preferences(path)
    prefs.set("workspace_dir", "/one")

    # Another process rewrites the file
    path.write_text(json.dumps({"workspace_dir": "/two"}))

    assert prefs.workspace_dir == "/two"


def test_unreadable_file_gives_defaults(tmp_path: Path, caplog):
    path = tmp_path / "prefs.json"
    path.write_text("{oops")

    assert Preferences(path).load() == DEFAULT_PREFS
    assert "Ignoring unreadable preferences" in caplog.text


def test_unknown_keys_kept(tmp_path: Path):
    path = tmp_path / "prefs.json"
    path.write_text(json.dumps({"theme": "dark"}))

    prefs = Preferences(path).load()
    assert prefs["theme"] == "dark"
    assert prefs["proxy"] == ""
    assert Preferences(path).get("missing", "fallback") == "fallback"
