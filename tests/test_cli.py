from __future__ import annotations

import json
from pathlib import Path

import pytest

from prefsync import JsonFileStorage, cli


@pytest.fixture
def files(tmp_path: Path):
    store = tmp_path / "prefs.json"
    defaults = tmp_path / "defaults.json"
    defaults.write_text(json.dumps({"color": "red", "size": 12}), encoding="utf-8")
    return store, defaults


def run(files, *argv):
    store, defaults = files
    return cli.main(["--file", str(store), "--defaults", str(defaults), *argv])


def test_set_and_get(files, capsys):
    assert run(files, "set", "color", "blue") == 0
    capsys.readouterr()
    assert run(files, "get", "color") == 0
    assert capsys.readouterr().out.strip() == '"blue"'


def test_set_parses_json_values(files, capsys):
    assert run(files, "set", "size", "14") == 0
    assert run(files, "set", "tags", '["a", "b"]') == 0
    storage = JsonFileStorage(files[0])
    assert storage.get("/size") == "14"
    assert storage.get("/tags") == '["a","b"]'


def test_get_unknown(files, capsys):
    assert run(files, "get", "missing") == 2
    assert "missing" in capsys.readouterr().err


def test_list_marks_defaults(files, capsys):
    run(files, "set", "size", "14")
    capsys.readouterr()
    assert run(files, "list") == 0
    assert capsys.readouterr().out.splitlines() == [
        'color = "red" (default)',
        "size = 14",
    ]


def test_reset(files, capsys):
    run(files, "set", "color", "blue")
    assert run(files, "reset", "color") == 0
    capsys.readouterr()
    run(files, "get", "color")
    assert capsys.readouterr().out.strip() == '"red"'
    assert JsonFileStorage(files[0]).keys() == []


def test_export_and_import(files, tmp_path: Path, capsys):
    run(files, "set", "color", "blue")
    capsys.readouterr()
    assert run(files, "export") == 0
    assert json.loads(capsys.readouterr().out) == {"color": "blue"}

    incoming = tmp_path / "incoming.json"
    incoming.write_text(json.dumps({"size": 20}), encoding="utf-8")
    assert run(files, "import", str(incoming), "--clear") == 0
    run(files, "export")
    assert json.loads(capsys.readouterr().out) == {"size": 20}


def test_watch_prints_external_changes(files, monkeypatch, capsys):
    store, _ = files

    def fake_sleep(_seconds):
        other = JsonFileStorage(store)
        other.set("/color", '"blue"')
        other.set("/extra", "3")

    monkeypatch.setattr(cli.time, "sleep", fake_sleep)
    assert run(files, "watch", "--count", "1") == 0
    out = capsys.readouterr().out.splitlines()
    assert sorted(out) == ['color = "blue"', "extra = 3"]


def test_unreadable_storage(files, capsys):
    files[0].write_text("{ nope", encoding="utf-8")
    assert run(files, "list") == 2
    assert "prefsync:" in capsys.readouterr().err
