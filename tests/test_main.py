"""Tests for main.py — CLI commands and exit codes (catalog stubbed)."""

import json

import pytest

import main
from catalog_client import CatalogClient
from conftest import make_detail
from recommendations import RecommendationRotator


@pytest.fixture(autouse=True)
def offline(monkeypatch):
    """No log handlers and no network for CLI runs."""
    monkeypatch.setattr(main, "setup_logging", lambda debug=False, log_file=None: None)
    monkeypatch.setattr(CatalogClient, "get_total_count", lambda self: 1010)
    monkeypatch.setattr(
        CatalogClient, "get_detail",
        lambda self, pid: make_detail(id=pid, name=f"mon{pid}") if pid <= 151 else None,
    )


def run(tmp_path, *argv):
    return main.main(["--data-dir", str(tmp_path), *argv])


def test_list_empty(tmp_path, capsys):
    assert run(tmp_path, "list") == 0
    assert "No Pokémon captured" in capsys.readouterr().out


def test_capture_and_list(tmp_path, capsys):
    assert run(tmp_path, "capture", "25", "--level", "12") == 0
    assert run(tmp_path, "list") == 0
    out = capsys.readouterr().out
    assert "Captured mon25 (lv 12)" in out
    assert "#25" in out


def test_capture_failures(tmp_path):
    assert run(tmp_path, "capture", "500") == 1
    assert run(tmp_path, "capture", "7") == 0
    assert run(tmp_path, "capture", "7") == 1


def test_release_and_set_level(tmp_path):
    run(tmp_path, "capture", "7", "--level", "3")
    assert run(tmp_path, "set-level", "7", "30") == 0
    assert run(tmp_path, "release", "7") == 0
    assert run(tmp_path, "release", "7") == 1
    assert run(tmp_path, "set-level", "7", "30") == 1


def test_metrics(tmp_path, capsys):
    run(tmp_path, "capture", "1", "--level", "10")
    run(tmp_path, "capture", "2", "--level", "20")
    assert run(tmp_path, "metrics") == 0
    out = capsys.readouterr().out
    assert "Captured:      2 / 1010" in out
    assert "Average level: 15" in out
    assert "Favorite type: electric" in out


def test_export_import(tmp_path, capsys):
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    export_file = tmp_path / "roster.json"
    run(src, "capture", "1")
    run(src, "capture", "4")
    assert run(src, "export", str(export_file)) == 0
    assert json.loads(export_file.read_text(encoding="utf-8"))["total"] == 2

    assert run(dst, "import", str(export_file)) == 0
    assert "Imported 2 Pokémon successfully" in capsys.readouterr().out


def test_import_bad_file(tmp_path, capsys):
    bad = tmp_path / "bad.json"
    bad.write_text("{nope", encoding="utf-8")
    assert run(tmp_path, "import", str(bad)) == 1
    assert run(tmp_path, "import", str(tmp_path / "missing.json")) == 1


def test_sort_rejects_unknown_field(tmp_path):
    with pytest.raises(SystemExit):
        run(tmp_path, "sort", "weight")


def test_stats(tmp_path, capsys):
    run(tmp_path, "capture", "1")
    capsys.readouterr()
    assert run(tmp_path, "stats") == 0
    assert json.loads(capsys.readouterr().out)["captured_count"] == 1


def test_list_page(tmp_path, capsys):
    for pid in ("1", "2", "3"):
        run(tmp_path, "capture", pid)
    capsys.readouterr()
    assert run(tmp_path, "list", "--page", "2", "--page-size", "2") == 0
    out = capsys.readouterr().out
    assert "#3" in out
    assert "#1 " not in out
    assert "Page 2/2 (3 captured)" in out


def test_recommend_watch_stops_rotator(tmp_path, monkeypatch, capsys):
    started = []

    def interrupt(seconds):
        raise KeyboardInterrupt

    monkeypatch.setattr(main.time, "sleep", interrupt)
    monkeypatch.setattr(RecommendationRotator, "start", lambda self: started.append(self))
    assert run(tmp_path, "recommend", "--watch") == 0
    assert len(started) == 1
    assert started[0]._stop.is_set()
