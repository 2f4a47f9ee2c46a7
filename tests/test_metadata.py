"""
tests/test_metadata.py

Purpose:
    Rewriting legacy target files from per-directory metadata.txt.
"""

from __future__ import annotations

import orjson

from matchenricher.core.records import rewrite_metadata
from matchenricher.core.records.metadata import read_metadata_file
from matchenricher.core.records.storage import read_json


def _write(path, content) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(content))


def test_read_metadata_file(tmp_path) -> None:
    (tmp_path / "metadata.txt").write_text(
        "tournament=Premier League\ncountry = England\ndate=2024-05-20\nnoise line\n"
    )

    assert read_metadata_file(tmp_path) == {
        "tournament": "Premier League",
        "country": "England",
        "scrapeDate": "2024-05-20",
    }


def test_missing_metadata_file_is_empty(tmp_path) -> None:
    assert read_metadata_file(tmp_path) == {}


def test_rewrite_legacy_files(tmp_path) -> None:
    league = tmp_path / "england"
    league.mkdir()
    (league / "metadata.txt").write_text("country=England\ndate=2024-05-20\n")
    legacy = league / "2023" / "composed.json"
    _write(legacy, {"tournament": "Premier League", "data": [{"season": "2023", "gameweeks": []}]})

    rewritten = rewrite_metadata(tmp_path)

    assert rewritten == [legacy]
    assert read_json(legacy) == {
        "metadata": {
            "scrapeDate": "2024-05-20",
            "country": "England",
            "tournament": "Premier League",
        },
        "data": [{"season": "2023", "gameweeks": []}],
    }


def test_rewrite_skips_standard_and_unrelated_files(tmp_path) -> None:
    league = tmp_path / "spain"
    standard = league / "composed.json"
    other = league / "notes.json"
    _write(standard, {"metadata": {"country": "Spain"}, "data": []})
    _write(other, {"tournament": "La Liga", "data": []})

    assert rewrite_metadata(tmp_path) == []
    assert read_json(other) == {"tournament": "La Liga", "data": []}


def test_rewrite_logs_and_skips_broken_files(tmp_path) -> None:
    league = tmp_path / "italy"
    league.mkdir()
    (league / "composed.json").write_text("{ broken")
    good = league / "sub" / "repaired.json"
    _write(good, {"tournament": "Serie A", "data": []})

    assert rewrite_metadata(tmp_path) == [good]
