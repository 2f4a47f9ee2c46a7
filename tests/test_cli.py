"""
tests/test_cli.py

Purpose:
    Command-line smoke tests run from a temporary working directory.
"""

from __future__ import annotations

import logging

import pytest
from typer.testing import CliRunner

from conftest import FakeFetch, match_dict

from matchenricher import __version__
from matchenricher.cli.commands import enrich
from matchenricher.cli.main import app
from matchenricher.core.checkpoint import CheckpointStore
from matchenricher.core.records import Found, Target
from matchenricher.core.records.storage import read_json

runner = CliRunner()


@pytest.fixture(autouse=True)
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    logging.getLogger("matchenricher").handlers.clear()


def test_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_writes_default_config(workdir) -> None:
    result = runner.invoke(app, ["init"])

    assert result.exit_code == 0
    assert (workdir / "configs" / "enrich.yaml").exists()
    assert (workdir / "logs").is_dir()


def test_plan_lists_units(write_target) -> None:
    write_target("data/a", [match_dict(url="https://s/1"), match_dict(url="https://s/2")], tournament="A")
    write_target("data/b", [match_dict(stats={"x": 1})], tournament="B")

    result = runner.invoke(app, ["plan", "data"])

    assert result.exit_code == 0
    assert "2 matches in 1 units" in result.output
    assert "nothing to enrich" in result.output


def test_plan_missing_directory() -> None:
    result = runner.invoke(app, ["plan", "missing"])

    assert result.exit_code == 1


def test_run_enriches_and_summarizes(workdir, write_target, monkeypatch) -> None:
    source = write_target("data/a", [match_dict(url="https://s/1")], tournament="A")
    monkeypatch.setattr(enrich, "_build_fetcher", lambda config: FakeFetch(default=Found({"shots": 5})))

    result = runner.invoke(app, ["run", "data", "--no-serve", "--delay-ms", "0"])

    assert result.exit_code == 0, result.output
    assert "Enrichment Summary" in result.output
    content = read_json(source.with_name("composed.enriched.json"))
    assert content["data"][0]["gameweeks"][0]["matches"][0]["stats"] == {"shots": 5}


def test_run_defaults_to_configured_data_dir(workdir, write_target, monkeypatch) -> None:
    source = write_target("stored/a", [match_dict(url="https://s/1")], tournament="A")
    (workdir / "c.yaml").write_text(f"data_dir: '{workdir / 'stored'}'\n")
    monkeypatch.setattr(enrich, "_build_fetcher", lambda config: FakeFetch(default=Found({"shots": 2})))

    result = runner.invoke(app, ["run", "--config", "c.yaml", "--no-serve", "--delay-ms", "0"])

    assert result.exit_code == 0, result.output
    content = read_json(source.with_name("composed.enriched.json"))
    assert content["data"][0]["gameweeks"][0]["matches"][0]["stats"] == {"shots": 2}


def test_plan_defaults_to_configured_data_dir(workdir, write_target) -> None:
    write_target("stored/a", [match_dict(url="https://s/1")], tournament="A")
    (workdir / "c.yaml").write_text(f"data_dir: '{workdir / 'stored'}'\n")

    result = runner.invoke(app, ["plan", "--config", "c.yaml"])

    assert result.exit_code == 0, result.output
    assert "1 matches in 1 units" in result.output


def test_run_missing_directory_exits_with_error() -> None:
    result = runner.invoke(app, ["run", "missing", "--no-serve", "--delay-ms", "0"])

    assert result.exit_code == 1


def test_checkpoint_show_and_resolve(workdir, write_target) -> None:
    source = write_target("data/a", [match_dict(url="https://s/1")], tournament="A")
    target = Target.from_dict(read_json(source), save_path=str(source.with_name("composed.enriched.json")))
    next(target.iter_matches()).result = Found({"shots": 1})
    CheckpointStore(workdir / "data" / "checkpoint.json").save(target)

    shown = runner.invoke(app, ["checkpoint", "show"])
    resolved = runner.invoke(app, ["checkpoint", "resolve"])

    assert shown.exit_code == 0
    assert "A (England)" in shown.output
    assert resolved.exit_code == 0
    assert not (workdir / "data" / "checkpoint.json").exists()
    assert source.with_name("composed.enriched.json").exists()


def test_checkpoint_clear_without_checkpoint() -> None:
    result = runner.invoke(app, ["checkpoint", "clear", "--yes"])

    assert result.exit_code == 0
    assert "No checkpoint" in result.output


def test_metadata_rewrite(workdir) -> None:
    league = workdir / "root" / "england"
    league.mkdir(parents=True)
    (league / "metadata.txt").write_text("country=England\n")
    (league / "composed.json").write_text('{"tournament": "Premier League", "data": []}')

    result = runner.invoke(app, ["metadata", "rewrite", "root"])

    assert result.exit_code == 0
    assert read_json(league / "composed.json")["metadata"]["country"] == "England"
