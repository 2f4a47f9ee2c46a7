"""
tests/conftest.py

Purpose:
    Shared builders and fakes for target files, fetchers, and sleeps.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import orjson
import pytest

from matchenricher.core.records import Target


def match_dict(
    home: str = "Home",
    away: str = "Away",
    *,
    score: str = "1 : 0",
    url: str | None = "https://stats.example/match/1",
    stats: Any = None,
    **extra: Any,
) -> dict[str, Any]:
    return {
        "homeTeam": home,
        "awayTeam": away,
        "score": score,
        "statsUrl": url,
        "stats": stats,
        **extra,
    }


def target_dict(
    matches: list[dict[str, Any]],
    *,
    country: str = "England",
    tournament: str = "Premier League",
    season: str = "2023/2024",
) -> dict[str, Any]:
    return {
        "metadata": {
            "scrapeDate": "2024-05-20T10:00:00+00:00",
            "country": country,
            "tournament": tournament,
        },
        "data": [
            {
                "season": season,
                "gameweeks": [{"gameweek": 1, "matches": matches}],
            }
        ],
    }


@pytest.fixture
def make_target() -> Callable[..., Target]:
    """Build an in-memory Target from match dicts."""
    def factory(
        matches: list[dict[str, Any]],
        *,
        save_path: str = "out/composed.enriched.json",
        **kwargs: Any,
    ) -> Target:
        return Target.from_dict(target_dict(matches, **kwargs), save_path=save_path)

    return factory


@pytest.fixture
def write_target(tmp_path: Path) -> Callable[..., Path]:
    """Write a target file under tmp_path/<directory>/<name>."""
    def factory(
        directory: str,
        matches: list[dict[str, Any]],
        *,
        name: str = "composed.json",
        **kwargs: Any,
    ) -> Path:
        path = tmp_path / directory / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(orjson.dumps(target_dict(matches, **kwargs)))
        return path

    return factory


class FakeSleep:
    """Records requested sleeps and advances a fake clock instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []
        self.now = 0.0

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.now += seconds

    def clock(self) -> float:
        return self.now


class FakeFetch:
    """Scripted fetch function.

    ``script`` maps a URL to a list of outcomes consumed in order; an
    exception instance is raised, anything else is returned. URLs without
    a script (or with an exhausted one) return ``default``.
    """

    def __init__(self, script: dict[str, list[Any]] | None = None, default: Any = None):
        self.script = {url: list(outcomes) for url, outcomes in (script or {}).items()}
        self.default = default
        self.calls: list[tuple[str, str, str, str]] = []

    async def __call__(self, score: str, url: str, *, home_team: str, away_team: str) -> Any:
        self.calls.append((score, url, home_team, away_team))
        outcomes = self.script.get(url)
        outcome = outcomes.pop(0) if outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def calls_for(self, url: str) -> int:
        return sum(1 for call in self.calls if call[1] == url)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()
