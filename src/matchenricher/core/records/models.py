"""
Record models for enrichment targets.

A target is one tournament dataset: seasons → gameweeks → matches,
plus the path its enriched form is written to. Models round-trip the
on-disk JSON layout, including keys this package does not interpret.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Union


logger = logging.getLogger(__name__)


# On-disk sentinels for "fetch succeeded but no stats existed"
NO_STATS = "NO_STATS"
NO_STATS_TRANSIENT = "NO_STATS_OTM"

UNKNOWN_TOURNAMENT = "Unknown Tournament"


# =============================================================================
# Match results
# =============================================================================


@dataclass(frozen=True)
class Found:
    """Stats were fetched for the match."""

    payload: dict[str, Any]


@dataclass(frozen=True)
class NotFound:
    """The source has no stats for the match."""


@dataclass(frozen=True)
class NotFoundTransient:
    """No stats this time, but the source may have them later."""


MatchResult = Union[Found, NotFound, NotFoundTransient]


def result_from_json(value: Any) -> MatchResult | None:
    """Decode the ``stats`` value stored on disk.

    Objects are payloads, even empty ones. Any other falsy value
    (``null``, ``""``, ``false``, ``[]``) means not yet fetched.
    """
    if isinstance(value, dict):
        return Found(value)
    if not value:
        return None
    if value == NO_STATS:
        return NotFound()
    if value == NO_STATS_TRANSIENT:
        return NotFoundTransient()
    raise ValueError(f"Unrecognized stats value: {value!r}")


def result_to_json(result: MatchResult | None) -> Any:
    """Encode a result into its on-disk ``stats`` value."""
    if result is None:
        return None
    if isinstance(result, Found):
        return result.payload
    if isinstance(result, NotFoundTransient):
        return NO_STATS_TRANSIENT
    return NO_STATS


def _stats_from_disk(data: dict[str, Any]) -> MatchResult | None:
    try:
        return result_from_json(data.get("stats"))
    except ValueError as e:
        logger.warning(
            f"{e} for {data.get('homeTeam', '?')} vs {data.get('awayTeam', '?')}, "
            "treating it as not yet fetched"
        )
        return None


def is_sentinel(result: MatchResult | None) -> bool:
    """True for NotFound / NotFoundTransient results."""
    return isinstance(result, (NotFound, NotFoundTransient))


# =============================================================================
# Hierarchy
# =============================================================================


_MATCH_KEYS = ("homeTeam", "awayTeam", "score", "statsUrl", "stats")


@dataclass
class Match:
    """A single fixture and its enrichment result."""

    home_team: str
    away_team: str
    score: str
    fetch_url: str | None = None
    result: MatchResult | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Match:
        return cls(
            home_team=data.get("homeTeam", ""),
            away_team=data.get("awayTeam", ""),
            score=data.get("score", ""),
            fetch_url=data.get("statsUrl") or None,
            result=_stats_from_disk(data),
            extra={k: v for k, v in data.items() if k not in _MATCH_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "homeTeam": self.home_team,
            "awayTeam": self.away_team,
            "score": self.score,
            "statsUrl": self.fetch_url,
            "stats": result_to_json(self.result),
        })
        return data


@dataclass
class Gameweek:
    """A round of matches within a season."""

    number: Any = None
    matches: list[Match] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Gameweek:
        return cls(
            number=data.get("gameweek"),
            matches=[Match.from_dict(m) for m in data.get("matches") or []],
            extra={k: v for k, v in data.items() if k not in ("gameweek", "matches")},
        )

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data["gameweek"] = self.number
        data["matches"] = [m.to_dict() for m in self.matches]
        return data


@dataclass
class Season:
    """A season label and its gameweeks."""

    label: str = ""
    gameweeks: list[Gameweek] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def has_data(self) -> bool:
        """True when at least one gameweek holds matches."""
        return any(gw.matches for gw in self.gameweeks)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Season:
        return cls(
            label=str(data.get("season") or ""),
            gameweeks=[Gameweek.from_dict(g) for g in data.get("gameweeks") or []],
            extra={k: v for k, v in data.items() if k not in ("season", "gameweeks")},
        )

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data["season"] = self.label
        data["gameweeks"] = [g.to_dict() for g in self.gameweeks]
        return data


@dataclass
class TargetMetadata:
    """Standard metadata block of a target file."""

    country: str | None = None
    tournament: str = UNKNOWN_TOURNAMENT
    scrape_date: str | None = None
    enrichment_timestamp: str | None = None
    enriched: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TargetMetadata:
        known = ("country", "tournament", "scrapeDate", "enrichmentTimestamp", "enriched")
        return cls(
            country=data.get("country"),
            tournament=data.get("tournament") or UNKNOWN_TOURNAMENT,
            scrape_date=data.get("scrapeDate"),
            enrichment_timestamp=data.get("enrichmentTimestamp"),
            enriched=bool(data.get("enriched", False)),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "scrapeDate": self.scrape_date,
            "country": self.country,
            "tournament": self.tournament,
        })
        if self.enrichment_timestamp is not None:
            data["enrichmentTimestamp"] = self.enrichment_timestamp
        if self.enriched:
            data["enriched"] = True
        return data


@dataclass
class Target:
    """One tournament dataset and the path its enriched form is saved to."""

    metadata: TargetMetadata
    data: list[Season]
    save_path: str

    @property
    def identifier(self) -> str:
        """Human readable label, e.g. ``Premier League (England)``."""
        return f"{self.metadata.tournament} ({self.metadata.country})"

    def iter_matches(self) -> Iterator[Match]:
        for season in self.data:
            for gameweek in season.gameweeks:
                yield from gameweek.matches

    @classmethod
    def from_dict(cls, data: dict[str, Any], save_path: str | None = None) -> Target:
        """Build a target from a file's JSON content.

        Accepts both the standard layout (``metadata`` block) and the legacy
        layout with top-level ``country`` / ``tournament`` keys.
        """
        if isinstance(data.get("metadata"), dict):
            metadata = TargetMetadata.from_dict(data["metadata"])
        else:
            metadata = TargetMetadata(
                country=data.get("country"),
                tournament=data.get("tournament") or UNKNOWN_TOURNAMENT,
                scrape_date=data.get("scrapeDate"),
            )
        seasons = data.get("data")
        if not isinstance(seasons, list):
            raise ValueError("Target file has no 'data' list")

        return cls(
            metadata=metadata,
            data=[Season.from_dict(s) for s in seasons],
            save_path=save_path or data.get("savePath") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize the persisted form (metadata + data)."""
        return {
            "metadata": self.metadata.to_dict(),
            "data": [s.to_dict() for s in self.data],
        }
