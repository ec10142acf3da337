from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from .types import Side

SET_ONE_LAST_FRAME = 5


class DatasetError(ValueError):
    pass


@dataclass(frozen=True)
class GameRecord:
    match_id: str
    date: date
    home_team: str
    away_team: str
    division: str
    frame_num: int
    home_player: str
    away_player: str
    winner: Side
    break_dish: bool = False
    forfeit: bool = False
    set_number: int = 0

    def __post_init__(self) -> None:
        if self.set_number not in (1, 2):
            object.__setattr__(
                self, "set_number", 1 if self.frame_num <= SET_ONE_LAST_FRAME else 2
            )

    def side_of(self, player: str) -> Optional[Side]:
        if player == self.home_player:
            return Side.HOME
        if player == self.away_player:
            return Side.AWAY
        return None

    def won_by(self, player: str) -> bool:
        return self.side_of(player) == self.winner

    def opponent_of(self, player: str) -> Optional[str]:
        side = self.side_of(player)
        if side is Side.HOME:
            return self.away_player
        if side is Side.AWAY:
            return self.home_player
        return None

    def team_of(self, player: str) -> Optional[str]:
        side = self.side_of(player)
        if side is Side.HOME:
            return self.home_team
        if side is Side.AWAY:
            return self.away_team
        return None

    def involves_team(self, team: str) -> bool:
        return team in (self.home_team, self.away_team)

    def won_by_team(self, team: str) -> bool:
        if team == self.home_team:
            return self.winner == Side.HOME
        if team == self.away_team:
            return self.winner == Side.AWAY
        return False


@dataclass(frozen=True)
class MatchResult:
    date: date
    home: str
    away: str
    home_score: int
    away_score: int
    division: str = ""
    frames: int = 10


@dataclass(frozen=True)
class Fixture:
    date: date
    home: str
    away: str
    division: str = ""

    @property
    def key(self) -> str:
        return f"{self.home}:{self.away}"


@dataclass(frozen=True)
class WhatIfResult:
    home: str
    away: str
    home_score: int
    away_score: int

    @property
    def key(self) -> str:
        return f"{self.home}:{self.away}"


@dataclass(frozen=True)
class PlayerSeasonStat:
    player: str
    team: str = ""
    division: str = ""
    played: int = 0
    won: int = 0
    bd_f: int = 0
    bd_a: int = 0
    forfeits: int = 0
    cup: bool = False

    @property
    def pct(self) -> float:
        return (self.won / self.played) * 100.0 if self.played else 0.0


@dataclass(frozen=True)
class PriorRating:
    rating: float
    win_pct: float  # 0-1
    played: int


@dataclass(frozen=True)
class RosterPlayer:
    name: str
    current: Optional[PlayerSeasonStat] = None
    prior: Optional[PriorRating] = None
    rostered: bool = True


@dataclass(frozen=True)
class TeamRoster:
    team: str
    division: str
    players: List[RosterPlayer] = field(default_factory=list)

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.players]


@dataclass
class SquadOverride:
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)


SquadOverrides = Dict[str, SquadOverride]
SeasonStats = Dict[str, List[PlayerSeasonStat]]


@dataclass(frozen=True)
class Division:
    code: str
    name: str
    teams: List[str]


@dataclass
class LeagueDataset:
    league_id: str
    name: str
    divisions: Dict[str, Division]
    results: List[MatchResult] = field(default_factory=list)
    fixtures: List[Fixture] = field(default_factory=list)
    games: List[GameRecord] = field(default_factory=list)
    roster_names: Dict[str, List[str]] = field(default_factory=dict)
    season_stats: SeasonStats = field(default_factory=dict)
    prior_ratings: Dict[str, PriorRating] = field(default_factory=dict)

    def division_of(self, team: str) -> Optional[str]:
        for code, div in self.divisions.items():
            if team in div.teams:
                return code
        return None

    def teams(self, division: Optional[str] = None) -> List[str]:
        if division is not None:
            div = self.divisions.get(division)
            return list(div.teams) if div else []
        return [t for div in self.divisions.values() for t in div.teams]

    def roster(self, team: str) -> Optional[TeamRoster]:
        division = self.division_of(team)
        if division is None:
            return None
        return build_roster(
            team,
            division,
            self.roster_names.get(team, []),
            self.season_stats,
            self.prior_ratings,
        )

    def rosters(self, division: Optional[str] = None) -> Dict[str, TeamRoster]:
        out: Dict[str, TeamRoster] = {}
        for team in self.teams(division):
            roster = self.roster(team)
            if roster is not None:
                out[team] = roster
        return out


def normalize_player_name(name: str) -> str:
    return re.sub(r"\s+", " ", (name or "")).strip().lower()


def team_entry(season_stats: SeasonStats, player: str, team: str) -> Optional[PlayerSeasonStat]:
    """The player's entry for ``team``, league rows ahead of cup rows."""
    matches = [e for e in season_stats.get(player, []) if e.team == team]
    for entry in matches:
        if not entry.cup:
            return entry
    return matches[0] if matches else None


def build_roster(
    team: str,
    division: str,
    roster_names: Iterable[str],
    season_stats: SeasonStats,
    prior_ratings: Optional[Dict[str, PriorRating]] = None,
) -> TeamRoster:
    prior_ratings = prior_ratings or {}
    listed = list(dict.fromkeys(roster_names))
    names = list(listed)
    for player, entries in season_stats.items():
        if player not in names and any(e.team == team for e in entries):
            names.append(player)
    players = [
        RosterPlayer(
            name=name,
            current=team_entry(season_stats, name, team),
            prior=prior_ratings.get(name),
            rostered=name in listed,
        )
        for name in names
    ]
    return TeamRoster(team=team, division=division, players=players)


def _safe_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _safe_float(value: Any) -> float:
    try:
        return float(value or 0.0)
    except (TypeError, ValueError):
        return 0.0


def _parse_date(value: Union[str, date, None]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = (value or "").strip()
    for fmt in ("%d-%m-%Y", "%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise DatasetError(f"Unrecognised date: {value!r}") from exc


def _side(value: Any) -> Side:
    try:
        return Side(str(value).lower())
    except ValueError as exc:
        raise DatasetError(f"Frame winner must be 'home' or 'away', got {value!r}") from exc


def _frame_from_entry(match: Dict[str, Any], frame: Dict[str, Any], index: int) -> GameRecord:
    frame_num = _safe_int(frame.get("frameNum") or frame.get("frame_num")) or index + 1
    return GameRecord(
        match_id=str(match.get("matchId") or match.get("match_id") or ""),
        date=_parse_date(match.get("date")),
        home_team=str(match.get("home") or match.get("home_team") or ""),
        away_team=str(match.get("away") or match.get("away_team") or ""),
        division=str(match.get("division") or ""),
        frame_num=frame_num,
        home_player=str(frame.get("homePlayer") or frame.get("home_player") or ""),
        away_player=str(frame.get("awayPlayer") or frame.get("away_player") or ""),
        winner=_side(frame.get("winner")),
        break_dish=bool(frame.get("breakDish") or frame.get("break_dish")),
        forfeit=bool(frame.get("forfeit")),
        set_number=_safe_int(frame.get("set") or frame.get("set_number")),
    )


def games_from_json(entries: List[Dict[str, Any]]) -> List[GameRecord]:
    games: List[GameRecord] = []
    for entry in entries:
        nested = entry.get("frames")
        if isinstance(nested, list):
            for idx, frame in enumerate(nested):
                games.append(_frame_from_entry(entry, frame, idx))
            continue
        # Flat frame: match fields and frame fields share one object
        games.append(_frame_from_entry(entry, entry, 0))
    return games


def results_from_json(entries: List[Dict[str, Any]]) -> List[MatchResult]:
    return [
        MatchResult(
            date=_parse_date(r.get("date")),
            home=str(r.get("home") or ""),
            away=str(r.get("away") or ""),
            home_score=_safe_int(r.get("home_score", r.get("homeScore"))),
            away_score=_safe_int(r.get("away_score", r.get("awayScore"))),
            division=str(r.get("division") or ""),
            frames=_safe_int(r.get("frames")) or 10,
        )
        for r in entries
    ]


def fixtures_from_json(entries: List[Dict[str, Any]]) -> List[Fixture]:
    return [
        Fixture(
            date=_parse_date(f.get("date")),
            home=str(f.get("home") or ""),
            away=str(f.get("away") or ""),
            division=str(f.get("division") or ""),
        )
        for f in entries
    ]


def what_ifs_from_json(entries: List[Dict[str, Any]]) -> List[WhatIfResult]:
    return [
        WhatIfResult(
            home=str(w.get("home") or ""),
            away=str(w.get("away") or ""),
            home_score=_safe_int(w.get("homeScore", w.get("home_score"))),
            away_score=_safe_int(w.get("awayScore", w.get("away_score"))),
        )
        for w in entries
    ]


def overrides_from_json(data: Dict[str, Any]) -> SquadOverrides:
    return {
        str(team): SquadOverride(
            added=[str(n) for n in (o.get("added") or [])],
            removed=[str(n) for n in (o.get("removed") or [])],
        )
        for team, o in (data or {}).items()
    }


def season_stats_from_json(data: Dict[str, Any]) -> SeasonStats:
    stats: SeasonStats = {}
    for name, player in (data or {}).items():
        entries: List[PlayerSeasonStat] = []
        for t in player.get("teams") or []:
            entries.append(
                PlayerSeasonStat(
                    player=name,
                    team=str(t.get("team") or ""),
                    division=str(t.get("div") or t.get("division") or ""),
                    played=_safe_int(t.get("p", t.get("played"))),
                    won=_safe_int(t.get("w", t.get("won"))),
                    bd_f=_safe_int(t.get("bdF", t.get("bd_f"))),
                    bd_a=_safe_int(t.get("bdA", t.get("bd_a"))),
                    forfeits=_safe_int(t.get("forf", t.get("forfeits"))),
                    cup=bool(t.get("cup")),
                )
            )
        if entries:
            stats[name] = entries
    return stats


def prior_ratings_from_json(data: Dict[str, Any]) -> Dict[str, PriorRating]:
    return {
        name: PriorRating(
            rating=_safe_float(p.get("r", p.get("rating"))),
            win_pct=_safe_float(p.get("w", p.get("win_pct"))),
            played=_safe_int(p.get("p", p.get("played"))),
        )
        for name, p in (data or {}).items()
    }


def _roster_names_from_json(data: Dict[str, Any]) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {}
    for key, names in (data or {}).items():
        # Keys are either "DIV:Team" or a bare team name
        team = key.split(":", 1)[1] if ":" in key else key
        out.setdefault(team, []).extend(str(n) for n in names or [])
    return out


def dataset_from_dict(data: Dict[str, Any], league_id: Optional[str] = None) -> LeagueDataset:
    if not isinstance(data, dict):
        raise DatasetError(f"Dataset must be a JSON object, got {type(data).__name__}.")
    divisions_raw = data.get("divisions")
    if not isinstance(divisions_raw, dict) or not divisions_raw:
        raise DatasetError("Dataset has no divisions.")
    divisions = {
        code: Division(code=code, name=str(d.get("name") or code), teams=list(d.get("teams") or []))
        for code, d in divisions_raw.items()
    }
    league = data.get("league") or {}
    lid = league_id or str(league.get("id") or "league")
    return LeagueDataset(
        league_id=lid,
        name=str(league.get("name") or lid),
        divisions=divisions,
        results=results_from_json(data.get("results") or []),
        fixtures=fixtures_from_json(data.get("fixtures") or []),
        games=games_from_json(data.get("frames") or []),
        roster_names=_roster_names_from_json(data.get("rosters") or {}),
        season_stats=season_stats_from_json(data.get("seasonStats") or data.get("players2526") or {}),
        prior_ratings=prior_ratings_from_json(data.get("players") or {}),
    )


def load_dataset(path: Union[str, Path]) -> LeagueDataset:
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    league = data.get("league") if isinstance(data, dict) else None
    league_id = league.get("id") if isinstance(league, dict) else None
    return dataset_from_dict(data, league_id=str(league_id or path.stem))
