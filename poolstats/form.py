from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from .config import DEFAULT_CONFIG, EngineConfig
from .normalize import GameRecord, MatchResult
from .standings import team_results
from .stats import win_pct
from .types import Side, Trend

FORM_WINDOW_SMALL = 5
FORM_WINDOW_MEDIUM = 8
FORM_WINDOW_LARGE = 10


@dataclass(frozen=True)
class WinRecord:
    played: int = 0
    won: int = 0

    @property
    def lost(self) -> int:
        return self.played - self.won

    @property
    def pct(self) -> float:
        return win_pct(self.won, self.played)


@dataclass(frozen=True)
class PlayerGame:
    date: date
    won: bool
    opponent: str
    is_home: bool
    set_number: int


@dataclass(frozen=True)
class Streak:
    kind: str  # "win", "loss" or "none"
    count: int = 0


@dataclass(frozen=True)
class FormSummary:
    last5: WinRecord
    last8: WinRecord
    last10: WinRecord
    season_pct: float
    trend: Trend
    streak: Streak
    momentum: float
    recent: List[PlayerGame] = field(default_factory=list)


@dataclass(frozen=True)
class HomeAwaySplit:
    home: WinRecord
    away: WinRecord


@dataclass(frozen=True)
class SetPerformance:
    set1: WinRecord
    set2: WinRecord
    bias: float
    even_threshold: float = DEFAULT_CONFIG.set_bias_even

    @property
    def is_even(self) -> bool:
        return abs(self.bias) < self.even_threshold


@dataclass(frozen=True)
class VenueRecord:
    p: int = 0
    w: int = 0
    d: int = 0
    l: int = 0
    f: int = 0
    a: int = 0

    @property
    def win_pct(self) -> float:
        return win_pct(self.w, self.p)


@dataclass(frozen=True)
class TeamHomeAwaySplit:
    home: VenueRecord
    away: VenueRecord


def player_games(player: str, games: Iterable[GameRecord]) -> List[PlayerGame]:
    """Every frame ``player`` took part in, newest first."""
    out: List[PlayerGame] = []
    for g in games:
        side = g.side_of(player)
        if side is None:
            continue
        out.append(
            PlayerGame(
                date=g.date,
                won=g.winner == side,
                opponent=g.opponent_of(player) or "",
                is_home=side is Side.HOME,
                set_number=g.set_number,
            )
        )
    # stable sort keeps frame order within a match
    out.sort(key=lambda pg: pg.date, reverse=True)
    return out


def window(history: List[PlayerGame], n: int) -> WinRecord:
    recent = history[:n]
    return WinRecord(played=len(recent), won=sum(1 for g in recent if g.won))


def _streak(history: List[PlayerGame]) -> Streak:
    if not history:
        return Streak(kind="none", count=0)
    first = history[0].won
    count = 0
    for g in history:
        if g.won != first:
            break
        count += 1
    return Streak(kind="win" if first else "loss", count=count)


def _momentum(history: List[PlayerGame]) -> float:
    recent = history[:FORM_WINDOW_SMALL]
    if not recent:
        return 0.0
    weighted = 0.0
    total = 0.0
    for idx, g in enumerate(recent):
        weight = FORM_WINDOW_SMALL - idx
        weighted += weight if g.won else 0.0
        total += weight
    return (weighted / total - 0.5) * 2.0


def classify_trend(
    recent: WinRecord, season_pct: float, config: EngineConfig = DEFAULT_CONFIG
) -> Trend:
    if recent.played < config.min_games_for_trend:
        return Trend.STEADY
    delta = recent.pct - season_pct
    if delta >= config.form_trend_threshold:
        return Trend.HOT
    if delta <= -config.form_trend_threshold:
        return Trend.COLD
    return Trend.STEADY


def form(
    player: str,
    games: Iterable[GameRecord],
    season_pct: Optional[float] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> FormSummary:
    history = player_games(player, games)
    season = window(history, len(history))
    if season_pct is None:
        season_pct = season.pct
    last5 = window(history, FORM_WINDOW_SMALL)
    return FormSummary(
        last5=last5,
        last8=window(history, FORM_WINDOW_MEDIUM),
        last10=window(history, FORM_WINDOW_LARGE),
        season_pct=season_pct,
        trend=classify_trend(last5, season_pct, config),
        streak=_streak(history),
        momentum=_momentum(history),
        recent=history[:FORM_WINDOW_LARGE],
    )


def home_away_split(player: str, games: Iterable[GameRecord]) -> HomeAwaySplit:
    history = player_games(player, games)
    home = [g for g in history if g.is_home]
    away = [g for g in history if not g.is_home]
    return HomeAwaySplit(
        home=WinRecord(played=len(home), won=sum(1 for g in home if g.won)),
        away=WinRecord(played=len(away), won=sum(1 for g in away if g.won)),
    )


def set_performance(
    team: str, games: Iterable[GameRecord], config: EngineConfig = DEFAULT_CONFIG
) -> Optional[SetPerformance]:
    played = {1: 0, 2: 0}
    won = {1: 0, 2: 0}
    for g in games:
        if not g.involves_team(team):
            continue
        played[g.set_number] += 1
        if g.won_by_team(team):
            won[g.set_number] += 1
    if not played[1] and not played[2]:
        return None
    set1 = WinRecord(played=played[1], won=won[1])
    set2 = WinRecord(played=played[2], won=won[2])
    return SetPerformance(
        set1=set1, set2=set2, bias=set1.pct - set2.pct, even_threshold=config.set_bias_even
    )


def team_form(team: str, results: Iterable[MatchResult], n: int = FORM_WINDOW_SMALL) -> List[str]:
    return [r.outcome.value for r in team_results(team, results)[:n]]


def team_home_away_split(team: str, results: Iterable[MatchResult]) -> TeamHomeAwaySplit:
    def _venue(rows: list) -> VenueRecord:
        return VenueRecord(
            p=len(rows),
            w=sum(1 for r in rows if r.team_score > r.opp_score),
            d=sum(1 for r in rows if r.team_score == r.opp_score),
            l=sum(1 for r in rows if r.team_score < r.opp_score),
            f=sum(r.team_score for r in rows),
            a=sum(r.opp_score for r in rows),
        )

    rows = team_results(team, results)
    return TeamHomeAwaySplit(
        home=_venue([r for r in rows if r.is_home]),
        away=_venue([r for r in rows if not r.is_home]),
    )
