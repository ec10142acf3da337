from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .config import DEFAULT_CONFIG, EngineConfig
from .normalize import GameRecord, PlayerSeasonStat, RosterPlayer, SeasonStats

# Minimum current-season games before they take precedence over the prior season
MIN_CURRENT_GAMES = 3


@dataclass(frozen=True)
class BreakAndDishRates:
    bd_f_rate: float
    bd_a_rate: float


@dataclass(frozen=True)
class TeamBDStats:
    games: int
    bd_f_rate: float
    bd_a_rate: float
    net_bd: int
    forfeit_rate: float
    bd_efficiency: float


@dataclass(frozen=True)
class EffectivePct:
    pct: float  # 0-1
    adj_pct: float  # 0-1
    weight: int
    wins: int


def win_pct(won: int, played: int) -> float:
    return (won / played) * 100.0 if played else 0.0


def bayesian_adjust(
    wins: float,
    played: float,
    prior_mean: float = DEFAULT_CONFIG.bayesian_prior,
    prior_weight: float = DEFAULT_CONFIG.bayesian_k,
) -> float:
    if played <= 0:
        return prior_mean
    return (wins + prior_mean * prior_weight) / (played + prior_weight)


def adjusted_pct(stat: PlayerSeasonStat, config: EngineConfig = DEFAULT_CONFIG) -> float:
    return bayesian_adjust(stat.won, stat.played, config.bayesian_prior, config.bayesian_k) * 100.0


def aggregate(
    player: str,
    games: Iterable[GameRecord],
    team: Optional[str] = None,
    division: Optional[str] = None,
) -> PlayerSeasonStat:
    played = won = bd_f = bd_a = forfeits = 0
    for g in games:
        if g.side_of(player) is None:
            continue
        if team is not None and g.team_of(player) != team:
            continue
        if division is not None and g.division != division:
            continue
        played += 1
        won_frame = g.won_by(player)
        if won_frame:
            won += 1
            if g.break_dish:
                bd_f += 1
        else:
            if g.break_dish:
                bd_a += 1
            if g.forfeit:
                forfeits += 1
    return PlayerSeasonStat(
        player=player,
        team=team or "",
        division=division or "",
        played=played,
        won=won,
        bd_f=bd_f,
        bd_a=bd_a,
        forfeits=forfeits,
    )


def aggregate_all(games: List[GameRecord]) -> SeasonStats:
    """Per-team season stats for every player appearing in ``games``."""
    keys: Dict[tuple, None] = {}
    for g in games:
        keys[(g.home_player, g.home_team, g.division)] = None
        keys[(g.away_player, g.away_team, g.division)] = None
    out: SeasonStats = {}
    for player, team, division in keys:
        if not player:
            continue
        out.setdefault(player, []).append(aggregate(player, games, team=team, division=division))
    return out


def break_and_dish_rates(stat: PlayerSeasonStat) -> BreakAndDishRates:
    if stat.played <= 0:
        return BreakAndDishRates(bd_f_rate=0.0, bd_a_rate=0.0)
    return BreakAndDishRates(bd_f_rate=stat.bd_f / stat.played, bd_a_rate=stat.bd_a / stat.played)


def team_entries(
    team: str, season_stats: SeasonStats, division: Optional[str] = None
) -> List[PlayerSeasonStat]:
    out: List[PlayerSeasonStat] = []
    for entries in season_stats.values():
        for e in entries:
            if e.team == team and (division is None or e.division == division):
                out.append(e)
    return out


def team_bd_stats(
    team: str, season_stats: SeasonStats, division: Optional[str] = None
) -> TeamBDStats:
    games = bd_f = bd_a = forfeits = 0
    for e in team_entries(team, season_stats, division):
        games += e.played
        bd_f += e.bd_f
        bd_a += e.bd_a
        forfeits += e.forfeits
    return TeamBDStats(
        games=games,
        bd_f_rate=(bd_f / games) if games else 0.0,
        bd_a_rate=(bd_a / games) if games else 0.0,
        net_bd=bd_f - bd_a,
        forfeit_rate=(forfeits / games) if games else 0.0,
        bd_efficiency=(bd_f / (bd_f + bd_a)) if (bd_f + bd_a) else 0.5,
    )


def compare_bd_stats(a: TeamBDStats, b: TeamBDStats) -> Dict[str, float]:
    return {
        "bd_advantage": a.bd_f_rate - b.bd_f_rate,
        "efficiency_diff": a.bd_efficiency - b.bd_efficiency,
        "net_diff": float(a.net_bd - b.net_bd),
    }


def effective_pct(player: RosterPlayer, config: EngineConfig = DEFAULT_CONFIG) -> Optional[EffectivePct]:
    current = player.current
    if current is not None and current.played >= MIN_CURRENT_GAMES:
        return EffectivePct(
            pct=current.won / current.played,
            adj_pct=bayesian_adjust(current.won, current.played, config.bayesian_prior, config.bayesian_k),
            weight=current.played,
            wins=current.won,
        )
    prior = player.prior
    if prior is not None and prior.played > 0:
        wins = round(prior.win_pct * prior.played)
        return EffectivePct(
            pct=prior.win_pct,
            adj_pct=bayesian_adjust(wins, prior.played, config.bayesian_prior, config.bayesian_k),
            weight=prior.played,
            wins=wins,
        )
    return None


def league_stats(season_stats: SeasonStats, exclude_cup: bool = True) -> Dict[str, PlayerSeasonStat]:
    """Merge each player's per-team entries into one league-wide line."""
    out: Dict[str, PlayerSeasonStat] = {}
    for player, entries in season_stats.items():
        rows = [e for e in entries if not (exclude_cup and e.cup)]
        if not rows:
            continue
        out[player] = PlayerSeasonStat(
            player=player,
            team=rows[0].team if len(rows) == 1 else "",
            division=rows[0].division if len({r.division for r in rows}) == 1 else "",
            played=sum(r.played for r in rows),
            won=sum(r.won for r in rows),
            bd_f=sum(r.bd_f for r in rows),
            bd_a=sum(r.bd_a for r in rows),
            forfeits=sum(r.forfeits for r in rows),
        )
    return out
