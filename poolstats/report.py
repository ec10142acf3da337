from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .config import DEFAULT_CONFIG, EngineConfig
from .form import set_performance, team_form, team_home_away_split
from .lineup import predict_lineup
from .normalize import GameRecord, MatchResult, PlayerSeasonStat, SeasonStats, TeamRoster
from .stats import adjusted_pct, team_bd_stats, team_entries


def _roster_stats(
    opponent: str,
    season_stats: SeasonStats,
    rosters: Optional[Mapping[str, TeamRoster]],
) -> List[PlayerSeasonStat]:
    roster = (rosters or {}).get(opponent)
    if roster is not None:
        return [p.current for p in roster.players if p.current is not None]
    return [e for e in team_entries(opponent, season_stats) if not e.cup]


def _rank_players(stats: List[PlayerSeasonStat], config: EngineConfig) -> List[Dict[str, Any]]:
    ranked = [
        {
            "name": s.player,
            "pct": s.pct,
            "adj_pct": adjusted_pct(s, config),
            "played": s.played,
        }
        for s in stats
        if s.played > 0
    ]
    ranked.sort(key=lambda p: (-p["adj_pct"], p["name"]))
    return ranked


def build_report(
    opponent: str,
    games: Iterable[GameRecord],
    results: Iterable[MatchResult],
    season_stats: SeasonStats,
    rosters: Optional[Mapping[str, TeamRoster]] = None,
    top_n: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> Dict[str, Any]:
    config = config or DEFAULT_CONFIG
    top_n = config.report_top_n if top_n is None else top_n
    games = list(games)
    results = list(results)

    form = team_form(opponent, results)
    home_away = team_home_away_split(opponent, results)
    sets = set_performance(opponent, games, config)
    lineup = predict_lineup(opponent, games)

    roster_stats = _roster_stats(opponent, season_stats, rosters)
    division = roster_stats[0].division if roster_stats else None
    bd = team_bd_stats(opponent, season_stats, division or None)

    ranked = _rank_players(roster_stats, config)
    strongest = ranked[:top_n]
    weakest = list(reversed(ranked[-top_n:])) if top_n > 0 else []

    has_data = bool(form or sets or ranked or lineup.players)

    return {
        "opponent": opponent,
        "has_data": has_data,
        "team_form": form,
        "home_away": {
            "home": {**asdict(home_away.home), "win_pct": home_away.home.win_pct},
            "away": {**asdict(home_away.away), "win_pct": home_away.away.win_pct},
        },
        "set_performance": (
            {
                "set1": {**asdict(sets.set1), "pct": sets.set1.pct},
                "set2": {**asdict(sets.set2), "pct": sets.set2.pct},
                "bias": sets.bias,
                "is_even": sets.is_even,
            }
            if sets is not None
            else None
        ),
        "bd_stats": asdict(bd),
        "forfeit_rate": bd.forfeit_rate,
        "predicted_lineup": {
            "players": [
                {**asdict(p), "category": p.category.value} for p in lineup.players
            ],
            "recent_players": lineup.recent_players,
        },
        "strongest_players": strongest,
        "weakest_players": weakest,
    }
