from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from .config import DEFAULT_CONFIG, EngineConfig
from .form import FormSummary, form, home_away_split, set_performance
from .head_to_head import net_advantage
from .normalize import GameRecord, SeasonStats, TeamRoster, team_entry
from .stats import adjusted_pct
from .types import AppearanceCategory, Trend

CORE_RATE = 0.75
ROTATION_RATE = 0.4
RECENT_MATCHES = 3
MIN_VENUE_GAMES = 3
MIN_LAST8_GAMES = 6
H2H_EDGE = 2


@dataclass(frozen=True)
class PlayerAppearance:
    name: str
    appearances: int
    total_matches: int
    rate: float
    category: AppearanceCategory


@dataclass
class PredictedLineup:
    players: List[PlayerAppearance] = field(default_factory=list)
    recent_players: List[str] = field(default_factory=list)


@dataclass
class LineupScore:
    name: str
    score: float
    adj_pct: float
    form_pct: Optional[float] = None
    h2h_advantage: int = 0
    venue_pct: Optional[float] = None
    suggested_set: int = 1


@dataclass
class LineupSuggestion:
    set1: List[LineupScore] = field(default_factory=list)
    set2: List[LineupScore] = field(default_factory=list)
    insights: List[str] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)


def _team_matches(team: str, games: Iterable[GameRecord]) -> Dict[str, List[GameRecord]]:
    matches: Dict[str, List[GameRecord]] = {}
    for g in games:
        if g.involves_team(team):
            matches.setdefault(g.match_id or f"{g.date.isoformat()}:{g.home_team}:{g.away_team}", []).append(g)
    return matches


def _player_for(team: str, g: GameRecord) -> str:
    return g.home_player if g.home_team == team else g.away_player


def categorize(rate: float, core_rate: float = CORE_RATE) -> AppearanceCategory:
    if rate >= core_rate:
        return AppearanceCategory.CORE
    if rate >= ROTATION_RATE:
        return AppearanceCategory.ROTATION
    return AppearanceCategory.FRINGE


def appearance_rates(
    team: str, games: Iterable[GameRecord], core_rate: float = CORE_RATE
) -> List[PlayerAppearance]:
    matches = _team_matches(team, games)
    total = len(matches)
    seen: Dict[str, set] = {}
    for match_id, frames in matches.items():
        for g in frames:
            player = _player_for(team, g)
            if player:
                seen.setdefault(player, set()).add(match_id)
    out = []
    for name, ids in seen.items():
        rate = len(ids) / total if total else 0.0
        out.append(
            PlayerAppearance(
                name=name,
                appearances=len(ids),
                total_matches=total,
                rate=rate,
                category=categorize(rate, core_rate),
            )
        )
    out.sort(key=lambda a: (-a.rate, a.name))
    return out


def predict_lineup(
    team: str, games: Iterable[GameRecord], recent_n: int = RECENT_MATCHES, core_rate: float = CORE_RATE
) -> PredictedLineup:
    games = list(games)
    matches = _team_matches(team, games)
    recent = sorted(matches.values(), key=lambda frames: frames[0].date, reverse=True)[:recent_n]
    recent_players: List[str] = []
    for frames in recent:
        for g in frames:
            player = _player_for(team, g)
            if player and player not in recent_players:
                recent_players.append(player)
    return PredictedLineup(players=appearance_rates(team, games, core_rate), recent_players=recent_players)


def _form_pct(summary: Optional[FormSummary]) -> Optional[float]:
    if summary is None or summary.last5.played == 0:
        return None
    if summary.last8.played >= MIN_LAST8_GAMES:
        return summary.last8.pct
    return summary.last5.pct


def _form_context(name: str, summary: FormSummary) -> str:
    if summary.last8.played >= MIN_LAST8_GAMES:
        label, pct = "L8", summary.last8.pct
    else:
        label, pct = "L5", summary.last5.pct
    return f"{name} ({label}: {round(pct)}% vs {round(summary.season_pct)}% season)"


def suggest_lineup(
    team: str,
    opponent: str,
    is_home: bool,
    games: Iterable[GameRecord],
    season_stats: SeasonStats,
    rosters: Optional[Mapping[str, TeamRoster]] = None,
    set_size: int = 5,
    config: Optional[EngineConfig] = None,
) -> LineupSuggestion:
    config = config or DEFAULT_CONFIG
    w_adj, w_form, w_h2h, w_venue = config.lineup_weights
    rosters = rosters or {}
    games = list(games)

    eligible = []
    excluded: List[str] = []
    for name, entries in season_stats.items():
        entry = next((e for e in entries if e.team == team and not e.cup), None)
        if entry is None:
            continue
        if entry.played >= config.lineup_min_games:
            eligible.append((name, adjusted_pct(entry, config)))
        elif entry.played >= 1:
            excluded.append(name)

    insights: List[str] = []
    roster = rosters.get(team)
    if roster is not None:
        for name in roster.names:
            if team_entry(season_stats, name, team) is None:
                insights.append(f"No data for player {name}")

    likely_opponents = predict_lineup(opponent, games).recent_players
    if not likely_opponents:
        insights.append("Opponent has no recent form data")
        opp_roster = rosters.get(opponent)
        likely_opponents = opp_roster.names if opp_roster is not None else []

    forms: Dict[str, FormSummary] = {}
    scored: List[LineupScore] = []
    for name, adj in eligible:
        summary = form(name, games, config=config) if games else None
        if summary is not None and summary.last5.played:
            forms[name] = summary
        form_pct = _form_pct(summary)
        h2h_adv = net_advantage(name, likely_opponents, games)

        venue_pct = None
        venue_delta = 0.0
        if games:
            split = home_away_split(name, games)
            venue = split.home if is_home else split.away
            if venue.played:
                venue_pct = venue.pct
            if venue.played >= MIN_VENUE_GAMES:
                venue_delta = venue.pct - adj

        score = w_adj * adj + w_form * (form_pct if form_pct is not None else adj)
        score += w_h2h * h2h_adv + w_venue * venue_delta
        scored.append(
            LineupScore(
                name=name,
                score=score,
                adj_pct=adj,
                form_pct=form_pct,
                h2h_advantage=h2h_adv,
                venue_pct=venue_pct,
            )
        )

    scored.sort(key=lambda s: (-s.score, s.name))
    first, second = scored[:set_size], scored[set_size : 2 * set_size]

    opp_sets = set_performance(opponent, games, config) if games else None
    front_loaded = opp_sets is not None and opp_sets.bias > config.front_loaded_bias
    if front_loaded and len(scored) >= 2 * set_size:
        first, second = second, first

    for s in first:
        s.suggested_set = 1
    for s in second:
        s.suggested_set = 2

    hot = [s.name for s in scored if s.name in forms and forms[s.name].trend is Trend.HOT]
    cold = [s.name for s in scored if s.name in forms and forms[s.name].trend is Trend.COLD]
    if hot:
        insights.append("In form: " + ", ".join(_form_context(n, forms[n]) for n in hot[:3]))
    if cold:
        insights.append("Out of form: " + ", ".join(_form_context(n, forms[n]) for n in cold[:3]))
    if front_loaded:
        insights.append("Opponent is stronger in Set 1, consider saving best players for Set 2")
    edges = [s for s in scored if s.h2h_advantage >= H2H_EDGE][:3]
    if edges:
        insights.append("H2H advantage: " + ", ".join(f"{s.name} (+{s.h2h_advantage})" for s in edges))
    if excluded:
        insights.append(f"Excluded (<{config.lineup_min_games} games): " + ", ".join(excluded))

    return LineupSuggestion(set1=list(first), set2=list(second), insights=insights, excluded=excluded)
