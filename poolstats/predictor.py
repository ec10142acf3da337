from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .config import DEFAULT_CONFIG, EngineConfig
from .normalize import (
    LeagueDataset,
    PriorRating,
    RosterPlayer,
    SeasonStats,
    SquadOverride,
    SquadOverrides,
    TeamRoster,
)
from .standings import calc_standings
from .stats import EffectivePct, bayesian_adjust, effective_pct

logger = logging.getLogger(__name__)


class InvalidOverrideError(ValueError):
    """A squad override names a team that is not part of the division."""


@dataclass(frozen=True)
class ScoreLine:
    home: int
    away: int
    probability: float  # 0-1

    @property
    def label(self) -> str:
        return f"{self.home}-{self.away}"

    @property
    def pct(self) -> float:
        return round(self.probability * 100.0, 1)


@dataclass
class PredictionResult:
    p_home_win: float
    p_draw: float
    p_away_win: float
    expected_home: float
    expected_away: float
    frame_probability: float
    top_scores: List[ScoreLine] = field(default_factory=list)
    baseline: Optional["PredictionResult"] = None


def predict_frame(home_strength: float, away_strength: float, home_advantage: float = DEFAULT_CONFIG.home_advantage) -> float:
    """Probability that the home side wins a single frame."""
    return 1.0 / (1.0 + math.exp(-(home_strength + home_advantage - away_strength)))


def scoreline_distribution(p: float, frames: int = DEFAULT_CONFIG.frames_per_match) -> List[ScoreLine]:
    """Exact binomial distribution over home frames, home-heavy scorelines first."""
    return [
        ScoreLine(
            home=k,
            away=frames - k,
            probability=math.comb(frames, k) * (p ** k) * ((1.0 - p) ** (frames - k)),
        )
        for k in range(frames, -1, -1)
    ]


def predict(
    home_strength: float,
    away_strength: float,
    home_adjustment: float = 0.0,
    away_adjustment: float = 0.0,
    config: Optional[EngineConfig] = None,
    top_n: Optional[int] = None,
) -> PredictionResult:
    config = config or DEFAULT_CONFIG
    top_n = config.top_scores if top_n is None else top_n

    p = predict_frame(
        home_strength + home_adjustment,
        away_strength + away_adjustment,
        config.home_advantage,
    )
    dist = scoreline_distribution(p, config.frames_per_match)
    p_home = sum(s.probability for s in dist if s.home > s.away)
    p_away = sum(s.probability for s in dist if s.home < s.away)
    p_draw = sum(s.probability for s in dist if s.home == s.away)
    top = sorted(dist, key=lambda s: (-s.probability, -s.home))[:top_n]

    result = PredictionResult(
        p_home_win=round(p_home * 100.0, 1),
        p_draw=round(p_draw * 100.0, 1),
        p_away_win=round(p_away * 100.0, 1),
        expected_home=round(p * config.frames_per_match, 1),
        expected_away=round((1.0 - p) * config.frames_per_match, 1),
        frame_probability=p,
        top_scores=top,
    )
    if home_adjustment or away_adjustment:
        result.baseline = predict(home_strength, away_strength, config=config, top_n=top_n)
    return result


def _prior_team_strength(roster: TeamRoster, config: EngineConfig) -> float:
    if not roster.players:
        return 0.0
    known_wins = 0.0
    known_games = 0
    unknown = 0
    for player in roster.players:
        prior = player.prior
        if prior is not None and prior.played > 0:
            known_wins += prior.win_pct * prior.played
            known_games += prior.played
        else:
            unknown += 1
    # unknown players contribute K pseudo-games at the unknown-player prior
    avg = bayesian_adjust(known_wins, known_games, config.unknown_player_prior, config.bayesian_k * unknown)
    return (avg - 0.5) * config.strength_scale


def team_strengths(division: str, dataset: LeagueDataset, config: Optional[EngineConfig] = None) -> Dict[str, float]:
    """Frame differential per match, blended with a roster prior early in the season."""
    config = config or DEFAULT_CONFIG
    teams = dataset.teams(division)
    strengths: Dict[str, float] = {}
    for s in calc_standings(teams, dataset.results):
        current = (s.diff / s.p / config.frames_per_match) * 2.0 if s.p > 0 else 0.0
        blend = min(1.0, s.p / config.prior_blend_matches)
        if blend < 1.0:
            roster = dataset.roster(s.team)
            prior = _prior_team_strength(roster, config) if roster is not None else 0.0
            strengths[s.team] = (1.0 - blend) * prior + blend * current
        else:
            strengths[s.team] = current
    return strengths


def _rated(players: Iterable[RosterPlayer], config: EngineConfig) -> List[EffectivePct]:
    return [e for e in (effective_pct(p, config) for p in players) if e is not None]


def _weighted_strength(players: List[RosterPlayer], top_n: Optional[int], config: EngineConfig) -> Optional[float]:
    pool = _rated(players, config)
    if top_n:
        pool = sorted(pool, key=lambda e: e.adj_pct, reverse=True)[:top_n]
    total = sum(e.weight for e in pool)
    if total == 0:
        return None
    return sum(e.adj_pct * e.weight for e in pool) / total


def squad_strength(roster: TeamRoster, top_n: Optional[int] = None, config: Optional[EngineConfig] = None) -> Optional[float]:
    """Games-weighted adjusted win fraction of the squad, or None when nobody has stats."""
    return _weighted_strength(roster.players, top_n, config or DEFAULT_CONFIG)


def _added_player(name: str, season_stats: SeasonStats, prior_ratings: Dict[str, PriorRating]) -> RosterPlayer:
    entries = season_stats.get(name) or []
    best = max(entries, key=lambda e: e.played) if entries else None
    return RosterPlayer(name=name, current=best, prior=prior_ratings.get(name), rostered=False)


def modified_squad_strength(
    roster: TeamRoster,
    override: Optional[SquadOverride],
    season_stats: SeasonStats,
    prior_ratings: Optional[Dict[str, PriorRating]] = None,
    top_n: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> Optional[float]:
    config = config or DEFAULT_CONFIG
    if override is None:
        return squad_strength(roster, top_n, config)
    removed = set(override.removed)
    players = [p for p in roster.players if p.name not in removed]
    present = {p.name for p in players}
    for name in override.added:
        if name not in present:
            players.append(_added_player(name, season_stats, prior_ratings or {}))
            present.add(name)
    return _weighted_strength(players, top_n, config)


def _strength_delta(
    team: str,
    override: SquadOverride,
    dataset: LeagueDataset,
    top_n: Optional[int],
    config: EngineConfig,
) -> Optional[float]:
    roster = dataset.roster(team)
    if roster is None:
        return None
    orig = squad_strength(roster, top_n, config)
    mod = modified_squad_strength(roster, override, dataset.season_stats, dataset.prior_ratings, top_n, config)
    if orig is None or mod is None:
        logger.debug("Skipping override for %s: no rated players", team)
        return None
    return (mod - orig) * config.squad_strength_scaling


def calc_strength_adjustments(
    division: str,
    overrides: Optional[SquadOverrides],
    top_n: Optional[int],
    dataset: LeagueDataset,
    config: Optional[EngineConfig] = None,
) -> Dict[str, float]:
    config = config or DEFAULT_CONFIG
    teams = set(dataset.teams(division))
    adjustments: Dict[str, float] = {}
    for team, override in (overrides or {}).items():
        if team not in teams:
            raise InvalidOverrideError(f"Override for {team!r} does not match a team in division {division!r}")
        delta = _strength_delta(team, override, dataset, top_n, config)
        if delta is not None:
            adjustments[team] = delta
    return adjustments


def predict_fixture(
    dataset: LeagueDataset,
    home: str,
    away: str,
    squad_overrides: Optional[SquadOverrides] = None,
    top_n: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> PredictionResult:
    config = config or DEFAULT_CONFIG
    overrides = squad_overrides or {}
    for team in overrides:
        if dataset.division_of(team) is None:
            raise InvalidOverrideError(f"Override for {team!r} does not match a team in league {dataset.league_id!r}")
    # overrides for teams outside this fixture are ignored
    sides = {team: overrides[team] for team in (home, away) if team in overrides}

    strengths: Dict[str, float] = {}
    for team in (home, away):
        division = dataset.division_of(team)
        if division is not None and team not in strengths:
            strengths.update(team_strengths(division, dataset, config))

    adjustments: Dict[str, float] = {}
    for team, override in sides.items():
        delta = _strength_delta(team, override, dataset, top_n, config)
        if delta is not None:
            adjustments[team] = delta

    result = predict(
        strengths.get(home, 0.0),
        strengths.get(away, 0.0),
        home_adjustment=adjustments.get(home, 0.0),
        away_adjustment=adjustments.get(away, 0.0),
        config=config,
    )
    if sides and result.baseline is None:
        result.baseline = predict(strengths.get(home, 0.0), strengths.get(away, 0.0), config=config)
    return result
