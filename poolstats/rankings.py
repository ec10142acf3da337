from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional

from .config import DEFAULT_CONFIG, EngineConfig
from .normalize import LeagueDataset
from .predictor import team_strengths
from .standings import TeamResult, calc_standings, remaining_fixtures, team_results
from .types import Outcome

FORM_WEIGHTS = (5, 4, 3, 2, 1)
OUTCOME_SCORE = {Outcome.WIN: 1.0, Outcome.DRAW: 0.4, Outcome.LOSS: 0.0}
# frame difference per match mapped from [-10, 10] onto [0, 1]
MOV_RANGE = 10.0


@dataclass(frozen=True)
class PowerRanking:
    team: str
    rank: int
    score: float
    points: float
    form: float
    mov: float
    sos: float
    trajectory: float
    previous_rank: Optional[int] = None

    @property
    def movement(self) -> int:
        """Places gained since the previous ranking, 0 when unranked before."""
        if self.previous_rank is None:
            return 0
        return self.previous_rank - self.rank


@dataclass(frozen=True)
class ScheduleStrength:
    team: str
    completed_sos: float
    remaining_sos: float
    combined_sos: float
    completed_count: int
    remaining_count: int
    rank: int = 0


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _win_rate(rows: List[TeamResult]) -> float:
    if not rows:
        return 0.5
    return sum(1 for r in rows if r.outcome is Outcome.WIN) / len(rows)


def form_score(rows: List[TeamResult]) -> float:
    """Weighted last five results, newest weighted highest. ``rows`` newest first."""
    recent = rows[: len(FORM_WEIGHTS)]
    if not recent:
        return 0.5
    weights = FORM_WEIGHTS[: len(recent)]
    total = sum(w * OUTCOME_SCORE[r.outcome] for w, r in zip(weights, recent))
    return total / sum(weights)


def _avg(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def power_rankings(
    division: str,
    dataset: LeagueDataset,
    previous: Iterable[PowerRanking] = (),
    config: Optional[EngineConfig] = None,
) -> List[PowerRanking]:
    """Composite ranking of a division from points, form, margin, schedule and trajectory."""
    config = config or DEFAULT_CONFIG
    w_points, w_form, w_mov, w_sos, w_traj = config.power_ranking_weights
    strengths = team_strengths(division, dataset, config)
    table = calc_standings(dataset.teams(division), dataset.results)
    max_pts = max([s.pts for s in table] + [1])
    previous_rank = {p.team: p.rank for p in previous}

    scored: List[PowerRanking] = []
    for s in table:
        rows = team_results(s.team, dataset.results)
        points = s.pts / max_pts
        form = form_score(rows)
        mov = _clamp((s.diff / s.p + MOV_RANGE) / (2 * MOV_RANGE)) if s.p else 0.5
        opponents = [strengths.get(r.opponent, 0.0) for r in rows]
        sos = _clamp((_avg(opponents) + 1.0) / 2.0)
        trajectory = _clamp((_win_rate(rows[: len(FORM_WEIGHTS)]) - _win_rate(rows) + 1.0) / 2.0)
        score = w_points * points + w_form * form + w_mov * mov + w_sos * sos + w_traj * trajectory
        scored.append(PowerRanking(s.team, 0, score, points, form, mov, sos, trajectory))

    scored.sort(key=lambda p: -p.score)
    return [
        replace(p, rank=i + 1, previous_rank=previous_rank.get(p.team))
        for i, p in enumerate(scored)
    ]


def schedule_strength(
    team: str,
    division: str,
    dataset: LeagueDataset,
    config: Optional[EngineConfig] = None,
    strengths: Optional[Dict[str, float]] = None,
) -> ScheduleStrength:
    """Average opponent strength over games played and fixtures still to come."""
    if strengths is None:
        strengths = team_strengths(division, dataset, config)
    completed = [strengths.get(r.opponent, 0.0) for r in team_results(team, dataset.results)]
    remaining = []
    for f in remaining_fixtures(dataset.fixtures, dataset.results, division=division):
        if f.home == team:
            remaining.append(strengths.get(f.away, 0.0))
        elif f.away == team:
            remaining.append(strengths.get(f.home, 0.0))
    return ScheduleStrength(
        team=team,
        completed_sos=_avg(completed),
        remaining_sos=_avg(remaining),
        combined_sos=_avg(completed + remaining),
        completed_count=len(completed),
        remaining_count=len(remaining),
    )


def all_schedule_strengths(
    division: str,
    dataset: LeagueDataset,
    config: Optional[EngineConfig] = None,
) -> List[ScheduleStrength]:
    """Every team in the division, hardest remaining schedule first."""
    strengths = team_strengths(division, dataset, config)
    rows = [schedule_strength(team, division, dataset, config, strengths) for team in dataset.teams(division)]
    # stable sort keeps division order on ties
    rows.sort(key=lambda s: -s.remaining_sos)
    return [replace(s, rank=i + 1) for i, s in enumerate(rows)]
