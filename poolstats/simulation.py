from __future__ import annotations

import bisect
import logging
import random
import threading
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG, EngineConfig
from .normalize import Fixture, LeagueDataset, SquadOverrides, WhatIfResult
from .predictor import calc_strength_adjustments, predict_frame, scoreline_distribution, team_strengths
from .standings import StandingEntry, calc_standings, match_points, remaining_fixtures
from .types import SimulationState

logger = logging.getLogger(__name__)

IMPORTANCE_WIN = (7, 3)


class SimulationError(RuntimeError):
    """The simulation was given input it cannot resolve."""


class SimulationCancelled(RuntimeError):
    """The caller cancelled the run; partial results were discarded."""


@dataclass(frozen=True)
class SimulationResult:
    team: str
    current_pts: int
    avg_pts: float
    p_title: float
    p_top2: float
    p_bot2: float


@dataclass(frozen=True)
class FixtureImportance:
    home: str
    away: str
    date: date
    importance: float
    p_top2_if_win: float
    p_top2_if_loss: float


@dataclass
class _Row:
    pts: int
    f: int
    a: int

    @property
    def diff(self) -> int:
        return self.f - self.a


def _apply(rows: Dict[str, _Row], home: str, away: str, home_score: int, away_score: int) -> None:
    hp, ap = match_points(home_score, away_score)
    rows[home].pts += hp
    rows[home].f += home_score
    rows[home].a += away_score
    rows[away].pts += ap
    rows[away].f += away_score
    rows[away].a += home_score


class SeasonSimulator:
    """Monte Carlo projection of a division's final table.

    Each iteration clones the current standings, applies pinned what-if
    results, samples a scoreline for every other remaining fixture and ranks
    the table by points, frame difference and finally a random tie-break.
    """

    def __init__(
        self,
        fixtures: Iterable[Fixture],
        standings: Iterable[StandingEntry],
        strengths: Dict[str, float],
        iterations: Optional[int] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.fixtures = list(fixtures)
        self.standings = {s.team: s for s in standings}
        self.strengths = dict(strengths)
        self.iterations = self.config.simulation_iterations if iterations is None else iterations
        self.rng = rng if rng is not None else random.Random(seed)
        self.state = SimulationState.IDLE
        self.results: List[SimulationResult] = []

    def _fail(self, message: str) -> SimulationError:
        self.state = SimulationState.FAILED
        return SimulationError(message)

    def _validate(self, what_if: Sequence[WhatIfResult]) -> None:
        if self.iterations < 1:
            raise self._fail(f"iterations must be at least 1, got {self.iterations}")
        if not self.standings and not self.fixtures:
            raise self._fail("Nothing to simulate: no standings and no remaining fixtures")
        for label, home, away in [("fixture", f.home, f.away) for f in self.fixtures] + [
            ("what-if", w.home, w.away) for w in what_if
        ]:
            for team in (home, away):
                if team not in self.standings:
                    raise self._fail(f"{label} {home} v {away} names unknown team {team!r}")

    def _bands(self, fixtures: List[Fixture]) -> List[Tuple[str, str, List[float], List[Tuple[int, int]]]]:
        bands = []
        for fix in fixtures:
            p = predict_frame(
                self.strengths.get(fix.home, 0.0),
                self.strengths.get(fix.away, 0.0),
                self.config.home_advantage,
            )
            cumulative: List[float] = []
            scores: List[Tuple[int, int]] = []
            running = 0.0
            for line in scoreline_distribution(p, self.config.frames_per_match):
                running += line.probability
                cumulative.append(running)
                scores.append((line.home, line.away))
            bands.append((fix.home, fix.away, cumulative, scores))
        return bands

    def run(
        self,
        what_if: Sequence[WhatIfResult] = (),
        cancel: Optional[threading.Event] = None,
    ) -> List[SimulationResult]:
        what_if = list(what_if)
        self._validate(what_if)
        self.state = SimulationState.SIMULATING
        self.results = []

        teams = list(self.standings)
        n_teams = len(teams)
        slots = min(2, n_teams)
        pinned = {w.key for w in what_if}
        bands = self._bands([f for f in self.fixtures if f.key not in pinned])
        logger.debug(
            "Simulating %d teams, %d fixtures, %d pinned, %d iterations",
            n_teams,
            len(bands),
            len(what_if),
            self.iterations,
        )

        total_pts = {t: 0 for t in teams}
        positions = {t: [0] * n_teams for t in teams}

        for _ in range(self.iterations):
            if cancel is not None and cancel.is_set():
                self.state = SimulationState.IDLE
                raise SimulationCancelled("Simulation cancelled")

            rows = {t: _Row(pts=s.pts, f=s.f, a=s.a) for t, s in self.standings.items()}
            for w in what_if:
                _apply(rows, w.home, w.away, w.home_score, w.away_score)
            for home, away, cumulative, scores in bands:
                idx = min(bisect.bisect_right(cumulative, self.rng.random()), len(scores) - 1)
                hs, aws = scores[idx]
                _apply(rows, home, away, hs, aws)

            order = list(teams)
            self.rng.shuffle(order)
            order.sort(key=lambda t: (-rows[t].pts, -rows[t].diff))
            for pos, team in enumerate(order):
                positions[team][pos] += 1
                total_pts[team] += rows[team].pts

        n = self.iterations
        results = []
        for team in teams:
            pos = positions[team]
            results.append(
                SimulationResult(
                    team=team,
                    current_pts=self.standings[team].pts,
                    avg_pts=round(total_pts[team] / n, 1),
                    p_title=round(pos[0] / n * 100.0, 1),
                    p_top2=round(sum(pos[:slots]) / n * 100.0, 1),
                    p_bot2=round(sum(pos[n_teams - slots :]) / n * 100.0, 1),
                )
            )
        results.sort(key=lambda r: r.avg_pts, reverse=True)
        self.results = results
        self.state = SimulationState.COMPLETE
        logger.debug("Simulation complete")
        return results


def run_simulation(
    fixtures_remaining: Iterable[Fixture],
    standings: Iterable[StandingEntry],
    strengths: Dict[str, float],
    iterations: Optional[int] = None,
    what_if: Sequence[WhatIfResult] = (),
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
    config: Optional[EngineConfig] = None,
    cancel: Optional[threading.Event] = None,
) -> List[SimulationResult]:
    sim = SeasonSimulator(
        fixtures_remaining,
        standings,
        strengths,
        iterations=iterations,
        rng=rng,
        seed=seed,
        config=config,
    )
    return sim.run(what_if=what_if, cancel=cancel)


def division_inputs(
    dataset: LeagueDataset,
    division: str,
    squad_overrides: Optional[SquadOverrides] = None,
    top_n: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> Tuple[List[Fixture], List[StandingEntry], Dict[str, float]]:
    """Remaining fixtures, current standings and adjusted strengths for a division."""
    config = config or DEFAULT_CONFIG
    teams = set(dataset.teams(division))
    strengths = team_strengths(division, dataset, config)
    for team, delta in calc_strength_adjustments(division, squad_overrides, top_n, dataset, config).items():
        if team in strengths:
            strengths[team] += delta
    standings = calc_standings(dataset.teams(division), dataset.results)
    fixtures = [
        f for f in remaining_fixtures(dataset.fixtures, dataset.results) if f.home in teams and f.away in teams
    ]
    return fixtures, standings, strengths


def simulate_division(
    dataset: LeagueDataset,
    division: str,
    what_if: Sequence[WhatIfResult] = (),
    squad_overrides: Optional[SquadOverrides] = None,
    top_n: Optional[int] = None,
    iterations: Optional[int] = None,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
    config: Optional[EngineConfig] = None,
    cancel: Optional[threading.Event] = None,
) -> List[SimulationResult]:
    fixtures, standings, strengths = division_inputs(dataset, division, squad_overrides, top_n, config)
    return run_simulation(
        fixtures,
        standings,
        strengths,
        iterations=iterations,
        what_if=what_if,
        rng=rng,
        seed=seed,
        config=config,
        cancel=cancel,
    )


def fixture_importance(
    dataset: LeagueDataset,
    division: str,
    team: str,
    what_if: Sequence[WhatIfResult] = (),
    squad_overrides: Optional[SquadOverrides] = None,
    top_n: Optional[int] = None,
    iterations: Optional[int] = None,
    seed: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> List[FixtureImportance]:
    """Rank a team's remaining fixtures by how far a 7-3 win or loss moves its top-two chance."""
    fixtures, standings, strengths = division_inputs(dataset, division, squad_overrides, top_n, config)
    pinned = {w.key for w in what_if}
    win_score, loss_score = IMPORTANCE_WIN

    def _p_top2(extra: WhatIfResult) -> Optional[float]:
        results = run_simulation(
            fixtures,
            standings,
            strengths,
            iterations=iterations,
            what_if=list(what_if) + [extra],
            seed=seed,
            config=config,
        )
        return next((r.p_top2 for r in results if r.team == team), None)

    out: List[FixtureImportance] = []
    for fix in fixtures:
        if team not in (fix.home, fix.away) or fix.key in pinned:
            continue
        is_home = fix.home == team
        win = WhatIfResult(fix.home, fix.away, *((win_score, loss_score) if is_home else (loss_score, win_score)))
        loss = WhatIfResult(fix.home, fix.away, *((loss_score, win_score) if is_home else (win_score, loss_score)))
        p_win = _p_top2(win)
        p_loss = _p_top2(loss)
        if p_win is None or p_loss is None:
            continue
        out.append(
            FixtureImportance(
                home=fix.home,
                away=fix.away,
                date=fix.date,
                importance=round(abs(p_win - p_loss), 1),
                p_top2_if_win=p_win,
                p_top2_if_loss=p_loss,
            )
        )
    out.sort(key=lambda i: i.importance, reverse=True)
    return out
