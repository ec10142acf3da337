from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from .normalize import Fixture, MatchResult
from .types import Outcome

HOME_WIN_POINTS = 2
AWAY_WIN_POINTS = 3
DRAW_POINTS = 1


@dataclass
class StandingEntry:
    team: str
    p: int = 0
    w: int = 0
    d: int = 0
    l: int = 0
    f: int = 0
    a: int = 0
    pts: int = 0

    @property
    def diff(self) -> int:
        return self.f - self.a


def match_points(home_score: int, away_score: int) -> Tuple[int, int]:
    """(home points, away points) under the league's asymmetric rule."""
    if home_score > away_score:
        return HOME_WIN_POINTS, 0
    if home_score < away_score:
        return 0, AWAY_WIN_POINTS
    return DRAW_POINTS, DRAW_POINTS


def calc_standings(teams: Iterable[str], results: Iterable[MatchResult]) -> List[StandingEntry]:
    table: Dict[str, StandingEntry] = {t: StandingEntry(team=t) for t in teams}
    for r in results:
        home = table.get(r.home)
        away = table.get(r.away)
        if home is None or away is None:
            continue
        home.p += 1
        away.p += 1
        home.f += r.home_score
        home.a += r.away_score
        away.f += r.away_score
        away.a += r.home_score
        hp, ap = match_points(r.home_score, r.away_score)
        home.pts += hp
        away.pts += ap
        if r.home_score > r.away_score:
            home.w += 1
            away.l += 1
        elif r.home_score < r.away_score:
            away.w += 1
            home.l += 1
        else:
            home.d += 1
            away.d += 1
    return sorted(table.values(), key=lambda s: (-s.pts, -s.diff))


def latest_result_date(results: Iterable[MatchResult]) -> Optional[date]:
    dates = [r.date for r in results]
    return max(dates) if dates else None


def remaining_fixtures(
    fixtures: Iterable[Fixture],
    results: Iterable[MatchResult],
    division: Optional[str] = None,
) -> List[Fixture]:
    latest = latest_result_date(results)
    return [
        f
        for f in fixtures
        if (division is None or f.division == division) and (latest is None or f.date > latest)
    ]


@dataclass(frozen=True)
class TeamResult:
    date: date
    opponent: str
    is_home: bool
    team_score: int
    opp_score: int

    @property
    def outcome(self) -> Outcome:
        if self.team_score > self.opp_score:
            return Outcome.WIN
        if self.team_score < self.opp_score:
            return Outcome.LOSS
        return Outcome.DRAW


def team_results(team: str, results: Iterable[MatchResult]) -> List[TeamResult]:
    """A team's results, newest first."""
    out: List[TeamResult] = []
    for r in results:
        if r.home == team:
            out.append(TeamResult(r.date, r.away, True, r.home_score, r.away_score))
        elif r.away == team:
            out.append(TeamResult(r.date, r.home, False, r.away_score, r.home_score))
    out.sort(key=lambda x: x.date, reverse=True)
    return out
