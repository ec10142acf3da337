from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from .normalize import GameRecord, TeamRoster
from .stats import win_pct
from .types import Advantage

STRONG_ADVANTAGE_PCT = 70.0
MODERATE_ADVANTAGE_PCT = 60.0
EVEN_PCT = 40.0
FULL_CONFIDENCE_MEETINGS = 10
RECENT_MEETINGS = 5


@dataclass
class H2HRecord:
    player_a: str
    player_b: str
    wins: int = 0
    losses: int = 0

    @property
    def meetings(self) -> int:
        return self.wins + self.losses

    @property
    def pct(self) -> float:
        return win_pct(self.wins, self.meetings)

    @property
    def net(self) -> int:
        return self.wins - self.losses

    def posterior_winrate(self, alpha: float = 2.0, beta: float = 2.0) -> float:
        return (self.wins + alpha) / (self.meetings + alpha + beta)

    def reversed(self) -> "H2HRecord":
        return H2HRecord(player_a=self.player_b, player_b=self.player_a, wins=self.losses, losses=self.wins)


@dataclass(frozen=True)
class Meeting:
    date: date
    won: bool
    division: str


@dataclass
class H2HAnalysis:
    record: H2HRecord
    advantage: Advantage
    confidence: float
    recent: List[Meeting] = field(default_factory=list)


def _meetings(player_a: str, player_b: str, games: Iterable[GameRecord]) -> List[Meeting]:
    out: List[Meeting] = []
    for g in games:
        side_a = g.side_of(player_a)
        side_b = g.side_of(player_b)
        if side_a is None or side_b is None or side_a == side_b:
            continue
        out.append(Meeting(date=g.date, won=g.winner == side_a, division=g.division))
    out.sort(key=lambda m: m.date, reverse=True)
    return out


def h2h(player_a: str, player_b: str, games: Iterable[GameRecord]) -> H2HRecord:
    rec = H2HRecord(player_a=player_a, player_b=player_b)
    if player_a == player_b:
        return rec
    for m in _meetings(player_a, player_b, games):
        if m.won:
            rec.wins += 1
        else:
            rec.losses += 1
    return rec


def squad_h2h(
    team_a: str,
    team_b: str,
    games: Iterable[GameRecord],
    rosters: Mapping[str, TeamRoster],
) -> List[H2HRecord]:
    roster_a = rosters.get(team_a)
    roster_b = rosters.get(team_b)
    if roster_a is None or roster_b is None:
        return []
    games = list(games)
    records: List[H2HRecord] = []
    for a in roster_a.names:
        for b in roster_b.names:
            rec = h2h(a, b, games)
            if rec.meetings:
                records.append(rec)
    return records


def classify_advantage(pct: float) -> Advantage:
    if pct >= STRONG_ADVANTAGE_PCT:
        return Advantage.STRONG
    if pct >= MODERATE_ADVANTAGE_PCT:
        return Advantage.MODERATE
    if pct >= EVEN_PCT:
        return Advantage.EVEN
    return Advantage.DISADVANTAGE


def analyze_h2h(player_a: str, player_b: str, games: Iterable[GameRecord]) -> Optional[H2HAnalysis]:
    meetings = _meetings(player_a, player_b, games) if player_a != player_b else []
    if not meetings:
        return None
    wins = sum(1 for m in meetings if m.won)
    record = H2HRecord(player_a=player_a, player_b=player_b, wins=wins, losses=len(meetings) - wins)
    return H2HAnalysis(
        record=record,
        advantage=classify_advantage(record.pct),
        confidence=min(1.0, record.meetings / FULL_CONFIDENCE_MEETINGS),
        recent=meetings[:RECENT_MEETINGS],
    )


def player_h2h_records(player: str, games: Iterable[GameRecord]) -> List[H2HRecord]:
    """Records against every opponent, most meetings first."""
    table: Dict[str, H2HRecord] = {}
    for g in games:
        opponent = g.opponent_of(player)
        if not opponent:
            continue
        rec = table.setdefault(opponent, H2HRecord(player_a=player, player_b=opponent))
        if g.won_by(player):
            rec.wins += 1
        else:
            rec.losses += 1
    return sorted(table.values(), key=lambda r: (-r.meetings, r.player_b))


def net_advantage(player: str, opponents: Iterable[str], games: Iterable[GameRecord]) -> int:
    """Summed wins minus losses against ``opponents``; 0 with no meetings."""
    targets = set(opponents)
    net = 0
    for g in games:
        if g.opponent_of(player) in targets:
            net += 1 if g.won_by(player) else -1
    return net
