from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from statistics import median
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from rapidfuzz.fuzz import ratio

from .config import DEFAULT_CONFIG, EngineConfig
from .normalize import LeagueDataset, PlayerSeasonStat, SeasonStats, normalize_player_name
from .stats import adjusted_pct, league_stats

logger = logging.getLogger(__name__)

FULL_CONFIDENCE_BRIDGES = 10
SOLVER_ITERATIONS = 50

LeagueInput = Union[LeagueDataset, SeasonStats]


@dataclass(frozen=True)
class BridgeContext:
    league_id: str
    division: str
    stats: PlayerSeasonStat


@dataclass
class BridgePlayer:
    name: str
    canonical_name: str
    contexts: List[BridgeContext] = field(default_factory=list)
    match_confidence: float = 1.0

    @property
    def leagues(self) -> List[str]:
        return list(dict.fromkeys(c.league_id for c in self.contexts))

    @property
    def divisions(self) -> List[Tuple[str, str]]:
        return list(dict.fromkeys((c.league_id, c.division) for c in self.contexts))


@dataclass(frozen=True)
class LeagueStrength:
    league_id: str
    multiplier: float
    confidence: float
    bridge_player_count: int


@dataclass(frozen=True)
class DivisionStrength:
    league_id: str
    division: str
    multiplier: float
    confidence: float
    bridge_player_count: int


@dataclass(frozen=True)
class RankedPlayer:
    name: str
    league_id: str
    division: str
    played: int
    adj_pct: float
    normalized_pct: float


def _season_stats(league: LeagueInput) -> SeasonStats:
    if isinstance(league, LeagueDataset):
        return league.season_stats
    return league


def _similarity(a: str, b: str) -> float:
    return float(ratio(a, b)) / 100.0


def find_intra_league_bridge_players(
    league_id: str, season_stats: SeasonStats, min_games: int = 0
) -> List[BridgePlayer]:
    bridges: List[BridgePlayer] = []
    for name, entries in season_stats.items():
        rows = [e for e in entries if not e.cup and e.played >= min_games]
        if len({e.division for e in rows}) < 2:
            continue
        bridges.append(
            BridgePlayer(
                name=name,
                canonical_name=normalize_player_name(name),
                contexts=[BridgeContext(league_id, e.division, e) for e in rows],
            )
        )
    return bridges


def find_cross_league_bridge_players(
    leagues: Mapping[str, LeagueInput],
    min_games: int = DEFAULT_CONFIG.bridge_min_games,
    min_confidence: float = DEFAULT_CONFIG.fuzzy_min_confidence,
) -> List[BridgePlayer]:
    if len(leagues) < 2:
        return []

    # (league_id, name, normalized, qualifying rows)
    candidates: List[Tuple[str, str, str, List[PlayerSeasonStat]]] = []
    for league_id, league in leagues.items():
        for name, entries in _season_stats(league).items():
            rows = [e for e in entries if not e.cup and e.played >= min_games]
            if rows:
                candidates.append((league_id, name, normalize_player_name(name), rows))

    groups: Dict[str, list] = defaultdict(list)
    for cand in candidates:
        groups[cand[2]].append(cand)

    bridges: List[BridgePlayer] = []
    matched = set()
    for canonical, group in groups.items():
        if len({c[0] for c in group}) < 2:
            continue
        contexts = [BridgeContext(lid, e.division, e) for lid, _, _, rows in group for e in rows]
        bridges.append(BridgePlayer(name=group[0][1], canonical_name=canonical, contexts=contexts))
        matched.update((c[0], c[1]) for c in group)

    by_league: Dict[str, list] = defaultdict(list)
    for cand in candidates:
        if (cand[0], cand[1]) not in matched:
            by_league[cand[0]].append(cand)

    league_ids = list(by_league)
    for i, league_a in enumerate(league_ids):
        for league_b in league_ids[i + 1 :]:
            for lid_a, name_a, norm_a, rows_a in by_league[league_a]:
                if (lid_a, name_a) in matched:
                    continue
                for lid_b, name_b, norm_b, rows_b in by_league[league_b]:
                    if (lid_b, name_b) in matched:
                        continue
                    score = _similarity(norm_a, norm_b)
                    if score < min_confidence:
                        continue
                    contexts = [BridgeContext(lid_a, e.division, e) for e in rows_a]
                    contexts += [BridgeContext(lid_b, e.division, e) for e in rows_b]
                    bridges.append(
                        BridgePlayer(name=name_a, canonical_name=norm_a, contexts=contexts, match_confidence=score)
                    )
                    matched.add((lid_a, name_a))
                    matched.add((lid_b, name_b))
                    break
    return bridges


def find_all_bridge_players(
    leagues: Mapping[str, LeagueInput],
    min_games: int = DEFAULT_CONFIG.bridge_min_games,
    min_confidence: float = DEFAULT_CONFIG.fuzzy_min_confidence,
) -> List[BridgePlayer]:
    bridges: List[BridgePlayer] = []
    for league_id, league in leagues.items():
        bridges.extend(find_intra_league_bridge_players(league_id, _season_stats(league)))
    bridges.extend(find_cross_league_bridge_players(leagues, min_games, min_confidence))
    return bridges


def _node_rating(contexts: Iterable[BridgeContext], min_games: int, config: EngineConfig) -> Optional[float]:
    """Games-weighted adjusted win% over one league (or division)."""
    total = 0
    weighted = 0.0
    for ctx in contexts:
        if ctx.stats.played < min_games:
            continue
        total += ctx.stats.played
        weighted += adjusted_pct(ctx.stats, config) * ctx.stats.played
    return weighted / total if total else None


def _pair_observations(
    bridges: Iterable[BridgePlayer], node_of, min_games: int, config: EngineConfig
) -> Dict[Tuple[str, str], List[Tuple[float, str]]]:
    """Per node pair (a, b), log(rating_b / rating_a) for every bridge player."""
    obs: Dict[Tuple[str, str], List[Tuple[float, str]]] = defaultdict(list)
    for bp in bridges:
        grouped: Dict[str, List[BridgeContext]] = defaultdict(list)
        for ctx in bp.contexts:
            node = node_of(ctx)
            if node is not None:
                grouped[node].append(ctx)
        ratings = {}
        for node, ctxs in grouped.items():
            rating = _node_rating(ctxs, min_games, config)
            if rating is not None and rating > 0:
                ratings[node] = rating
        nodes = sorted(ratings)
        for i, a in enumerate(nodes):
            for b in nodes[i + 1 :]:
                obs[(a, b)].append((math.log(ratings[b] / ratings[a]), bp.canonical_name))
    return obs


def _resolve(
    nodes: List[str],
    observations: Dict[Tuple[str, str], List[Tuple[float, str]]],
    reference: str,
    min_bridge_players: int,
) -> Tuple[Dict[str, float], Dict[str, set]]:
    """Log multipliers anchored at ``reference`` (0.0) plus the bridges behind each node."""
    edges: Dict[str, List[Tuple[str, float]]] = defaultdict(list)
    support: Dict[str, set] = defaultdict(set)
    for (a, b), values in observations.items():
        if len(values) < min_bridge_players:
            logger.debug("Dropping pair %s/%s: %d bridge players", a, b, len(values))
            continue
        # log m_a - log m_b
        d = median(v for v, _ in values)
        edges[a].append((b, d))
        edges[b].append((a, -d))
        names = {n for _, n in values}
        support[a].update(names)
        support[b].update(names)

    logm: Dict[str, float] = {reference: 0.0}
    queue = [reference]
    while queue:
        node = queue.pop(0)
        for other, d in edges[node]:
            if other not in logm:
                logm[other] = logm[node] - d
                queue.append(other)

    # reconcile inconsistent cycles by averaging neighbour estimates
    for _ in range(SOLVER_ITERATIONS):
        for node in logm:
            if node == reference:
                continue
            estimates = [logm[other] + d for other, d in edges[node] if other in logm]
            if estimates:
                logm[node] = sum(estimates) / len(estimates)

    return {n: logm.get(n, 0.0) for n in nodes}, {n: support[n] for n in logm}


def calculate_league_strengths(
    leagues: Mapping[str, LeagueInput],
    bridge_players: Iterable[BridgePlayer],
    reference: Optional[str] = None,
    min_bridge_players: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> List[LeagueStrength]:
    config = config or DEFAULT_CONFIG
    league_ids = list(leagues)
    if not league_ids:
        return []
    reference = reference if reference in leagues else league_ids[0]
    min_bridge_players = config.min_bridge_players if min_bridge_players is None else min_bridge_players

    cross = [bp for bp in bridge_players if len(bp.leagues) >= 2]
    obs = _pair_observations(
        cross,
        lambda ctx: ctx.league_id if ctx.league_id in leagues else None,
        config.bridge_min_games,
        config,
    )
    logm, support = _resolve(league_ids, obs, reference, min_bridge_players)

    out: List[LeagueStrength] = []
    for league_id in league_ids:
        connected = league_id in support
        count = len(support.get(league_id, ()))
        if league_id == reference:
            confidence = 1.0
        elif connected:
            confidence = min(1.0, count / FULL_CONFIDENCE_BRIDGES)
        else:
            confidence = 0.0
        out.append(
            LeagueStrength(
                league_id=league_id,
                multiplier=math.exp(logm[league_id]) if connected else 1.0,
                confidence=confidence,
                bridge_player_count=count,
            )
        )
    return out


def calculate_division_strengths(
    league_id: str,
    season_stats: SeasonStats,
    bridge_players: Optional[Iterable[BridgePlayer]] = None,
    reference: Optional[str] = None,
    min_bridge_players: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> List[DivisionStrength]:
    """Relative strength of the divisions inside one league."""
    config = config or DEFAULT_CONFIG
    divisions = sorted({e.division for entries in season_stats.values() for e in entries if not e.cup and e.division})
    if not divisions:
        return []
    reference = reference if reference in divisions else divisions[0]
    min_bridge_players = config.min_bridge_players if min_bridge_players is None else min_bridge_players
    if bridge_players is None:
        bridge_players = find_intra_league_bridge_players(league_id, season_stats)

    obs = _pair_observations(
        bridge_players,
        lambda ctx: ctx.division if ctx.league_id == league_id else None,
        config.bridge_min_games,
        config,
    )
    logm, support = _resolve(divisions, obs, reference, min_bridge_players)
    return [
        DivisionStrength(
            league_id=league_id,
            division=div,
            multiplier=math.exp(logm[div]) if div in support else 1.0,
            confidence=(
                1.0
                if div == reference
                else min(1.0, len(support[div]) / FULL_CONFIDENCE_BRIDGES) if div in support else 0.0
            ),
            bridge_player_count=len(support.get(div, ())),
        )
        for div in divisions
    ]


def normalized_rating(adj_pct: float, multiplier: float) -> float:
    return adj_pct * multiplier


def rank_players_across_leagues(
    leagues: Mapping[str, LeagueInput],
    strengths: Iterable[LeagueStrength],
    min_games: int = DEFAULT_CONFIG.bridge_min_games,
    config: Optional[EngineConfig] = None,
) -> List[RankedPlayer]:
    config = config or DEFAULT_CONFIG
    multipliers = {s.league_id: s.multiplier for s in strengths}
    ranked: List[RankedPlayer] = []
    for league_id, league in leagues.items():
        multiplier = multipliers.get(league_id, 1.0)
        for name, stat in league_stats(_season_stats(league)).items():
            if stat.played < min_games:
                continue
            adj = adjusted_pct(stat, config)
            ranked.append(
                RankedPlayer(
                    name=name,
                    league_id=league_id,
                    division=stat.division,
                    played=stat.played,
                    adj_pct=adj,
                    normalized_pct=normalized_rating(adj, multiplier),
                )
            )
    ranked.sort(key=lambda r: (-r.normalized_pct, r.name))
    return ranked
