"""HTTP API over the prediction and scouting engine."""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from .config import EngineConfig, data_config_from_env, engine_config_from_env
from .head_to_head import analyze_h2h
from .league_strength import calculate_league_strengths, find_all_bridge_players
from .lineup import suggest_lineup
from .normalize import DatasetError, LeagueDataset, SquadOverride, WhatIfResult, load_dataset
from .predictor import InvalidOverrideError, predict_fixture
from .rankings import all_schedule_strengths, power_rankings
from .render import jsonable
from .report import build_report
from .simulation import SimulationCancelled, SimulationError, simulate_division

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Thread pool for running simulations off the event loop
_executor = ThreadPoolExecutor(max_workers=4)


class DatasetStore:
    """League datasets loaded from ``*.json`` files, reloaded when a file changes."""

    def __init__(self, base_dir: Optional[Path] = None, preloaded: Iterable[LeagueDataset] = ()):
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self._preloaded = {ds.league_id: ds for ds in preloaded}
        self._cache: Dict[Path, Tuple[float, LeagueDataset]] = {}
        self._lock = threading.Lock()

    def _load(self, path: Path) -> Optional[LeagueDataset]:
        try:
            mtime = path.stat().st_mtime
        except OSError as exc:
            logger.warning("Skipping dataset %s: %s", path, exc)
            return None
        cached = self._cache.get(path)
        if cached is not None and cached[0] == mtime:
            return cached[1]
        try:
            ds = load_dataset(path)
        except (DatasetError, ValueError, OSError) as exc:
            logger.warning("Skipping dataset %s: %s", path, exc)
            return None
        self._cache[path] = (mtime, ds)
        logger.info("Loaded dataset %s from %s", ds.league_id, path)
        return ds

    def datasets(self) -> Dict[str, LeagueDataset]:
        out = dict(self._preloaded)
        if self.base_dir is None or not self.base_dir.is_dir():
            return out
        with self._lock:
            for path in sorted(self.base_dir.glob("*.json")):
                ds = self._load(path)
                if ds is not None:
                    out[ds.league_id] = ds
        return out

    def get(self, league_id: str) -> Optional[LeagueDataset]:
        return self.datasets().get(league_id)


def _error(status: int, code: str, message: str, **details) -> HTTPException:
    return HTTPException(
        status_code=status,
        detail={"error": {"code": code, "message": message, "details": details}},
    )


class SquadOverrideModel(BaseModel):
    added: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)


class WhatIfModel(BaseModel):
    home: str
    away: str
    home_score: int = Field(..., alias="homeScore", ge=0)
    away_score: int = Field(..., alias="awayScore", ge=0)

    class Config:
        populate_by_name = True


class PredictRequest(BaseModel):
    """Request body for a fixture prediction."""

    league_id: Optional[str] = Field(default=None, alias="leagueId")
    home: str = Field(..., min_length=1)
    away: str = Field(..., min_length=1)
    squad_overrides: Dict[str, SquadOverrideModel] = Field(default_factory=dict, alias="squadOverrides")
    top_n: Optional[int] = Field(default=None, alias="topN", ge=1)

    class Config:
        populate_by_name = True


class SimulateRequest(BaseModel):
    """Request body for a season simulation."""

    league_id: Optional[str] = Field(default=None, alias="leagueId")
    division: str = Field(..., min_length=1)
    what_if: List[WhatIfModel] = Field(default_factory=list, alias="whatIf")
    squad_overrides: Dict[str, SquadOverrideModel] = Field(default_factory=dict, alias="squadOverrides")
    top_n: Optional[int] = Field(default=None, alias="topN", ge=1)
    iterations: Optional[int] = Field(default=None, ge=1, le=100000)
    seed: Optional[int] = None

    class Config:
        populate_by_name = True


class LineupRequest(BaseModel):
    """Request body for a lineup suggestion."""

    league_id: Optional[str] = Field(default=None, alias="leagueId")
    team: str = Field(..., min_length=1)
    opponent: str = Field(..., min_length=1)
    is_home: bool = Field(default=True, alias="isHome")
    set_size: int = Field(default=5, alias="setSize", ge=1, le=10)

    class Config:
        populate_by_name = True


def _overrides(models: Dict[str, SquadOverrideModel]) -> Dict[str, SquadOverride]:
    return {team: SquadOverride(added=list(m.added), removed=list(m.removed)) for team, m in models.items()}


def build_router(store: DatasetStore, config: EngineConfig) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["engine"])

    def _league(league_id: Optional[str]) -> LeagueDataset:
        datasets = store.datasets()
        if league_id is None:
            if len(datasets) == 1:
                return next(iter(datasets.values()))
            raise _error(422, "LEAGUE_REQUIRED", "leagueId is required when several leagues are loaded", leagues=list(datasets))
        ds = datasets.get(league_id)
        if ds is None:
            raise _error(404, "LEAGUE_NOT_FOUND", f"Unknown league {league_id!r}", leagueId=league_id)
        return ds

    def _require_team(ds: LeagueDataset, team: str) -> None:
        if ds.division_of(team) is None:
            raise _error(404, "TEAM_NOT_FOUND", f"Unknown team {team!r}", team=team, leagueId=ds.league_id)

    def _require_division(ds: LeagueDataset, division: str) -> None:
        if division not in ds.divisions:
            raise _error(404, "DIVISION_NOT_FOUND", f"Unknown division {division!r}", division=division)

    @router.get("/leagues")
    async def list_leagues():
        return [
            {
                "id": ds.league_id,
                "name": ds.name,
                "divisions": {code: {"name": d.name, "teams": d.teams} for code, d in ds.divisions.items()},
            }
            for ds in store.datasets().values()
        ]

    @router.post("/predict")
    async def predict(request: PredictRequest):
        ds = _league(request.league_id)
        _require_team(ds, request.home)
        _require_team(ds, request.away)
        try:
            result = predict_fixture(
                ds,
                request.home,
                request.away,
                _overrides(request.squad_overrides),
                request.top_n,
                config,
            )
        except InvalidOverrideError as e:
            raise _error(422, "INVALID_OVERRIDE", str(e))
        return jsonable(result)

    @router.post("/simulate")
    async def simulate(request: SimulateRequest):
        ds = _league(request.league_id)
        _require_division(ds, request.division)

        cancel = threading.Event()
        run = partial(
            simulate_division,
            ds,
            request.division,
            what_if=[WhatIfResult(w.home, w.away, w.home_score, w.away_score) for w in request.what_if],
            squad_overrides=_overrides(request.squad_overrides),
            top_n=request.top_n,
            iterations=request.iterations,
            seed=request.seed,
            config=config,
            cancel=cancel,
        )
        loop = asyncio.get_running_loop()
        try:
            results = await loop.run_in_executor(_executor, run)
        except asyncio.CancelledError:
            cancel.set()
            raise
        except InvalidOverrideError as e:
            raise _error(422, "INVALID_OVERRIDE", str(e))
        except (SimulationError, SimulationCancelled) as e:
            raise _error(422, "SIMULATION_FAILED", str(e), division=request.division)
        return {"division": request.division, "results": jsonable(results)}

    @router.get("/rankings/{division}")
    async def rankings(division: str, league_id: Optional[str] = Query(None, alias="leagueId")):
        ds = _league(league_id)
        _require_division(ds, division)
        return {"division": division, "rankings": jsonable(power_rankings(division, ds, config=config))}

    @router.get("/schedule-strength/{division}")
    async def schedule_strength(division: str, league_id: Optional[str] = Query(None, alias="leagueId")):
        ds = _league(league_id)
        _require_division(ds, division)
        return {"division": division, "teams": jsonable(all_schedule_strengths(division, ds, config))}

    @router.get("/scouting/{team}")
    async def scouting(
        team: str,
        league_id: Optional[str] = Query(None, alias="leagueId"),
        top_n: Optional[int] = Query(None, alias="topN", ge=1),
    ):
        ds = _league(league_id)
        _require_team(ds, team)
        report = build_report(team, ds.games, ds.results, ds.season_stats, ds.rosters(), top_n, config)
        return jsonable(report)

    @router.post("/lineup")
    async def lineup(request: LineupRequest):
        ds = _league(request.league_id)
        _require_team(ds, request.team)
        _require_team(ds, request.opponent)
        suggestion = suggest_lineup(
            request.team,
            request.opponent,
            request.is_home,
            ds.games,
            ds.season_stats,
            ds.rosters(),
            set_size=request.set_size,
            config=config,
        )
        return jsonable(suggestion)

    @router.get("/h2h")
    async def head_to_head(
        player_a: str = Query(..., alias="playerA", min_length=1),
        player_b: str = Query(..., alias="playerB", min_length=1),
        league_id: Optional[str] = Query(None, alias="leagueId"),
    ):
        ds = _league(league_id)
        analysis = analyze_h2h(player_a, player_b, ds.games)
        return {
            "player_a": player_a,
            "player_b": player_b,
            "analysis": jsonable(analysis) if analysis is not None else None,
        }

    @router.get("/league-strengths")
    async def league_strengths(reference: Optional[str] = Query(None)):
        datasets = store.datasets()
        bridges = find_all_bridge_players(datasets, config.bridge_min_games, config.fuzzy_min_confidence)
        strengths = calculate_league_strengths(datasets, bridges, reference=reference, config=config)
        return {"bridge_players": len(bridges), "strengths": jsonable(strengths)}

    return router


def create_app(store: Optional[DatasetStore] = None, config: Optional[EngineConfig] = None) -> FastAPI:
    load_dotenv()
    if store is None:
        store = DatasetStore(data_config_from_env().base_dir)
    if config is None:
        config = engine_config_from_env()

    app = FastAPI(
        title="Poolstats API",
        description="Pool league predictions, season simulation and scouting",
        version=API_VERSION,
    )

    @app.get("/health", tags=["meta"])
    async def health_check():
        return {"status": "healthy", "version": API_VERSION, "leagues": len(store.datasets())}

    app.include_router(build_router(store, config))
    return app
