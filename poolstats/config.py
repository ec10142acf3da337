from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Tuple


ENV_PREFIX = "POOLSTATS_"

DEFAULT_DATA_DIR = "data"


@dataclass(frozen=True)
class EngineConfig:
    # shrinkage
    bayesian_prior: float = 0.5
    bayesian_k: float = 6.0
    unknown_player_prior: float = 0.45

    # match model
    home_advantage: float = 0.2
    frames_per_match: int = 10
    strength_scale: float = 4.0
    squad_strength_scaling: float = 4.0
    prior_blend_matches: int = 10
    top_scores: int = 5

    # form
    form_trend_threshold: float = 15.0
    min_games_for_trend: int = 5
    set_bias_even: float = 3.0
    front_loaded_bias: float = 5.0

    # simulation
    simulation_iterations: int = 1000

    # lineup: adjusted pct, form pct, h2h net wins, venue delta
    lineup_min_games: int = 5
    lineup_weights: Tuple[float, float, float, float] = (0.7, 0.3, 5.0, 0.2)

    # cross-league
    bridge_min_games: int = 3
    min_bridge_players: int = 3
    fuzzy_min_confidence: float = 0.85

    report_top_n: int = 3

    # power rankings: points, form, margin of victory, schedule, trajectory
    power_ranking_weights: Tuple[float, float, float, float, float] = (0.30, 0.25, 0.20, 0.15, 0.10)


DEFAULT_CONFIG = EngineConfig()


def _coerce(raw: str, current: object) -> object:
    if isinstance(current, tuple):
        return tuple(float(part) for part in raw.split(","))
    if isinstance(current, int):
        return int(raw)
    return float(raw)


def engine_config_from_env() -> EngineConfig:
    overrides = {}
    for f in fields(EngineConfig):
        raw = os.environ.get(ENV_PREFIX + f.name.upper())
        if raw is None or raw == "":
            continue
        try:
            overrides[f.name] = _coerce(raw, getattr(DEFAULT_CONFIG, f.name))
        except ValueError as exc:
            raise ValueError(f"Invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}") from exc
    return EngineConfig(**overrides)


@dataclass(frozen=True)
class DataConfig:
    base_dir: Path


def data_config_from_env() -> DataConfig:
    return DataConfig(base_dir=Path(os.environ.get(ENV_PREFIX + "DATA_DIR", DEFAULT_DATA_DIR)))
