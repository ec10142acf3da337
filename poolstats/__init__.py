"""Pool league prediction, simulation and scouting engine."""

__all__ = [
    "config",
    "types",
    "normalize",
    "stats",
    "standings",
    "form",
    "head_to_head",
    "report",
    "lineup",
    "predictor",
    "simulation",
    "league_strength",
    "accuracy",
    "render",
    "cli",
    "api",
]
