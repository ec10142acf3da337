"""Value objects shared across the engine."""

from enum import Enum


class Side(str, Enum):
    """Which side of a fixture a frame winner sat on."""

    HOME = "home"
    AWAY = "away"


class Trend(str, Enum):
    """Recent form relative to the season average."""

    HOT = "hot"
    COLD = "cold"
    STEADY = "steady"


class Outcome(str, Enum):
    """Team-perspective match outcome."""

    WIN = "W"
    LOSS = "L"
    DRAW = "D"


class Advantage(str, Enum):
    """Head-to-head edge classification."""

    STRONG = "strong"
    MODERATE = "moderate"
    EVEN = "even"
    DISADVANTAGE = "disadvantage"


class AppearanceCategory(str, Enum):
    """How regularly a player turns out for a team."""

    CORE = "core"
    ROTATION = "rotation"
    FRINGE = "fringe"


class SimulationState(str, Enum):
    """Lifecycle of a season simulation run."""

    IDLE = "idle"
    SIMULATING = "simulating"
    COMPLETE = "complete"
    FAILED = "failed"
