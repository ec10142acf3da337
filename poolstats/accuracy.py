from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, Iterable, List, Optional

from .normalize import MatchResult
from .predictor import PredictionResult

CALIBRATION_BUCKETS = 10

# (label, lower bound inclusive, upper bound exclusive)
CONFIDENCE_BANDS = [
    ("High (>70%)", 0.7, 1.0),
    ("Medium (50-70%)", 0.5, 0.7),
    ("Low (<50%)", 0.0, 0.5),
]


@dataclass(frozen=True)
class PredictionSnapshot:
    home: str
    away: str
    division: str
    date: date
    p_home_win: float  # 0-1
    p_draw: float
    p_away_win: float
    expected_home: float = 0.0
    expected_away: float = 0.0
    actual_home_score: Optional[int] = None
    actual_away_score: Optional[int] = None

    @property
    def confidence(self) -> float:
        return max(self.p_home_win, self.p_draw, self.p_away_win)

    @property
    def predicted_winner(self) -> str:
        probs = {"home": self.p_home_win, "draw": self.p_draw, "away": self.p_away_win}
        return max(probs, key=probs.get)

    @property
    def actual_winner(self) -> Optional[str]:
        if self.actual_home_score is None or self.actual_away_score is None:
            return None
        if self.actual_home_score > self.actual_away_score:
            return "home"
        if self.actual_home_score < self.actual_away_score:
            return "away"
        return "draw"

    @property
    def resolved(self) -> bool:
        return self.actual_winner is not None

    @property
    def correct(self) -> Optional[bool]:
        actual = self.actual_winner
        return None if actual is None else actual == self.predicted_winner


@dataclass(frozen=True)
class BucketAccuracy:
    label: str
    total: int
    correct: int
    accuracy: float


@dataclass(frozen=True)
class CalibrationBucket:
    min_confidence: float
    max_confidence: float
    predicted_rate: float
    actual_rate: float
    count: int


@dataclass
class AccuracyStats:
    total: int = 0
    correct: int = 0
    accuracy: float = 0.0
    by_division: List[BucketAccuracy] = field(default_factory=list)
    by_confidence: List[BucketAccuracy] = field(default_factory=list)
    calibration: List[CalibrationBucket] = field(default_factory=list)
    brier_score: float = 0.0


def snapshot_from_prediction(
    prediction: PredictionResult, home: str, away: str, division: str, on: date
) -> PredictionSnapshot:
    return PredictionSnapshot(
        home=home,
        away=away,
        division=division,
        date=on,
        p_home_win=prediction.p_home_win / 100.0,
        p_draw=prediction.p_draw / 100.0,
        p_away_win=prediction.p_away_win / 100.0,
        expected_home=prediction.expected_home,
        expected_away=prediction.expected_away,
    )


def resolve_prediction(snapshot: PredictionSnapshot, result: MatchResult) -> PredictionSnapshot:
    if (snapshot.home, snapshot.away) != (result.home, result.away):
        raise ValueError(f"Result {result.home} v {result.away} does not match prediction {snapshot.home} v {snapshot.away}")
    return replace(snapshot, actual_home_score=result.home_score, actual_away_score=result.away_score)


def resolve_all(snapshots: Iterable[PredictionSnapshot], results: Iterable[MatchResult]) -> List[PredictionSnapshot]:
    """Attach results to snapshots by (home, away, date); unmatched snapshots pass through."""
    by_key = {(r.home, r.away, r.date): r for r in results}
    out = []
    for snap in snapshots:
        result = by_key.get((snap.home, snap.away, snap.date))
        out.append(resolve_prediction(snap, result) if result is not None else snap)
    return out


def _bucket(label: str, rows: List[PredictionSnapshot]) -> BucketAccuracy:
    correct = sum(1 for s in rows if s.correct)
    return BucketAccuracy(label=label, total=len(rows), correct=correct, accuracy=correct / len(rows) if rows else 0.0)


def calculate_calibration(snapshots: Iterable[PredictionSnapshot]) -> List[CalibrationBucket]:
    counts = [0] * CALIBRATION_BUCKETS
    hits = [0] * CALIBRATION_BUCKETS
    for s in snapshots:
        idx = min(int(s.confidence * CALIBRATION_BUCKETS), CALIBRATION_BUCKETS - 1)
        counts[idx] += 1
        if s.correct:
            hits[idx] += 1
    return [
        CalibrationBucket(
            min_confidence=i / CALIBRATION_BUCKETS,
            max_confidence=(i + 1) / CALIBRATION_BUCKETS,
            predicted_rate=(i + 0.5) / CALIBRATION_BUCKETS,
            actual_rate=hits[i] / counts[i],
            count=counts[i],
        )
        for i in range(CALIBRATION_BUCKETS)
        if counts[i]
    ]


def brier_score(snapshots: Iterable[PredictionSnapshot]) -> float:
    """Mean squared error of the three-way probabilities; 0 is perfect."""
    total = 0.0
    n = 0
    for s in snapshots:
        actual = s.actual_winner
        if actual is None:
            continue
        total += (
            (s.p_home_win - (actual == "home")) ** 2
            + (s.p_draw - (actual == "draw")) ** 2
            + (s.p_away_win - (actual == "away")) ** 2
        )
        n += 1
    return total / n if n else 0.0


def calculate_accuracy(snapshots: Iterable[PredictionSnapshot]) -> AccuracyStats:
    completed = [s for s in snapshots if s.resolved]
    if not completed:
        return AccuracyStats()

    correct = sum(1 for s in completed if s.correct)

    divisions: Dict[str, List[PredictionSnapshot]] = {}
    for s in completed:
        divisions.setdefault(s.division, []).append(s)

    by_confidence = []
    for label, low, high in CONFIDENCE_BANDS:
        # top band includes certainty
        rows = [s for s in completed if low <= s.confidence < high or (high == 1.0 and s.confidence == 1.0)]
        by_confidence.append(_bucket(label, rows))

    return AccuracyStats(
        total=len(completed),
        correct=correct,
        accuracy=correct / len(completed),
        by_division=[_bucket(div, rows) for div, rows in sorted(divisions.items())],
        by_confidence=by_confidence,
        calibration=calculate_calibration(completed),
        brier_score=brier_score(completed),
    )
