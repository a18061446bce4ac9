from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class Metric(str, Enum):
    KNEE_ALIGNMENT = "kneeAlignment"
    BACK_STRAIGHTNESS = "backStraightness"
    DEPTH = "depth"
    SPEED = "speed"
    BALANCE = "balance"
    BODY_ALIGNMENT = "bodyAlignment"
    ELBOW_ANGLE = "elbowAngle"
    STABILITY = "stability"
    HIP_HINGE = "hipHinge"
    BAR_PATH = "barPath"
    CORE_ENGAGEMENT = "coreEngagement"
    # Weighted in the criteria table but never computed from landmarks
    POSTURE = "posture"
    DURATION = "duration"


COMPUTED_METRICS: Tuple[Metric, ...] = (
    Metric.KNEE_ALIGNMENT,
    Metric.BACK_STRAIGHTNESS,
    Metric.DEPTH,
    Metric.SPEED,
    Metric.BALANCE,
    Metric.BODY_ALIGNMENT,
    Metric.ELBOW_ANGLE,
    Metric.STABILITY,
    Metric.HIP_HINGE,
    Metric.BAR_PATH,
    Metric.CORE_ENGAGEMENT,
)


@dataclass(frozen=True)
class ExerciseCriteria:
    key_points: Tuple[Metric, ...]
    weights: Dict[Metric, float]
    min_reps: int
    max_reps: int

    def __post_init__(self) -> None:
        missing = [m.value for m in self.key_points if m not in self.weights]
        if missing:
            raise ValueError(f"criteria key points without weights: {missing}")


EXERCISE_CRITERIA: Dict[str, ExerciseCriteria] = {
    "squat": ExerciseCriteria(
        key_points=(Metric.KNEE_ALIGNMENT, Metric.BACK_STRAIGHTNESS, Metric.DEPTH, Metric.BALANCE, Metric.SPEED),
        weights={
            Metric.KNEE_ALIGNMENT: 0.25,
            Metric.BACK_STRAIGHTNESS: 0.25,
            Metric.DEPTH: 0.25,
            Metric.BALANCE: 0.15,
            Metric.SPEED: 0.10,
        },
        min_reps=3,
        max_reps=20,
    ),
    "pushup": ExerciseCriteria(
        key_points=(Metric.BODY_ALIGNMENT, Metric.ELBOW_ANGLE, Metric.DEPTH, Metric.STABILITY, Metric.SPEED),
        weights={
            Metric.BODY_ALIGNMENT: 0.30,
            Metric.ELBOW_ANGLE: 0.25,
            Metric.DEPTH: 0.20,
            Metric.STABILITY: 0.15,
            Metric.SPEED: 0.10,
        },
        min_reps=3,
        max_reps=30,
    ),
    "deadlift": ExerciseCriteria(
        key_points=(Metric.BACK_STRAIGHTNESS, Metric.HIP_HINGE, Metric.BAR_PATH, Metric.BALANCE, Metric.SPEED),
        weights={
            Metric.BACK_STRAIGHTNESS: 0.35,
            Metric.HIP_HINGE: 0.25,
            Metric.BAR_PATH: 0.20,
            Metric.BALANCE: 0.15,
            Metric.SPEED: 0.05,
        },
        min_reps=3,
        max_reps=15,
    ),
    "plank": ExerciseCriteria(
        key_points=(Metric.BODY_ALIGNMENT, Metric.CORE_ENGAGEMENT, Metric.STABILITY, Metric.DURATION),
        weights={
            Metric.BODY_ALIGNMENT: 0.40,
            Metric.CORE_ENGAGEMENT: 0.30,
            Metric.STABILITY: 0.20,
            Metric.DURATION: 0.10,
        },
        min_reps=1,
        max_reps=1,
    ),
    "lunge": ExerciseCriteria(
        key_points=(Metric.KNEE_ALIGNMENT, Metric.BALANCE, Metric.DEPTH, Metric.POSTURE, Metric.SPEED),
        weights={
            Metric.KNEE_ALIGNMENT: 0.25,
            Metric.BALANCE: 0.25,
            Metric.DEPTH: 0.20,
            Metric.POSTURE: 0.20,
            Metric.SPEED: 0.10,
        },
        min_reps=6,
        max_reps=20,
    ),
}

EXERCISE_TYPES: Tuple[str, ...] = tuple(EXERCISE_CRITERIA)


def get_criteria(exercise_type: Optional[str]) -> Optional[ExerciseCriteria]:
    if exercise_type is None:
        return None
    return EXERCISE_CRITERIA.get(exercise_type)
