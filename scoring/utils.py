from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class LinearPenalty:
    """score = max(0, 100 - deviation * sensitivity), optionally around an ideal target."""
    sensitivity: float
    ideal: float = 0.0


@dataclass(frozen=True)
class PhaseThresholds:
    """Signal bands for phase classification: below `low` -> low phase, below `high` -> transition."""
    low: float
    high: float


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (scores are never negative)."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


# Per-metric sensitivities (normalized coordinate space unless noted)
KNEE_ALIGNMENT = LinearPenalty(sensitivity=200.0)
# Back straightness penalizes horizontal and vertical shoulder/hip offsets separately
BACK_STRAIGHTNESS_HORIZONTAL = LinearPenalty(sensitivity=150.0)
BACK_STRAIGHTNESS_VERTICAL = LinearPenalty(sensitivity=50.0)
BALANCE = LinearPenalty(sensitivity=100.0)
BODY_ALIGNMENT = LinearPenalty(sensitivity=100.0)
STABILITY = LinearPenalty(sensitivity=200.0)
BAR_PATH = LinearPenalty(sensitivity=200.0)
CORE_ENGAGEMENT = LinearPenalty(sensitivity=150.0)

# Angle-based metrics (degrees)
KNEE_DEPTH_ANGLE = LinearPenalty(sensitivity=1.0, ideal=90.0)
ELBOW_ANGLE = LinearPenalty(sensitivity=1.0, ideal=90.0)
HIP_HINGE_ANGLE = LinearPenalty(sensitivity=2.0, ideal=52.5)

# Push-up depth rewards shoulder/elbow vertical separation: min(100, d * gain)
PUSHUP_DEPTH_GAIN = 200.0
# Speed rewards mean landmark displacement per frame: min(100, d * gain)
SPEED_GAIN = 15.0

# Feedback bands
POSITIVE_MIN_SCORE = 80
IMPROVEMENT_BELOW_SCORE = 60
RECOMMENDATION_BELOW_SCORE = 70
MAX_RECOMMENDATIONS = 3
NEXT_STEPS_PROGRESS_MIN_SCORE = 75


# Rep/phase detection
# Hip-knee vertical distance: small distance means the hips dropped toward knee height
HIP_KNEE_PHASES = PhaseThresholds(low=0.15, high=0.25)
# Shoulder-elbow vertical distance for push-ups
SHOULDER_ELBOW_PHASES = PhaseThresholds(low=0.10, high=0.20)
# Shoulder-hip-ankle horizontal spread for planks: small spread is a straight hold
PLANK_ALIGNMENT_PHASES = PhaseThresholds(low=0.10, high=0.20)

PHASE_CONFIDENCE_FACTORS = {
    "down": 0.90,
    "transition": 0.80,
    "up": 0.95,
    "hold": 0.95,
    "break": 0.60,
}

DEFAULT_DETECTION_THRESHOLD = 0.7
DEFAULT_MIN_PHASE_FRAMES = 5
# ~1 second at 30 fps
DEFAULT_HOLD_FRAMES = 30
