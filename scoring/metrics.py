"""
Per-metric form calculators.

Every calculator consumes the whole frame sequence of a session and returns an
integer score in [0, 100]. Frames lacking the landmarks a metric needs are
excluded from that metric's average only; no valid frame means a score of 0.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import numpy as np

from pose.landmarks import (
    Frame,
    L_ANKLE,
    L_ELBOW,
    L_HIP,
    L_KNEE,
    L_SHOULDER,
    L_WRIST,
    R_ANKLE,
    R_HIP,
    R_KNEE,
    R_SHOULDER,
)
from .criteria import Metric
from .geometry import angle, midpoint, movement
from .utils import (
    BACK_STRAIGHTNESS_HORIZONTAL,
    BACK_STRAIGHTNESS_VERTICAL,
    BALANCE,
    BAR_PATH,
    BODY_ALIGNMENT,
    CORE_ENGAGEMENT,
    ELBOW_ANGLE,
    HIP_HINGE_ANGLE,
    KNEE_ALIGNMENT,
    KNEE_DEPTH_ANGLE,
    PUSHUP_DEPTH_GAIN,
    SPEED_GAIN,
    STABILITY,
    LinearPenalty,
    clamp_score,
    round_half_up,
)


logger = logging.getLogger(__name__)

MetricScoreSet = Dict[str, int]


def _penalty(deviation: float, rule: LinearPenalty) -> float:
    return max(0.0, 100.0 - abs(deviation - rule.ideal) * rule.sensitivity)


def _average(scores: Iterable[float]) -> int:
    values = [s for s in scores if np.isfinite(s)]
    if not values:
        return 0
    return round_half_up(clamp_score(float(np.mean(values))))


def knee_alignment(frames: Sequence[Frame], exercise_type: Optional[str] = None) -> int:
    scores: List[float] = []
    for frame in frames:
        pts = frame.points(L_KNEE, R_KNEE, L_ANKLE, R_ANKLE)
        if pts is None:
            continue
        lk, rk, la, ra = pts
        offset = (abs(lk.x - la.x) + abs(rk.x - ra.x)) / 2.0
        scores.append(_penalty(offset, KNEE_ALIGNMENT))
    return _average(scores)


def back_straightness(frames: Sequence[Frame], exercise_type: Optional[str] = None) -> int:
    scores: List[float] = []
    for frame in frames:
        pts = frame.points(L_SHOULDER, R_SHOULDER, L_HIP, R_HIP)
        if pts is None:
            continue
        sh_x, sh_y = midpoint(pts[0], pts[1])
        hip_x, hip_y = midpoint(pts[2], pts[3])
        penalty = (
            abs(sh_x - hip_x) * BACK_STRAIGHTNESS_HORIZONTAL.sensitivity
            + abs(sh_y - hip_y) * BACK_STRAIGHTNESS_VERTICAL.sensitivity
        )
        scores.append(max(0.0, 100.0 - penalty))
    return _average(scores)


def depth(frames: Sequence[Frame], exercise_type: Optional[str] = None) -> int:
    """
    Range-of-motion score.

    - squat / lunge: knee angle (hip-knee-ankle) against a 90 degree target
    - pushup: vertical shoulder-to-elbow separation
    - plank and other exercises have no depth component and score 0
    """
    if exercise_type in ("squat", "lunge"):
        scores: List[float] = []
        for frame in frames:
            pts = frame.points(L_HIP, L_KNEE, L_ANKLE)
            if pts is None:
                continue
            scores.append(_penalty(angle(*pts), KNEE_DEPTH_ANGLE))
        return _average(scores)
    if exercise_type == "pushup":
        scores = []
        for frame in frames:
            pts = frame.points(L_SHOULDER, L_ELBOW)
            if pts is None:
                continue
            separation = abs(pts[0].y - pts[1].y)
            scores.append(min(100.0, separation * PUSHUP_DEPTH_GAIN))
        return _average(scores)
    return 0


def speed(frames: Sequence[Frame], exercise_type: Optional[str] = None) -> int:
    if len(frames) < 2:
        return 0
    scores: List[float] = []
    for prev, cur in zip(frames, frames[1:]):
        if prev.landmarks is None or cur.landmarks is None:
            continue
        scores.append(min(100.0, movement(prev, cur) * SPEED_GAIN))
    return _average(scores)


def balance(frames: Sequence[Frame], exercise_type: Optional[str] = None) -> int:
    scores: List[float] = []
    for frame in frames:
        pts = frame.points(L_SHOULDER, R_SHOULDER, L_HIP, R_HIP)
        if pts is None:
            continue
        spread = abs(pts[0].x - pts[1].x) + abs(pts[2].x - pts[3].x)
        scores.append(_penalty(spread, BALANCE))
    return _average(scores)


def body_alignment(frames: Sequence[Frame], exercise_type: Optional[str] = None) -> int:
    scores: List[float] = []
    for frame in frames:
        pts = frame.points(L_SHOULDER, R_SHOULDER, L_HIP, R_HIP, L_ANKLE, R_ANKLE)
        if pts is None:
            continue
        sh_x, _ = midpoint(pts[0], pts[1])
        hip_x, _ = midpoint(pts[2], pts[3])
        ankle_x, _ = midpoint(pts[4], pts[5])
        offset = abs(sh_x - hip_x) + abs(hip_x - ankle_x)
        scores.append(_penalty(offset, BODY_ALIGNMENT))
    return _average(scores)


def elbow_angle(frames: Sequence[Frame], exercise_type: Optional[str] = None) -> int:
    # Running average over valid frames.
    scores: List[float] = []
    for frame in frames:
        pts = frame.points(L_SHOULDER, L_ELBOW, L_WRIST)
        if pts is None:
            continue
        scores.append(_penalty(angle(*pts), ELBOW_ANGLE))
    return _average(scores)


def stability(frames: Sequence[Frame], exercise_type: Optional[str] = None) -> int:
    """Penalizes changes in frame-to-frame movement magnitude (jerkiness)."""
    if len(frames) < 3:
        return 0
    scores: List[float] = []
    for f1, f2, f3 in zip(frames, frames[1:], frames[2:]):
        if f1.landmarks is None or f2.landmarks is None or f3.landmarks is None:
            continue
        jerk = abs(movement(f1, f2) - movement(f2, f3))
        scores.append(_penalty(jerk, STABILITY))
    return _average(scores)


def hip_hinge(frames: Sequence[Frame], exercise_type: Optional[str] = None) -> int:
    scores: List[float] = []
    for frame in frames:
        pts = frame.points(L_SHOULDER, L_HIP, L_KNEE)
        if pts is None:
            continue
        scores.append(_penalty(angle(*pts), HIP_HINGE_ANGLE))
    return _average(scores)


def bar_path(frames: Sequence[Frame], exercise_type: Optional[str] = None) -> int:
    """Horizontal drift of the shoulder midpoint between consecutive frames."""
    scores: List[float] = []
    for prev, cur in zip(frames, frames[1:]):
        before = prev.points(L_SHOULDER, R_SHOULDER)
        after = cur.points(L_SHOULDER, R_SHOULDER)
        if before is None or after is None:
            continue
        drift = abs(midpoint(*after)[0] - midpoint(*before)[0])
        scores.append(_penalty(drift, BAR_PATH))
    return _average(scores)


def core_engagement(frames: Sequence[Frame], exercise_type: Optional[str] = None) -> int:
    scores: List[float] = []
    for frame in frames:
        pts = frame.points(L_SHOULDER, R_SHOULDER, L_HIP, R_HIP)
        if pts is None:
            continue
        _, sh_y = midpoint(pts[0], pts[1])
        _, hip_y = midpoint(pts[2], pts[3])
        scores.append(_penalty(abs(sh_y - hip_y), CORE_ENGAGEMENT))
    return _average(scores)


CALCULATORS: Dict[Metric, Callable[[Sequence[Frame], Optional[str]], int]] = {
    Metric.KNEE_ALIGNMENT: knee_alignment,
    Metric.BACK_STRAIGHTNESS: back_straightness,
    Metric.DEPTH: depth,
    Metric.SPEED: speed,
    Metric.BALANCE: balance,
    Metric.BODY_ALIGNMENT: body_alignment,
    Metric.ELBOW_ANGLE: elbow_angle,
    Metric.STABILITY: stability,
    Metric.HIP_HINGE: hip_hinge,
    Metric.BAR_PATH: bar_path,
    Metric.CORE_ENGAGEMENT: core_engagement,
}


def compute_metrics(frames: Sequence[Frame], exercise_type: Optional[str] = None) -> MetricScoreSet:
    """Run every calculator over the session and return {metric name: score}."""
    if not frames:
        return {metric.value: 0 for metric in CALCULATORS}
    metrics = {metric.value: int(calc(frames, exercise_type)) for metric, calc in CALCULATORS.items()}
    logger.debug("computed %d metrics over %d frames (%s)", len(metrics), len(frames), exercise_type)
    return metrics
