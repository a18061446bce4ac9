from __future__ import annotations

from typing import Mapping, Optional

from .criteria import get_criteria
from .utils import clamp_score, round_half_up


def overall_score(metrics: Mapping[str, float], exercise_type: Optional[str]) -> int:
    """
    Weighted average of the exercise's key-point metrics, rounded to an integer.

    Metrics missing from the set (e.g. criteria-only ones such as posture) are skipped
    along with their weight. Unknown exercises or no matched weights score 0.
    """
    criteria = get_criteria(exercise_type)
    if criteria is None:
        return 0

    total_score = 0.0
    total_weight = 0.0
    for point in criteria.key_points:
        weight = criteria.weights.get(point, 0.0)
        value = metrics.get(point.value)
        if value is None or not weight:
            continue
        total_score += float(value) * weight
        total_weight += weight

    if total_weight <= 0.0:
        return 0
    return round_half_up(clamp_score(total_score / total_weight))
