from __future__ import annotations

from math import atan2, degrees
from typing import Tuple

import numpy as np

from pose.landmarks import Frame, Landmark


def distance(p1: Landmark, p2: Landmark) -> float:
    """Euclidean distance between two landmarks in the x/y image plane."""
    return float(np.hypot(p2.x - p1.x, p2.y - p1.y))


def angle(p1: Landmark, p2: Landmark, p3: Landmark) -> float:
    """
    Returns the unsigned angle (degrees) at vertex p2 formed by rays toward p1 and p3.

    - Computed as the difference of the two rays' arctangents, so values above 180 are possible
    - Coincident points do not raise; atan2(0, 0) == 0 keeps the result deterministic
    """
    theta = atan2(p3.y - p2.y, p3.x - p2.x) - atan2(p1.y - p2.y, p1.x - p2.x)
    return abs(degrees(theta))


def midpoint(p1: Landmark, p2: Landmark) -> Tuple[float, float]:
    return ((p1.x + p2.x) / 2.0, (p1.y + p2.y) / 2.0)


def movement(a: Frame, b: Frame) -> float:
    """
    Mean Euclidean displacement of every finite landmark present in both frames.
    Returns 0.0 when the frames share no landmarks.
    """
    if a.landmarks is None or b.landmarks is None:
        return 0.0
    total = 0.0
    count = 0
    for la, lb in zip(a.landmarks, b.landmarks):
        if la is None or lb is None or not (la.finite and lb.finite):
            continue
        total += distance(la, lb)
        count += 1
    return total / count if count > 0 else 0.0


def interior_angle(p1: Landmark, p2: Landmark, p3: Landmark) -> float:
    """
    Angle (degrees, 0-180) at vertex p2 from the law of cosines.
    Returns 0.0 when p2 coincides with p1 or p3.
    """
    a = distance(p1, p2)
    b = distance(p2, p3)
    c = distance(p1, p3)
    if a == 0 or b == 0:
        return 0.0
    cos_theta = (a * a + b * b - c * c) / (2.0 * a * b)
    return float(np.degrees(np.arccos(np.clip(cos_theta, -1.0, 1.0))))
