from __future__ import annotations

import math

from pose.landmarks import Frame, Landmark
from scoring.geometry import angle, distance, interior_angle, midpoint, movement


def _lm(x: float, y: float, v: float = 1.0) -> Landmark:
    return Landmark(x=x, y=y, z=0.0, visibility=v)


def test_distance_pythagorean():
    assert abs(distance(_lm(0.0, 0.0), _lm(0.3, 0.4)) - 0.5) < 1e-12


def test_angle_basic_right_angle():
    # Right angle at B: A(0,0), B(0,1), C(1,1)
    A = _lm(0.0, 0.0)
    B = _lm(0.0, 1.0)
    C = _lm(1.0, 1.0)
    assert abs(angle(A, B, C) - 90.0) < 1e-9


def test_angle_straight_line_is_180():
    assert abs(angle(_lm(0.0, 0.0), _lm(1.0, 0.0), _lm(2.0, 0.0)) - 180.0) < 1e-9


def test_angle_can_exceed_180():
    # atan2 difference is not folded back into [0, 180]
    A = _lm(-1.0, -1.0)
    B = _lm(0.0, 0.0)
    C = _lm(-1.0, 1.0)
    assert abs(angle(A, B, C) - 270.0) < 1e-9


def test_angle_degenerate_is_deterministic():
    B = _lm(0.5, 0.5)
    C = _lm(0.5, 0.9)
    first = angle(B, B, C)
    assert math.isfinite(first)
    assert angle(B, B, C) == first


def test_midpoint():
    mx, my = midpoint(_lm(0.2, 0.4), _lm(0.4, 0.8))
    assert abs(mx - 0.3) < 1e-12
    assert abs(my - 0.6) < 1e-12


def test_movement_ignores_missing_points():
    a = Frame(timestamp=0.0, landmarks=(_lm(0.0, 0.0), None, _lm(0.5, 0.5)))
    b = Frame(timestamp=1.0, landmarks=(_lm(0.3, 0.4), _lm(0.9, 0.9), _lm(0.5, 0.5)))
    # only indices 0 and 2 are shared: (0.5 + 0.0) / 2
    assert abs(movement(a, b) - 0.25) < 1e-12


def test_movement_zero_without_landmarks():
    assert movement(Frame(0.0, None), Frame(1.0, (_lm(0.1, 0.1),))) == 0.0


def test_interior_angle_is_bounded():
    assert abs(interior_angle(_lm(1, 0), _lm(0, 0), _lm(0, 1)) - 90.0) < 1e-9
    assert abs(interior_angle(_lm(-1, -1), _lm(0, 0), _lm(-1, 1)) - 90.0) < 1e-9
    assert abs(interior_angle(_lm(-1, 0), _lm(0, 0), _lm(1, 0)) - 180.0) < 1e-6
    assert interior_angle(_lm(0, 0), _lm(0, 0), _lm(1, 0)) == 0.0
