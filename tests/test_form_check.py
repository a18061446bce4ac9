from __future__ import annotations

import math
from typing import Dict, List, Optional, Tuple

from pose.landmarks import (
    Frame,
    Landmark,
    L_ANKLE,
    L_ELBOW,
    L_HIP,
    L_KNEE,
    L_SHOULDER,
    L_WRIST,
    R_ANKLE,
    R_KNEE,
)
from scoring.form_check import UNSUPPORTED_MESSAGE, check_frame, form_check


def _frame(points: Dict[int, Tuple[float, float]], ts: float = 0.0, base=(0.5, 0.5)) -> Frame:
    lms: List[Optional[Landmark]] = [Landmark(x=base[0], y=base[1]) for _ in range(33)]
    for idx, (x, y) in points.items():
        lms[idx] = Landmark(x=x, y=y)
    return Frame(timestamp=ts, landmarks=tuple(lms))


def _good_squat() -> Frame:
    hip = (0.5, 0.75)
    # shoulder 60 degrees away from the hip->knee ray (which points at -45 degrees)
    theta = math.radians(-105.0)
    shoulder = (hip[0] + 0.3 * math.cos(theta), hip[1] + 0.3 * math.sin(theta))
    return _frame(
        {
            L_SHOULDER: shoulder,
            L_HIP: hip,
            L_KNEE: (0.7, 0.55),
            L_ANKLE: (0.7, 0.9),
            R_KNEE: (0.3, 0.55),
            R_ANKLE: (0.3, 0.9),
        }
    )


def _bad_squat() -> Frame:
    # knees 0.2 off the ankles, no depth, shoulder on top of the hip
    return _frame({L_KNEE: (0.7, 0.5), R_KNEE: (0.3, 0.5), L_ANKLE: (0.5, 0.9), R_ANKLE: (0.5, 0.9)})


def _pushup(body_ok: bool = True, elbow_ok: bool = True) -> Frame:
    shoulder = (0.3, 0.5) if body_ok else (0.3, 0.3)
    elbow = (shoulder[0], shoulder[1] + 0.2)
    wrist = (0.5, elbow[1]) if elbow_ok else (elbow[0], elbow[1] + 0.2)
    return _frame({L_SHOULDER: shoulder, L_HIP: (0.5, 0.52), L_ANKLE: (0.8, 0.52), L_ELBOW: elbow, L_WRIST: wrist})


def test_good_squat_frame_scores_ten():
    check = check_frame(_good_squat(), "squat")
    assert [r.name for r in check.results] == ["Knee Alignment", "Squat Depth", "Back Angle"]
    assert [r.score for r in check.results] == [10, 10, 10]
    assert check.cues == ["Excellent knee alignment!", "Excellent squat depth!", "Perfect back angle!"]


def test_bad_squat_frame_uses_floor_and_lowest_bands():
    check = check_frame(_bad_squat(), "squat")
    scores = {r.name: r.score for r in check.results}
    # 10 - 0.2 * 50 = 0, lifted to the floor of 3
    assert scores == {"Knee Alignment": 3, "Squat Depth": 2, "Back Angle": 4}
    assert abs(check.score - 3.0) < 1e-9
    assert "Improve knee alignment. Keep knees aligned with ankles." in check.cues


def test_squat_report_summarizes_issues():
    report = form_check([_good_squat(), _bad_squat()], "squat")
    # (10 + 3) / 2 = 6.5 rounds up
    assert report.overall_score == 7
    assert report.feedback == (
        "Good form with room for improvement. Focus on: Knee Alignment, Squat Depth, Back Angle."
    )
    assert report.total_frames == 2


def test_common_issues_ordered_by_frequency():
    frames = [_pushup(body_ok=False), _pushup(elbow_ok=False), _pushup(elbow_ok=False)]
    report = form_check(frames, "pushup")
    assert report.common_issues == ["Elbow Angle", "Body Alignment"]
    assert report.feedback.endswith("Focus on: Elbow Angle, Body Alignment.")


def test_clean_pushup_and_plank_have_no_issues():
    pushup = form_check([_pushup()] * 3, "pushup")
    assert pushup.overall_score == 10
    assert pushup.feedback == "Excellent form! Your technique is on point."
    assert pushup.common_issues == []

    plank_frame = _frame({L_SHOULDER: (0.3, 0.5), L_HIP: (0.5, 0.5), L_ANKLE: (0.8, 0.5)})
    check = check_frame(plank_frame, "plank")
    assert check.cues == ["Perfect plank form!", "Excellent core engagement!"]


def test_details_keep_frame_index_and_cap_at_ten():
    frames = [Frame(timestamp=0.0, landmarks=None)] + [_pushup() for _ in range(14)]
    report = form_check(frames, "pushup")
    assert report.total_frames == 14
    assert len(report.details) == 10
    assert report.details[0].frame == 1
    d = report.to_dict()
    assert d["details"][0]["score"] == 10
    assert set(d["details"][0]["results"][0]) == {"name", "score", "feedback", "details"}


def test_unsupported_exercise():
    report = form_check([_good_squat()], "deadlift")
    assert report.overall_score == 0
    assert report.feedback == UNSUPPORTED_MESSAGE
    assert report.details == []
    assert check_frame(_good_squat(), "lunge") is None


def test_empty_recording_scores_zero():
    report = form_check([], "plank")
    assert report.overall_score == 0
    assert report.feedback.startswith("Form needs significant improvement.")


def test_missing_landmarks_skip_check():
    frame = _frame({L_SHOULDER: (0.3, 0.5)})
    lms = list(frame.landmarks)
    lms[L_WRIST] = None
    check = check_frame(Frame(timestamp=0.0, landmarks=tuple(lms)), "pushup")
    assert [r.name for r in check.results] == ["Body Alignment"]
    assert check_frame(Frame(timestamp=0.0, landmarks=None), "pushup") is None
