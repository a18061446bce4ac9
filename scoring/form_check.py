"""
Per-frame form checks.

Each supported exercise has a rubric of threshold checks. A check scores one
frame on a 0-10 scale and attaches a coaching cue. `check_frame` serves live
sessions; `form_check` summarizes a whole recording with a banded verdict and
the most frequent low-scoring checks.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

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
    R_KNEE,
)
from .geometry import interior_angle
from .utils import round_half_up


logger = logging.getLogger(__name__)

INF = float("inf")

# Checks scoring below this count as an issue for the summary
ISSUE_BELOW_SCORE = 6
MAX_COMMON_ISSUES = 3
MAX_FRAME_DETAILS = 10

UNSUPPORTED_MESSAGE = "Exercise type not supported for per-frame form checks."

# (min overall score, verdict)
VERDICTS: Tuple[Tuple[int, str], ...] = (
    (8, "Excellent form! Your technique is on point."),
    (6, "Good form with room for improvement."),
    (4, "Form needs work. Focus on the areas mentioned below."),
    (0, "Form needs significant improvement. Consider working with a trainer."),
)


@dataclass(frozen=True)
class Band:
    """A value strictly between low and high earns score and cue."""
    score: int
    cue: str
    low: float = -INF
    high: float = INF

    def contains(self, value: float) -> bool:
        return self.low < value < self.high


def _grade(value: float, bands: Sequence[Band]) -> Band:
    for band in bands:
        if band.contains(value):
            return band
    return bands[-1]


@dataclass(frozen=True)
class CheckResult:
    name: str
    score: int
    feedback: str
    details: str

    def to_dict(self) -> Dict[str, object]:
        return {"name": self.name, "score": self.score, "feedback": self.feedback, "details": self.details}


@dataclass(frozen=True)
class FrameCheck:
    frame: int
    score: float
    results: Tuple[CheckResult, ...]

    @property
    def cues(self) -> List[str]:
        return [r.feedback for r in self.results]

    def to_dict(self) -> Dict[str, object]:
        return {
            "frame": self.frame,
            "score": round_half_up(self.score),
            "results": [r.to_dict() for r in self.results],
        }


@dataclass(frozen=True)
class FormCheckReport:
    exercise_type: str
    overall_score: int
    feedback: str
    common_issues: List[str] = field(default_factory=list)
    details: List[FrameCheck] = field(default_factory=list)
    total_frames: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "exercise": self.exercise_type,
            "overallScore": self.overall_score,
            "feedback": self.feedback,
            "commonIssues": list(self.common_issues),
            "details": [d.to_dict() for d in self.details],
            "totalFrames": self.total_frames,
        }


# Squat
SQUAT_DEPTH_BANDS = (
    Band(10, "Excellent squat depth!", low=0.15),
    Band(8, "Good squat depth.", low=0.10),
    Band(5, "Moderate depth. Go deeper for better results.", low=0.05),
    Band(2, "Insufficient depth. Aim for thighs parallel to ground."),
)
SQUAT_BACK_ANGLE_BANDS = (
    Band(10, "Perfect back angle!", low=45.0, high=75.0),
    Band(7, "Good back angle.", low=30.0, high=90.0),
    Band(4, "Adjust back angle. Keep chest up and back straight."),
)
# Knee alignment is scored continuously; the floor applies to the worst band
KNEE_ALIGNMENT_GAIN = 50.0
KNEE_ALIGNMENT_FLOOR = 3
KNEE_ALIGNMENT_BANDS = (
    Band(10, "Excellent knee alignment!", high=0.05),
    Band(7, "Good knee alignment. Keep knees over toes.", high=0.10),
    Band(3, "Improve knee alignment. Keep knees aligned with ankles."),
)

# Push-up
PUSHUP_BODY_LINE_BANDS = (
    Band(10, "Perfect body alignment!", high=0.05),
    Band(8, "Good body alignment.", high=0.10),
    Band(5, "Moderate alignment. Keep body straight.", high=0.15),
    Band(2, "Poor alignment. Maintain straight line from head to heels."),
)
PUSHUP_ELBOW_BANDS = (
    Band(10, "Perfect elbow angle!", low=80.0, high=100.0),
    Band(7, "Good elbow angle.", low=70.0, high=110.0),
    Band(4, "Adjust elbow angle. Aim for 90 degrees when lowering."),
)

# Plank
PLANK_BODY_LINE_BANDS = (
    Band(10, "Perfect plank form!", high=0.03),
    Band(8, "Good plank form.", high=0.06),
    Band(5, "Moderate form. Keep body straight.", high=0.10),
    Band(2, "Poor form. Don't let hips sag or rise."),
)
PLANK_CORE_BANDS = (
    Band(10, "Excellent core engagement!", high=0.02),
    Band(7, "Good core engagement.", high=0.05),
    Band(4, "Engage your core. Keep hips level with shoulders."),
)


def _vertical_line(frame: Frame) -> Optional[float]:
    pts = frame.points(L_SHOULDER, L_HIP, L_ANKLE)
    if pts is None:
        return None
    sh, hip, ankle = pts
    return abs(sh.y - hip.y) + abs(hip.y - ankle.y)


def squat_knee_alignment(frame: Frame) -> Optional[CheckResult]:
    pts = frame.points(L_KNEE, L_ANKLE, R_KNEE, R_ANKLE)
    if pts is None:
        return None
    lk, la, rk, ra = pts
    offset = (abs(lk.x - la.x) + abs(rk.x - ra.x)) / 2.0
    band = _grade(offset, KNEE_ALIGNMENT_BANDS)
    score = max(0.0, 10.0 - offset * KNEE_ALIGNMENT_GAIN)
    if band is KNEE_ALIGNMENT_BANDS[-1]:
        score = max(score, float(KNEE_ALIGNMENT_FLOOR))
    return CheckResult("Knee Alignment", round_half_up(score), band.cue, f"Alignment deviation: {offset * 100:.1f}%")


def squat_depth(frame: Frame) -> Optional[CheckResult]:
    pts = frame.points(L_HIP, L_KNEE)
    if pts is None:
        return None
    hip, knee = pts
    drop = hip.y - knee.y
    band = _grade(drop, SQUAT_DEPTH_BANDS)
    return CheckResult("Squat Depth", band.score, band.cue, f"Depth: {drop * 100:.1f}%")


def squat_back_angle(frame: Frame) -> Optional[CheckResult]:
    pts = frame.points(L_SHOULDER, L_HIP, L_KNEE)
    if pts is None:
        return None
    value = interior_angle(*pts)
    band = _grade(value, SQUAT_BACK_ANGLE_BANDS)
    return CheckResult("Back Angle", band.score, band.cue, f"Angle: {value:.1f} deg")


def pushup_body_alignment(frame: Frame) -> Optional[CheckResult]:
    line = _vertical_line(frame)
    if line is None:
        return None
    band = _grade(line, PUSHUP_BODY_LINE_BANDS)
    return CheckResult("Body Alignment", band.score, band.cue, f"Alignment deviation: {line * 100:.1f}%")


def pushup_elbow_angle(frame: Frame) -> Optional[CheckResult]:
    pts = frame.points(L_SHOULDER, L_ELBOW, L_WRIST)
    if pts is None:
        return None
    value = interior_angle(*pts)
    band = _grade(value, PUSHUP_ELBOW_BANDS)
    return CheckResult("Elbow Angle", band.score, band.cue, f"Angle: {value:.1f} deg")


def plank_straightness(frame: Frame) -> Optional[CheckResult]:
    line = _vertical_line(frame)
    if line is None:
        return None
    band = _grade(line, PLANK_BODY_LINE_BANDS)
    return CheckResult("Body Straightness", band.score, band.cue, f"Straightness deviation: {line * 100:.1f}%")


def plank_core(frame: Frame) -> Optional[CheckResult]:
    pts = frame.points(L_SHOULDER, L_HIP)
    if pts is None:
        return None
    sh, hip = pts
    offset = hip.y - sh.y
    band = _grade(abs(offset), PLANK_CORE_BANDS)
    return CheckResult("Core Engagement", band.score, band.cue, f"Hip position: {offset * 100:.1f}%")


FrameCheckFn = Callable[[Frame], Optional[CheckResult]]

RUBRICS: Dict[str, Tuple[FrameCheckFn, ...]] = {
    "squat": (squat_knee_alignment, squat_depth, squat_back_angle),
    "pushup": (pushup_body_alignment, pushup_elbow_angle),
    "plank": (plank_straightness, plank_core),
}


def check_frame(frame: Frame, exercise_type: Optional[str], frame_idx: int = 0) -> Optional[FrameCheck]:
    """Run the exercise rubric on one frame. None when unsupported or no check applies."""
    rubric = RUBRICS.get(exercise_type or "")
    if rubric is None:
        return None
    results = tuple(r for r in (check(frame) for check in rubric) if r is not None)
    if not results:
        return None
    score = float(np.mean([r.score for r in results]))
    return FrameCheck(frame=frame_idx, score=score, results=results)


def _verdict(score: int) -> str:
    for floor, text in VERDICTS:
        if score >= floor:
            return text
    return VERDICTS[-1][1]


def form_check(frames: Sequence[Frame], exercise_type: Optional[str]) -> FormCheckReport:
    """
    Score a recording frame by frame against the exercise rubric.

    overall_score is the mean frame score on a 0-10 scale. common_issues lists up to
    three check names that most often scored below 6, most frequent first.
    """
    if exercise_type not in RUBRICS:
        return FormCheckReport(exercise_type=str(exercise_type), overall_score=0, feedback=UNSUPPORTED_MESSAGE)

    checked: List[FrameCheck] = []
    for idx, frame in enumerate(frames):
        result = check_frame(frame, exercise_type, idx)
        if result is not None:
            checked.append(result)

    overall = round_half_up(float(np.mean([c.score for c in checked]))) if checked else 0

    issue_counts: Dict[str, int] = {}
    for c in checked:
        for r in c.results:
            if r.score < ISSUE_BELOW_SCORE:
                issue_counts[r.name] = issue_counts.get(r.name, 0) + 1
    # sorted() is stable, so ties keep first-seen order
    common = [name for name, _ in sorted(issue_counts.items(), key=lambda kv: -kv[1])][:MAX_COMMON_ISSUES]

    feedback = _verdict(overall)
    if common:
        feedback += f" Focus on: {', '.join(common)}."
    logger.debug("form check %s: %d/%d frames checked, overall=%d", exercise_type, len(checked), len(frames), overall)

    return FormCheckReport(
        exercise_type=exercise_type,
        overall_score=overall,
        feedback=feedback,
        common_issues=common,
        details=checked[:MAX_FRAME_DETAILS],
        total_frames=len(checked),
    )
