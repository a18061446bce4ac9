"""
Rule-based coaching feedback.

All strings come from tables keyed by Metric or exercise type. Every lookup has
a fallback so criteria-only or future metrics degrade to generic wording.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from .criteria import Metric, get_criteria
from .utils import (
    IMPROVEMENT_BELOW_SCORE,
    MAX_RECOMMENDATIONS,
    NEXT_STEPS_PROGRESS_MIN_SCORE,
    POSITIVE_MIN_SCORE,
    RECOMMENDATION_BELOW_SCORE,
    round_half_up,
)


POSITIVE_FALLBACK = "Great form in this aspect"
IMPROVEMENT_FALLBACK = "Work on improving this aspect"
RECOMMENDATION_FALLBACK = "Focus on improving this technique"

POSITIVE_FEEDBACK: Dict[Metric, str] = {
    Metric.KNEE_ALIGNMENT: "Excellent knee alignment maintained throughout",
    Metric.BACK_STRAIGHTNESS: "Great back posture and spinal alignment",
    Metric.DEPTH: "Good range of motion and exercise depth",
    Metric.BALANCE: "Excellent balance and stability",
    Metric.SPEED: "Good movement tempo and control",
    Metric.BODY_ALIGNMENT: "Perfect body alignment throughout the movement",
    Metric.ELBOW_ANGLE: "Excellent elbow positioning and control",
    Metric.STABILITY: "Great stability and control",
    Metric.HIP_HINGE: "Perfect hip hinge movement",
    Metric.BAR_PATH: "Excellent bar path and movement efficiency",
    Metric.CORE_ENGAGEMENT: "Strong core engagement maintained",
}

IMPROVEMENT_FEEDBACK: Dict[Metric, str] = {
    Metric.KNEE_ALIGNMENT: "Focus on keeping knees aligned with toes",
    Metric.BACK_STRAIGHTNESS: "Work on maintaining a straight back throughout",
    Metric.DEPTH: "Try to achieve deeper range of motion",
    Metric.BALANCE: "Improve balance and stability",
    Metric.SPEED: "Control your movement speed better",
    Metric.BODY_ALIGNMENT: "Maintain better body alignment",
    Metric.ELBOW_ANGLE: "Keep elbows at proper angle",
    Metric.STABILITY: "Improve movement stability",
    Metric.HIP_HINGE: "Focus on proper hip hinge movement",
    Metric.BAR_PATH: "Keep the bar path straight and efficient",
    Metric.CORE_ENGAGEMENT: "Engage your core more effectively",
}

RECOMMENDATIONS: Dict[Metric, str] = {
    Metric.KNEE_ALIGNMENT: "Practice in front of a mirror to check knee alignment",
    Metric.BACK_STRAIGHTNESS: "Focus on chest up, shoulders back position",
    Metric.DEPTH: "Gradually work on increasing your range of motion",
    Metric.BALANCE: "Practice balance exercises to improve stability",
    Metric.SPEED: "Slow down your movements for better control",
    Metric.BODY_ALIGNMENT: "Imagine a straight line from head to heels",
    Metric.ELBOW_ANGLE: "Keep elbows close to your body",
    Metric.STABILITY: "Engage your core to improve stability",
    Metric.HIP_HINGE: "Practice hip hinge movement with bodyweight first",
    Metric.BAR_PATH: "Keep the bar close to your body throughout",
    Metric.CORE_ENGAGEMENT: "Brace your core before each movement",
}

GENERAL_TIPS: Dict[str, Tuple[str, ...]] = {
    "squat": (
        "Keep your chest up and shoulders back",
        "Push your knees out in the direction of your toes",
        "Go as deep as you can while maintaining good form",
    ),
    "pushup": (
        "Maintain a straight line from head to heels",
        "Keep your core engaged throughout",
        "Control the descent and push up with power",
    ),
    "deadlift": (
        "Keep the bar close to your body",
        "Push through your heels",
        "Maintain a neutral spine throughout",
    ),
    "plank": (
        "Keep your body in a straight line",
        "Engage your core muscles",
        "Breathe steadily throughout the hold",
    ),
    "lunge": (
        "Keep your front knee behind your toes",
        "Maintain upright posture",
        "Step back to starting position with control",
    ),
}
GENERAL_TIPS_FALLBACK: Tuple[str, ...] = ("Focus on proper form", "Breathe steadily", "Control your movements")

# (>= 90, >= 80, below) phrases appended to the per-rep message
REP_PHRASES: Dict[str, Tuple[str, str, str]] = {
    "squat": ("Perfect squat!", "Good squat form!", "Squat needs work"),
    "pushup": ("Excellent pushup!", "Solid pushup!", "Pushup form needs improvement"),
    "deadlift": ("Perfect deadlift!", "Good deadlift!", "Deadlift needs work"),
    "plank": ("Perfect plank hold!", "Good plank form!", "Plank needs improvement"),
    "lunge": ("Perfect lunge!", "Good lunge!", "Lunge form needs work"),
}
REP_PHRASES_FALLBACK = ("Excellent form!", "Good form!", "Needs improvement")


def _lookup(table: Mapping[Metric, str], metric: object, fallback: str) -> str:
    try:
        key = Metric(metric)
    except ValueError:
        return fallback
    return table.get(key, fallback)


def positive_feedback(metric: object) -> str:
    return _lookup(POSITIVE_FEEDBACK, metric, POSITIVE_FALLBACK)


def improvement_feedback(metric: object) -> str:
    return _lookup(IMPROVEMENT_FEEDBACK, metric, IMPROVEMENT_FALLBACK)


def specific_recommendation(metric: object) -> str:
    return _lookup(RECOMMENDATIONS, metric, RECOMMENDATION_FALLBACK)


def general_tips(exercise_type: Optional[str]) -> List[str]:
    return list(GENERAL_TIPS.get(exercise_type or "", GENERAL_TIPS_FALLBACK))


@dataclass(frozen=True)
class DetailedFeedback:
    positive: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)
    tips: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {"positive": list(self.positive), "improvements": list(self.improvements), "tips": list(self.tips)}


@dataclass(frozen=True)
class NarrativeFeedback:
    summary: str
    recommendations: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "summary": self.summary,
            "recommendations": list(self.recommendations),
            "nextSteps": list(self.next_steps),
        }


def detailed_feedback(metrics: Mapping[str, float], exercise_type: Optional[str], rep_count: int) -> DetailedFeedback:
    """
    Sort each key-point metric into positive (>= 80) or improvement (< 60) wording,
    add rep-count wording, and always attach the exercise tips.
    """
    criteria = get_criteria(exercise_type)
    if criteria is None:
        return DetailedFeedback(tips=general_tips(exercise_type))

    positive: List[str] = []
    improvements: List[str] = []
    for point in criteria.key_points:
        score = metrics.get(point.value) or 0
        if score >= POSITIVE_MIN_SCORE:
            positive.append(positive_feedback(point))
        elif score < IMPROVEMENT_BELOW_SCORE:
            improvements.append(improvement_feedback(point))

    if rep_count < criteria.min_reps:
        improvements.append(f"Aim for at least {criteria.min_reps} repetitions for a complete workout")
    elif rep_count <= criteria.max_reps:
        positive.append(f"Great job completing {rep_count} repetitions!")

    return DetailedFeedback(positive=positive, improvements=improvements, tips=general_tips(exercise_type))


def _summary(exercise_type: Optional[str], score: int) -> str:
    name = exercise_type or "exercise"
    if score >= 90:
        return f"Excellent form! Your {name} technique is outstanding with a score of {score}/100."
    if score >= 75:
        return f"Good form! Your {name} technique is solid with a score of {score}/100."
    if score >= 60:
        return f"Fair form. Your {name} technique needs some improvement with a score of {score}/100."
    return f"Your {name} technique needs significant improvement with a score of {score}/100."


def narrative_feedback(
    metrics: Mapping[str, float],
    exercise_type: Optional[str],
    overall_score: int,
    rep_count: int = 0,
) -> NarrativeFeedback:
    criteria = get_criteria(exercise_type)

    recommendations: List[str] = []
    if criteria is not None:
        for point in criteria.key_points:
            score = metrics.get(point.value) or 0
            if score < RECOMMENDATION_BELOW_SCORE:
                recommendations.append(specific_recommendation(point))

    if overall_score < NEXT_STEPS_PROGRESS_MIN_SCORE:
        next_steps = [
            "Practice the movement slowly to improve form",
            "Focus on the specific areas mentioned in recommendations",
        ]
    else:
        next_steps = [
            "Gradually increase intensity while maintaining form",
            "Consider adding variations to challenge yourself",
        ]

    return NarrativeFeedback(
        summary=_summary(exercise_type, overall_score),
        recommendations=recommendations[:MAX_RECOMMENDATIONS],
        next_steps=next_steps,
    )


def rep_message(rep_number: int, score: Optional[float], exercise_type: Optional[str]) -> str:
    """Short live message shown when a rep completes, e.g. "Rep 3 completed! Score: 92/100 Perfect squat!"."""
    if score is None:
        return f"Rep {rep_number} completed!"
    excellent, good, weak = REP_PHRASES.get(exercise_type or "", REP_PHRASES_FALLBACK)
    if score >= 90:
        phrase = excellent
    elif score >= 80:
        phrase = good
    else:
        phrase = weak
    return f"Rep {rep_number} completed! Score: {round_half_up(score)}/100 {phrase}"
