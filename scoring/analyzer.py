from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from pose.landmarks import Frame, frames_from_payload
from .criteria import get_criteria
from .feedback import DetailedFeedback, NarrativeFeedback, detailed_feedback, narrative_feedback
from .form_check import FormCheckReport, form_check
from .metrics import MetricScoreSet, compute_metrics
from .scorer import overall_score


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    exercise_type: str
    overall_score: int
    metrics: MetricScoreSet
    detailed_feedback: DetailedFeedback
    ai_feedback: NarrativeFeedback
    rep_count: int = 0
    session_duration: float = 0.0
    frame_count: int = 0
    all_metrics: MetricScoreSet = field(default_factory=dict)
    form_check: Optional[FormCheckReport] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "exerciseType": self.exercise_type,
            "overallScore": self.overall_score,
            "repCount": self.rep_count,
            "sessionDuration": self.session_duration,
            "metrics": dict(self.metrics),
            "detailedFeedback": self.detailed_feedback.to_dict(),
            "aiFeedback": self.ai_feedback.to_dict(),
        }


def _restrict_to_key_points(metrics: MetricScoreSet, exercise_type: str) -> MetricScoreSet:
    criteria = get_criteria(exercise_type)
    if criteria is None:
        return {}
    return {p.value: metrics[p.value] for p in criteria.key_points if p.value in metrics}


def analyze(
    frames: Sequence[Any],
    exercise_type: str,
    rep_count: int = 0,
    session_duration: float = 0.0,
) -> AnalysisResult:
    """
    Score a completed session.

    frames may hold Frame objects or raw {timestamp, landmarks} payloads. A non-list
    input raises TypeError; empty or noisy frame lists yield zero scores, never errors.
    rep_count and session_duration are caller metadata merged into the result.
    """
    parsed: List[Frame] = frames_from_payload(frames)

    all_metrics = compute_metrics(parsed, exercise_type)
    score = overall_score(all_metrics, exercise_type)
    detailed = detailed_feedback(all_metrics, exercise_type, rep_count)
    narrative = narrative_feedback(all_metrics, exercise_type, score, rep_count)

    if get_criteria(exercise_type) is None:
        logger.warning("unknown exercise type %r; returning degraded analysis", exercise_type)
    logger.debug("analyzed %d frames for %s: overall=%d", len(parsed), exercise_type, score)

    return AnalysisResult(
        exercise_type=exercise_type,
        overall_score=score,
        metrics=_restrict_to_key_points(all_metrics, exercise_type),
        detailed_feedback=detailed,
        ai_feedback=narrative,
        rep_count=int(rep_count),
        session_duration=float(session_duration),
        frame_count=len(parsed),
        all_metrics=all_metrics,
        form_check=form_check(parsed, exercise_type),
    )
