from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from pose.landmarks import (
    Landmark,
    NUM_LANDMARKS,
    L_ANKLE,
    L_ELBOW,
    L_HIP,
    L_KNEE,
    L_SHOULDER,
    L_WRIST,
    R_ELBOW,
    R_HIP,
    R_KNEE,
    R_SHOULDER,
)
from .utils import (
    DEFAULT_DETECTION_THRESHOLD,
    DEFAULT_HOLD_FRAMES,
    DEFAULT_MIN_PHASE_FRAMES,
    HIP_KNEE_PHASES,
    PHASE_CONFIDENCE_FACTORS,
    PLANK_ALIGNMENT_PHASES,
    SHOULDER_ELBOW_PHASES,
    PhaseThresholds,
    round_half_up,
)


logger = logging.getLogger(__name__)

READY = "ready"
UP = "up"
DOWN = "down"
TRANSITION = "transition"
HOLD = "hold"
BREAK = "break"

HOLD_EXERCISES = frozenset({"plank"})


@dataclass(frozen=True)
class PhaseDetection:
    phase: str
    confidence: float
    rep_event: Optional[str] = None
    frame_idx: int = -1


@dataclass(frozen=True)
class RepRecord:
    number: int
    score: Optional[float]
    phase: str
    confidence: float
    timestamp: Optional[float]
    duration: Optional[float]
    exercise: str


@dataclass
class RepState:
    rep_count: int = 0
    current_phase: str = READY
    phase_confidence: float = 0.0
    consecutive_frames: int = 0
    last_phase: str = READY
    rep_history: List[RepRecord] = field(default_factory=list)
    last_rep_timestamp: Optional[float] = None


@dataclass(frozen=True)
class _PhaseSignal:
    # landmarks that must be present for classification
    required: Tuple[int, ...]
    # landmarks whose visibility drives confidence
    confidence_from: Tuple[int, int, int]
    signal: Callable[[Sequence[Landmark]], float]
    thresholds: PhaseThresholds
    low_phase: str
    high_phase: str


def _hip_knee_distance(lms: Sequence[Landmark]) -> float:
    left = abs(lms[L_HIP].y - lms[L_KNEE].y)
    right = abs(lms[R_HIP].y - lms[R_KNEE].y)
    return (left + right) / 2.0


def _shoulder_elbow_distance(lms: Sequence[Landmark]) -> float:
    left = abs(lms[L_SHOULDER].y - lms[L_ELBOW].y)
    right = abs(lms[R_SHOULDER].y - lms[R_ELBOW].y)
    return (left + right) / 2.0


def _plank_alignment(lms: Sequence[Landmark]) -> float:
    return abs(lms[L_SHOULDER].x - lms[L_HIP].x) + abs(lms[L_HIP].x - lms[L_ANKLE].x)


SIGNALS: Dict[str, _PhaseSignal] = {
    "squat": _PhaseSignal(
        required=(L_HIP, L_KNEE, L_ANKLE, R_HIP, R_KNEE),
        confidence_from=(L_HIP, L_KNEE, L_ANKLE),
        signal=_hip_knee_distance,
        thresholds=HIP_KNEE_PHASES,
        low_phase=DOWN,
        high_phase=UP,
    ),
    "lunge": _PhaseSignal(
        required=(L_HIP, L_KNEE, L_ANKLE, R_HIP, R_KNEE),
        confidence_from=(L_KNEE, L_HIP, L_ANKLE),
        signal=_hip_knee_distance,
        thresholds=HIP_KNEE_PHASES,
        low_phase=DOWN,
        high_phase=UP,
    ),
    "deadlift": _PhaseSignal(
        required=(L_SHOULDER, L_HIP, L_KNEE, R_HIP, R_KNEE),
        confidence_from=(L_SHOULDER, L_HIP, L_KNEE),
        signal=_hip_knee_distance,
        thresholds=HIP_KNEE_PHASES,
        low_phase=DOWN,
        high_phase=UP,
    ),
    "pushup": _PhaseSignal(
        required=(L_SHOULDER, L_ELBOW, L_WRIST, R_SHOULDER, R_ELBOW),
        confidence_from=(L_SHOULDER, L_ELBOW, L_WRIST),
        signal=_shoulder_elbow_distance,
        thresholds=SHOULDER_ELBOW_PHASES,
        low_phase=DOWN,
        high_phase=UP,
    ),
    "plank": _PhaseSignal(
        required=(L_SHOULDER, L_HIP, L_ANKLE, R_SHOULDER, R_HIP),
        confidence_from=(L_SHOULDER, L_HIP, L_ANKLE),
        signal=_plank_alignment,
        thresholds=PLANK_ALIGNMENT_PHASES,
        low_phase=HOLD,
        high_phase=BREAK,
    ),
}


def classify_phase(landmarks: Optional[Sequence[Optional[Landmark]]], exercise_type: str) -> Tuple[str, float]:
    """
    Classify one frame into a phase and a confidence in [0, 1].

    Returns (ready, 0.0) for unknown exercises or when any required landmark is missing.
    """
    rule = SIGNALS.get(exercise_type)
    if rule is None or landmarks is None or len(landmarks) < NUM_LANDMARKS:
        return READY, 0.0
    if any(landmarks[idx] is None for idx in rule.required):
        return READY, 0.0

    value = float(rule.signal(landmarks))
    if not np.isfinite(value):
        return READY, 0.0

    if value < rule.thresholds.low:
        phase = rule.low_phase
    elif value < rule.thresholds.high:
        phase = TRANSITION
    else:
        phase = rule.high_phase

    visibility = float(np.mean([landmarks[idx].visibility for idx in rule.confidence_from]))
    confidence = min(1.0, visibility) * PHASE_CONFIDENCE_FACTORS[phase]
    return phase, max(0.0, confidence)


class RepDetectorSession:
    """
    Per-recording rep counter driven by coarse phase classification.

    - Frames whose confidence is below detection_threshold reset the consecutive counter
    - Cycling exercises count a rep when `up` follows `down` for min_phase_frames frames
    - Hold exercises (plank) count a unit each time `hold` persists for hold_frames frames
    """

    def __init__(
        self,
        exercise_type: str,
        *,
        detection_threshold: float = DEFAULT_DETECTION_THRESHOLD,
        min_phase_frames: int = DEFAULT_MIN_PHASE_FRAMES,
        hold_frames: int = DEFAULT_HOLD_FRAMES,
    ) -> None:
        if min_phase_frames < 1 or hold_frames < 1:
            raise ValueError("frame thresholds must be positive")
        self.exercise_type = exercise_type
        self.detection_threshold = float(detection_threshold)
        self.min_phase_frames = int(min_phase_frames)
        self.hold_frames = int(hold_frames)
        self.state = RepState()
        self._frame_idx = -1
        self._start_timestamp: Optional[float] = None

    def reset(self) -> None:
        self.state = RepState()
        self._frame_idx = -1
        self._start_timestamp = None

    @property
    def rep_count(self) -> int:
        return self.state.rep_count

    def process_frame(
        self,
        landmarks: Optional[Sequence[Optional[Landmark]]],
        *,
        timestamp: Optional[float] = None,
        score: Optional[float] = None,
    ) -> PhaseDetection:
        """
        Classify the frame and advance the rep state.

        timestamp (seconds) is used for rep durations; score is the caller's current
        form score, stored on the rep record when a rep completes.
        """
        self._frame_idx += 1
        if timestamp is not None and self._start_timestamp is None:
            self._start_timestamp = float(timestamp)

        phase, confidence = classify_phase(landmarks, self.exercise_type)
        if phase == READY:
            # Nothing usable this frame; keep state as is
            return PhaseDetection(phase=phase, confidence=confidence, frame_idx=self._frame_idx)

        st = self.state
        st.phase_confidence = confidence
        if confidence < self.detection_threshold:
            st.consecutive_frames = 0
            return PhaseDetection(phase=phase, confidence=confidence, frame_idx=self._frame_idx)

        if phase == st.current_phase:
            st.consecutive_frames += 1
        else:
            if st.current_phase not in (READY, TRANSITION):
                st.last_phase = st.current_phase
            st.current_phase = phase
            st.consecutive_frames = 1

        rep_event: Optional[str] = None
        if self._rep_completed(phase):
            self._record_rep(phase, confidence, timestamp, score)
            rep_event = "rep_complete"

        return PhaseDetection(phase=phase, confidence=confidence, rep_event=rep_event, frame_idx=self._frame_idx)

    def _rep_completed(self, phase: str) -> bool:
        st = self.state
        if self.exercise_type in HOLD_EXERCISES:
            return phase == HOLD and st.consecutive_frames >= self.hold_frames
        return st.last_phase == DOWN and phase == UP and st.consecutive_frames >= self.min_phase_frames

    def _record_rep(self, phase: str, confidence: float, timestamp: Optional[float], score: Optional[float]) -> None:
        st = self.state
        st.rep_count += 1
        since = st.last_rep_timestamp if st.last_rep_timestamp is not None else self._start_timestamp
        duration = (float(timestamp) - since) if (timestamp is not None and since is not None) else None
        st.rep_history.append(
            RepRecord(
                number=st.rep_count,
                score=score,
                phase=phase,
                confidence=confidence,
                timestamp=timestamp,
                duration=duration,
                exercise=self.exercise_type,
            )
        )
        if timestamp is not None:
            st.last_rep_timestamp = float(timestamp)
        # The down->up cycle is consumed; the next rep needs a fresh descent
        if phase == UP:
            st.last_phase = UP
        st.consecutive_frames = 0
        logger.info("%s rep %d completed at frame %d", self.exercise_type, st.rep_count, self._frame_idx)

    def stats(self) -> Dict[str, object]:
        scores = [r.score for r in self.state.rep_history if r.score is not None]
        return {
            "total_reps": self.state.rep_count,
            "average_score": round_half_up(float(np.mean(scores))) if scores else 0,
            "best_score": max(scores) if scores else 0,
        }


def process_frame(
    landmarks: Optional[Sequence[Optional[Landmark]]],
    exercise_type: str,
    session: RepDetectorSession,
    *,
    timestamp: Optional[float] = None,
    score: Optional[float] = None,
) -> PhaseDetection:
    """Functional entry point; the session must have been created for exercise_type."""
    if session.exercise_type != exercise_type:
        raise ValueError(
            f"session was created for {session.exercise_type!r}, got frame for {exercise_type!r}"
        )
    return session.process_frame(landmarks, timestamp=timestamp, score=score)
