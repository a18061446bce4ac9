from __future__ import annotations

from dataclasses import dataclass
from math import isfinite
from typing import Any, List, Mapping, Optional, Sequence, Tuple


NUM_LANDMARKS = 33

# MediaPipe BlazePose landmark indices (subset used here)
L_SHOULDER, R_SHOULDER = 11, 12
L_ELBOW, R_ELBOW = 13, 14
L_WRIST, R_WRIST = 15, 16
L_HIP, R_HIP = 23, 24
L_KNEE, R_KNEE = 25, 26
L_ANKLE, R_ANKLE = 27, 28


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0

    @property
    def finite(self) -> bool:
        return isfinite(self.x) and isfinite(self.y)


@dataclass(frozen=True)
class Frame:
    """
    One sampled instant of a session.

    landmarks is None when detection failed for the frame; otherwise a tuple
    of up to 33 entries, each a Landmark or None.
    """

    timestamp: float
    landmarks: Optional[Tuple[Optional[Landmark], ...]] = None

    def points(self, *indices: int) -> Optional[Tuple[Landmark, ...]]:
        """
        Return the requested landmarks, or None if the frame is partial or any of
        them is missing or has a non-finite x/y.
        """
        if self.landmarks is None or len(self.landmarks) < NUM_LANDMARKS:
            return None
        found = []
        for idx in indices:
            lm = self.landmarks[idx]
            if lm is None or not lm.finite:
                return None
            found.append(lm)
        return tuple(found)


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def landmark_from_payload(raw: Any) -> Optional[Landmark]:
    """
    Build a Landmark from a {x, y, z, visibility} mapping (or an object with those attributes).
    Returns None for null entries or non-finite x/y so callers treat the point as missing.
    """
    if raw is None:
        return None
    if isinstance(raw, Landmark):
        lm = raw
    elif isinstance(raw, Mapping):
        lm = Landmark(
            x=_as_float(raw.get("x"), float("nan")),
            y=_as_float(raw.get("y"), float("nan")),
            z=_as_float(raw.get("z", 0.0), 0.0),
            visibility=_as_float(raw.get("visibility", 1.0), 0.0),
        )
    else:
        lm = Landmark(
            x=_as_float(getattr(raw, "x", None), float("nan")),
            y=_as_float(getattr(raw, "y", None), float("nan")),
            z=_as_float(getattr(raw, "z", 0.0), 0.0),
            visibility=_as_float(getattr(raw, "visibility", 1.0), 0.0),
        )
    if not (isfinite(lm.x) and isfinite(lm.y)):
        return None
    vis = lm.visibility if isfinite(lm.visibility) else 0.0
    if vis != lm.visibility:
        lm = Landmark(x=lm.x, y=lm.y, z=lm.z, visibility=vis)
    return lm


def landmarks_from_payload(raw: Optional[Sequence[Any]]) -> Optional[Tuple[Optional[Landmark], ...]]:
    if raw is None:
        return None
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise TypeError("landmarks must be a list")
    if len(raw) == 0:
        return None
    return tuple(landmark_from_payload(item) for item in raw)


def frame_from_payload(raw: Any, *, default_timestamp: float = 0.0) -> Frame:
    if isinstance(raw, Frame):
        return raw
    if isinstance(raw, Mapping):
        return Frame(
            timestamp=_as_float(raw.get("timestamp"), default_timestamp),
            landmarks=landmarks_from_payload(raw.get("landmarks")),
        )
    raise TypeError(f"frame must be a mapping or Frame, got {type(raw).__name__}")


def frames_from_payload(raw: Any) -> List[Frame]:
    """
    Parse a pose-data list (as stored on an analysis record) into Frames.

    A non-list input is a caller bug and raises TypeError. Individual frames with
    missing or partial landmarks are kept; the calculators skip them.
    """
    if isinstance(raw, (str, bytes, Mapping)) or not isinstance(raw, Sequence):
        raise TypeError("frames must be a list of frames")
    return [frame_from_payload(item, default_timestamp=float(i)) for i, item in enumerate(raw)]
