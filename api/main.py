from __future__ import annotations

import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from api.schemas import (
    AiFeedback,
    AnalysisRecord,
    AnalysisResults,
    CreateAnalysisRequest,
    CreateSessionRequest,
    DetailedFeedback,
    FormCheck,
    PersistedMetrics,
    ProcessAnalysisRequest,
    SessionFrameRequest,
    SessionFrameResponse,
    SessionResponse,
)
from pose.landmarks import Frame, landmarks_from_payload
from scoring.analyzer import analyze
from scoring.criteria import EXERCISE_TYPES
from scoring.feedback import rep_message
from scoring.form_check import check_frame
from scoring.rep_detector import RepDetectorSession
from scoring.utils import round_half_up


logger = logging.getLogger(__name__)


app = FastAPI(title="formscore API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_env_int(name: str, default: int) -> int:
    try:
        return int(str(os.getenv(name, str(default))).strip())
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    try:
        return float(str(os.getenv(name, str(default))).strip())
    except ValueError:
        return default


# Service knobs (tunable via environment)
# Long recordings accumulate landmarks without eviction; cap what one analysis accepts
FORMSCORE_MAX_FRAMES = _get_env_int("FORMSCORE_MAX_FRAMES", 18000)  # ~10 min at 30 fps
FORMSCORE_MAX_SESSIONS = _get_env_int("FORMSCORE_MAX_SESSIONS", 256)
# Oldest analysis records are evicted past this count
FORMSCORE_MAX_ANALYSES = _get_env_int("FORMSCORE_MAX_ANALYSES", 1000)
FORMSCORE_REP_THRESHOLD = _get_env_float("FORMSCORE_REP_THRESHOLD", 0.7)
FORMSCORE_MIN_PHASE_FRAMES = _get_env_int("FORMSCORE_MIN_PHASE_FRAMES", 5)
FORMSCORE_HOLD_FRAMES = _get_env_int("FORMSCORE_HOLD_FRAMES", 30)


ANALYSES: Dict[str, AnalysisRecord] = {}
SESSIONS: Dict[str, RepDetectorSession] = {}
_LOCK = threading.Lock()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _check_exercise(exercise_type: str) -> None:
    if exercise_type not in EXERCISE_TYPES:
        raise HTTPException(status_code=400, detail="Invalid exercise type")


def _evict_oldest_analyses(keep: int) -> None:
    # caller holds _LOCK
    excess = len(ANALYSES) - max(0, keep)
    if excess <= 0:
        return
    oldest = sorted(ANALYSES.values(), key=lambda r: r.createdAt)[:excess]
    for r in oldest:
        del ANALYSES[r.id]
    logger.info("evicted %d analysis record(s); cap is %d", len(oldest), FORMSCORE_MAX_ANALYSES)


def _get_analysis(analysis_id: str) -> AnalysisRecord:
    record = ANALYSES.get(analysis_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return record


def _get_session(session_id: str) -> RepDetectorSession:
    session = SESSIONS.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Unknown session_id")
    return session


def _session_response(session_id: str, session: RepDetectorSession) -> SessionResponse:
    st = session.state
    stats = session.stats()
    return SessionResponse(
        session_id=session_id,
        exercise_type=session.exercise_type,
        rep_count=st.rep_count,
        current_phase=st.current_phase,
        phase_confidence=st.phase_confidence,
        consecutive_frames=st.consecutive_frames,
        total_reps=int(stats["total_reps"]),
        average_score=float(stats["average_score"]),
        best_score=float(stats["best_score"]),
    )


@app.post("/analyses", response_model=AnalysisRecord, status_code=201)
async def create_analysis(req: CreateAnalysisRequest):
    _check_exercise(req.exerciseType)
    now = _now()
    record = AnalysisRecord(
        id=str(uuid.uuid4()),
        exerciseType=req.exerciseType,
        videoUrl=req.videoUrl,
        createdAt=now,
        updatedAt=now,
    )
    with _LOCK:
        _evict_oldest_analyses(FORMSCORE_MAX_ANALYSES - 1)
        ANALYSES[record.id] = record
    logger.info("created analysis %s (%s)", record.id, record.exerciseType)
    return record


@app.post("/analyses/{analysis_id}/process", response_model=AnalysisRecord)
async def process_analysis(analysis_id: str, req: ProcessAnalysisRequest):
    record = _get_analysis(analysis_id)
    if len(req.poseData) > FORMSCORE_MAX_FRAMES:
        raise HTTPException(status_code=413, detail=f"Too many frames; max {FORMSCORE_MAX_FRAMES}")

    payload = [frame.model_dump() for frame in req.poseData]
    result = analyze(payload, record.exerciseType, req.repCount, req.sessionDuration)

    persisted = PersistedMetrics(**{k: v for k, v in result.all_metrics.items() if k in PersistedMetrics.model_fields})
    updated = record.model_copy(
        update={
            "analysisResults": AnalysisResults(
                overallScore=result.overall_score,
                repCount=result.rep_count,
                sessionDuration=result.session_duration,
                poseData=req.poseData,
                detailedFeedback=DetailedFeedback(**result.detailed_feedback.to_dict()),
                metrics=persisted,
            ),
            "aiFeedback": AiFeedback(**result.ai_feedback.to_dict()),
            "keyMetrics": dict(result.metrics),
            "formCheck": FormCheck(**result.form_check.to_dict()) if result.form_check else None,
            "updatedAt": _now(),
        }
    )
    with _LOCK:
        ANALYSES[analysis_id] = updated
    logger.info(
        "analysis %s processed: %d frames, overall=%d", analysis_id, result.frame_count, result.overall_score
    )
    return updated


@app.get("/analyses/{analysis_id}", response_model=AnalysisRecord)
async def get_analysis(analysis_id: str):
    return _get_analysis(analysis_id)


@app.get("/analyses", response_model=List[AnalysisRecord])
async def analysis_history(exerciseType: Optional[str] = None, limit: int = 10):
    records = [r for r in ANALYSES.values() if exerciseType is None or r.exerciseType == exerciseType]
    records.sort(key=lambda r: r.createdAt, reverse=True)
    out = []
    # pose data is large; history omits it
    for r in records[: max(0, limit)]:
        results = r.analysisResults.model_copy(update={"poseData": None})
        out.append(r.model_copy(update={"analysisResults": results}))
    return out


@app.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(req: CreateSessionRequest):
    _check_exercise(req.exerciseType)
    with _LOCK:
        if len(SESSIONS) >= FORMSCORE_MAX_SESSIONS:
            raise HTTPException(status_code=429, detail="Too many open sessions")
        session_id = str(uuid.uuid4())
        session = RepDetectorSession(
            req.exerciseType,
            detection_threshold=FORMSCORE_REP_THRESHOLD,
            min_phase_frames=FORMSCORE_MIN_PHASE_FRAMES,
            hold_frames=FORMSCORE_HOLD_FRAMES,
        )
        SESSIONS[session_id] = session
    return _session_response(session_id, session)


@app.post("/sessions/{session_id}/frames", response_model=SessionFrameResponse)
async def session_frame(session_id: str, req: SessionFrameRequest):
    session = _get_session(session_id)
    raw = [lm.model_dump() if lm is not None else None for lm in req.landmarks] if req.landmarks else None
    landmarks = landmarks_from_payload(raw)
    check = check_frame(Frame(timestamp=req.timestamp or 0.0, landmarks=landmarks), session.exercise_type)

    # Without a caller score, the rubric score (0-10) stands in as the rep snapshot
    score = req.score
    if score is None and check is not None:
        score = round_half_up(check.score * 10)

    detection = session.process_frame(landmarks, timestamp=req.timestamp, score=score)
    message = None
    if detection.rep_event == "rep_complete":
        message = rep_message(session.rep_count, score, session.exercise_type)
    return SessionFrameResponse(
        session_id=session_id,
        phase=detection.phase,
        confidence=detection.confidence,
        rep_count=session.rep_count,
        rep_event=detection.rep_event,
        message=message,
        form_score=round_half_up(check.score) if check is not None else None,
        cues=check.cues if check is not None else [],
    )


@app.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
    return _session_response(session_id, _get_session(session_id))


@app.delete("/sessions/{session_id}", response_model=SessionResponse)
async def close_session(session_id: str):
    session = _get_session(session_id)
    with _LOCK:
        SESSIONS.pop(session_id, None)
    return _session_response(session_id, session)


@app.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    return "ok"
