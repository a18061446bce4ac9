from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class LandmarkIn(BaseModel):
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = 0.0
    visibility: Optional[float] = 1.0


class PoseFrame(BaseModel):
    timestamp: float = 0.0
    landmarks: Optional[List[Optional[LandmarkIn]]] = None
    score: Optional[float] = None
    feedback: List[str] = Field(default_factory=list)


class DetailedFeedback(BaseModel):
    positive: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)


class PersistedMetrics(BaseModel):
    kneeAlignment: float = Field(0, ge=0, le=100)
    backStraightness: float = Field(0, ge=0, le=100)
    depth: float = Field(0, ge=0, le=100)
    speed: float = Field(0, ge=0, le=100)
    balance: float = Field(0, ge=0, le=100)


class AnalysisResults(BaseModel):
    overallScore: int = Field(0, ge=0, le=100)
    repCount: int = Field(0, ge=0)
    sessionDuration: float = Field(0, ge=0, description="seconds")
    poseData: Optional[List[PoseFrame]] = Field(default_factory=list)
    detailedFeedback: DetailedFeedback = Field(default_factory=DetailedFeedback)
    metrics: PersistedMetrics = Field(default_factory=PersistedMetrics)


class AiFeedback(BaseModel):
    summary: str = ""
    recommendations: List[str] = Field(default_factory=list)
    nextSteps: List[str] = Field(default_factory=list)


class CheckResultOut(BaseModel):
    name: str
    score: int = Field(ge=0, le=10)
    feedback: str
    details: str = ""


class FrameCheckOut(BaseModel):
    frame: int = Field(ge=0)
    score: int = Field(ge=0, le=10)
    results: List[CheckResultOut] = Field(default_factory=list)


class FormCheck(BaseModel):
    exercise: str
    overallScore: int = Field(0, ge=0, le=10, description="mean per-frame rubric score, 0-10")
    feedback: str = ""
    commonIssues: List[str] = Field(default_factory=list)
    details: List[FrameCheckOut] = Field(default_factory=list, description="first frames checked")
    totalFrames: int = Field(0, ge=0)


class AnalysisRecord(BaseModel):
    id: str
    exerciseType: str = Field(description="squat | pushup | deadlift | plank | lunge")
    videoUrl: str
    analysisResults: AnalysisResults = Field(default_factory=AnalysisResults)
    aiFeedback: Optional[AiFeedback] = None
    keyMetrics: dict = Field(default_factory=dict, description="scores for every key point of the exercise")
    formCheck: Optional[FormCheck] = None
    createdAt: datetime
    updatedAt: datetime


class CreateAnalysisRequest(BaseModel):
    exerciseType: str
    videoUrl: str


class ProcessAnalysisRequest(BaseModel):
    poseData: List[PoseFrame] = Field(default_factory=list)
    repCount: int = Field(0, ge=0)
    sessionDuration: float = Field(0, ge=0)


class CreateSessionRequest(BaseModel):
    exerciseType: str


class SessionResponse(BaseModel):
    session_id: str
    exercise_type: str
    rep_count: int = Field(0, ge=0)
    current_phase: str = "ready"
    phase_confidence: float = Field(0.0, ge=0.0, le=1.0)
    consecutive_frames: int = Field(0, ge=0)
    total_reps: int = Field(0, ge=0)
    average_score: float = 0
    best_score: float = 0


class SessionFrameRequest(BaseModel):
    landmarks: Optional[List[Optional[LandmarkIn]]] = None
    timestamp: Optional[float] = None
    score: Optional[float] = Field(default=None, ge=0, le=100)


class SessionFrameResponse(BaseModel):
    session_id: str
    phase: str
    confidence: float = Field(ge=0.0, le=1.0)
    rep_count: int = Field(ge=0)
    rep_event: Optional[str] = None
    message: Optional[str] = None
    form_score: Optional[int] = Field(default=None, ge=0, le=10)
    cues: List[str] = Field(default_factory=list)
