from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

import api.main as main
from api.main import app
from pose.landmarks import L_ANKLE, L_HIP, L_KNEE, R_ANKLE, R_HIP, R_KNEE


pytestmark = pytest.mark.integration

client = TestClient(app)


@pytest.fixture(autouse=True)
def _clear_stores():
    main.ANALYSES.clear()
    main.SESSIONS.clear()
    yield
    main.ANALYSES.clear()
    main.SESSIONS.clear()


def _landmarks(points: Dict[int, Tuple[float, float]], base=(0.5, 0.5)) -> List[Optional[Dict[str, float]]]:
    lms = [{"x": base[0], "y": base[1], "z": 0.0, "visibility": 0.99} for _ in range(33)]
    for idx, (x, y) in points.items():
        lms[idx] = {"x": x, "y": y, "z": 0.0, "visibility": 0.99}
    return lms


def _squat_bottom() -> List[Optional[Dict[str, float]]]:
    return _landmarks(
        {L_KNEE: (0.5, 0.6), L_ANKLE: (0.5, 0.9), R_KNEE: (0.5, 0.6), R_ANKLE: (0.5, 0.9)},
        base=(0.3, 0.6),
    )


def _hip_knee(gap: float) -> List[Optional[Dict[str, float]]]:
    return _landmarks(
        {
            L_HIP: (0.45, 0.7 - gap),
            R_HIP: (0.55, 0.7 - gap),
            L_KNEE: (0.45, 0.7),
            R_KNEE: (0.55, 0.7),
            L_ANKLE: (0.45, 0.9),
        }
    )


def _create(exercise: str = "squat") -> Dict[str, object]:
    resp = client.post("/analyses", json={"exerciseType": exercise, "videoUrl": "file:///tmp/clip.mp4"})
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.text == "ok"


def test_create_analysis_is_pending():
    body = _create("pushup")
    assert body["exerciseType"] == "pushup"
    assert body["analysisResults"]["overallScore"] == 0
    assert body["aiFeedback"] is None


def test_create_analysis_rejects_unknown_exercise():
    resp = client.post("/analyses", json={"exerciseType": "burpee", "videoUrl": "x"})
    assert resp.status_code == 400


def test_process_analysis_scores_and_persists():
    created = _create("squat")
    frames = [{"timestamp": i / 30.0, "landmarks": _squat_bottom()} for i in range(10)]
    resp = client.post(
        f"/analyses/{created['id']}/process",
        json={"poseData": frames, "repCount": 5, "sessionDuration": 12.5},
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    results = body["analysisResults"]
    assert results["overallScore"] == 90
    assert results["repCount"] == 5
    assert results["metrics"]["kneeAlignment"] == 100
    assert results["metrics"]["speed"] == 0
    assert len(results["poseData"]) == 10
    assert "Great job completing 5 repetitions!" in results["detailedFeedback"]["positive"]
    assert set(body["keyMetrics"]) == {"kneeAlignment", "backStraightness", "depth", "balance", "speed"}
    assert body["aiFeedback"]["summary"].startswith("Excellent form!")
    # knees over ankles but no hip drop and the shoulder sits on the hip
    assert body["formCheck"]["overallScore"] == 5
    assert body["formCheck"]["commonIssues"] == ["Squat Depth", "Back Angle"]
    assert body["formCheck"]["totalFrames"] == 10

    fetched = client.get(f"/analyses/{created['id']}").json()
    assert fetched["analysisResults"]["overallScore"] == 90


def test_process_empty_pose_data_scores_zero():
    created = _create("plank")
    resp = client.post(f"/analyses/{created['id']}/process", json={"poseData": []})
    assert resp.status_code == 200
    assert resp.json()["analysisResults"]["overallScore"] == 0


def test_process_rejects_too_many_frames(monkeypatch):
    monkeypatch.setattr(main, "FORMSCORE_MAX_FRAMES", 2)
    created = _create("squat")
    frames = [{"timestamp": float(i), "landmarks": None} for i in range(3)]
    resp = client.post(f"/analyses/{created['id']}/process", json={"poseData": frames})
    assert resp.status_code == 413


def test_unknown_analysis_is_404():
    assert client.get("/analyses/nope").status_code == 404
    assert client.post("/analyses/nope/process", json={"poseData": []}).status_code == 404


def test_history_filters_and_omits_pose_data():
    squat = _create("squat")
    _create("pushup")
    client.post(
        f"/analyses/{squat['id']}/process",
        json={"poseData": [{"timestamp": 0.0, "landmarks": _squat_bottom()}]},
    )
    resp = client.get("/analyses", params={"exerciseType": "squat"})
    assert resp.status_code == 200
    items = resp.json()
    assert [i["id"] for i in items] == [squat["id"]]
    assert items[0]["analysisResults"]["poseData"] is None

    assert len(client.get("/analyses").json()) == 2
    assert len(client.get("/analyses", params={"limit": 1}).json()) == 1


def test_session_counts_rep_and_closes():
    resp = client.post("/sessions", json={"exerciseType": "squat"})
    assert resp.status_code == 201
    session_id = resp.json()["session_id"]

    last = None
    for i in range(5):
        last = client.post(f"/sessions/{session_id}/frames", json={"landmarks": _hip_knee(0.10), "timestamp": i * 0.1})
        assert last.json()["phase"] == "down"
    for i in range(5, 10):
        last = client.post(
            f"/sessions/{session_id}/frames",
            json={"landmarks": _hip_knee(0.30), "timestamp": i * 0.1, "score": 88},
        )
    body = last.json()
    assert body["rep_count"] == 1
    assert body["rep_event"] == "rep_complete"
    assert body["message"] == "Rep 1 completed! Score: 88/100 Good squat form!"

    state = client.get(f"/sessions/{session_id}").json()
    assert state["total_reps"] == 1
    assert state["best_score"] == 88

    assert client.delete(f"/sessions/{session_id}").status_code == 200
    assert client.get(f"/sessions/{session_id}").status_code == 404


def test_session_frame_without_landmarks_is_ready():
    session_id = client.post("/sessions", json={"exerciseType": "pushup"}).json()["session_id"]
    body = client.post(f"/sessions/{session_id}/frames", json={"landmarks": None}).json()
    assert body["phase"] == "ready"
    assert body["rep_count"] == 0


def test_session_rejects_unknown_exercise_and_cap(monkeypatch):
    assert client.post("/sessions", json={"exerciseType": "burpee"}).status_code == 400
    monkeypatch.setattr(main, "FORMSCORE_MAX_SESSIONS", 1)
    assert client.post("/sessions", json={"exerciseType": "squat"}).status_code == 201
    assert client.post("/sessions", json={"exerciseType": "squat"}).status_code == 429


def test_session_frames_carry_cues_and_rubric_rep_score():
    session_id = client.post("/sessions", json={"exerciseType": "squat"}).json()["session_id"]
    first = client.post(f"/sessions/{session_id}/frames", json={"landmarks": _hip_knee(0.10)}).json()
    assert len(first["cues"]) == 3
    assert 0 <= first["form_score"] <= 10

    last = None
    for _ in range(4):
        client.post(f"/sessions/{session_id}/frames", json={"landmarks": _hip_knee(0.10)})
    for _ in range(5):
        last = client.post(f"/sessions/{session_id}/frames", json={"landmarks": _hip_knee(0.30)}).json()
    # rubric scores 9, 2 and 4 on the last up frame -> 5/10 -> 50/100
    assert last["rep_event"] == "rep_complete"
    assert last["message"] == "Rep 1 completed! Score: 50/100 Squat needs work"
    assert client.get(f"/sessions/{session_id}").json()["best_score"] == 50


def test_analysis_store_evicts_oldest_past_cap(monkeypatch):
    monkeypatch.setattr(main, "FORMSCORE_MAX_ANALYSES", 2)
    first = _create("squat")
    second = _create("pushup")
    third = _create("plank")
    assert client.get(f"/analyses/{first['id']}").status_code == 404
    assert client.get(f"/analyses/{second['id']}").status_code == 200
    assert client.get(f"/analyses/{third['id']}").status_code == 200
    assert len(main.ANALYSES) == 2
