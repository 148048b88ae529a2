# tests/test_api.py
import pytest
from fastapi.testclient import TestClient

from scout_engine.api import endpoints
from scout_engine.engine import ScoutEngine


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(endpoints, "default_engine", ScoutEngine())
    return TestClient(endpoints.app)


def start_scan(client, raw_input, user_id="u-1"):
    return client.post(
        "/api/scans",
        params={"wait": "true"},
        json={"user_id": user_id, "raw_input": raw_input},
    )


def test_root_and_health(client):
    assert client.get("/").json()["service"] == "ScoutScore Engine"
    body = client.get("/api/health").json()
    assert body["status"] == "healthy"


def test_scan_results_and_outcome(client, csv_input):
    response = start_scan(client, csv_input)
    assert response.status_code == 200
    body = response.json()
    assert body["percent"] == 100
    assert body["is_terminal"] is True
    scan_id = body["scan"]["id"]

    status = client.get(f"/api/scans/{scan_id}").json()
    assert status["scan"]["status"] == "completed"

    results = client.get(f"/api/scans/{scan_id}/results").json()
    assert results["summary"] == {"total": 2, "hot": 0, "warm": 1, "cold": 1}
    top = results["results"][0]
    assert top["prospect_name"] == "Juan Dela Cruz"
    assert top["bucket"] == "warm"

    outcome = client.post("/api/outcomes", json={
        "user_id": "u-1", "prospect_id": top["prospect_id"], "outcome": "won",
    }).json()
    assert outcome["total_wins"] == 1
    assert outcome["win_rate"] == 1.0
    assert sum(outcome["weights"].values()) == pytest.approx(1.0, abs=1e-6)

    weights = client.get("/api/users/u-1/weights").json()
    assert weights["version"] == 1

    history = client.get(f"/api/prospects/{top['prospect_id']}/history", params={"user_id": "u-1"}).json()
    assert history["count"] == 2


def test_failed_scan_has_no_results(client):
    body = start_scan(client, "").json()
    assert body["scan"]["status"] == "failed"
    assert "No data found" in body["scan"]["error_message"]

    results = client.get(f"/api/scans/{body['scan']['id']}/results").json()
    assert results["status"] == "failed"
    assert results["results"] == []


def test_unknown_ids_return_404(client):
    assert client.get("/api/scans/missing").status_code == 404
    response = client.post("/api/outcomes", json={
        "user_id": "u-1", "prospect_id": "nobody", "outcome": "won",
    })
    assert response.status_code == 404
    assert response.json()["error"] == "No stored feature vector"


def test_invalid_outcome_rejected(client):
    response = client.post("/api/outcomes", json={
        "user_id": "u-1", "prospect_id": "p", "outcome": "maybe",
    })
    assert response.status_code == 422


def test_profile_events_and_score(client):
    profile = client.put("/api/prospects/p-9/profile", json={
        "user_id": "u-1",
        "name": "Liza Cruz",
        "topics": ["online business"],
        "pain_points": ["debt"],
        "sentiment_avg": 0.6,
    })
    assert profile.status_code == 200

    event = client.post("/api/prospects/p-9/events", json={"user_id": "u-1", "event_type": "comment"})
    assert event.json()["event_count"] == 1

    score = client.post("/api/prospects/p-9/score", json={"user_id": "u-1"}).json()
    assert score["prospect_name"] == "Liza Cruz"
    assert 0 <= score["score"] <= 100

    missing = client.post("/api/prospects/nobody/score", json={"user_id": "u-1"})
    assert missing.status_code == 404


def test_quick_score_keywords_and_stats(client):
    quick = client.post("/api/score/quick", json={"text": "need extra income asap"}).json()
    assert quick["score"] == 53
    assert quick["bucket"] == "warm"
    assert quick["features"]["pain_point"] == 85

    keywords = client.get("/api/keywords").json()
    assert "asap" in keywords["urgency"]

    stats = client.get("/api/stats").json()
    assert "default_engine" in stats
