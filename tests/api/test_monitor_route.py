"""
Tests for the recent events monitor endpoint.
"""

from __future__ import annotations

from fastapi.testclient import TestClient


def test_empty_monitor(client: TestClient) -> None:
    response = client.get("/monitor")

    assert response.status_code == 200
    data = response.json()
    assert data["totalEventsTracked"] == 0
    assert data["maxEvents"] == 50
    assert data["recentEvents"] == []
    assert "snippet" in data["message"]


def test_monitor_not_cached(client: TestClient) -> None:
    response = client.get("/monitor")
    assert "no-store" in response.headers["Cache-Control"]
    assert response.headers["Pragma"] == "no-cache"


def test_tracked_calls_listed_newest_first(client: TestClient, time_port) -> None:
    client.post("/track", json={"event": "view", "quizId": "q1", "site": "a.com"})
    time_port.advance(1)
    client.post(
        "/track",
        json={"event": "complete", "quizId": "q1", "site": "a.com", "utm_campaign": "spring"},
    )
    time_port.advance(1)
    client.post("/track", json={"event": "view", "quizId": "q2", "site": "b.com"})

    data = client.get("/monitor").json()

    assert data["totalEventsTracked"] == 3
    assert [(e["event"], e["quizId"]) for e in data["recentEvents"]] == [
        ("view", "q2"),
        ("complete", "q1"),
        ("view", "q1"),
    ]
    assert data["recentEvents"][1]["utm_campaign"] == "spring"
    assert data["recentEvents"][0]["saved"] == "stored"
    assert data["summary"] == {
        "q1": {"views": 1, "completes": 1},
        "q2": {"views": 1, "completes": 0},
    }


def test_logged_calls_listed_without_store(storeless_client: TestClient) -> None:
    storeless_client.post("/track", json={"event": "view", "quizId": "q1"})

    [entry] = storeless_client.get("/monitor").json()["recentEvents"]
    assert entry["saved"] == "logged"


def test_rejected_calls_not_listed(client: TestClient) -> None:
    client.post("/track", json={"event": "click", "quizId": "q1"})
    assert client.get("/monitor").json()["totalEventsTracked"] == 0
