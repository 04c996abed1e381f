"""Tests for the FastAPI app (app.py) routes."""

from __future__ import annotations

import pytest


# ── Health routes ─────────────────────────────


class TestHealth:
    @pytest.mark.parametrize("path", ["/health", "/healthz"])
    def test_ok(self, client, path):
        response = client.get(path)
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


# ── JSON API routes ───────────────────────────


class TestApiData:
    def test_returns_200(self, client):
        response = client.get("/api/data")
        assert response.status_code == 200

    def test_content_type_is_json(self, client):
        response = client.get("/api/data")
        assert "application/json" in response.headers["content-type"]

    def test_empty_payload_shape(self, client):
        data = client.get("/api/data").json()
        assert data["totalMessages"] == 0
        assert len(data["hourlyActivity"]) == 24
        assert [d["day"] for d in data["weeklyActivity"]] == [
            "Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun",
        ]
        assert data["messageHistory"] == []


class TestMessageRoutes:
    def test_full_turn(self, client, clock):
        assert client.post("/api/turns").json() == {"status": "started"}

        user = client.post("/api/messages/user", json={"text": "hello"})
        assert user.status_code == 200
        assert user.json() == {
            "text": "hello",
            "sender": "user",
            "timestamp": "2024-01-15T10:00:00",
        }

        clock.advance(seconds=2)
        bot = client.post("/api/messages/bot", json={"text": "Hi!"})
        assert bot.status_code == 200
        assert bot.json()["responseTime"] == pytest.approx(2.0)

        data = client.get("/api/data").json()
        assert data["totalMessages"] == 2
        assert data["userMessages"] == 1
        assert data["botMessages"] == 1
        assert data["averageResponseTime"] == pytest.approx(2.0)
        assert data["popularTopics"] == [{"topic": "General Questions", "count": 1}]

    def test_empty_text_accepted(self, client):
        response = client.post("/api/messages/user", json={"text": ""})
        assert response.status_code == 200

    def test_missing_text_rejected(self, client):
        response = client.post("/api/messages/user", json={})
        assert response.status_code == 422

    def test_messages_reach_engine(self, client, engine):
        client.post("/api/messages/user", json={"text": "what is 2+2"})
        assert engine.snapshot()["popular_topics"] == [{"topic": "Math Problems", "count": 1}]


class TestReset:
    def test_reset_clears_data(self, client):
        client.post("/api/messages/user", json={"text": "hello"})
        response = client.post("/api/reset")
        assert response.status_code == 200
        assert response.json()["status"] == "reset"
        assert client.get("/api/data").json()["totalMessages"] == 0


class TestExport:
    def test_plain_text_transcript(self, client):
        client.post("/api/messages/user", json={"text": "hello"})
        response = client.get("/api/export", params={"username": "alice"})
        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "User: alice" in response.text
        assert "You (2024-01-15 10:00:00)" in response.text
        assert "hello" in response.text

    def test_empty_history(self, client):
        response = client.get("/api/export")
        assert "[No messages recorded]" in response.text
