"""Tests for the public day, leaderboard and WebSocket endpoints."""

from __future__ import annotations

from fastapi import status
from fastapi.testclient import TestClient

from conftest import make_state


class TestCurrentDay:
    """Tests for GET /days/current and /obs/days/current."""

    def test_current_day_without_auth(self, client: TestClient, store):
        """Anyone can read the current day."""
        store.state = make_state(current_day=5)

        response = client.get("/days/current")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["currentDay"] == 5

    def test_current_day_is_cached(self, client: TestClient, store, day_cache):
        """Repeated reads are served from the cache."""
        store.state = make_state(current_day=5)
        client.get("/days/current")
        store.state = make_state(current_day=6)

        assert client.get("/days/current").json()["currentDay"] == 5
        assert day_cache.stores == 1

    def test_obs_current_day_is_uncached(self, client: TestClient, store, day_cache):
        """The display endpoint always reads the store."""
        store.state = make_state(current_day=5)
        client.get("/obs/days/current")
        store.state = make_state(current_day=6)

        assert client.get("/obs/days/current").json()["currentDay"] == 6
        assert day_cache.stores == 0

    def test_before_first_start(self, client: TestClient):
        """An empty system reports day 0."""
        data = client.get("/obs/days/current").json()

        assert data["currentDay"] == 0
        assert data["isSimulationActive"] is False
        assert data["phase"] == "not_started"


class TestSchedule:
    """Tests for GET /days/schedule."""

    def test_schedule_disabled_by_default(self, client: TestClient):
        """Auto advance starts disabled with the default interval."""
        data = client.get("/days/schedule").json()

        assert data["enabled"] is False
        assert data["intervalMinutes"] == 6
        assert data["nextRunAt"] is None


class TestLeaderboard:
    """Tests for GET /obs/leaderboard."""

    def test_leaderboard_ranks_by_value(self, client: TestClient, store):
        """Entries are ordered by portfolio value at the current day."""
        store.state = make_state(current_day=3)

        response = client.get("/obs/leaderboard")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 3
        assert data["day"] == 3
        assert [e["rank"] for e in data["leaderboard"]] == [1, 2, 3]
        assert [e["teamName"] for e in data["leaderboard"]] == ["Bravo", "team3", "Alpha"]
        assert data["leaderboard"][2]["school"] == "North High"

    def test_leaderboard_limit(self, client: TestClient, store):
        """limit truncates entries but not the total."""
        store.state = make_state(current_day=3)

        data = client.get("/obs/leaderboard", params={"limit": 1}).json()

        assert len(data["leaderboard"]) == 1
        assert data["total"] == 3

    def test_leaderboard_rejects_bad_limit(self, client: TestClient):
        """limit must be at least 1."""
        response = client.get("/obs/leaderboard", params={"limit": 0})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT


class TestWebSocket:
    """Tests for the /ws endpoint."""

    def test_connect_and_ping(self, client: TestClient):
        """Clients get a connected event and can ping."""
        with client.websocket_connect("/ws") as websocket:
            connected = websocket.receive_json()
            assert connected["type"] == "connected"
            assert connected["data"]["subscriptions"] == ["all"]

            websocket.send_json({"type": "ping"})
            assert websocket.receive_json()["type"] == "pong"

    def test_channels_query(self, client: TestClient):
        """Subscriptions can be chosen on connect."""
        with client.websocket_connect("/ws?channels=days,notifications") as websocket:
            connected = websocket.receive_json()

        assert connected["data"]["subscriptions"] == ["days", "notifications"]
