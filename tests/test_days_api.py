"""Tests for the administrator day-control API."""

from __future__ import annotations

from fastapi import status
from fastapi.testclient import TestClient

from conftest import make_state


class TestAdminAuth:
    """Tests for authentication on /admin/days."""

    def test_missing_token_returns_401(self, client: TestClient):
        """Requests without a bearer token are rejected."""
        response = client.post("/admin/days/start")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"] == "MISSING_CREDENTIALS"

    def test_invalid_token_returns_401(self, client: TestClient):
        """Garbage tokens are rejected."""
        response = client.get("/admin/days/status", headers={"Authorization": "Bearer nope"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"] == "INVALID_TOKEN"

    def test_non_admin_returns_403(self, client: TestClient, auth_headers: dict):
        """Participants cannot drive the calendar."""
        response = client.post("/admin/days/next", headers=auth_headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"] == "ADMIN_REQUIRED"


class TestDayTransitions:
    """Tests for start, next, end, pause and resume."""

    def test_start_returns_day_one(self, client: TestClient, admin_headers: dict):
        """POST /admin/days/start opens day 1."""
        response = client.post("/admin/days/start", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"success": True, "currentDay": 1}

    def test_start_twice_returns_400(self, client: TestClient, admin_headers: dict):
        """A second start reports ALREADY_ACTIVE."""
        client.post("/admin/days/start", headers=admin_headers)

        response = client.post("/admin/days/start", headers=admin_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "ALREADY_ACTIVE"

    def test_next_advances(self, client: TestClient, admin_headers: dict, store):
        """POST /admin/days/next moves one day."""
        store.state = make_state(current_day=4)

        response = client.post("/admin/days/next", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["currentDay"] == 5
        assert data["overflow"] is False
        assert data["simulationStopped"] is False

    def test_next_past_final_day_reports_stop(self, client: TestClient, admin_headers: dict, store):
        """Overflow is reported in the response body."""
        store.state = make_state(current_day=15, total_days=15)

        data = client.post("/admin/days/next", headers=admin_headers).json()

        assert data["currentDay"] == 16
        assert data["overflow"] is True
        assert data["simulationStopped"] is True

    def test_next_without_simulation_returns_400(self, client: TestClient, admin_headers: dict):
        """Advancing before any start is NOT_INITIALIZED."""
        response = client.post("/admin/days/next", headers=admin_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "NOT_INITIALIZED"

    def test_end(self, client: TestClient, admin_headers: dict, store):
        """POST /admin/days/end stops the simulation."""
        store.state = make_state(current_day=3)

        response = client.post("/admin/days/end", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["success"] is True
        assert store.state.is_simulation_active is False

    def test_pause_and_resume(self, client: TestClient, admin_headers: dict, store):
        """Pause then resume round-trips the stored countdown."""
        store.state = make_state(current_day=3)

        paused = client.post("/admin/days/pause", headers=admin_headers)
        resumed = client.post("/admin/days/resume", headers=admin_headers)

        assert paused.status_code == status.HTTP_200_OK
        assert paused.json()["remainingMs"] == 0
        assert resumed.status_code == status.HTTP_200_OK
        assert resumed.json()["message"] == "Simulation resumed"
        assert store.state.is_paused is False

    def test_resume_when_running_returns_400(self, client: TestClient, admin_headers: dict, store):
        """Resume without a pause is NOT_PAUSED."""
        store.state = make_state()

        response = client.post("/admin/days/resume", headers=admin_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "NOT_PAUSED"


class TestStatusAndAuto:
    """Tests for /admin/days/status and /admin/days/auto."""

    def test_status_shape(self, client: TestClient, admin_headers: dict, store):
        """Status reports the calendar and the auto-advance timer."""
        store.state = make_state(current_day=2, paused=True, remaining_ms=1500)

        data = client.get("/admin/days/status", headers=admin_headers).json()

        assert data["currentDay"] == 2
        assert data["totalDays"] == 15
        assert data["isPaused"] is True
        assert data["remainingMs"] == 1500
        assert data["phase"] == "paused"
        assert set(data["autoDay"]) == {"enabled", "intervalMinutes", "nextRunAt", "paused"}

    def test_enable_auto(self, client: TestClient, admin_headers: dict, store, settings_repo):
        """Enabling auto advance starts the simulation and persists the choice."""
        response = client.post(
            "/admin/days/auto",
            json={"enabled": True, "intervalMinutes": 2},
            headers=admin_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["enabled"] is True
        assert data["intervalMinutes"] == 2
        assert data["nextRunAt"] is not None
        assert store.state.current_day == 1
        assert settings_repo.values["auto_day_scheduler"]["enabled"] is True

        current = client.get("/admin/days/auto", headers=admin_headers).json()
        assert current["enabled"] is True

    def test_enable_auto_rejects_zero_interval(self, client: TestClient, admin_headers: dict):
        """Intervals must be positive."""
        response = client.post(
            "/admin/days/auto",
            json={"enabled": True, "intervalMinutes": 0},
            headers=admin_headers,
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT


class TestReset:
    """Tests for POST /admin/days/reset."""

    def test_reset_requires_confirmation(self, client: TestClient, admin_headers: dict, store):
        """Anything but the literal RESET is refused."""
        store.state = make_state(current_day=8)

        response = client.post(
            "/admin/days/reset", json={"confirmation": "yes"}, headers=admin_headers
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT
        assert response.json()["error"] == "VALIDATION_ERROR"
        assert store.state.current_day == 8

    def test_reset(self, client: TestClient, admin_headers: dict, store):
        """A confirmed reset goes back to day 0."""
        store.state = make_state(current_day=8)

        response = client.post(
            "/admin/days/reset", json={"confirmation": "RESET"}, headers=admin_headers
        )

        assert response.status_code == status.HTTP_200_OK
        assert store.state.current_day == 0
        assert store.reset_calls == 1


class TestParticipantPortfolio:
    """Tests for GET /admin/participants/{id}/portfolio."""

    def test_portfolio(self, client: TestClient, admin_headers: dict, store):
        """Portfolio valuation at the current day."""
        store.state = make_state(current_day=3)

        response = client.get("/admin/participants/1/portfolio", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["participantId"] == 1
        assert data["totalValue"] == 6200.0
        assert data["holdings"][0]["stockCode"] == "C1"

    def test_unknown_participant_returns_404(self, client: TestClient, admin_headers: dict):
        """Missing participants are 404."""
        response = client.get("/admin/participants/42/portfolio", headers=admin_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "NOT_FOUND"
