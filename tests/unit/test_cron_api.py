"""Unit tests for the cron and leaderboard HTTP endpoints.

CRITICAL TESTS:
- A missing or wrong bearer token is rejected before any batch work
- An unset CRON_SECRET rejects every request
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from bigpicture.api.dependencies import get_orchestrator
from bigpicture.api.routes.leaderboard import get_leaderboard_service
from bigpicture.config import Settings, get_settings
from bigpicture.main import app
from bigpicture.services.batch import RunReport
from bigpicture.services.reconciliation import (
    AmbiguousTitleError,
    BatchInProgressError,
    MovieResult,
    ReconcileStatus,
)

AUTH = {"Authorization": "Bearer s3cret"}


class FakeOrchestrator:
    def __init__(self):
        report = RunReport()
        report.add(MovieResult(title="Alpha", updates={"metacritic": 90}))
        report.add(
            MovieResult(
                title="Gamma", status=ReconcileStatus.SKIPPED, reason="Not released yet"
            )
        )
        self.report = report
        self.run_all = AsyncMock(return_value=report)
        self.run_for_title = AsyncMock(return_value=MovieResult(title="Alpha"))


@pytest.fixture
def orchestrator():
    return FakeOrchestrator()


@pytest.fixture
def sent_reports(monkeypatch):
    sent = []

    async def fake_send(report, refresh_error=None, settings=None, http_client=None):
        sent.append(report)
        return True

    monkeypatch.setattr("bigpicture.api.routes.cron.send_run_report", fake_send)
    return sent


@pytest.fixture
def client(orchestrator, sent_reports):
    app.dependency_overrides[get_settings] = lambda: Settings(
        _env_file=None, cron_secret="s3cret"
    )
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestCronAuth:
    def test_missing_token_rejected(self, client, orchestrator):
        response = client.get("/api/cron/update-movies")

        assert response.status_code == 401
        orchestrator.run_all.assert_not_awaited()

    def test_wrong_token_rejected(self, client, orchestrator):
        response = client.post(
            "/api/cron/update-movies", headers={"Authorization": "Bearer nope"}
        )

        assert response.status_code == 401
        orchestrator.run_all.assert_not_awaited()

    def test_unset_secret_rejects_everything(self, client, orchestrator):
        app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None)

        response = client.get(
            "/api/cron/update-movies", headers={"Authorization": "Bearer "}
        )

        assert response.status_code == 401
        orchestrator.run_all.assert_not_awaited()


class TestUpdateMovies:
    def test_batch_run(self, client, orchestrator, sent_reports):
        response = client.get("/api/cron/update-movies", headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "timestamp" in body
        assert body["results"]["total"] == 2
        assert body["results"]["successful"] == 1
        assert body["results"]["skipped"] == 1
        assert body["results"]["movies"][1]["reason"] == "Not released yet"
        assert len(sent_reports) == 1

    def test_batch_already_running(self, client, orchestrator, sent_reports):
        orchestrator.run_all.side_effect = BatchInProgressError("A movie stats batch is already running")

        response = client.post("/api/cron/update-movies", headers=AUTH)

        assert response.status_code == 409
        assert sent_reports == []


class TestUpdateMovie:
    def test_single_title(self, client, orchestrator):
        response = client.post("/api/cron/update-movie", params={"title": "alp"}, headers=AUTH)

        assert response.status_code == 200
        assert response.json()["result"]["title"] == "Alpha"
        orchestrator.run_for_title.assert_awaited_once_with("alp", strict=False)

    def test_no_match_is_404(self, client, orchestrator):
        orchestrator.run_for_title.return_value = None

        response = client.post("/api/cron/update-movie", params={"title": "zzz"}, headers=AUTH)

        assert response.status_code == 404

    def test_ambiguous_strict_is_400(self, client, orchestrator):
        orchestrator.run_for_title.side_effect = AmbiguousTitleError(
            "reckoning", ["Dead Reckoning", "The Final Reckoning"]
        )

        response = client.post(
            "/api/cron/update-movie",
            params={"title": "reckoning", "strict": "true"},
            headers=AUTH,
        )

        assert response.status_code == 400
        assert response.json()["detail"]["candidates"] == [
            "Dead Reckoning",
            "The Final Reckoning",
        ]

    def test_failed_write_reports_unsuccessful(self, client, orchestrator):
        orchestrator.run_for_title.return_value = MovieResult(
            title="Alpha",
            status=ReconcileStatus.FAILED,
            errors=["Database: connection refused"],
        )

        response = client.post("/api/cron/update-movie", params={"title": "alpha"}, headers=AUTH)

        assert response.status_code == 200
        assert response.json()["success"] is False


class FakeLeaderboardService:
    def __init__(self, board):
        self.board = board

    async def for_latest_auction(self):
        return self.board

    async def for_auction(self, auction_id):
        return self.board if auction_id == 1 else None

    async def for_year(self, year):
        return self.board or []


BOARD = [
    {
        "rank": 1,
        "name": "Zoe Adams",
        "spent": 90,
        "left": 10,
        "points": 1,
        "movies": [
            {
                "title": "Beta",
                "price": 25,
                "boxOffice": {"status": "pending", "value": "TBD"},
                "oscar": {"status": "pending", "value": "TBD"},
                "metacritic": {"status": "achieved", "value": "90"},
                "points": 1,
            }
        ],
    }
]


class TestLeaderboardRoutes:
    def setup_method(self):
        self.client = TestClient(app)

    def teardown_method(self):
        app.dependency_overrides.clear()

    def test_latest_is_not_parsed_as_id(self):
        app.dependency_overrides[get_leaderboard_service] = lambda: FakeLeaderboardService(BOARD)

        response = self.client.get("/api/auctions/latest/leaderboard")

        assert response.status_code == 200
        assert response.json() == BOARD

    def test_latest_without_auctions_is_404(self):
        app.dependency_overrides[get_leaderboard_service] = lambda: FakeLeaderboardService(None)

        response = self.client.get("/api/auctions/latest/leaderboard")

        assert response.status_code == 404

    def test_unknown_auction_is_404(self):
        app.dependency_overrides[get_leaderboard_service] = lambda: FakeLeaderboardService(BOARD)

        assert self.client.get("/api/auctions/2/leaderboard").status_code == 404
        assert self.client.get("/api/auctions/1/leaderboard").status_code == 200

    def test_yearly(self):
        app.dependency_overrides[get_leaderboard_service] = lambda: FakeLeaderboardService(BOARD)

        response = self.client.get("/api/leaderboard/2025")

        assert response.status_code == 200
        assert response.json()[0]["name"] == "Zoe Adams"
