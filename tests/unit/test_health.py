"""Unit tests for the health and readiness endpoints."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from bigpicture.api.dependencies import get_db, get_redis
from bigpicture.main import app
from bigpicture.models import JobRun

STARTED_AT = datetime(2026, 10, 17, 6, 0, tzinfo=timezone.utc)


def fake_session(latest_run=None, fail=False):
    """Session whose SELECT 1 succeeds and whose job_runs query returns ``latest_run``."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = latest_run
    session = MagicMock()
    if fail:
        session.execute = AsyncMock(side_effect=ConnectionError("db down"))
    else:
        session.execute = AsyncMock(return_value=result)
    return session


def job_run(status, error_message=None):
    return JobRun(
        job_name="update_all_movie_stats",
        started_at=STARTED_AT,
        status=status,
        error_message=error_message,
    )


@pytest.fixture
def ready():
    redis_client = MagicMock()
    redis_client.ping = AsyncMock(return_value=True)
    app.dependency_overrides[get_redis] = lambda: redis_client

    def call(session):
        app.dependency_overrides[get_db] = lambda: session
        response = TestClient(app).get("/ready")
        assert response.status_code == 200
        return response.json()

    yield call
    app.dependency_overrides.clear()


class TestReady:
    def test_successful_last_run(self, ready):
        body = ready(fake_session(job_run("success")))

        assert body["ready"] is True
        assert body["checks"]["last_update"]["status"] == "ok"
        assert STARTED_AT.isoformat() in body["checks"]["last_update"]["message"]

    def test_failed_last_run_is_a_warning(self, ready):
        body = ready(fake_session(job_run("failed", error_message="OMDb unauthorized")))

        check = body["checks"]["last_update"]
        assert body["ready"] is True, "a failed batch does not make the API unready"
        assert check["status"] == "warning"
        assert "failed" in check["message"]
        assert "OMDb unauthorized" in check["message"]

    def test_skipped_last_run_is_a_warning(self, ready):
        body = ready(fake_session(job_run("skipped")))

        assert body["checks"]["last_update"]["status"] == "warning"
        assert body["checks"]["last_update"]["message"].startswith("skipped")

    def test_no_runs_yet(self, ready):
        body = ready(fake_session(None))

        assert body["checks"]["last_update"] == {"status": "warning", "message": "no runs yet"}

    def test_database_down_skips_batch_check(self, ready):
        body = ready(fake_session(fail=True))

        assert body["ready"] is False
        assert body["checks"]["db"]["status"] == "error"
        assert "last_update" not in body["checks"]


class TestHealth:
    def test_health(self):
        response = TestClient(app).get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
