"""Tests for API health endpoint behavior.

These tests validate deterministic response behavior for healthy and
job-store-unavailable states.
"""

from fastapi.testclient import TestClient
from sqlalchemy import Engine

from boxsync.api.application import create_api_application
from boxsync.config import AppSettings
from boxsync.db import SQLAlchemyDatabaseHealthService, SQLAlchemyJobStore
from boxsync.domain import HealthStatus
from conftest import RecordingDelivery


class _HealthyDatabaseService:
    """Test double that simulates a healthy job store target."""

    def db_connection_label(self) -> str:
        """Return deterministic target label.

        Returns:
            str: Health target label.
        """

        return "sqlite:///test.db"

    def db_check_health(self) -> HealthStatus:
        """Return healthy job store result.

        Returns:
            HealthStatus: Healthy job store response.
        """

        return HealthStatus(status="ok", detail="job store reachable, 0 jobs tracked")


class _FailingDatabaseService:
    """Test double that simulates a job store connectivity failure."""

    def db_connection_label(self) -> str:
        return "sqlite:///test.db"

    def db_check_health(self) -> HealthStatus:
        """Raise deterministic connection error.

        Raises:
            ConnectionError: Always raised by this test double.
        """

        raise ConnectionError("job store connectivity check failed")


class _IdleSupervisor:
    """Supervisor stub without active workers."""

    def supervisor_start(self, job_id: str, callback_target: str | None) -> None:
        return None

    def supervisor_terminate(self, job_id: str) -> bool:
        return False

    def supervisor_list_active(self) -> tuple[str, ...]:
        return ()

    def supervisor_shutdown(self) -> None:
        return None


def _build_settings() -> AppSettings:
    """Create test settings object.

    Returns:
        AppSettings: Deterministic test settings for API creation.

    Raises:
        ValueError: Raised by AppSettings when values are invalid.
    """

    return AppSettings(environment_name="test", database_url="sqlite:///test.db")


def test_api_health_returns_success_when_database_is_available(job_store: SQLAlchemyJobStore) -> None:
    """Return HTTP 200 and healthy payload when the job store answers.

    Args:
        job_store: Opened job store fixture.

    Returns:
        None: Assertions validate response behavior.

    Raises:
        AssertionError: Raised when response does not match expected payload.
    """

    application = create_api_application(
        _build_settings(),
        _HealthyDatabaseService(),
        job_store,
        _IdleSupervisor(),
        RecordingDelivery(),
    )
    client = TestClient(application)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["app"] == "up"
    assert response.json()["database"] == "ok"
    assert response.json()["environment"] == "test"


def test_api_health_returns_service_unavailable_when_database_is_down(job_store: SQLAlchemyJobStore) -> None:
    """Return HTTP 503 and degraded payload when the job store check fails.

    Args:
        job_store: Opened job store fixture.

    Returns:
        None: Assertions validate response behavior.

    Raises:
        AssertionError: Raised when response does not match expected payload.
    """

    application = create_api_application(
        _build_settings(),
        _FailingDatabaseService(),
        job_store,
        _IdleSupervisor(),
        RecordingDelivery(),
    )
    client = TestClient(application)

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"
    assert response.json()["app"] == "up"
    assert response.json()["database"] == "down"


def test_api_health_counts_tracked_jobs(sqlite_engine: Engine, job_store: SQLAlchemyJobStore) -> None:
    job_store.db_job_create("job-1", callback_target=None)
    health_service = SQLAlchemyDatabaseHealthService(engine=sqlite_engine)

    health = health_service.db_check_health()

    assert health.status == "ok"
    assert health.detail == "job store reachable, 1 jobs tracked, 0 running"
    assert health_service.db_connection_label().startswith("sqlite:///")


def test_api_foundation_index_reports_service_metadata(job_store: SQLAlchemyJobStore) -> None:
    application = create_api_application(
        _build_settings(),
        _HealthyDatabaseService(),
        job_store,
        _IdleSupervisor(),
        RecordingDelivery(),
    )

    response = TestClient(application).get("/")

    assert response.json() == {"service": "boxsync", "status": "ready", "environment": "test"}
