"""Tests for runtime wiring of the API application and worker dependencies."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from boxsync.adapters.prisma_box_web import PrismaBoxWebAdapter
from boxsync.bootstrap import bootstrap_build_worker_dependencies, bootstrap_create_application
from boxsync.config import SettingsLoadError

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def runtime_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point runtime settings at a temporary database and the bundled unit catalog.

    Args:
        tmp_path: Pytest temporary directory.
        monkeypatch: Pytest monkeypatch fixture.

    Returns:
        Path: Temporary working directory.
    """

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'runtime' / 'jobs.db'}")
    monkeypatch.setenv("UNITS_FILE", str(PROJECT_ROOT / "config" / "units.json"))
    monkeypatch.setenv("ENVIRONMENT_NAME", "test")
    return tmp_path


def test_bootstrap_application_serves_health_and_job_routes(runtime_environment: Path) -> None:
    """Start the assembled application and reach the store-backed routes.

    Args:
        runtime_environment: Temporary runtime environment fixture.

    Returns:
        None: Assertions validate application wiring.

    Raises:
        AssertionError: Raised when wiring is incomplete.
    """

    application = bootstrap_create_application()

    with TestClient(application) as client:
        health_response = client.get("/health")
        jobs_response = client.get("/api/scraping/jobs")
        active_response = client.get("/api/scraping/active")

    assert health_response.status_code == 200
    assert health_response.json()["detail"] == "job store reachable, 0 jobs tracked, 0 running"
    assert jobs_response.json() == {"success": True, "jobs": [], "total": 0}
    assert active_response.json()["count"] == 0
    assert (runtime_environment / "runtime" / "jobs.db").exists()


def test_bootstrap_worker_dependencies_use_catalog_and_settings(
    runtime_environment: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("UNIT_MAX_ATTEMPTS", "3")

    dependencies = bootstrap_build_worker_dependencies()
    try:
        assert isinstance(dependencies.adapter, PrismaBoxWebAdapter)
        assert dependencies.units
        assert dependencies.unit_max_attempts == 3
        assert dependencies.job_store.db_job_list() == []
    finally:
        dependencies.job_store.store_close()


def test_bootstrap_rejects_missing_unit_catalog(runtime_environment: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UNITS_FILE", str(runtime_environment / "missing.json"))

    with pytest.raises(SettingsLoadError):
        bootstrap_create_application()
