"""Tests for operator CLI commands."""

from __future__ import annotations

from pathlib import Path

import pytest

from boxsync.db import SQLAlchemyJobStore, db_create_engine
from boxsync.delivery import CallbackUrlValidationError
from boxsync.main import main_purge_jobs, main_run_job


@pytest.fixture
def cli_database_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    database_url = f"sqlite:///{tmp_path / 'jobs.db'}"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", database_url)
    return database_url


def test_main_run_job_rejects_invalid_callback_url(cli_database_url: str) -> None:
    with pytest.raises(CallbackUrlValidationError, match="Only HTTP and HTTPS"):
        main_run_job("ftp://example.test/hook")


def test_main_purge_jobs_reports_removed_count(cli_database_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    """Purge nothing on a fresh store and print the removed count.

    Args:
        cli_database_url: Temporary database URL exported to settings.
        capsys: Pytest output capture fixture.

    Returns:
        None: Assertions validate command output and store contents.
    """

    store = SQLAlchemyJobStore(engine=db_create_engine(cli_database_url))
    store.store_open()
    store.db_job_create("job-1", callback_target=None)
    store.store_close()

    main_purge_jobs()

    assert capsys.readouterr().out.strip().endswith("Removed 0 expired jobs")
