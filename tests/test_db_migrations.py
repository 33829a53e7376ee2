"""Regression tests for the Alembic job store baseline migration."""

from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from boxsync.db import SQLAlchemyJobStore

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _migration_build_config(database_url: str, monkeypatch: pytest.MonkeyPatch) -> Config:
    """Build an Alembic config bound to a test database.

    Args:
        database_url: SQLAlchemy URL of the temporary database.
        monkeypatch: Pytest monkeypatch fixture.

    Returns:
        Config: Alembic configuration using the project `alembic.ini`.
    """

    monkeypatch.setenv("DATABASE_URL", database_url)
    return Config(str(PROJECT_ROOT / "alembic.ini"))


def test_migrations_apply_and_are_idempotent(sqlite_database_url: str, monkeypatch: pytest.MonkeyPatch) -> None:
    """Apply migrations on a fresh database and verify idempotent re-run.

    Args:
        sqlite_database_url: File-backed SQLite URL.
        monkeypatch: Pytest monkeypatch fixture.

    Returns:
        None: Assertions validate migration behavior.

    Raises:
        AssertionError: Raised when expected migration artifacts are missing.
    """

    alembic_config = _migration_build_config(sqlite_database_url, monkeypatch)

    command.upgrade(alembic_config, "head")
    command.upgrade(alembic_config, "head")

    verification_engine = create_engine(sqlite_database_url)
    try:
        inspector = inspect(verification_engine)
        assert {"scrape_job", "box_record", "alembic_version"}.issubset(set(inspector.get_table_names()))
        index_names = {index["name"] for index in inspector.get_indexes("box_record")}
        assert "ix_box_record_locality" in index_names
    finally:
        verification_engine.dispose()


def test_migrated_schema_is_usable_by_job_store(sqlite_database_url: str, monkeypatch: pytest.MonkeyPatch) -> None:
    command.upgrade(_migration_build_config(sqlite_database_url, monkeypatch), "head")

    store = SQLAlchemyJobStore(engine=create_engine(sqlite_database_url))
    store.store_open()
    try:
        store.db_job_create("job-1", callback_target=None)
        assert store.db_job_get("job-1") is not None
    finally:
        store.store_close()


def test_migrations_downgrade_removes_tables(sqlite_database_url: str, monkeypatch: pytest.MonkeyPatch) -> None:
    alembic_config = _migration_build_config(sqlite_database_url, monkeypatch)
    command.upgrade(alembic_config, "head")

    command.downgrade(alembic_config, "base")

    verification_engine = create_engine(sqlite_database_url)
    try:
        table_names = set(inspect(verification_engine).get_table_names())
    finally:
        verification_engine.dispose()
    assert "scrape_job" not in table_names
    assert "box_record" not in table_names
