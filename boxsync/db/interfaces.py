"""Typed interfaces for database-layer services.

All SQL and ORM access must remain in the db package and its submodules.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Any, Protocol, Sequence

from boxsync.domain import BoxRecord, HealthStatus, JobLogLevel, JobRecord, JobStatus


class MissingJobPolicy(str, Enum):
    """Behavior of job mutations that target an id the store does not know.

    `auto_create` keeps worker updates from being orphaned by a lost or
    out-of-order creation by creating a placeholder record; `strict` rejects
    the mutation with `JobNotFoundError`.
    """

    AUTO_CREATE = "auto_create"
    STRICT = "strict"


class JobStoreError(RuntimeError):
    """Raised when the job store cannot read or persist a record."""


class JobNotFoundError(LookupError):
    """Raised when a job id is unknown and the store runs with the strict policy."""


class DuplicateJobError(ValueError):
    """Raised when a job is created with an id that already exists."""


class JobAlreadyTerminalError(RuntimeError):
    """Raised when a status transition is requested for a completed or failed job."""


class DataSinkError(RuntimeError):
    """Raised when the Data Sink rejects an insert or clear operation."""


class DatabaseHealthPort(Protocol):
    """Port definition for database connectivity verification."""

    def db_connection_label(self) -> str:
        """Return a stable label for the active database connection target.

        Returns:
            str: Database target label for diagnostics.
        """

    def db_check_health(self) -> HealthStatus:
        """Check database connectivity and return deterministic health payload.

        Returns:
            HealthStatus: Database health status payload.

        Raises:
            ConnectionError: Raised when database cannot be reached.
        """


class JobStorePort(Protocol):
    """Port definition for the durable job lifecycle store."""

    def store_open(self) -> None:
        """Prepare backing storage so persisted jobs become readable."""

    def store_close(self) -> None:
        """Release backing storage resources."""

    def db_job_create(
        self,
        job_id: str,
        callback_target: str | None,
        status: JobStatus = JobStatus.PENDING,
        progress: str = "",
    ) -> JobRecord:
        """Create one job record.

        Raises:
            DuplicateJobError: Raised when the id already exists.
        """

    def db_job_update(
        self,
        job_id: str,
        status: JobStatus | None = None,
        progress: str | None = None,
        result: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> JobRecord:
        """Merge partial fields into one job record.

        Raises:
            ValueError: Raised when `result` or `error` comes without its terminal status.
            JobAlreadyTerminalError: Raised when a status change targets a terminal job.
        """

    def db_job_append_log(
        self,
        job_id: str,
        message: str,
        level: JobLogLevel | str = JobLogLevel.INFO,
    ) -> JobRecord:
        """Append one log entry to a job."""

    def db_job_complete(self, job_id: str, result: dict[str, Any]) -> JobRecord:
        """Mark a job completed; no-op for terminal jobs."""

    def db_job_fail(self, job_id: str, error: str | BaseException) -> JobRecord:
        """Mark a job failed; no-op for terminal jobs."""

    def db_job_get(self, job_id: str) -> JobRecord | None:
        """Return one job or None."""

    def db_job_list(self) -> list[JobRecord]:
        """Return all tracked jobs ordered by creation time."""

    def db_job_purge_older_than(self, max_age: timedelta) -> int:
        """Remove terminal jobs created before now minus `max_age`."""


class DataSinkPort(Protocol):
    """Port definition for durable storage of extracted records."""

    def sink_insert_records(self, records: Sequence[BoxRecord]) -> int:
        """Insert extracted records.

        Args:
            records: Records to insert.

        Returns:
            int: Number of inserted records.

        Raises:
            DataSinkError: Raised when the insert fails.
        """

    def sink_clear_by_unit(self, locality: str) -> int:
        """Remove previously stored records of one locality.

        Args:
            locality: Locality key of the unit.

        Returns:
            int: Number of removed records.

        Raises:
            DataSinkError: Raised when the delete fails.
        """
