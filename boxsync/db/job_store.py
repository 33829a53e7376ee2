"""Database service for job lifecycle persistence.

Each job is stored as one row whose JSON `document` column holds the full job
shape. Every mutation re-reads the row, merges the change and rewrites the
whole document inside one transaction, so the store never exposes a state
newer than its last committed snapshot.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterator

from sqlalchemy import Connection, Engine, delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from boxsync.domain import (
    JOB_TERMINAL_STATUSES,
    JobLogEntry,
    JobLogLevel,
    JobRecord,
    JobStatus,
    domain_build_log_entry,
    domain_utc_now,
)

from .interfaces import (
    DuplicateJobError,
    JobAlreadyTerminalError,
    JobNotFoundError,
    JobStoreError,
    JobStorePort,
    MissingJobPolicy,
)
from .schema import db_metadata, scrape_job_table

logger = logging.getLogger(__name__)

JOB_DEFAULT_PROGRESS = "Job created, waiting for a worker"
JOB_COMPLETED_PROGRESS = "Extraction finished successfully"
JOB_FAILED_PROGRESS = "Extraction failed"


@dataclass
class _JobLockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class SQLAlchemyJobStore(JobStorePort):
    """SQLAlchemy-backed job store with per-job serialized mutations."""

    def __init__(
        self,
        engine: Engine,
        missing_job_policy: MissingJobPolicy = MissingJobPolicy.AUTO_CREATE,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize job store.

        Args:
            engine: SQLAlchemy engine used for all persistence operations.
            missing_job_policy: Behavior of mutations that target unknown job ids.
            clock: Optional provider of timezone-aware UTC timestamps.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")

        self._engine = engine
        self._missing_job_policy = MissingJobPolicy(missing_job_policy)
        self._clock = clock or domain_utc_now
        self._job_locks: dict[str, _JobLockEntry] = {}
        self._job_locks_guard = threading.Lock()

    def store_open(self) -> None:
        """Create the job table when it is missing.

        Raises:
            JobStoreError: Raised when the schema cannot be prepared.
        """

        try:
            db_metadata.create_all(self._engine, tables=[scrape_job_table], checkfirst=True)
        except SQLAlchemyError as error:
            raise JobStoreError("failed to prepare job store schema") from error

    def store_close(self) -> None:
        """Dispose pooled connections of the underlying engine."""

        self._engine.dispose()

    def db_job_create(
        self,
        job_id: str,
        callback_target: str | None,
        status: JobStatus = JobStatus.PENDING,
        progress: str = JOB_DEFAULT_PROGRESS,
    ) -> JobRecord:
        """Create one job record.

        Args:
            job_id: Unique job token.
            callback_target: Callback URL, stored write-once.
            status: Initial status.
            progress: Initial progress text.

        Returns:
            JobRecord: Created record.

        Raises:
            DuplicateJobError: Raised when the id already exists.
            JobStoreError: Raised when persistence fails.
        """

        normalized_job_id = self._db_validate_job_id(job_id)
        now = self._clock()
        record = JobRecord(
            job_id=normalized_job_id,
            status=JobStatus(status),
            created_at_utc=now,
            updated_at_utc=now,
            progress=progress,
            callback_target=callback_target,
        )

        with self._db_job_lock(normalized_job_id):
            try:
                with self._engine.begin() as connection:
                    if self._db_job_select_row(connection, normalized_job_id) is not None:
                        raise DuplicateJobError(f"job already exists: {normalized_job_id}")
                    self._db_job_insert_row(connection, record)
            except IntegrityError as error:
                raise DuplicateJobError(f"job already exists: {normalized_job_id}") from error
            except SQLAlchemyError as error:
                raise JobStoreError(f"failed to create job {normalized_job_id}") from error

        logger.info("Job created: %s", normalized_job_id)
        return record

    def db_job_update(
        self,
        job_id: str,
        status: JobStatus | None = None,
        progress: str | None = None,
        result: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> JobRecord:
        """Merge partial fields into one job.

        Fields left as None keep their stored value. `result` and `error` are
        only accepted on the transition to `completed` and `failed`. A terminal
        job keeps its status, result and error.

        Args:
            job_id: Job token.
            status: Optional new status.
            progress: Optional progress text.
            result: Optional result payload, only with status `completed`.
            error: Optional error message, only with status `failed`.

        Returns:
            JobRecord: Updated record.

        Raises:
            ValueError: Raised when `result` or `error` comes without its terminal status.
            JobAlreadyTerminalError: Raised when a status change targets a terminal job.
            JobNotFoundError: Raised for unknown ids under the strict policy.
            JobStoreError: Raised when persistence fails.
        """

        target_status = JobStatus(status) if status is not None else None
        if result is not None and target_status is not JobStatus.COMPLETED:
            raise ValueError("result can only be set together with status completed")
        if error is not None and target_status is not JobStatus.FAILED:
            raise ValueError("error can only be set together with status failed")

        def _merge(current: JobRecord) -> JobRecord:
            changes: dict[str, Any] = {}
            if target_status is not None and target_status != current.status:
                changes["status"] = target_status
            if current.job_is_terminal() and (changes or result is not None or error is not None):
                raise JobAlreadyTerminalError(
                    f"job {current.job_id} is {current.status.value}; cannot move to {target_status.value}"
                )
            if progress is not None:
                changes["progress"] = progress
            if result is not None:
                changes["result"] = dict(result)
            if error is not None:
                changes["error"] = error
            return replace(current, **changes)

        record = self._db_job_mutate(job_id, _merge, operation="update")
        logger.info("Job updated: %s - status: %s", record.job_id, record.status.value)
        return record

    def db_job_append_log(
        self,
        job_id: str,
        message: str,
        level: JobLogLevel | str = JobLogLevel.INFO,
    ) -> JobRecord:
        """Append one log entry to a job.

        Args:
            job_id: Job token.
            message: Log message.
            level: Severity label.

        Returns:
            JobRecord: Updated record.

        Raises:
            JobNotFoundError: Raised for unknown ids under the strict policy.
            JobStoreError: Raised when persistence fails.
        """

        entry = domain_build_log_entry(message=message, level=level)
        record = self._db_job_mutate(
            job_id,
            lambda current: replace(current, logs=current.logs + (entry,)),
            operation="append_log",
        )
        logger.debug("Log appended to job %s: %s", record.job_id, message)
        return record

    def db_job_complete(self, job_id: str, result: dict[str, Any]) -> JobRecord:
        """Mark a job completed with its result.

        Args:
            job_id: Job token.
            result: JSON-compatible result payload.

        Returns:
            JobRecord: Completed record, or the unchanged record when already terminal.

        Raises:
            JobNotFoundError: Raised for unknown ids under the strict policy.
            JobStoreError: Raised when persistence fails.
        """

        def _complete(current: JobRecord) -> JobRecord:
            if current.job_is_terminal():
                logger.warning("Job %s already %s; completion ignored", current.job_id, current.status.value)
                return current
            return replace(current, status=JobStatus.COMPLETED, result=dict(result), progress=JOB_COMPLETED_PROGRESS)

        record = self._db_job_mutate(job_id, _complete, operation="complete")
        logger.info("Job completed: %s", record.job_id)
        return record

    def db_job_fail(self, job_id: str, error: str | BaseException) -> JobRecord:
        """Mark a job failed with its error message.

        Args:
            job_id: Job token.
            error: Error message or exception.

        Returns:
            JobRecord: Failed record, or the unchanged record when already terminal.

        Raises:
            JobNotFoundError: Raised for unknown ids under the strict policy.
            JobStoreError: Raised when persistence fails.
        """

        error_message = str(error) or type(error).__name__

        def _fail(current: JobRecord) -> JobRecord:
            if current.job_is_terminal():
                logger.warning("Job %s already %s; failure ignored", current.job_id, current.status.value)
                return current
            return replace(current, status=JobStatus.FAILED, error=error_message, progress=JOB_FAILED_PROGRESS)

        record = self._db_job_mutate(job_id, _fail, operation="fail")
        logger.info("Job failed: %s - error: %s", record.job_id, record.error)
        return record

    def db_job_get(self, job_id: str) -> JobRecord | None:
        """Return one job record.

        Args:
            job_id: Job token.

        Returns:
            JobRecord | None: Stored record or None when unknown.

        Raises:
            JobStoreError: Raised when the read fails.
        """

        normalized_job_id = job_id.strip()
        if not normalized_job_id:
            return None
        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    select(scrape_job_table.c.document).where(scrape_job_table.c.job_id == normalized_job_id)
                ).first()
        except SQLAlchemyError as error:
            raise JobStoreError(f"failed to read job {normalized_job_id}") from error
        return None if row is None else self._db_job_from_document(row.document)

    def db_job_list(self) -> list[JobRecord]:
        """Return all tracked jobs ordered by creation time.

        Returns:
            list[JobRecord]: Stored records.

        Raises:
            JobStoreError: Raised when the read fails.
        """

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    select(scrape_job_table.c.document).order_by(
                        scrape_job_table.c.created_at_utc,
                        scrape_job_table.c.job_id,
                    )
                ).all()
        except SQLAlchemyError as error:
            raise JobStoreError("failed to list jobs") from error
        return [self._db_job_from_document(row.document) for row in rows]

    def db_job_purge_older_than(self, max_age: timedelta) -> int:
        """Remove terminal jobs created before now minus `max_age`.

        Pending and running jobs are retained regardless of age.

        Args:
            max_age: Retention window.

        Returns:
            int: Number of removed jobs.

        Raises:
            ValueError: Raised when `max_age` is negative.
            JobStoreError: Raised when the delete fails.
        """

        if max_age < timedelta(0):
            raise ValueError("max_age must be >= 0")

        cutoff = self._clock() - max_age
        terminal_values = [status.value for status in JOB_TERMINAL_STATUSES]
        try:
            with self._engine.begin() as connection:
                candidate_rows = connection.execute(
                    select(scrape_job_table.c.job_id, scrape_job_table.c.document).where(
                        scrape_job_table.c.status.in_(terminal_values)
                    )
                ).all()
                expired_job_ids = [
                    row.job_id
                    for row in candidate_rows
                    if self._db_job_from_document(row.document).created_at_utc < cutoff
                ]
                if expired_job_ids:
                    connection.execute(delete(scrape_job_table).where(scrape_job_table.c.job_id.in_(expired_job_ids)))
        except SQLAlchemyError as error:
            raise JobStoreError("failed to purge expired jobs") from error

        if expired_job_ids:
            logger.info("Purged %s expired jobs", len(expired_job_ids))
        return len(expired_job_ids)

    def _db_job_mutate(
        self,
        job_id: str,
        mutate: Callable[[JobRecord], JobRecord],
        operation: str,
    ) -> JobRecord:
        """Run one atomic read-merge-write cycle for a job.

        Args:
            job_id: Job token.
            mutate: Function producing the new record from the current one.
            operation: Operation label used in logs and errors.

        Returns:
            JobRecord: Record as persisted after the mutation.

        Raises:
            JobNotFoundError: Raised for unknown ids under the strict policy.
            JobStoreError: Raised when persistence fails.
        """

        normalized_job_id = self._db_validate_job_id(job_id)
        with self._db_job_lock(normalized_job_id):
            try:
                with self._engine.begin() as connection:
                    row = self._db_job_select_row(connection, normalized_job_id, for_update=True)
                    if row is None:
                        placeholder = self._db_job_build_placeholder(normalized_job_id, operation)
                        updated = replace(
                            mutate(placeholder),
                            updated_at_utc=self._db_next_timestamp(placeholder.updated_at_utc),
                        )
                        self._db_job_insert_row(connection, updated)
                        return updated

                    current = self._db_job_from_document(row.document)
                    updated = mutate(current)
                    if updated == current:
                        return current
                    updated = replace(updated, updated_at_utc=self._db_next_timestamp(current.updated_at_utc))
                    connection.execute(
                        update(scrape_job_table)
                        .where(scrape_job_table.c.job_id == normalized_job_id)
                        .values(
                            status=updated.status.value,
                            updated_at_utc=updated.updated_at_utc,
                            document=self._db_job_to_document(updated),
                        )
                    )
                    return updated
            except SQLAlchemyError as error:
                raise JobStoreError(f"failed to {operation} job {normalized_job_id}") from error

    def _db_job_build_placeholder(self, job_id: str, operation: str) -> JobRecord:
        """Build a placeholder record for an unknown id or raise under the strict policy."""

        if self._missing_job_policy is MissingJobPolicy.STRICT:
            raise JobNotFoundError(f"job not found: {job_id}")

        logger.warning("Job %s not found for %s; creating placeholder record", job_id, operation)
        now = self._clock()
        return JobRecord(
            job_id=job_id,
            status=JobStatus.PENDING,
            created_at_utc=now,
            updated_at_utc=now,
            progress=f"Placeholder created by {operation}",
            auto_created=True,
        )

    def _db_next_timestamp(self, previous: datetime) -> datetime:
        """Return a mutation timestamp strictly after the previous one."""

        now = self._clock()
        if now <= previous:
            return previous + timedelta(microseconds=1)
        return now

    def _db_job_select_row(self, connection: Connection, job_id: str, for_update: bool = False):
        statement = select(scrape_job_table.c.job_id, scrape_job_table.c.document).where(
            scrape_job_table.c.job_id == job_id
        )
        if for_update and connection.dialect.name != "sqlite":
            statement = statement.with_for_update()
        return connection.execute(statement).first()

    def _db_job_insert_row(self, connection: Connection, record: JobRecord) -> None:
        connection.execute(
            insert(scrape_job_table).values(
                job_id=record.job_id,
                status=record.status.value,
                created_at_utc=record.created_at_utc,
                updated_at_utc=record.updated_at_utc,
                document=self._db_job_to_document(record),
            )
        )

    @contextmanager
    def _db_job_lock(self, job_id: str) -> Iterator[None]:
        """Serialize in-process writers of one job id.

        Entries are reference counted and dropped once the last holder leaves.
        """

        with self._job_locks_guard:
            lock_entry = self._job_locks.get(job_id)
            if lock_entry is None:
                lock_entry = self._job_locks[job_id] = _JobLockEntry()
            lock_entry.holders += 1
        try:
            with lock_entry.lock:
                yield
        finally:
            with self._job_locks_guard:
                lock_entry.holders -= 1
                if lock_entry.holders == 0:
                    del self._job_locks[job_id]

    def _db_validate_job_id(self, job_id: str) -> str:
        normalized_job_id = job_id.strip() if isinstance(job_id, str) else ""
        if not normalized_job_id:
            raise ValueError("job_id must not be blank")
        return normalized_job_id

    def _db_job_to_document(self, record: JobRecord) -> dict[str, Any]:
        """Serialize a record into its persisted JSON document."""

        return {
            "jobId": record.job_id,
            "callbackUrl": record.callback_target,
            "status": record.status.value,
            "createdAt": record.created_at_utc.isoformat(),
            "updatedAt": record.updated_at_utc.isoformat(),
            "progress": record.progress,
            "logs": [
                {"timestamp": entry.timestamp, "level": entry.level, "message": entry.message}
                for entry in record.logs
            ],
            "result": record.result,
            "error": record.error,
            "autoCreated": record.auto_created,
        }

    def _db_job_from_document(self, document: dict[str, Any]) -> JobRecord:
        """Rebuild a record from its persisted JSON document."""

        return JobRecord(
            job_id=str(document["jobId"]),
            status=JobStatus(document["status"]),
            created_at_utc=_db_parse_timestamp(document["createdAt"]),
            updated_at_utc=_db_parse_timestamp(document["updatedAt"]),
            progress=str(document.get("progress") or ""),
            logs=tuple(
                JobLogEntry(timestamp=entry["timestamp"], level=entry["level"], message=entry["message"])
                for entry in document.get("logs") or []
            ),
            result=document.get("result"),
            error=document.get("error"),
            callback_target=document.get("callbackUrl"),
            auto_created=bool(document.get("autoCreated", False)),
        )


def _db_parse_timestamp(value: str) -> datetime:
    parsed_value = datetime.fromisoformat(value)
    if parsed_value.tzinfo is None:
        return parsed_value.replace(tzinfo=timezone.utc)
    return parsed_value
