"""Worker-side entry point running one job inside its own process.

The supervisor only ever sees the started signal sent over the pipe; every
other piece of lifecycle state is written to the job store by this module.
"""

from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass
from multiprocessing.connection import Connection
from typing import Any, Callable

from boxsync.adapters import ExtractionAdapterPort
from boxsync.db import DataSinkPort, JobAlreadyTerminalError, JobStorePort
from boxsync.delivery import (
    CallbackDeliveryPort,
    delivery_build_error_payload,
    delivery_build_progress_payload,
    delivery_build_success_payload,
)
from boxsync.domain import (
    JobLogLevel,
    JobRecord,
    JobStatus,
    UnitDefinition,
    UnitReport,
    domain_utc_now,
)

from .extraction_batch import ExtractionBatchResult, job_extraction_run_batch
from .session_guard import SessionGuard
from .unit_processor import UnitProcessor

logger = logging.getLogger(__name__)

WORKER_STARTED_SIGNAL = "started"


@dataclass
class WorkerDependencies:
    """Collaborators one worker process builds for its job.

    Attributes:
        job_store: Job lifecycle store.
        data_sink: Destination of extracted records.
        adapter: Extraction adapter, opened and closed by the worker.
        callback_delivery: Outbound callback service.
        units: Units to process, in order.
        unit_max_attempts: Attempts per unit.
        unit_retry_backoff_seconds: Delay between unit attempts.
        unit_max_pages: Pagination cap per unit.
        progress_callbacks_enabled: Whether per-unit progress callbacks are sent.
        sleep: Optional sleep function for unit backoff.
    """

    job_store: JobStorePort
    data_sink: DataSinkPort
    adapter: ExtractionAdapterPort
    callback_delivery: CallbackDeliveryPort
    units: tuple[UnitDefinition, ...]
    unit_max_attempts: int = 2
    unit_retry_backoff_seconds: float = 5.0
    unit_max_pages: int = 50
    progress_callbacks_enabled: bool = False
    sleep: Callable[[float], None] | None = None


WorkerDependencyFactory = Callable[[], WorkerDependencies]


def job_worker_process_main(
    job_id: str,
    callback_target: str | None,
    started_connection: Connection,
    dependency_factory: WorkerDependencyFactory,
) -> None:
    """Process target of one worker.

    Sends the started signal, builds dependencies and runs the job. The
    process exits with code 1 only when the job outcome could not be stored.

    Args:
        job_id: Job token.
        callback_target: Callback URL or None.
        started_connection: Sending end of the started-signal pipe.
        dependency_factory: Picklable factory building the worker dependencies.
    """

    try:
        started_connection.send({"type": WORKER_STARTED_SIGNAL, "job_id": job_id})
    finally:
        started_connection.close()

    try:
        dependencies = dependency_factory()
    except Exception:
        logger.exception("Worker for job %s could not build its dependencies", job_id)
        sys.exit(1)

    try:
        job_worker_execute(job_id=job_id, callback_target=callback_target, dependencies=dependencies)
    except Exception:
        logger.exception("Worker for job %s could not record its outcome", job_id)
        sys.exit(1)
    finally:
        dependencies.job_store.store_close()


def job_worker_execute(
    job_id: str,
    callback_target: str | None,
    dependencies: WorkerDependencies,
    monotonic: Callable[[], float] | None = None,
) -> JobRecord:
    """Run the extraction batch of one job and record its outcome.

    Any exception raised by the job body is caught here, written to the job
    store as a failure and reported through the error callback.

    Args:
        job_id: Job token.
        callback_target: Callback URL or None.
        dependencies: Worker collaborators.
        monotonic: Optional monotonic clock, used by tests.

    Returns:
        JobRecord: Terminal job record.

    Raises:
        JobStoreError: Raised when even the failure cannot be stored.
    """

    clock = monotonic or time.monotonic
    started_at = clock()
    job_store = dependencies.job_store
    adapter = dependencies.adapter

    try:
        job_store.db_job_update(job_id, status=JobStatus.RUNNING, progress="Starting extraction")
        job_store.db_job_append_log(job_id, f"Worker started with {len(dependencies.units)} units queued")

        adapter.adapter_open()
        session_guard = SessionGuard(adapter)
        unit_processor = UnitProcessor(
            adapter=adapter,
            session_guard=session_guard,
            data_sink=dependencies.data_sink,
            max_attempts=dependencies.unit_max_attempts,
            retry_backoff_seconds=dependencies.unit_retry_backoff_seconds,
            max_pages=dependencies.unit_max_pages,
            sleep=dependencies.sleep,
        )
        progress_reporter = _WorkerProgressReporter(job_id, callback_target, dependencies)
        batch_result = job_extraction_run_batch(
            units=dependencies.units,
            session_guard=session_guard,
            unit_processor=unit_processor,
            on_unit_started=progress_reporter.worker_unit_started,
            on_unit_finished=progress_reporter.worker_unit_finished,
        )
        processing_time_seconds = clock() - started_at
        return _job_worker_complete(job_id, callback_target, dependencies, batch_result, processing_time_seconds)
    except JobAlreadyTerminalError:
        logger.warning("Job %s was finalized elsewhere; worker stops", job_id)
        return job_store.db_job_get(job_id)
    except Exception as error:
        logger.exception("Job %s failed", job_id)
        return _job_worker_fail(job_id, callback_target, dependencies, error)
    finally:
        try:
            adapter.adapter_close()
        except Exception:
            logger.warning("Adapter close failed for job %s", job_id, exc_info=True)


def job_worker_build_result(
    batch_result: ExtractionBatchResult,
    processing_time_seconds: float,
    logs: list[dict[str, str]],
) -> dict[str, Any]:
    """Build the stored result payload of a completed job.

    Args:
        batch_result: Extraction batch outcome.
        processing_time_seconds: Job duration.
        logs: Job log entries as payload dicts.

    Returns:
        dict[str, Any]: JSON-compatible result.
    """

    return {
        "summary": batch_result.batch_summary(),
        "totalBoxes": batch_result.total_records,
        "unitsProcessed": len(batch_result.unit_reports),
        "successfulUnits": list(batch_result.successful_units),
        "failedUnits": list(batch_result.failed_units),
        "unitReports": [report.unit_report_payload() for report in batch_result.unit_reports],
        "processingTime": round(processing_time_seconds, 3),
        "logs": logs,
        "extractedAt": domain_utc_now().isoformat(),
    }


def _job_worker_complete(
    job_id: str,
    callback_target: str | None,
    dependencies: WorkerDependencies,
    batch_result: ExtractionBatchResult,
    processing_time_seconds: float,
) -> JobRecord:
    job_store = dependencies.job_store
    running_record = job_store.db_job_append_log(
        job_id,
        f"Extraction finished: {batch_result.batch_summary()} in {processing_time_seconds:.1f}s",
    )
    log_payload = [
        {"timestamp": entry.timestamp, "level": entry.level, "message": entry.message}
        for entry in running_record.logs
    ]
    completed_record = job_store.db_job_complete(
        job_id,
        job_worker_build_result(batch_result, processing_time_seconds, log_payload),
    )
    if completed_record.status is not JobStatus.COMPLETED:
        logger.warning("Job %s ended as %s before its results were stored", job_id, completed_record.status.value)
        return completed_record

    if callback_target:
        delivery_result = dependencies.callback_delivery.delivery_send(
            callback_target,
            delivery_build_success_payload(
                job_id=job_id,
                summary=batch_result.batch_summary(),
                total_boxes=batch_result.total_records,
                units_processed=len(batch_result.unit_reports),
                processing_time_seconds=processing_time_seconds,
                logs=running_record.logs,
                extra_data={
                    "successfulUnits": list(batch_result.successful_units),
                    "failedUnits": list(batch_result.failed_units),
                    "unitReports": [report.unit_report_payload() for report in batch_result.unit_reports],
                },
            ),
        )
        _job_worker_log_delivery(job_store, job_id, delivery_result.success, delivery_result.attempts)
    return completed_record


def _job_worker_fail(
    job_id: str,
    callback_target: str | None,
    dependencies: WorkerDependencies,
    error: Exception,
) -> JobRecord:
    job_store = dependencies.job_store
    job_store.db_job_append_log(job_id, f"Extraction failed: {error}", level=JobLogLevel.ERROR)
    failed_record = job_store.db_job_fail(job_id, error)

    if callback_target:
        delivery_result = dependencies.callback_delivery.delivery_send(
            callback_target,
            delivery_build_error_payload(job_id=job_id, error=error, logs=failed_record.logs),
        )
        _job_worker_log_delivery(job_store, job_id, delivery_result.success, delivery_result.attempts)
    return failed_record


def _job_worker_log_delivery(job_store: JobStorePort, job_id: str, success: bool, attempts: int) -> None:
    if success:
        job_store.db_job_append_log(job_id, f"Callback delivered after {attempts} attempt(s)")
    else:
        job_store.db_job_append_log(
            job_id,
            f"Callback delivery failed after {attempts} attempt(s)",
            level=JobLogLevel.WARNING,
        )


class _WorkerProgressReporter:
    """Writes per-unit progress to the store and optional progress callbacks."""

    def __init__(self, job_id: str, callback_target: str | None, dependencies: WorkerDependencies):
        self._job_id = job_id
        self._callback_target = callback_target
        self._dependencies = dependencies

    def worker_unit_started(self, index: int, total_units: int, unit: UnitDefinition) -> None:
        message = f"Processing unit {unit.display_name} ({index}/{total_units})"
        self._worker_store_progress(message)
        self._dependencies.job_store.db_job_append_log(self._job_id, message)

    def worker_unit_finished(self, index: int, total_units: int, report: UnitReport) -> None:
        job_store = self._dependencies.job_store
        if report.error_message:
            job_store.db_job_append_log(
                self._job_id,
                f"Unit {report.unit_name} failed after {report.attempts} attempt(s): {report.error_message}",
                level=JobLogLevel.WARNING,
            )
        else:
            job_store.db_job_append_log(
                self._job_id,
                f"Unit {report.unit_name} stored {report.record_count} boxes in {report.elapsed_ms} ms",
            )

        message = f"Processed {index}/{total_units} units"
        self._worker_store_progress(message)
        if self._dependencies.progress_callbacks_enabled and self._callback_target:
            self._dependencies.callback_delivery.delivery_send(
                self._callback_target,
                delivery_build_progress_payload(
                    job_id=self._job_id,
                    message=message,
                    current_unit=index,
                    total_units=total_units,
                ),
            )

    def _worker_store_progress(self, message: str) -> None:
        """Store progress text and stop the batch once the job was finalized elsewhere.

        Raises:
            JobAlreadyTerminalError: Raised when the job is already completed or failed.
        """

        record = self._dependencies.job_store.db_job_update(self._job_id, progress=message)
        if record.job_is_terminal():
            raise JobAlreadyTerminalError(f"job {self._job_id} is already {record.status.value}")
