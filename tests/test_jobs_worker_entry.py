"""Tests for the worker body recording job outcomes and callbacks."""

from __future__ import annotations

from boxsync.adapters import AdapterAuthenticationError
from boxsync.db import SQLAlchemyJobStore
from boxsync.domain import JobStatus, UnitDefinition
from boxsync.jobs import WorkerDependencies, job_worker_execute
from conftest import RecordingDelivery, RecordingSink, ScriptedAdapter

CALLBACK_URL = "https://example.test/hook"


def _jobs_build_dependencies(
    job_store: SQLAlchemyJobStore,
    adapter: ScriptedAdapter,
    units: tuple[UnitDefinition, ...],
    delivery: RecordingDelivery,
    progress_callbacks_enabled: bool = False,
    data_sink: RecordingSink | None = None,
) -> WorkerDependencies:
    return WorkerDependencies(
        job_store=job_store,
        data_sink=data_sink or RecordingSink(),
        adapter=adapter,
        callback_delivery=delivery,
        units=units,
        unit_max_attempts=2,
        unit_retry_backoff_seconds=0.0,
        progress_callbacks_enabled=progress_callbacks_enabled,
        sleep=lambda seconds: None,
    )


def test_jobs_worker_completes_job_and_sends_success_callback(
    job_store: SQLAlchemyJobStore,
    three_units: tuple[UnitDefinition, ...],
) -> None:
    """Complete the job with aggregated totals and notify the callback target.

    Args:
        job_store: Opened job store fixture.
        three_units: Three active units.

    Returns:
        None: Assertions validate stored result and callback payload.

    Raises:
        AssertionError: Raised when the job outcome is not recorded.
    """

    adapter = ScriptedAdapter(
        pages_by_unit={
            "Unit One": [["A-1", "A-2"]],
            "Unit Two": [["B-1"]],
            "Unit Three": [["C-1"], ["C-2"]],
        },
        selection_failures={"Unit Two": -1},
    )
    delivery = RecordingDelivery()
    job_store.db_job_create("job-1", callback_target=CALLBACK_URL)

    record = job_worker_execute(
        job_id="job-1",
        callback_target=CALLBACK_URL,
        dependencies=_jobs_build_dependencies(job_store, adapter, three_units, delivery),
    )

    assert record.status is JobStatus.COMPLETED
    assert record.result["totalBoxes"] == 4
    assert record.result["unitsProcessed"] == 3
    assert record.result["failedUnits"] == ["Unit Two"]
    assert [report["status"] for report in record.result["unitReports"]] == ["success", "failed", "success"]
    assert adapter.opened is True
    assert adapter.closed is True

    assert len(delivery.sent) == 1
    url, payload = delivery.sent[0]
    assert url == CALLBACK_URL
    assert payload["status"] == "success"
    assert payload["jobId"] == "job-1"
    assert payload["data"]["totalBoxes"] == 4
    assert payload["data"]["unitsProcessed"] == 3

    stored = job_store.db_job_get("job-1")
    assert stored.status is JobStatus.COMPLETED
    assert stored.logs[-1].message == "Callback delivered after 1 attempt(s)"


def test_jobs_worker_records_failure_when_authentication_fails(
    job_store: SQLAlchemyJobStore,
    three_units: tuple[UnitDefinition, ...],
) -> None:
    adapter = ScriptedAdapter(
        pages_by_unit={},
        authenticated=False,
        login_error=AdapterAuthenticationError("invalid credentials", stage="login"),
    )
    delivery = RecordingDelivery()
    job_store.db_job_create("job-1", callback_target=CALLBACK_URL)

    record = job_worker_execute(
        job_id="job-1",
        callback_target=CALLBACK_URL,
        dependencies=_jobs_build_dependencies(job_store, adapter, three_units, delivery),
    )

    assert record.status is JobStatus.FAILED
    assert "invalid credentials" in record.error
    assert record.result is None
    assert adapter.closed is True
    _, payload = delivery.sent[0]
    assert payload["status"] == "error"
    assert payload["error"]["type"] == "SessionUnavailableError"
    assert any(entry.level == "error" for entry in job_store.db_job_get("job-1").logs)


def test_jobs_worker_without_callback_target_sends_nothing(
    job_store: SQLAlchemyJobStore,
    three_units: tuple[UnitDefinition, ...],
) -> None:
    adapter = ScriptedAdapter(pages_by_unit={"Unit One": [["A-1"]], "Unit Two": [[]], "Unit Three": [[]]})
    delivery = RecordingDelivery()
    job_store.db_job_create("job-1", callback_target=None)

    record = job_worker_execute(
        job_id="job-1",
        callback_target=None,
        dependencies=_jobs_build_dependencies(job_store, adapter, three_units, delivery),
    )

    assert record.status is JobStatus.COMPLETED
    assert delivery.sent == []


def test_jobs_worker_logs_failed_callback_delivery(
    job_store: SQLAlchemyJobStore,
    three_units: tuple[UnitDefinition, ...],
) -> None:
    adapter = ScriptedAdapter(pages_by_unit={"Unit One": [["A-1"]], "Unit Two": [[]], "Unit Three": [[]]})
    job_store.db_job_create("job-1", callback_target=CALLBACK_URL)

    record = job_worker_execute(
        job_id="job-1",
        callback_target=CALLBACK_URL,
        dependencies=_jobs_build_dependencies(job_store, adapter, three_units, RecordingDelivery(success=False)),
    )

    assert record.status is JobStatus.COMPLETED
    last_entry = job_store.db_job_get("job-1").logs[-1]
    assert last_entry.level == "warning"
    assert last_entry.message == "Callback delivery failed after 4 attempt(s)"


def test_jobs_worker_sends_progress_callbacks_when_enabled(
    job_store: SQLAlchemyJobStore,
    three_units: tuple[UnitDefinition, ...],
) -> None:
    adapter = ScriptedAdapter(pages_by_unit={"Unit One": [["A-1"]], "Unit Two": [["B-1"]], "Unit Three": [[]]})
    delivery = RecordingDelivery()
    job_store.db_job_create("job-1", callback_target=CALLBACK_URL)

    job_worker_execute(
        job_id="job-1",
        callback_target=CALLBACK_URL,
        dependencies=_jobs_build_dependencies(
            job_store,
            adapter,
            three_units,
            delivery,
            progress_callbacks_enabled=True,
        ),
    )

    statuses = [payload["status"] for _, payload in delivery.sent]
    assert statuses == ["progress", "progress", "progress", "success"]
    assert delivery.sent[-2][1]["progress"]["percentage"] == 100


def test_jobs_worker_stops_quietly_when_job_was_cancelled(
    job_store: SQLAlchemyJobStore,
    three_units: tuple[UnitDefinition, ...],
) -> None:
    adapter = ScriptedAdapter(pages_by_unit={"Unit One": [["A-1"]], "Unit Two": [[]], "Unit Three": [[]]})
    delivery = RecordingDelivery()
    job_store.db_job_create("job-1", callback_target=CALLBACK_URL)
    job_store.db_job_fail("job-1", "Job cancelled by caller")

    record = job_worker_execute(
        job_id="job-1",
        callback_target=CALLBACK_URL,
        dependencies=_jobs_build_dependencies(job_store, adapter, three_units, delivery),
    )

    assert record.status is JobStatus.FAILED
    assert record.error == "Job cancelled by caller"
    assert delivery.sent == []
    assert adapter.closed is True


class _CancellingSink(RecordingSink):
    """Sink that cancels the job as soon as the first unit is stored."""

    def __init__(self, job_store: SQLAlchemyJobStore):
        super().__init__()
        self._job_store = job_store

    def sink_insert_records(self, records):
        inserted = super().sink_insert_records(records)
        if len(self.operations) == 2:
            self._job_store.db_job_fail("job-1", "Job cancelled by caller")
        return inserted


def test_jobs_worker_cancelled_mid_run_stops_batch_without_success_callback(
    job_store: SQLAlchemyJobStore,
    three_units: tuple[UnitDefinition, ...],
) -> None:
    """Stop after the unit in flight when the job is cancelled during the run.

    Args:
        job_store: Opened job store fixture.
        three_units: Three active units.

    Returns:
        None: Assertions validate the cancellation survives and no callback is sent.

    Raises:
        AssertionError: Raised when the worker keeps going or reports success.
    """

    adapter = ScriptedAdapter(pages_by_unit={"Unit One": [["A-1"]], "Unit Two": [["B-1"]], "Unit Three": [["C-1"]]})
    delivery = RecordingDelivery()
    sink = _CancellingSink(job_store)
    job_store.db_job_create("job-1", callback_target=CALLBACK_URL)

    record = job_worker_execute(
        job_id="job-1",
        callback_target=CALLBACK_URL,
        dependencies=_jobs_build_dependencies(job_store, adapter, three_units, delivery, data_sink=sink),
    )

    stored = job_store.db_job_get("job-1")
    assert record.status is JobStatus.FAILED
    assert stored.status is JobStatus.FAILED
    assert stored.error == "Job cancelled by caller"
    assert stored.result is None
    assert delivery.sent == []
    assert "select:Unit One" in adapter.calls
    assert "select:Unit Two" not in adapter.calls
    assert adapter.closed is True
