"""Per-unit extraction with bounded retries, pagination and sink flush."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable

from boxsync.adapters import ExtractionAdapterError, ExtractionAdapterPort
from boxsync.db import DataSinkError, DataSinkPort
from boxsync.domain import BoxRecord, UnitDefinition, UnitReport, UnitReportStatus

from .session_guard import SessionGuard, SessionUnavailableError

logger = logging.getLogger(__name__)


class UnitExtractionError(RuntimeError):
    """Raised when one attempt at a unit fails; contained by the processor."""


class UnitProcessingState(str, Enum):
    """Processing states of one unit."""

    PENDING = "pending"
    SELECTING = "selecting"
    EXTRACTING = "extracting"
    SUCCESS = "success"
    FAILED = "failed"


class UnitProcessor:
    """Processes units one at a time against a single adapter session.

    The "filters applied" flag lives for the whole job run and is cleared
    whenever the session guard reports a re-login.
    """

    def __init__(
        self,
        adapter: ExtractionAdapterPort,
        session_guard: SessionGuard,
        data_sink: DataSinkPort,
        max_attempts: int = 2,
        retry_backoff_seconds: float = 5.0,
        max_pages: int = 50,
        sleep: Callable[[float], None] | None = None,
        monotonic: Callable[[], float] | None = None,
    ):
        """Initialize unit processor.

        Args:
            adapter: Extraction adapter.
            session_guard: Guard used before each attempt.
            data_sink: Destination of extracted records.
            max_attempts: Attempts per unit.
            retry_backoff_seconds: Fixed delay between attempts.
            max_pages: Pagination safety cap.
            sleep: Optional sleep function, used by tests.
            monotonic: Optional monotonic clock, used by tests.

        Raises:
            ValueError: Raised when dependencies or limits are invalid.
        """

        if adapter is None:
            raise ValueError("adapter must not be None")
        if session_guard is None:
            raise ValueError("session_guard must not be None")
        if data_sink is None:
            raise ValueError("data_sink must not be None")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be >= 0")
        if max_pages < 1:
            raise ValueError("max_pages must be >= 1")

        self._adapter = adapter
        self._session_guard = session_guard
        self._data_sink = data_sink
        self._max_attempts = max_attempts
        self._retry_backoff_seconds = retry_backoff_seconds
        self._max_pages = max_pages
        self._sleep = sleep or time.sleep
        self._monotonic = monotonic or time.monotonic
        self._filters_applied = False

    @property
    def filters_applied(self) -> bool:
        return self._filters_applied

    def job_unit_process(self, unit: UnitDefinition) -> UnitReport:
        """Process one unit with retries and return its report.

        Unit failures never raise; they are recorded in the returned report.

        Args:
            unit: Unit to process.

        Returns:
            UnitReport: Success report with flushed record count, or failed report.

        Raises:
            SessionUnavailableError: Raised when the re-login fails on the last attempt.
        """

        started_at = self._monotonic()
        last_error: Exception | None = None
        self._job_unit_transition(unit, UnitProcessingState.PENDING)

        for attempt in range(1, self._max_attempts + 1):
            try:
                if self._session_guard.job_session_ensure_authenticated():
                    self._filters_applied = False
                record_count = self._job_unit_run_attempt(unit)
            except SessionUnavailableError as error:
                if attempt == self._max_attempts:
                    raise
                last_error = error
                logger.warning(
                    "Unit %s attempt %s/%s could not log in: %s",
                    unit.display_name,
                    attempt,
                    self._max_attempts,
                    error,
                )
                if self._retry_backoff_seconds > 0:
                    self._sleep(self._retry_backoff_seconds)
                continue
            except UnitExtractionError as error:
                last_error = error
                logger.warning(
                    "Unit %s attempt %s/%s failed: %s",
                    unit.display_name,
                    attempt,
                    self._max_attempts,
                    error,
                )
                if attempt < self._max_attempts and self._retry_backoff_seconds > 0:
                    self._sleep(self._retry_backoff_seconds)
                continue

            self._job_unit_transition(unit, UnitProcessingState.SUCCESS)
            return UnitReport(
                unit_id=unit.unit_id,
                unit_name=unit.display_name,
                record_count=record_count,
                elapsed_ms=self._job_unit_elapsed_ms(started_at),
                attempts=attempt,
                status=UnitReportStatus.SUCCESS,
            )

        self._job_unit_transition(unit, UnitProcessingState.FAILED)
        logger.error("Unit %s failed after %s attempts", unit.display_name, self._max_attempts)
        return UnitReport(
            unit_id=unit.unit_id,
            unit_name=unit.display_name,
            record_count=0,
            elapsed_ms=self._job_unit_elapsed_ms(started_at),
            attempts=self._max_attempts,
            status=UnitReportStatus.FAILED,
            error_message=str(last_error) if last_error is not None else "unit processing failed",
        )

    def _job_unit_run_attempt(self, unit: UnitDefinition) -> int:
        """Run one select-extract-flush attempt.

        Returns:
            int: Number of records written to the sink.

        Raises:
            UnitExtractionError: Raised when selection, the first page or the flush fails.
        """

        self._job_unit_transition(unit, UnitProcessingState.SELECTING)
        try:
            self._adapter.adapter_select_unit(unit)
            if not self._filters_applied:
                self._adapter.adapter_apply_filters()
                self._filters_applied = True
        except ExtractionAdapterError as error:
            raise UnitExtractionError(f"selection failed: {error}") from error

        records = self._job_unit_collect_pages(unit)

        try:
            self._data_sink.sink_clear_by_unit(unit.display_name)
            return self._data_sink.sink_insert_records(records)
        except DataSinkError as error:
            raise UnitExtractionError(f"data sink flush failed: {error}") from error

    def _job_unit_collect_pages(self, unit: UnitDefinition) -> list[BoxRecord]:
        """Walk the pagination of the selected unit.

        A failure on a later page stops pagination and keeps the pages already
        gathered; a failure on the first page fails the attempt.
        """

        records: list[BoxRecord] = []
        for page_number in range(1, self._max_pages + 1):
            self._job_unit_transition(unit, UnitProcessingState.EXTRACTING, page_number)
            try:
                records.extend(self._adapter.adapter_extract_page(unit))
                if not self._adapter.adapter_has_next_page():
                    break
                self._adapter.adapter_goto_next_page()
            except ExtractionAdapterError as error:
                if page_number == 1 and not records:
                    raise UnitExtractionError(f"extraction failed: {error}") from error
                logger.warning(
                    "Unit %s pagination stopped at page %s: %s",
                    unit.display_name,
                    page_number,
                    error,
                )
                break
        else:
            logger.warning("Unit %s reached the page cap of %s", unit.display_name, self._max_pages)
        return records

    def _job_unit_transition(
        self,
        unit: UnitDefinition,
        state: UnitProcessingState,
        page_number: int | None = None,
    ) -> None:
        if page_number is None:
            logger.debug("Unit %s -> %s", unit.display_name, state.value)
        else:
            logger.debug("Unit %s -> %s(page=%s)", unit.display_name, state.value, page_number)

    def _job_unit_elapsed_ms(self, started_at: float) -> int:
        return int((self._monotonic() - started_at) * 1000)
