"""Job-layer extraction batch walking all units of one job."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from boxsync.domain import UnitDefinition, UnitReport, UnitReportStatus

from .session_guard import SessionGuard
from .unit_processor import UnitProcessor

logger = logging.getLogger(__name__)

UnitStartedHook = Callable[[int, int, UnitDefinition], None]
UnitFinishedHook = Callable[[int, int, UnitReport], None]


@dataclass(frozen=True)
class ExtractionBatchResult:
    """Aggregated outcome of one extraction batch.

    Attributes:
        unit_reports: Reports in unit submission order.
        total_records: Sum of record counts of successful units.
        successful_units: Display names of successful units.
        failed_units: Display names of failed units.
    """

    unit_reports: tuple[UnitReport, ...]
    total_records: int
    successful_units: tuple[str, ...]
    failed_units: tuple[str, ...]

    def batch_summary(self) -> str:
        """Return a one-line human summary of the batch.

        Returns:
            str: Summary text.
        """

        return (
            f"{self.total_records} boxes extracted from {len(self.successful_units)} of "
            f"{len(self.unit_reports)} units"
        )


def job_extraction_run_batch(
    units: Sequence[UnitDefinition],
    session_guard: SessionGuard,
    unit_processor: UnitProcessor,
    on_unit_started: UnitStartedHook | None = None,
    on_unit_finished: UnitFinishedHook | None = None,
) -> ExtractionBatchResult:
    """Authenticate once, then process every unit in submitted order.

    Args:
        units: Units to process.
        session_guard: Guard of the adapter session.
        unit_processor: Processor handling one unit at a time.
        on_unit_started: Optional hook called with (index, total, unit) before each unit.
        on_unit_finished: Optional hook called with (index, total, report) after each unit.

    Returns:
        ExtractionBatchResult: Aggregated batch outcome.

    Raises:
        SessionUnavailableError: Raised when the service cannot be authenticated against.
    """

    session_guard.job_session_login()

    total_units = len(units)
    unit_reports: list[UnitReport] = []
    for index, unit in enumerate(units, start=1):
        if on_unit_started is not None:
            on_unit_started(index, total_units, unit)
        report = unit_processor.job_unit_process(unit)
        unit_reports.append(report)
        logger.info(
            "Unit %s/%s %s finished: %s (%s records)",
            index,
            total_units,
            unit.display_name,
            report.status.value,
            report.record_count,
        )
        if on_unit_finished is not None:
            on_unit_finished(index, total_units, report)

    successful_reports = [report for report in unit_reports if report.status is UnitReportStatus.SUCCESS]
    return ExtractionBatchResult(
        unit_reports=tuple(unit_reports),
        total_records=sum(report.record_count for report in successful_reports),
        successful_units=tuple(report.unit_name for report in successful_reports),
        failed_units=tuple(
            report.unit_name for report in unit_reports if report.status is UnitReportStatus.FAILED
        ),
    )
