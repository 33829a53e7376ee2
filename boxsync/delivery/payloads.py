"""Builders for the callback payload shapes sent to job submitters."""

from __future__ import annotations

from typing import Any, Sequence

from boxsync.domain import JobLogEntry, domain_utc_now

CALLBACK_STATUS_SUCCESS = "success"
CALLBACK_STATUS_ERROR = "error"
CALLBACK_STATUS_PROGRESS = "progress"


def _delivery_log_payload(logs: Sequence[JobLogEntry]) -> list[dict[str, str]]:
    return [{"timestamp": entry.timestamp, "level": entry.level, "message": entry.message} for entry in logs]


def delivery_build_success_payload(
    job_id: str,
    summary: str,
    total_boxes: int,
    units_processed: int,
    processing_time_seconds: float,
    logs: Sequence[JobLogEntry] = (),
    extra_data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the payload announcing a completed job.

    Args:
        job_id: Job token.
        summary: Human-readable result summary.
        total_boxes: Number of records stored across all units.
        units_processed: Number of units walked by the job.
        processing_time_seconds: Job wall-clock duration.
        logs: Job log entries to include.
        extra_data: Additional result fields merged into `data`.

    Returns:
        dict[str, Any]: Success payload.
    """

    data: dict[str, Any] = {
        "summary": summary,
        "totalBoxes": total_boxes,
        "unitsProcessed": units_processed,
        "processingTime": round(processing_time_seconds, 3),
        "logs": _delivery_log_payload(logs),
    }
    if extra_data:
        data.update(extra_data)
    return {
        "jobId": job_id,
        "status": CALLBACK_STATUS_SUCCESS,
        "timestamp": domain_utc_now().isoformat(),
        "data": data,
    }


def delivery_build_error_payload(
    job_id: str,
    error: str | BaseException,
    logs: Sequence[JobLogEntry] = (),
    error_type: str | None = None,
) -> dict[str, Any]:
    """Build the payload announcing a failed job.

    Args:
        job_id: Job token.
        error: Error message or exception.
        logs: Job log excerpt.
        error_type: Error type label; derived from the exception class when omitted.

    Returns:
        dict[str, Any]: Error payload.
    """

    if isinstance(error, BaseException):
        message = str(error) or type(error).__name__
        resolved_type = error_type or type(error).__name__
    else:
        message = str(error)
        resolved_type = error_type or "Error"
    return {
        "jobId": job_id,
        "status": CALLBACK_STATUS_ERROR,
        "timestamp": domain_utc_now().isoformat(),
        "error": {
            "message": message,
            "type": resolved_type,
            "logs": _delivery_log_payload(logs),
        },
    }


def delivery_build_progress_payload(
    job_id: str,
    message: str,
    current_unit: int,
    total_units: int,
) -> dict[str, Any]:
    """Build one intermediate progress payload.

    Args:
        job_id: Job token.
        message: Progress message.
        current_unit: Number of units processed so far.
        total_units: Total number of units in the batch.

    Returns:
        dict[str, Any]: Progress payload with an integer percentage.
    """

    percentage = round(current_unit / total_units * 100) if total_units > 0 else 0
    return {
        "jobId": job_id,
        "status": CALLBACK_STATUS_PROGRESS,
        "timestamp": domain_utc_now().isoformat(),
        "progress": {
            "message": message,
            "percentage": percentage,
            "currentUnit": current_unit,
            "totalUnits": total_units,
        },
    }
