"""Typed domain models shared across runtime layers.

This module provides the job lifecycle record, unit catalog entries and
per-unit reports exchanged between the job store, the worker body and the API
surface.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
    """Lifecycle status values for one extraction job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


JOB_TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class JobLogLevel(str, Enum):
    """Severity labels stored with job log entries."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class UnitReportStatus(str, Enum):
    """Final outcome of one processed unit."""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class HealthStatus:
    """Health response contract used by health-check surfaces.

    Attributes:
        status: Overall status text for service health.
        detail: Additional message suitable for operational diagnostics.
    """

    status: str
    detail: str


@dataclass(frozen=True)
class JobLogEntry:
    """One append-only job log line.

    Attributes:
        timestamp: ISO-8601 UTC timestamp of the entry.
        level: Severity label.
        message: Human-readable message.
    """

    timestamp: str
    level: str
    message: str


@dataclass(frozen=True)
class JobRecord:
    """Canonical job lifecycle record owned by the job store.

    Attributes:
        job_id: Opaque unique token assigned at creation.
        status: Current lifecycle status.
        created_at_utc: Creation timestamp in UTC.
        updated_at_utc: Last mutation timestamp in UTC.
        progress: Free-text description of the current activity.
        logs: Ordered append-only log entries.
        result: Result payload, populated on completion.
        error: Error message, populated on failure.
        callback_target: Write-once callback URL, never exposed publicly.
        auto_created: Whether the record was created as a placeholder by a mutation.
    """

    job_id: str
    status: JobStatus
    created_at_utc: datetime
    updated_at_utc: datetime
    progress: str = ""
    logs: tuple[JobLogEntry, ...] = ()
    result: dict[str, Any] | None = None
    error: str | None = None
    callback_target: str | None = None
    auto_created: bool = False

    def job_is_terminal(self) -> bool:
        """Return whether the job reached a terminal status.

        Returns:
            bool: True for `completed` and `failed` jobs.
        """

        return domain_job_status_is_terminal(self.status)


@dataclass(frozen=True)
class UnitDefinition:
    """One named sub-target processed inside a job batch.

    Attributes:
        unit_id: Stable unit identifier.
        display_name: Human-readable name, also used as the Data Sink locality key.
        active: Whether the unit participates in extraction runs.
    """

    unit_id: str
    display_name: str
    active: bool = True


@dataclass(frozen=True)
class UnitReport:
    """Outcome report for one processed unit.

    Attributes:
        unit_id: Unit identifier.
        unit_name: Unit display name.
        record_count: Number of records flushed to the Data Sink.
        elapsed_ms: Wall-clock processing time across all attempts.
        attempts: Number of attempts made.
        status: Final unit outcome.
        error_message: Last error message when the unit failed.
    """

    unit_id: str
    unit_name: str
    record_count: int
    elapsed_ms: int
    attempts: int
    status: UnitReportStatus
    error_message: str | None = None

    def unit_report_payload(self) -> dict[str, object]:
        """Serialize the report to a JSON-compatible payload.

        Returns:
            dict[str, object]: Report payload with camelCase keys.
        """

        return {
            "unitId": self.unit_id,
            "unitName": self.unit_name,
            "count": self.record_count,
            "elapsedMs": self.elapsed_ms,
            "attempts": self.attempts,
            "status": self.status.value,
            "error": self.error_message,
        }


@dataclass(frozen=True)
class BoxRecord:
    """One extracted storage-box row normalized for persistence.

    Attributes:
        box_number: Box identifier shown by the remote service.
        status: Availability status text.
        location_full: Full location text.
        location_access: First location line, used as access hint.
        type_name: Box type name.
        type_full: Full box type text.
        dimensions: Dimensions text in `AxBxC` form.
        area_m2: Area measurement text.
        volume_m3: Volume measurement text.
        price_monthly: Monthly price text.
        price_per_m3: Price per cubic meter text.
        price_daily: Daily price text.
        access_control: Access control text.
        locality: Locality key of the unit the row belongs to.
    """

    box_number: str
    status: str
    location_full: str
    location_access: str
    type_name: str
    type_full: str
    dimensions: str
    area_m2: str
    volume_m3: str
    price_monthly: str
    price_per_m3: str
    price_daily: str
    access_control: str
    locality: str


def domain_job_status_is_terminal(status: JobStatus | str) -> bool:
    """Return whether one status value is terminal.

    Args:
        status: Status enum member or raw status text.

    Returns:
        bool: True when no further transition is permitted.
    """

    return JobStatus(status) in JOB_TERMINAL_STATUSES


def domain_job_public_payload(record: JobRecord) -> dict[str, object]:
    """Serialize one job for untrusted callers with the callback target stripped.

    Args:
        record: Job record.

    Returns:
        dict[str, object]: JSON-compatible job payload.
    """

    return {
        "jobId": record.job_id,
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
    }
