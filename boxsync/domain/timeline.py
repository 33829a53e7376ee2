"""Shared job log and timestamp helper utilities."""

from __future__ import annotations

from datetime import datetime, timezone

from .models import JobLogEntry, JobLogLevel


def domain_utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp.

    Returns:
        datetime: Current UTC time.
    """

    return datetime.now(timezone.utc)


def domain_build_log_entry(message: str, level: JobLogLevel | str = JobLogLevel.INFO) -> JobLogEntry:
    """Build one structured job log entry stamped with the current UTC time.

    Args:
        message: Human-readable log message.
        level: Severity label.

    Returns:
        JobLogEntry: Immutable log entry.

    Raises:
        ValueError: Raised when the level is not a supported severity label.
    """

    normalized_level = JobLogLevel(level)
    return JobLogEntry(
        timestamp=domain_utc_now().isoformat(),
        level=normalized_level.value,
        message=str(message),
    )
