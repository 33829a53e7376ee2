"""Domain models used across application layer boundaries."""

from .box_parsing import domain_box_extract_number, domain_box_parse_row, domain_box_parse_rows
from .models import (
	JOB_TERMINAL_STATUSES,
	BoxRecord,
	HealthStatus,
	JobLogEntry,
	JobLogLevel,
	JobRecord,
	JobStatus,
	UnitDefinition,
	UnitReport,
	UnitReportStatus,
	domain_job_public_payload,
	domain_job_status_is_terminal,
)
from .timeline import domain_build_log_entry, domain_utc_now

__all__ = [
	"JOB_TERMINAL_STATUSES",
	"BoxRecord",
	"HealthStatus",
	"JobLogEntry",
	"JobLogLevel",
	"JobRecord",
	"JobStatus",
	"UnitDefinition",
	"UnitReport",
	"UnitReportStatus",
	"domain_box_extract_number",
	"domain_box_parse_row",
	"domain_box_parse_rows",
	"domain_build_log_entry",
	"domain_job_public_payload",
	"domain_job_status_is_terminal",
	"domain_utc_now",
]
