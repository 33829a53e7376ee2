"""Database layer package for all SQL and persistence boundaries."""

from .box_record_sink import SQLAlchemyBoxRecordSink
from .health import SQLAlchemyDatabaseHealthService
from .interfaces import (
	DatabaseHealthPort,
	DataSinkError,
	DataSinkPort,
	DuplicateJobError,
	JobAlreadyTerminalError,
	JobNotFoundError,
	JobStoreError,
	JobStorePort,
	MissingJobPolicy,
)
from .job_store import SQLAlchemyJobStore
from .schema import box_record_table, db_metadata, scrape_job_table
from .session import db_create_engine

__all__ = [
	"DatabaseHealthPort",
	"DataSinkError",
	"DataSinkPort",
	"DuplicateJobError",
	"JobAlreadyTerminalError",
	"JobNotFoundError",
	"JobStoreError",
	"JobStorePort",
	"MissingJobPolicy",
	"SQLAlchemyBoxRecordSink",
	"SQLAlchemyDatabaseHealthService",
	"SQLAlchemyJobStore",
	"box_record_table",
	"db_create_engine",
	"db_metadata",
	"scrape_job_table",
]
