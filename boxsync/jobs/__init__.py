"""Job layer package for extraction execution and worker supervision."""

from .extraction_batch import ExtractionBatchResult, job_extraction_run_batch
from .interfaces import WorkerSupervisorPort
from .retention import JobRetentionSweeper
from .session_guard import SessionGuard, SessionUnavailableError
from .supervisor import WorkerSpawnError, WorkerSupervisor
from .unit_processor import UnitExtractionError, UnitProcessingState, UnitProcessor
from .worker_entry import (
	WorkerDependencies,
	WorkerDependencyFactory,
	job_worker_build_result,
	job_worker_execute,
	job_worker_process_main,
)

__all__ = [
	"ExtractionBatchResult",
	"JobRetentionSweeper",
	"SessionGuard",
	"SessionUnavailableError",
	"UnitExtractionError",
	"UnitProcessingState",
	"UnitProcessor",
	"WorkerDependencies",
	"WorkerDependencyFactory",
	"WorkerSpawnError",
	"WorkerSupervisor",
	"WorkerSupervisorPort",
	"job_extraction_run_batch",
	"job_worker_build_result",
	"job_worker_execute",
	"job_worker_process_main",
]
