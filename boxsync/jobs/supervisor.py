"""Supervisor running each job in its own OS process.

Workers talk back only through a one-way pipe carrying the started signal.
Everything else about a job flows through the job store.
"""

from __future__ import annotations

import logging
import multiprocessing
import threading
from dataclasses import dataclass
from multiprocessing.process import BaseProcess
from typing import Callable

from boxsync.db import JobNotFoundError, JobStoreError, JobStorePort
from boxsync.domain import JobLogLevel

from .interfaces import WorkerSupervisorPort
from .worker_entry import WORKER_STARTED_SIGNAL, WorkerDependencyFactory, job_worker_process_main

logger = logging.getLogger(__name__)


class WorkerSpawnError(RuntimeError):
    """Raised when a worker process cannot be started or never signals start."""


@dataclass
class _ActiveWorker:
    process: BaseProcess
    timeout_timer: threading.Timer


class WorkerSupervisor(WorkerSupervisorPort):
    """Supervisor of isolated worker processes with a hard per-job timeout."""

    def __init__(
        self,
        job_store: JobStorePort,
        dependency_factory: WorkerDependencyFactory,
        worker_timeout_seconds: float = 900.0,
        startup_timeout_seconds: float = 30.0,
        start_method: str = "spawn",
        termination_grace_seconds: float = 5.0,
        process_target: Callable[..., None] = job_worker_process_main,
    ):
        """Initialize worker supervisor.

        Args:
            job_store: Job store used to fail jobs whose worker ended without an outcome.
            dependency_factory: Picklable factory passed to every worker.
            worker_timeout_seconds: Hard wall-clock limit of one job.
            startup_timeout_seconds: Maximum wait for the started signal.
            start_method: Multiprocessing start method.
            termination_grace_seconds: Wait between terminate and kill.
            process_target: Module-level process target, replaceable by tests.

        Raises:
            ValueError: Raised when dependencies or timeouts are invalid.
        """

        if job_store is None:
            raise ValueError("job_store must not be None")
        if dependency_factory is None:
            raise ValueError("dependency_factory must not be None")
        if worker_timeout_seconds <= 0:
            raise ValueError("worker_timeout_seconds must be > 0")
        if startup_timeout_seconds <= 0:
            raise ValueError("startup_timeout_seconds must be > 0")

        self._job_store = job_store
        self._dependency_factory = dependency_factory
        self._worker_timeout_seconds = worker_timeout_seconds
        self._startup_timeout_seconds = startup_timeout_seconds
        self._termination_grace_seconds = termination_grace_seconds
        self._process_target = process_target
        self._context = multiprocessing.get_context(start_method)
        self._active_workers: dict[str, _ActiveWorker] = {}
        self._active_workers_lock = threading.Lock()

    def supervisor_start(self, job_id: str, callback_target: str | None) -> None:
        """Spawn the worker of one job and wait for its started signal.

        Args:
            job_id: Job token.
            callback_target: Callback URL handed to the worker.

        Raises:
            WorkerSpawnError: Raised when the process cannot start, exits first or never signals.
        """

        with self._active_workers_lock:
            if job_id in self._active_workers:
                raise WorkerSpawnError(f"worker already active for job {job_id}")

        receive_connection, send_connection = self._context.Pipe(duplex=False)
        process = self._context.Process(
            target=self._process_target,
            args=(job_id, callback_target, send_connection, self._dependency_factory),
            name=f"boxsync-worker-{job_id}",
        )
        try:
            process.start()
        except Exception as error:
            receive_connection.close()
            send_connection.close()
            raise WorkerSpawnError(f"worker process for job {job_id} could not be started: {error}") from error
        send_connection.close()

        try:
            self._supervisor_await_started(job_id, process, receive_connection)
        finally:
            receive_connection.close()

        timeout_timer = threading.Timer(self._worker_timeout_seconds, self._supervisor_handle_timeout, args=(job_id,))
        timeout_timer.daemon = True
        with self._active_workers_lock:
            self._active_workers[job_id] = _ActiveWorker(process=process, timeout_timer=timeout_timer)
        timeout_timer.start()

        watcher = threading.Thread(
            target=self._supervisor_watch,
            args=(job_id, process),
            name=f"boxsync-watch-{job_id}",
            daemon=True,
        )
        watcher.start()
        logger.info("Worker started for job %s (pid %s)", job_id, process.pid)

    def supervisor_terminate(self, job_id: str) -> bool:
        """Force-stop the worker of one job.

        Args:
            job_id: Job token.

        Returns:
            bool: True when an active worker was stopped.
        """

        with self._active_workers_lock:
            active_worker = self._active_workers.pop(job_id, None)
        if active_worker is None:
            return False

        active_worker.timeout_timer.cancel()
        self._supervisor_stop_process(active_worker.process)
        logger.info("Worker terminated for job %s", job_id)
        return True

    def supervisor_list_active(self) -> tuple[str, ...]:
        """Return ids of jobs with a running worker.

        Returns:
            tuple[str, ...]: Active job ids.
        """

        with self._active_workers_lock:
            return tuple(self._active_workers)

    def supervisor_shutdown(self) -> None:
        """Terminate every active worker and fail the jobs they leave unfinished."""

        for job_id in self.supervisor_list_active():
            if self.supervisor_terminate(job_id):
                self._supervisor_fail_unfinished(job_id, "Worker stopped by service shutdown")

    def _supervisor_await_started(self, job_id: str, process: BaseProcess, receive_connection) -> None:
        """Block until the worker reports it started.

        Raises:
            WorkerSpawnError: Raised on exit before signaling, silence or an unexpected message.
        """

        try:
            if not receive_connection.poll(self._startup_timeout_seconds):
                self._supervisor_stop_process(process)
                raise WorkerSpawnError(
                    f"worker for job {job_id} did not start within {self._startup_timeout_seconds} seconds"
                )
            message = receive_connection.recv()
        except (EOFError, OSError) as error:
            process.join(self._termination_grace_seconds)
            raise WorkerSpawnError(
                f"worker for job {job_id} exited before starting (exit code {process.exitcode})"
            ) from error

        if not isinstance(message, dict) or message.get("type") != WORKER_STARTED_SIGNAL:
            self._supervisor_stop_process(process)
            raise WorkerSpawnError(f"worker for job {job_id} sent an unexpected start message")

    def _supervisor_watch(self, job_id: str, process: BaseProcess) -> None:
        process.join()
        with self._active_workers_lock:
            active_worker = self._active_workers.get(job_id)
            exited_by_itself = active_worker is not None and active_worker.process is process
            if exited_by_itself:
                del self._active_workers[job_id]
                active_worker.timeout_timer.cancel()
        logger.info("Worker for job %s exited with code %s", job_id, process.exitcode)

        # Terminated workers are finalized by whoever terminated them.
        if exited_by_itself:
            self._supervisor_fail_unfinished(
                job_id,
                f"Worker exited with code {process.exitcode} before recording an outcome",
            )

    def _supervisor_handle_timeout(self, job_id: str) -> None:
        if self.supervisor_terminate(job_id):
            self._supervisor_fail_unfinished(job_id, f"Worker timed out after {self._worker_timeout_seconds:g} seconds")

    def _supervisor_fail_unfinished(self, job_id: str, message: str) -> None:
        """Mark a job failed unless its worker already stored an outcome.

        Args:
            job_id: Job token.
            message: Error message stored on the job and in its log.
        """

        try:
            record = self._job_store.db_job_get(job_id)
            if record is None or record.job_is_terminal():
                return
            failed_record = self._job_store.db_job_fail(job_id, message)
            if failed_record.error != message:
                return
            logger.error("Job %s: %s", job_id, message)
            self._job_store.db_job_append_log(job_id, message, level=JobLogLevel.ERROR)
        except (JobStoreError, JobNotFoundError):
            logger.exception("Could not mark job %s as failed", job_id)

    def _supervisor_stop_process(self, process: BaseProcess) -> None:
        if not process.is_alive():
            process.join(0)
            return
        process.terminate()
        process.join(self._termination_grace_seconds)
        if process.is_alive():
            process.kill()
            process.join()
