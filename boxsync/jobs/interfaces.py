"""Typed interfaces for job-layer supervision responsibilities."""

from typing import Protocol


class WorkerSupervisorPort(Protocol):
    """Port definition for starting and stopping isolated job workers."""

    def supervisor_start(self, job_id: str, callback_target: str | None) -> None:
        """Start the worker of one job and wait for its started signal.

        Args:
            job_id: Job token.
            callback_target: Callback URL handed to the worker.

        Raises:
            WorkerSpawnError: Raised when the worker cannot be started.
        """

    def supervisor_terminate(self, job_id: str) -> bool:
        """Force-stop the worker of one job.

        Returns:
            bool: True when an active worker was stopped.
        """

    def supervisor_list_active(self) -> tuple[str, ...]:
        """Return ids of jobs with an active worker."""

    def supervisor_shutdown(self) -> None:
        """Terminate every active worker."""
