"""Periodic purge of expired terminal jobs."""

from __future__ import annotations

import logging
import threading
from datetime import timedelta

from boxsync.db import JobStoreError, JobStorePort

logger = logging.getLogger(__name__)


class JobRetentionSweeper:
    """Background thread purging terminal jobs past the retention window."""

    def __init__(
        self,
        job_store: JobStorePort,
        retention: timedelta = timedelta(days=7),
        interval_seconds: float = 3600.0,
    ):
        """Initialize retention sweeper.

        Args:
            job_store: Job store to purge.
            retention: Age after which terminal jobs are removed.
            interval_seconds: Delay between sweeps.

        Raises:
            ValueError: Raised when the store is missing or the interval is not positive.
        """

        if job_store is None:
            raise ValueError("job_store must not be None")
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self._job_store = job_store
        self._retention = retention
        self._interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def job_retention_sweep_once(self) -> int:
        """Run one purge.

        Returns:
            int: Number of removed jobs.

        Raises:
            JobStoreError: Raised when the purge fails.
        """

        removed_count = self._job_store.db_job_purge_older_than(self._retention)
        logger.info("Retention sweep removed %s jobs older than %s", removed_count, self._retention)
        return removed_count

    def job_retention_start(self) -> None:
        """Start the sweeper thread; no-op when already running."""

        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._job_retention_run, name="boxsync-retention", daemon=True)
        self._thread.start()
        logger.info("Retention sweeper started (interval %ss)", self._interval_seconds)

    def job_retention_stop(self, timeout_seconds: float = 5.0) -> None:
        """Stop the sweeper thread and wait for it to exit."""

        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout_seconds)
            self._thread = None

    def _job_retention_run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.job_retention_sweep_once()
            except JobStoreError:
                logger.exception("Retention sweep failed")
            self._stop_event.wait(self._interval_seconds)
