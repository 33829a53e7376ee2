"""Scraping API router composition for job submission, status and cancellation."""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, BackgroundTasks, Body, status
from fastapi.responses import JSONResponse

from boxsync.db import JobStorePort
from boxsync.delivery import CallbackDeliveryPort, delivery_build_error_payload, delivery_validate_callback_url
from boxsync.domain import JobLogLevel, domain_job_public_payload, domain_utc_now
from boxsync.jobs import WorkerSpawnError, WorkerSupervisorPort

logger = logging.getLogger(__name__)

JOB_CANCELLED_ERROR_MESSAGE = "Job cancelled by caller"
JOB_CANCELLED_ERROR_CODE = "cancelled_by_caller"


def api_create_scraping_router(
    job_store: JobStorePort,
    worker_supervisor: WorkerSupervisorPort,
    callback_delivery: CallbackDeliveryPort,
    restrict_loopback_callbacks: bool = False,
) -> APIRouter:
    """Create scraping router with submit, status, list, cancel and active endpoints.

    Args:
        job_store: Job lifecycle store.
        worker_supervisor: Supervisor of isolated job workers.
        callback_delivery: Callback service used when a worker cannot start.
        restrict_loopback_callbacks: Whether loopback callback hosts are rejected.

    Returns:
        APIRouter: Router exposing `/api/scraping` endpoints.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if job_store is None:
        raise ValueError("job_store must not be None")
    if worker_supervisor is None:
        raise ValueError("worker_supervisor must not be None")
    if callback_delivery is None:
        raise ValueError("callback_delivery must not be None")

    router = APIRouter(prefix="/api/scraping", tags=["scraping"])

    def _api_scraping_launch_worker(job_id: str, callback_url: str) -> None:
        try:
            worker_supervisor.supervisor_start(job_id, callback_url)
        except WorkerSpawnError as error:
            logger.error("Worker for job %s could not start: %s", job_id, error)
            job_store.db_job_append_log(job_id, f"Worker could not start: {error}", level=JobLogLevel.ERROR)
            failed_record = job_store.db_job_fail(job_id, error)
            callback_delivery.delivery_send(
                callback_url,
                delivery_build_error_payload(job_id=job_id, error=error, logs=failed_record.logs),
            )

    @router.post("/start")
    def api_scraping_start(
        background_tasks: BackgroundTasks,
        request_payload: dict[str, Any] | None = Body(default=None),
    ) -> JSONResponse:
        """Accept one extraction job and start its worker in the background.

        Returns:
            JSONResponse: Pending job acknowledgement, or 400 for an invalid callback URL.
        """

        callback_url = (request_payload or {}).get("callbackUrl")
        validation = delivery_validate_callback_url(callback_url, restrict_loopback=restrict_loopback_callbacks)
        if not validation.valid:
            payload = {"success": False, "error": validation.error}
            return JSONResponse(content=payload, status_code=status.HTTP_400_BAD_REQUEST)

        job_id = str(uuid4())
        job_store.db_job_create(job_id, callback_target=callback_url.strip())
        background_tasks.add_task(_api_scraping_launch_worker, job_id, callback_url.strip())

        payload = {
            "success": True,
            "jobId": job_id,
            "message": "Extraction job accepted",
            "status": "pending",
            "timestamp": domain_utc_now().isoformat(),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/status/{job_id}")
    def api_scraping_status(job_id: str) -> JSONResponse:
        """Return one job with its callback target stripped.

        Returns:
            JSONResponse: Job payload, or 404 for unknown ids.
        """

        record = job_store.db_job_get(job_id)
        if record is None:
            payload = {"success": False, "error": "Job not found"}
            return JSONResponse(content=payload, status_code=status.HTTP_404_NOT_FOUND)
        return JSONResponse(
            content={"success": True, "job": domain_job_public_payload(record)},
            status_code=status.HTTP_200_OK,
        )

    @router.get("/jobs")
    def api_scraping_job_list() -> JSONResponse:
        """Return all tracked jobs.

        Returns:
            JSONResponse: Jobs payload with total count.
        """

        jobs = [domain_job_public_payload(record) for record in job_store.db_job_list()]
        return JSONResponse(
            content={"success": True, "jobs": jobs, "total": len(jobs)},
            status_code=status.HTTP_200_OK,
        )

    @router.delete("/job/{job_id}")
    def api_scraping_cancel(job_id: str) -> JSONResponse:
        """Cancel one non-terminal job.

        Returns:
            JSONResponse: Cancellation result, 404 for unknown ids or 409 for finished jobs.
        """

        record = job_store.db_job_get(job_id)
        if record is None:
            payload = {"success": False, "error": "Job not found"}
            return JSONResponse(content=payload, status_code=status.HTTP_404_NOT_FOUND)
        if record.job_is_terminal():
            payload = {"success": False, "error": f"Job already {record.status.value}"}
            return JSONResponse(content=payload, status_code=status.HTTP_409_CONFLICT)

        terminated = worker_supervisor.supervisor_terminate(job_id)
        cancelled_record = job_store.db_job_fail(job_id, JOB_CANCELLED_ERROR_MESSAGE)
        if cancelled_record.error != JOB_CANCELLED_ERROR_MESSAGE:
            payload = {"success": False, "error": f"Job already {cancelled_record.status.value}"}
            return JSONResponse(content=payload, status_code=status.HTTP_409_CONFLICT)

        job_store.db_job_append_log(job_id, JOB_CANCELLED_ERROR_MESSAGE, level=JobLogLevel.INFO)
        payload = {
            "success": True,
            "message": "Job cancelled" if terminated else "Job cancelled; no worker was running",
            "jobId": job_id,
            "terminated": terminated,
            "code": JOB_CANCELLED_ERROR_CODE,
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/active")
    def api_scraping_active_workers() -> JSONResponse:
        """Return ids of jobs with a running worker.

        Returns:
            JSONResponse: Active worker payload.
        """

        active_workers = list(worker_supervisor.supervisor_list_active())
        return JSONResponse(
            content={"success": True, "activeWorkers": active_workers, "count": len(active_workers)},
            status_code=status.HTTP_200_OK,
        )

    return router
