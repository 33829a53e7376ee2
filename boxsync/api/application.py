"""FastAPI application factory for the extraction job service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from boxsync.config import AppSettings
from boxsync.db import DatabaseHealthPort, JobStoreError, JobStorePort
from boxsync.delivery import CallbackDeliveryPort
from boxsync.jobs import JobRetentionSweeper, WorkerSupervisorPort

from .routers import api_create_health_router, api_create_scraping_router

logger = logging.getLogger(__name__)


def create_api_application(
    settings: AppSettings,
    db_health_service: DatabaseHealthPort,
    job_store: JobStorePort,
    worker_supervisor: WorkerSupervisorPort,
    callback_delivery: CallbackDeliveryPort,
    retention_sweeper: JobRetentionSweeper | None = None,
) -> FastAPI:
    """Create the FastAPI application instance for the service.

    The lifespan opens the job store, runs the retention sweeper and
    terminates every active worker on shutdown.

    Args:
        settings: Validated application settings.
        db_health_service: Job store health service used by health endpoints.
        job_store: Job lifecycle store.
        worker_supervisor: Supervisor of isolated job workers.
        callback_delivery: Callback service for worker start failures.
        retention_sweeper: Optional background purge of expired jobs.

    Returns:
        FastAPI: Framework application instance.
    """

    @asynccontextmanager
    async def api_lifespan(_application: FastAPI) -> AsyncIterator[None]:
        job_store.store_open()
        if retention_sweeper is not None:
            retention_sweeper.job_retention_start()
        try:
            yield
        finally:
            if retention_sweeper is not None:
                retention_sweeper.job_retention_stop()
            worker_supervisor.supervisor_shutdown()
            job_store.store_close()
            logger.info("Service shut down")

    application = FastAPI(title="Boxsync Extraction Orchestrator", lifespan=api_lifespan)

    @application.exception_handler(JobStoreError)
    async def api_job_store_error_handler(_request: Request, error: JobStoreError) -> JSONResponse:
        logger.error("Job store failure: %s", error)
        payload = {"success": False, "error": "Internal server error"}
        return JSONResponse(content=payload, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    @application.get("/", tags=["foundation"])
    def foundation_index() -> dict[str, str]:
        """Return service metadata for bootstrap verification.

        Returns:
            dict[str, str]: Service name, status and environment.
        """

        return {
            "service": "boxsync",
            "status": "ready",
            "environment": settings.environment_name,
        }

    application.include_router(
        api_create_health_router(db_health_service=db_health_service, environment_name=settings.environment_name)
    )
    application.include_router(
        api_create_scraping_router(
            job_store=job_store,
            worker_supervisor=worker_supervisor,
            callback_delivery=callback_delivery,
            restrict_loopback_callbacks=settings.settings_is_production(),
        )
    )

    return application
