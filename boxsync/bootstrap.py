"""Application bootstrap wiring for startup validation and dependency assembly."""

from datetime import timedelta

from fastapi import FastAPI

from boxsync.adapters.prisma_box_web import PrismaBoxWebAdapter
from boxsync.api import create_api_application
from boxsync.config import AppSettings, config_configure_logging, config_load_settings, config_load_units
from boxsync.db import (
    SQLAlchemyBoxRecordSink,
    SQLAlchemyDatabaseHealthService,
    SQLAlchemyJobStore,
    db_create_engine,
)
from boxsync.delivery import HttpxCallbackDeliveryService
from boxsync.jobs import JobRetentionSweeper, WorkerDependencies, WorkerSupervisor


def bootstrap_create_application() -> FastAPI:
    """Assemble the runtime application after validating startup configuration.

    Returns:
        FastAPI: Fully initialized FastAPI application instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    settings = config_load_settings()
    config_configure_logging(settings.log_level)
    config_load_units(settings.units_file)

    engine = db_create_engine(database_url=settings.database_url)
    job_store = SQLAlchemyJobStore(engine=engine, missing_job_policy=settings.job_store_missing_job_policy)
    worker_supervisor = WorkerSupervisor(
        job_store=job_store,
        dependency_factory=bootstrap_build_worker_dependencies,
        worker_timeout_seconds=settings.worker_timeout_seconds,
        startup_timeout_seconds=settings.worker_startup_timeout_seconds,
        start_method=settings.worker_start_method,
    )
    return create_api_application(
        settings=settings,
        db_health_service=SQLAlchemyDatabaseHealthService(engine=engine),
        job_store=job_store,
        worker_supervisor=worker_supervisor,
        callback_delivery=bootstrap_create_callback_delivery(settings),
        retention_sweeper=bootstrap_create_retention_sweeper(settings, job_store),
    )


def bootstrap_build_worker_dependencies() -> WorkerDependencies:
    """Build the dependencies of one worker process from settings.

    Runs inside the worker process, so it must stay a module-level function
    that can be pickled by the `spawn` start method.

    Returns:
        WorkerDependencies: Store, sink, adapter, callback delivery and units.

    Raises:
        SettingsLoadError: Raised when configuration or unit catalog is invalid.
    """

    settings = config_load_settings()
    config_configure_logging(settings.log_level)

    engine = db_create_engine(database_url=settings.database_url)
    job_store = SQLAlchemyJobStore(engine=engine, missing_job_policy=settings.job_store_missing_job_policy)
    job_store.store_open()
    data_sink = SQLAlchemyBoxRecordSink(engine=engine)
    data_sink.sink_open()

    return WorkerDependencies(
        job_store=job_store,
        data_sink=data_sink,
        adapter=PrismaBoxWebAdapter(
            base_url=settings.prisma_base_url,
            username=settings.prisma_username,
            password=settings.prisma_password,
            headless=settings.browser_headless,
            slow_mo_ms=settings.browser_slow_mo_ms,
        ),
        callback_delivery=bootstrap_create_callback_delivery(settings),
        units=config_load_units(settings.units_file),
        unit_max_attempts=settings.unit_max_attempts,
        unit_retry_backoff_seconds=settings.unit_retry_backoff_seconds,
        unit_max_pages=settings.unit_max_pages,
        progress_callbacks_enabled=settings.callback_progress_enabled,
    )


def bootstrap_create_callback_delivery(settings: AppSettings) -> HttpxCallbackDeliveryService:
    """Build the callback delivery service from settings.

    Args:
        settings: Validated application settings.

    Returns:
        HttpxCallbackDeliveryService: Configured delivery service.
    """

    return HttpxCallbackDeliveryService(
        max_retries=settings.callback_max_retries,
        retry_delay_seconds=settings.callback_retry_delay_seconds,
        request_timeout_seconds=settings.callback_request_timeout_seconds,
    )


def bootstrap_create_retention_sweeper(settings: AppSettings, job_store: SQLAlchemyJobStore) -> JobRetentionSweeper:
    """Build the retention sweeper from settings.

    Args:
        settings: Validated application settings.
        job_store: Job store to purge.

    Returns:
        JobRetentionSweeper: Configured sweeper, not yet started.
    """

    return JobRetentionSweeper(
        job_store=job_store,
        retention=timedelta(days=settings.job_retention_days),
        interval_seconds=settings.job_retention_sweep_interval_seconds,
    )
