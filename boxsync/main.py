"""Main module entrypoint for local runtime execution.

This module validates startup configuration and launches the FastAPI service,
or runs one operator command against the configured job store.
"""

import argparse
from uuid import uuid4

import uvicorn

from boxsync.bootstrap import (
    bootstrap_build_worker_dependencies,
    bootstrap_create_application,
    bootstrap_create_retention_sweeper,
)
from boxsync.config import config_configure_logging, config_load_settings
from boxsync.db import SQLAlchemyJobStore, db_create_engine
from boxsync.delivery import CallbackUrlValidationError, delivery_validate_callback_url
from boxsync.domain import JobStatus
from boxsync.jobs import job_worker_execute


def main() -> None:
    """Run selected runtime command with validated startup configuration.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
        SystemExit: Raised with the job exit code after `run-job`, or by argparse on invalid arguments.
    """

    argument_parser = argparse.ArgumentParser(description="Boxsync extraction orchestrator runtime entrypoint")
    argument_parser.add_argument(
        "command",
        nargs="?",
        default="api",
        choices=("api", "run-job", "purge-jobs"),
        help="Runtime command: `api` starts server, `run-job` runs one extraction job in this process, "
        "`purge-jobs` removes expired terminal jobs once",
        type=str,
    )
    argument_parser.add_argument(
        "--callback-url",
        dest="callback_url",
        type=str,
        help="Optional callback URL notified by `run-job`",
    )
    parsed_arguments = argument_parser.parse_args()

    if parsed_arguments.command == "run-job":
        try:
            exit_code = main_run_job(parsed_arguments.callback_url)
        except CallbackUrlValidationError as error:
            argument_parser.error(f"invalid --callback-url: {error}")
        raise SystemExit(exit_code)

    if parsed_arguments.command == "purge-jobs":
        main_purge_jobs()
        return

    settings = config_load_settings()
    application = bootstrap_create_application()
    uvicorn.run(
        application,
        host=settings.application_host,
        port=settings.application_port,
    )


def main_run_job(callback_url: str | None) -> int:
    """Create one job and run it in the current process.

    Args:
        callback_url: Optional callback URL.

    Returns:
        int: Process exit code, 0 when the job completed.

    Raises:
        CallbackUrlValidationError: Raised when the callback URL is rejected.
    """

    settings = config_load_settings()
    if callback_url is not None:
        validation = delivery_validate_callback_url(callback_url, restrict_loopback=settings.settings_is_production())
        if not validation.valid:
            raise CallbackUrlValidationError(validation.error)

    dependencies = bootstrap_build_worker_dependencies()
    job_id = str(uuid4())
    dependencies.job_store.db_job_create(job_id, callback_target=callback_url)
    try:
        record = job_worker_execute(job_id=job_id, callback_target=callback_url, dependencies=dependencies)
    finally:
        dependencies.job_store.store_close()

    print(f"Job {job_id} finished with status {record.status.value}")
    if record.error:
        print(f"Error: {record.error}")
    return 0 if record.status is JobStatus.COMPLETED else 1


def main_purge_jobs() -> None:
    """Purge expired terminal jobs once and print the removed count."""

    settings = config_load_settings()
    config_configure_logging(settings.log_level)
    job_store = SQLAlchemyJobStore(
        engine=db_create_engine(database_url=settings.database_url),
        missing_job_policy=settings.job_store_missing_job_policy,
    )
    job_store.store_open()
    try:
        removed_count = bootstrap_create_retention_sweeper(settings, job_store).job_retention_sweep_once()
    finally:
        job_store.store_close()
    print(f"Removed {removed_count} expired jobs")


if __name__ == "__main__":
    main()
