"""Job store health check."""

from sqlalchemy import Engine, func, select
from sqlalchemy.exc import SQLAlchemyError

from boxsync.domain import HealthStatus, JobStatus

from .interfaces import DatabaseHealthPort
from .schema import scrape_job_table


class SQLAlchemyDatabaseHealthService(DatabaseHealthPort):
    """Reports whether the job table answers and how many jobs are in flight."""

    def __init__(self, engine: Engine):
        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    def db_connection_label(self) -> str:
        return self._engine.url.render_as_string(hide_password=True)

    def db_check_health(self) -> HealthStatus:
        """Count stored jobs per status.

        Returns:
            HealthStatus: `ok` with total and running job counts.

        Raises:
            ConnectionError: Raised when the job table cannot be queried.
        """

        statement = select(scrape_job_table.c.status, func.count()).group_by(scrape_job_table.c.status)
        try:
            with self._engine.connect() as connection:
                counts = {row_status: row_count for row_status, row_count in connection.execute(statement)}
        except SQLAlchemyError as error:
            raise ConnectionError(f"job store unreachable: {error.__class__.__name__}") from error

        running = counts.get(JobStatus.RUNNING.value, 0)
        return HealthStatus(
            status="ok",
            detail=f"job store reachable, {sum(counts.values())} jobs tracked, {running} running",
        )
