"""Typed runtime settings with dotenv support and startup validation."""

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from boxsync.db.interfaces import MissingJobPolicy


class SettingsLoadError(RuntimeError):
    """Raised when runtime settings cannot be loaded or validated."""


class AppSettings(BaseSettings):
    """Application settings for API runtime, worker execution and extraction.

    Environment variable names map directly to field names in uppercase.
    Example: `database_url` reads from `DATABASE_URL`.

    Attributes:
        environment_name: Runtime environment label; `production` restricts loopback callbacks.
        application_host: Host interface for web server binding.
        application_port: Web server port.
        log_level: Root logging level name.
        database_url: SQLAlchemy URL of the job store and box record tables.
        job_store_missing_job_policy: Behavior of mutations that target an unknown job id.
        job_retention_days: Days a terminal job is retained before purge.
        job_retention_sweep_interval_seconds: Interval between retention sweeps.
        worker_timeout_seconds: Hard wall-clock limit of one job execution.
        worker_startup_timeout_seconds: Maximum wait for the worker started signal.
        worker_start_method: Multiprocessing start method for worker processes.
        callback_max_retries: Additional callback attempts after the first failure.
        callback_retry_delay_seconds: Fixed delay between callback attempts.
        callback_request_timeout_seconds: Timeout of one callback HTTP request.
        callback_progress_enabled: Whether per-unit progress callbacks are delivered.
        unit_max_attempts: Extraction attempts per unit.
        unit_retry_backoff_seconds: Fixed delay between unit attempts.
        unit_max_pages: Pagination safety cap per unit.
        units_file: Path of the JSON unit catalog.
        prisma_base_url: Base URL of the remote box management service.
        prisma_username: Login user for the remote service.
        prisma_password: Login password for the remote service.
        browser_headless: Whether the browser runs headless.
        browser_slow_mo_ms: Delay applied between browser actions.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment_name: str = Field(default="development")
    application_host: str = Field(default="0.0.0.0")
    application_port: int = Field(default=3000, ge=1, le=65535)
    log_level: str = Field(default="INFO")
    database_url: str = Field(default="sqlite:///data/jobs.db")
    job_store_missing_job_policy: MissingJobPolicy = Field(default=MissingJobPolicy.AUTO_CREATE)
    job_retention_days: int = Field(default=7, ge=1)
    job_retention_sweep_interval_seconds: float = Field(default=3600.0, gt=0)
    worker_timeout_seconds: float = Field(default=900.0, gt=0)
    worker_startup_timeout_seconds: float = Field(default=30.0, gt=0)
    worker_start_method: str = Field(default="spawn")
    callback_max_retries: int = Field(default=3, ge=0)
    callback_retry_delay_seconds: float = Field(default=5.0, ge=0)
    callback_request_timeout_seconds: float = Field(default=30.0, gt=0)
    callback_progress_enabled: bool = Field(default=False)
    unit_max_attempts: int = Field(default=2, ge=1)
    unit_retry_backoff_seconds: float = Field(default=5.0, ge=0)
    unit_max_pages: int = Field(default=50, ge=1)
    units_file: str = Field(default="config/units.json")
    prisma_base_url: str = Field(default="https://app.prismabox.com.br")
    prisma_username: str = Field(default="")
    prisma_password: str = Field(default="")
    browser_headless: bool = Field(default=True)
    browser_slow_mo_ms: int = Field(default=0, ge=0)

    @field_validator("database_url", "units_file", "prisma_base_url")
    @classmethod
    def _validate_non_empty_string(cls, value: str) -> str:
        stripped_value = value.strip()
        if not stripped_value:
            raise ValueError("value must not be blank")
        return stripped_value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized_value = value.strip().upper()
        if normalized_value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unsupported log level: {value}")
        return normalized_value

    @field_validator("worker_start_method")
    @classmethod
    def _validate_start_method(cls, value: str) -> str:
        normalized_value = value.strip().lower()
        if normalized_value not in {"spawn", "fork", "forkserver"}:
            raise ValueError(f"unsupported worker start method: {value}")
        return normalized_value

    def settings_is_production(self) -> bool:
        """Return whether the runtime runs in restricted production mode.

        Returns:
            bool: True when `environment_name` is `production`.
        """

        return self.environment_name.strip().lower() == "production"


class DatabaseUrlSettings(BaseSettings):
    """Minimal settings model used by migration tooling.

    This model intentionally validates only database connectivity inputs so
    schema migration commands can run without requiring full runtime
    application settings.

    Attributes:
        database_url: SQLAlchemy URL for schema migrations.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    database_url: str = Field(default="sqlite:///data/jobs.db")


def config_load_settings() -> AppSettings:
    """Load and validate runtime settings from environment and dotenv.

    Returns:
        AppSettings: Validated runtime settings object.

    Raises:
        SettingsLoadError: Raised when required settings are missing or invalid.
    """

    try:
        return AppSettings()
    except ValidationError as error:
        raise SettingsLoadError(
            f"Startup configuration validation failed. Update .env or environment variables. Details: {error}"
        ) from error


def config_load_database_url() -> str:
    """Load and validate only the database URL setting.

    Returns:
        str: Non-empty database URL for migration and db tooling.

    Raises:
        SettingsLoadError: Raised when database URL cannot be loaded.
    """

    try:
        database_settings = DatabaseUrlSettings()
    except ValidationError as error:
        raise SettingsLoadError(
            f"Database URL configuration validation failed. Update .env or environment variables. Details: {error}"
        ) from error

    database_url = str(database_settings.database_url).strip()
    if not database_url:
        raise SettingsLoadError("Database URL configuration validation failed. DATABASE_URL must not be blank.")
    return database_url
