"""Health endpoint router composition for app and job store checks."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from boxsync.db import DatabaseHealthPort
from boxsync.domain import domain_utc_now


def api_create_health_router(db_health_service: DatabaseHealthPort, environment_name: str) -> APIRouter:
    """Create health-check router with app and job store status.

    Args:
        db_health_service: DB-layer health service interface.
        environment_name: Runtime environment label reported by the endpoint.

    Returns:
        APIRouter: Router exposing `/health` endpoint.

    Raises:
        ValueError: Raised when db_health_service is invalid.
    """

    if db_health_service is None:
        raise ValueError("db_health_service must not be None")

    router = APIRouter(tags=["health"])

    @router.get("/health")
    def api_health_status() -> JSONResponse:
        """Return application and job store health state.

        Returns:
            JSONResponse: 200 when the job store answers, 503 otherwise.
        """

        payload = {
            "status": "ok",
            "app": "up",
            "environment": environment_name,
            "timestamp": domain_utc_now().isoformat(),
            "target": db_health_service.db_connection_label(),
        }
        try:
            db_health = db_health_service.db_check_health()
        except ConnectionError as error:
            payload.update({"status": "degraded", "database": "down", "detail": str(error)})
            return JSONResponse(content=payload, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

        payload.update({"database": db_health.status, "detail": db_health.detail})
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    return router
