"""API router package for endpoint composition."""

from .health import api_create_health_router
from .scraping import JOB_CANCELLED_ERROR_CODE, JOB_CANCELLED_ERROR_MESSAGE, api_create_scraping_router

__all__ = [
	"JOB_CANCELLED_ERROR_CODE",
	"JOB_CANCELLED_ERROR_MESSAGE",
	"api_create_health_router",
	"api_create_scraping_router",
]
