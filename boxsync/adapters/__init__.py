"""Adapter layer package for remote extraction boundaries."""

from .errors import (
	AdapterAuthenticationError,
	AdapterConnectionError,
	AdapterPageError,
	AdapterSelectionError,
	AdapterTimeoutError,
	ExtractionAdapterError,
	SessionExpiredError,
)
from .interfaces import ExtractionAdapterPort

__all__ = [
	"AdapterAuthenticationError",
	"AdapterConnectionError",
	"AdapterPageError",
	"AdapterSelectionError",
	"AdapterTimeoutError",
	"ExtractionAdapterError",
	"ExtractionAdapterPort",
	"SessionExpiredError",
]
