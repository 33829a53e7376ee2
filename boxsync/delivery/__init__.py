"""Callback delivery package for outbound job notifications."""

from .interfaces import (
	CallbackDeliveryError,
	CallbackDeliveryPort,
	CallbackDeliveryResult,
	CallbackUrlValidation,
	CallbackUrlValidationError,
)
from .payloads import (
	delivery_build_error_payload,
	delivery_build_progress_payload,
	delivery_build_success_payload,
)
from .url_validation import delivery_validate_callback_url
from .webhook import HttpxCallbackDeliveryService

__all__ = [
	"CallbackDeliveryError",
	"CallbackDeliveryPort",
	"CallbackDeliveryResult",
	"CallbackUrlValidation",
	"CallbackUrlValidationError",
	"HttpxCallbackDeliveryService",
	"delivery_build_error_payload",
	"delivery_build_progress_payload",
	"delivery_build_success_payload",
	"delivery_validate_callback_url",
]
