"""Typed interfaces for outbound callback delivery."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


class CallbackDeliveryError(ConnectionError):
    """Raised for one failed callback attempt; retried and never propagated to jobs."""


class CallbackUrlValidationError(ValueError):
    """Raised when a submitted callback URL is rejected."""


@dataclass(frozen=True)
class CallbackDeliveryResult:
    """Outcome of one callback delivery including retries.

    Attributes:
        success: Whether a 2xx response was received.
        status_code: Status code of the last response, None when no response arrived.
        error: Error message of the last failed attempt.
        attempts: Total number of HTTP attempts made.
    """

    success: bool
    status_code: int | None
    error: str | None
    attempts: int


@dataclass(frozen=True)
class CallbackUrlValidation:
    """Validation outcome for one callback URL.

    Attributes:
        valid: Whether the URL may be used as a callback target.
        error: Rejection reason when invalid.
    """

    valid: bool
    error: str | None = None


class CallbackDeliveryPort(Protocol):
    """Port definition for callback delivery with bounded retries."""

    def delivery_send(self, url: str, payload: dict[str, Any]) -> CallbackDeliveryResult:
        """POST one JSON payload to the callback URL.

        Args:
            url: Callback URL.
            payload: JSON-compatible payload.

        Returns:
            CallbackDeliveryResult: Delivery outcome with cumulative attempt count.
        """
