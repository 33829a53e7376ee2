"""HTTP callback delivery with fixed-delay retries."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Final

import httpx

from .interfaces import CallbackDeliveryError, CallbackDeliveryPort, CallbackDeliveryResult

logger = logging.getLogger(__name__)


class HttpxCallbackDeliveryService(CallbackDeliveryPort):
    """Callback delivery service posting JSON payloads through httpx."""

    _USER_AGENT: Final[str] = "boxsync-orchestrator/1.0"

    def __init__(
        self,
        max_retries: int = 3,
        retry_delay_seconds: float = 5.0,
        request_timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        """Initialize callback delivery service.

        Args:
            max_retries: Additional attempts after the first failure.
            retry_delay_seconds: Fixed delay between attempts.
            request_timeout_seconds: Timeout of one HTTP request.
            transport: Optional httpx transport, used by tests.
            sleep: Optional sleep function, used by tests.

        Raises:
            ValueError: Raised when retry or timeout values are invalid.
        """

        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must be >= 0")
        if request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")

        self._max_retries = max_retries
        self._retry_delay_seconds = retry_delay_seconds
        self._request_timeout_seconds = request_timeout_seconds
        self._transport = transport
        self._sleep = sleep or time.sleep

    def delivery_send(self, url: str, payload: dict[str, Any]) -> CallbackDeliveryResult:
        """POST one JSON payload, retrying on any failure.

        Transport errors, timeouts and non-2xx responses all count as failed
        attempts. The method never raises for delivery failures.

        Args:
            url: Callback URL.
            payload: JSON-compatible payload.

        Returns:
            CallbackDeliveryResult: Delivery outcome with cumulative attempt count.
        """

        total_attempts = self._max_retries + 1
        last_status_code: int | None = None
        last_error: str | None = None

        with httpx.Client(
            timeout=self._request_timeout_seconds,
            transport=self._transport,
            headers={"User-Agent": self._USER_AGENT},
        ) as client:
            for attempt in range(1, total_attempts + 1):
                try:
                    last_status_code = self._delivery_post(client, url, payload)
                    logger.info("Callback delivered to %s (attempt %s/%s)", url, attempt, total_attempts)
                    return CallbackDeliveryResult(
                        success=True,
                        status_code=last_status_code,
                        error=None,
                        attempts=attempt,
                    )
                except CallbackDeliveryError as error:
                    last_error = str(error)
                    last_status_code = getattr(error, "status_code", None)
                    logger.warning(
                        "Callback attempt %s/%s to %s failed: %s",
                        attempt,
                        total_attempts,
                        url,
                        last_error,
                    )

                if attempt < total_attempts and self._retry_delay_seconds > 0:
                    self._sleep(self._retry_delay_seconds)

        logger.error("Callback delivery to %s failed after %s attempts", url, total_attempts)
        return CallbackDeliveryResult(
            success=False,
            status_code=last_status_code,
            error=last_error,
            attempts=total_attempts,
        )

    def _delivery_post(self, client: httpx.Client, url: str, payload: dict[str, Any]) -> int:
        """Execute one POST and return the 2xx status code.

        Raises:
            CallbackDeliveryError: Raised for transport failures and non-2xx responses.
        """

        try:
            response = client.post(url, json=payload)
        except httpx.TimeoutException as error:
            raise CallbackDeliveryError("callback request timed out") from error
        except httpx.HTTPError as error:
            raise CallbackDeliveryError(f"callback request failed: {error}") from error

        if not response.is_success:
            raise _CallbackStatusError(response.status_code)
        return response.status_code


class _CallbackStatusError(CallbackDeliveryError):
    def __init__(self, status_code: int):
        super().__init__(f"callback endpoint returned HTTP {status_code}")
        self.status_code = status_code
