"""Tests for callback URL validation and callback payload shapes."""

from __future__ import annotations

import pytest

from boxsync.delivery import (
    delivery_build_error_payload,
    delivery_build_progress_payload,
    delivery_validate_callback_url,
)


@pytest.mark.parametrize(
    "url",
    [
        "https://example.test/hook",
        "http://hooks.example.test:8080/jobs?token=abc",
        "http://localhost:3000/hook",
    ],
)
def test_delivery_validate_callback_url_accepts_http_targets(url: str) -> None:
    assert delivery_validate_callback_url(url).valid is True


@pytest.mark.parametrize(
    ("url", "error"),
    [
        (None, "callbackUrl is required"),
        ("", "callbackUrl is required"),
        ("   ", "callbackUrl is required"),
        ("ftp://example.test/hook", "Only HTTP and HTTPS protocols are allowed"),
        ("not a url", "Only HTTP and HTTPS protocols are allowed"),
        ("https://", "Invalid URL format"),
        ("http://[::1", "Invalid URL format"),
    ],
)
def test_delivery_validate_callback_url_rejects_invalid_targets(url: str | None, error: str) -> None:
    """Reject missing, malformed and non-HTTP callback URLs with a reason.

    Args:
        url: Submitted URL.
        error: Expected rejection reason.

    Returns:
        None: Assertions validate rejection messages.

    Raises:
        AssertionError: Raised when validation accepts or misreports a URL.
    """

    validation = delivery_validate_callback_url(url)

    assert validation.valid is False
    assert validation.error == error


@pytest.mark.parametrize("url", ["http://localhost/hook", "http://127.0.0.1:9000/hook", "http://[::1]/hook"])
def test_delivery_validate_callback_url_restricts_loopback_in_production(url: str) -> None:
    validation = delivery_validate_callback_url(url, restrict_loopback=True)

    assert validation.valid is False
    assert validation.error == "Localhost URLs are not allowed in production"


def test_delivery_error_payload_uses_exception_type() -> None:
    payload = delivery_build_error_payload("job-1", TimeoutError("worker timed out"))

    assert payload["jobId"] == "job-1"
    assert payload["status"] == "error"
    assert payload["error"] == {"message": "worker timed out", "type": "TimeoutError", "logs": []}
    assert payload["timestamp"]


def test_delivery_progress_payload_reports_integer_percentage() -> None:
    payload = delivery_build_progress_payload("job-1", message="Processed Unit One", current_unit=1, total_units=3)

    assert payload["status"] == "progress"
    assert payload["progress"] == {
        "message": "Processed Unit One",
        "percentage": 33,
        "currentUnit": 1,
        "totalUnits": 3,
    }
