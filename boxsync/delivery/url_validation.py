"""Callback URL validation rules."""

from __future__ import annotations

import ipaddress
from urllib.parse import urlsplit

from .interfaces import CallbackUrlValidation

_ALLOWED_SCHEMES = frozenset({"http", "https"})
_LOOPBACK_HOST_NAMES = frozenset({"localhost", "localhost.localdomain"})


def delivery_validate_callback_url(url: str | None, restrict_loopback: bool = False) -> CallbackUrlValidation:
    """Validate a callback URL before a job is accepted.

    Args:
        url: Submitted callback URL.
        restrict_loopback: Whether loopback hosts are rejected, enabled in production.

    Returns:
        CallbackUrlValidation: Validation outcome with the rejection reason.
    """

    if not isinstance(url, str) or not url.strip():
        return CallbackUrlValidation(valid=False, error="callbackUrl is required")

    try:
        parsed_url = urlsplit(url.strip())
        host_name = parsed_url.hostname
    except ValueError:
        return CallbackUrlValidation(valid=False, error="Invalid URL format")

    if parsed_url.scheme.lower() not in _ALLOWED_SCHEMES:
        return CallbackUrlValidation(valid=False, error="Only HTTP and HTTPS protocols are allowed")
    if not host_name:
        return CallbackUrlValidation(valid=False, error="Invalid URL format")
    if restrict_loopback and _delivery_host_is_loopback(host_name):
        return CallbackUrlValidation(valid=False, error="Localhost URLs are not allowed in production")
    return CallbackUrlValidation(valid=True)


def _delivery_host_is_loopback(host_name: str) -> bool:
    normalized_host = host_name.strip("[]").lower()
    if normalized_host in _LOOPBACK_HOST_NAMES:
        return True
    try:
        return ipaddress.ip_address(normalized_host).is_loopback
    except ValueError:
        return False
