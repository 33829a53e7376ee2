"""Project-native typed exceptions for extraction adapter failures."""

from __future__ import annotations


class ExtractionAdapterError(Exception):
    """Base exception for adapter-level extraction failures.

    Attributes:
        stage: Optional adapter stage label where the failure happened.
    """

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.stage = stage


class AdapterConnectionError(ExtractionAdapterError, ConnectionError):
    """Transport-level failure while talking to the remote service."""


class AdapterTimeoutError(ExtractionAdapterError, TimeoutError):
    """Navigation or element wait exceeded its timeout."""


class AdapterAuthenticationError(ExtractionAdapterError, PermissionError):
    """Login sequence failed or credentials were rejected."""


class SessionExpiredError(ExtractionAdapterError):
    """Authenticated session was lost and must be re-established."""


class AdapterSelectionError(ExtractionAdapterError, RuntimeError):
    """Unit target context or filters could not be selected."""


class AdapterPageError(ExtractionAdapterError, RuntimeError):
    """One page of records could not be read or navigated."""
