"""Job-layer guard keeping the adapter's browsing session authenticated."""

from __future__ import annotations

import logging

from boxsync.adapters import ExtractionAdapterError, ExtractionAdapterPort, SessionExpiredError

logger = logging.getLogger(__name__)


class SessionUnavailableError(RuntimeError):
    """Raised when the remote service cannot be authenticated against at all."""


class SessionGuard:
    """Authentication guard wrapping one extraction adapter session."""

    def __init__(self, adapter: ExtractionAdapterPort):
        """Initialize session guard.

        Args:
            adapter: Extraction adapter owning the browsing session.

        Raises:
            ValueError: Raised when adapter is None.
        """

        if adapter is None:
            raise ValueError("adapter must not be None")
        self._adapter = adapter

    def job_session_is_authenticated(self) -> bool:
        """Return whether the session looks authenticated.

        The check is heuristic: the adapter must not be on the login surface
        and the post-login marker must be present.

        Returns:
            bool: True when the session is usable.
        """

        try:
            if self._adapter.adapter_is_on_login_surface():
                return False
            return self._adapter.adapter_has_session_marker()
        except SessionExpiredError:
            return False

    def job_session_login(self) -> None:
        """Run the authentication sequence.

        Raises:
            SessionUnavailableError: Raised when the adapter cannot authenticate.
        """

        try:
            self._adapter.adapter_login()
        except ExtractionAdapterError as error:
            raise SessionUnavailableError(f"authentication failed: {error}") from error
        logger.info("Session authenticated for %s", self._adapter.adapter_source_name())

    def job_session_ensure_authenticated(self) -> bool:
        """Re-login when the session was lost.

        Returns:
            bool: True when a re-login happened, so session-scoped state must be reset.

        Raises:
            SessionUnavailableError: Raised when the re-login fails.
        """

        if self.job_session_is_authenticated():
            return False
        logger.warning("Session lost, logging in again")
        self.job_session_login()
        return True
